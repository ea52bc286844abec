"""Tickers for session expiry detection."""

from shared_timer.adapters.tickers.session_ticker import (
    DEFAULT_TICK_INTERVAL_SECONDS,
    SessionTicker,
)

__all__ = ["DEFAULT_TICK_INTERVAL_SECONDS", "SessionTicker"]
