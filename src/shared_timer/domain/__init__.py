"""Domain layer - models, contracts, and ports."""
