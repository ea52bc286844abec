"""Application layer - timer services built on the domain ports."""
