"""Location-gated attendance service."""
