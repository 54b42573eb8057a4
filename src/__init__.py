"""pressroom -- unattended content lifecycle pipeline."""

__version__ = "0.4.0"
