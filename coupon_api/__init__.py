"""First-come coupon admission service."""

__version__ = "0.1.0"
