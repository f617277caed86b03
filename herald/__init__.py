"""Herald – authenticated content backend with live dashboard events."""

__version__ = "0.1.0"
