"""HTTP to HTTPS forward relay."""

__version__ = "1.0.0"
