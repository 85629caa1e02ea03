"""Personal issue tracker over a hosted backend, with live list sync."""

__version__ = "0.1.0"
