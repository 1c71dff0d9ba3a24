"""Build-time index generation and a request-caching worker for a static asset site."""

__version__ = "0.1.0"
