"""
Response escrow middleware for Python web applications.

This package stores the response to a POST under a short-lived, single-use
token and redirects the client (303 See Other) to a GET that retrieves it
exactly once, optionally bouncing form submissions through a separate secure
domain.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
