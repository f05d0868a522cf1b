"""Local Guide: connectivity-aware sync layer for local business discovery."""

__version__ = "0.1.0"
