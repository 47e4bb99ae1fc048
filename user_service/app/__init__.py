"""User Service - user records."""

__version__ = "1.0.0"
