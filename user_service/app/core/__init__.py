"""Core modules for User Service."""
