"""Database models for User Service."""
