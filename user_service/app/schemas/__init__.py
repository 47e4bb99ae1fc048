"""Pydantic schemas for User Service."""
