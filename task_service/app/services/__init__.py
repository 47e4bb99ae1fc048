"""Persistence and workflow services for Task Service."""
