"""API routers for User Service."""
