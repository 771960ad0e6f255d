"""FastAPI routes and middleware."""
