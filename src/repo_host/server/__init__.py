"""FastAPI application and transport middleware."""
