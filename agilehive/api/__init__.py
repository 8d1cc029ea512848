"""API layer - FastAPI application, routes and dependencies."""
