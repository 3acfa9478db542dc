"""HTTP boundary - FastAPI application, routes and handlers."""
