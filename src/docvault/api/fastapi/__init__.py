"""FastAPI wiring: app factory, middleware, dependencies."""
