"""HTTP API - FastAPI application factory and routes."""
