"""Marvel Stremio addon FastAPI application package."""
