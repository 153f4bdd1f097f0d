"""HTTP layer: FastAPI application, routers and file export helpers."""
