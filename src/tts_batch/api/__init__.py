"""
FastAPI REST API Layer for tts-batch.

This package defines all HTTP endpoints:
    - routes.py: Run, preview, export, health and metrics endpoints
    - schemas.py: Request/response Pydantic models
    - dependencies.py: FastAPI dependency injection
"""
