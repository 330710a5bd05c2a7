"""HTTP API - FastAPI app over the assessment service."""
