"""REST API (FastAPI) for the patient actor backend."""
