"""
App assembly entry point.

Re-exports the FastAPI `app` from `wacrm.api.main` so `uvicorn app:app`
works from the service root.
"""

from wacrm.api.main import app  # noqa: F401
