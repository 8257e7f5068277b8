"""
Application package.

Contains the FastAPI entrypoint and its layers: ``core`` (settings,
logging, persistence, errors), ``schemas`` (pydantic models),
``services`` (moderation, check-in, notifications, audit) and ``api``
(versioned routers).
"""

from .main import app  # noqa: F401
