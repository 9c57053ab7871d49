"""
Todo service package.

A FastAPI application exposing CRUD operations over a MongoDB collection of
todo items. Build the application with ``create_app``.
"""

from .main import create_app  # noqa: F401
