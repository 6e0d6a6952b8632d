"""
Todo service package.

A FastAPI application exposing todo CRUD behind a nonce-based sign-in that
issues bearer access tokens. Build an instance with
``todo_api.main.create_app`` or use the default ``todo_api.main.app``.
"""

__version__ = "0.1.0"
