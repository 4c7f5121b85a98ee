"""
Testing package for the Sequence Engine API.

This package contains:
- Unit tests for the engine components against in-memory storage
- Integration tests for the models and API endpoints on SQLite
- Test doubles and fixtures
"""
