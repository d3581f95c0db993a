"""Utility modules for API-specific functionality.

- **responses**: JSON response class using orjson
- **pagination**: Result envelope and pagination headers
- **handlers**: Logging wrappers for async route handlers
"""
