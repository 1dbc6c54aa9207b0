"""
FastAPI RESTful API for the Bookshelf catalog.

This module provides a REST API for:
- Account registration and bearer token login
- Owner-scoped author and book management
- Favorites for authors and books
"""
