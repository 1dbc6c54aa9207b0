"""
Catalog core: ownership-scoped authors, books and favorites.

This package contains:
- Credential hashing and token signing
- Request validation and schemas
- Authentication gate and ownership policy
- Listing engine
- Author, book, favorite and account services
"""

__version__ = "1.0.0"
