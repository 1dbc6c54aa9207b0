"""
API routers, mounted under the versioned prefix by api.main.
"""

from api.routes import auth, authors, books, favorites, health

CATALOG_ROUTERS = (auth.router, authors.router, books.router, favorites.router)
HEALTH_ROUTER = health.router
