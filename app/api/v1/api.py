"""
V1 API router aggregator: wires all endpoint modules together.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import auth, authors, books, posts, users

api_router = APIRouter()

# Login & password reset (registered before /users/{id})
api_router.include_router(auth.router)

# Users, posts
api_router.include_router(users.router)
api_router.include_router(posts.router)

# Catalogue
api_router.include_router(authors.router)
api_router.include_router(books.router)
