"""API router package for the social backend."""

from social.api import auth, posts, users

__all__ = ["auth", "posts", "users"]
