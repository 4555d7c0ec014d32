"""
CRUD operations (Create, Read, Update, Delete) for database models.

This layer provides a clean separation between the account services and database operations,
following the Repository pattern.
"""

from dashauth.crud import account

__all__ = ["account"]
