"""Entities, organised by business concept.

Each entity package holds its domain model (entity.py), its persistence
model (table.py) and its data access layer (repository.py).
"""

from .local_user import LocalUser, LocalUserRepository, LocalUserTable

__all__ = [
    "LocalUser",
    "LocalUserTable",
    "LocalUserRepository",
]
