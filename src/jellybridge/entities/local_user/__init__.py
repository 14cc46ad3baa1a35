"""Local user entity module.

- LocalUser: domain entity linking an IdP identity to a downstream account
- LocalUserTable: database persistence model
- LocalUserRepository: data access layer
"""

from .entity import LocalUser
from .repository import LocalUserRepository
from .table import LocalUserTable

__all__ = ["LocalUser", "LocalUserTable", "LocalUserRepository"]
