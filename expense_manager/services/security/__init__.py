"""Password hashing package."""

from expense_manager.services.security.passwords import (
    BcryptPasswordHasher,
    PasswordHasher,
)

__all__ = ["BcryptPasswordHasher", "PasswordHasher"]
