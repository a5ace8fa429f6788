"""
Password Hashing

The domain's HashedPassword only carries a hash and a salt; producing
them is the job of a PasswordHasher. The bcrypt implementation stores the
generated salt separately and the full bcrypt hash (which embeds the same
salt and cost) in `hash`.
"""

from abc import ABC, abstractmethod

import bcrypt

from expense_manager.models.errors import InvalidArgumentError
from expense_manager.models.value_objects import HashedPassword


class PasswordHasher(ABC):
    """Turns plain-text passwords into HashedPassword values."""

    @abstractmethod
    def hash_password(self, plain_password: str) -> HashedPassword:
        pass

    @abstractmethod
    def verify(self, plain_password: str, hashed: HashedPassword) -> bool:
        pass


class BcryptPasswordHasher(PasswordHasher):
    """bcrypt-backed hasher.

    bcrypt only reads the first 72 bytes of a password, so longer ones are
    rejected instead of being silently truncated.
    """

    MAX_PASSWORD_BYTES = 72

    def __init__(self, rounds: int = 12):
        self._rounds = rounds

    @staticmethod
    def _encode(plain_password: str) -> bytes:
        if not isinstance(plain_password, str) or not plain_password.strip():
            raise InvalidArgumentError("Password cannot be empty", field="password")
        encoded = plain_password.encode("utf-8")
        if len(encoded) > BcryptPasswordHasher.MAX_PASSWORD_BYTES:
            raise InvalidArgumentError(
                "Password cannot exceed 72 bytes", field="password"
            )
        return encoded

    def hash_password(self, plain_password: str) -> HashedPassword:
        salt = bcrypt.gensalt(rounds=self._rounds)
        hashed = bcrypt.hashpw(self._encode(plain_password), salt)
        return HashedPassword(hash=hashed.decode("utf-8"), salt=salt.decode("utf-8"))

    def verify(self, plain_password: str, hashed: HashedPassword) -> bool:
        if not isinstance(plain_password, str) or not plain_password:
            return False
        encoded = plain_password.encode("utf-8")
        if len(encoded) > self.MAX_PASSWORD_BYTES:
            return False
        return bcrypt.checkpw(
            encoded,
            hashed.hash.encode("utf-8"),
        )
