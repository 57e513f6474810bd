"""Salted password hashing using passlib."""

import secrets

from passlib.hash import pbkdf2_sha256


class PasswordService:
    """Service for hashing and verifying salted passwords.

    The salt is generated by the caller and stored next to the hash, so
    hashing the same password with the same salt always gives the same
    result.
    """

    def __init__(self, rounds: int = 29000):
        """Initialize the password service.

        Args:
            rounds: PBKDF2 iteration count (higher = slower + more secure)
        """
        self._handler = pbkdf2_sha256.using(rounds=rounds)

    @staticmethod
    def random_salt(length: int = 16) -> str:
        """Generate a random hex salt of ``length`` bytes."""
        return secrets.token_hex(length)

    def hash(self, password: str, salt: str) -> str:
        """Hash a password with the given salt.

        Returns:
            Modular crypt string (includes algorithm, rounds, salt and checksum)
        """
        return self._handler.using(salt=salt.encode("utf-8")).hash(password)

    def verify(self, password: str, salt: str, hash: str) -> bool:
        """Check a password against a stored salt and hash."""
        try:
            return secrets.compare_digest(self.hash(password, salt), hash)
        except (TypeError, ValueError):
            return False
