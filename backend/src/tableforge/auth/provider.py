"""Authentication state for the current session."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from tableforge.auth.password import PasswordService
from tableforge.auth.session import Session

if TYPE_CHECKING:
    from tableforge.persistence.gateway import UsersGateway

logger = logging.getLogger(__name__)


class AuthProvider:
    """Answers who the current user is.

    The user row is loaded from the users table at most once per
    provider; build a new provider for each request.
    """

    def __init__(
        self,
        users: UsersGateway | None,
        session: Session,
        password_service: PasswordService | None = None,
    ):
        self.users = users
        self.session = session
        self.password_service = password_service or PasswordService()
        self._user: dict[str, Any] | None = None

    def logged_in(self) -> bool:
        return self.session.is_logged_in()

    def login(self, user_id: Any) -> None:
        self.session.user_id = user_id
        self._user = None

    def logout(self) -> None:
        self.session.user_id = None
        self._user = None

    def get_user_info(self, key: str | None = None) -> Any:
        """Current user's row, or one field of it.

        Returns None when not logged in or when the user no longer exists.
        """
        if not self.logged_in():
            return None

        user_id = self.session.user_id
        if self._user is None and self.users is not None:
            self._user = self.users.find(user_id)
            if self._user is None:
                logger.warning("Session references missing user %s", user_id)

        if key is None:
            return dict(self._user) if self._user else None
        if key == "id":
            return user_id
        return self._user.get(key) if self._user else None

    def hash_password(self, password: str, salt: str) -> str:
        return self.password_service.hash(password, salt)

    def verify_password(self, password: str, user: dict[str, Any]) -> bool:
        """Check ``password`` against a user row's ``salt`` and ``password``."""
        salt = user.get("salt")
        stored = user.get("password")
        if not salt or not stored:
            return False
        return self.password_service.verify(password, salt, stored)
