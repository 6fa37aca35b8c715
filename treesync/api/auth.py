"""
Resolves the current user and their download settings.
"""

import logging
from typing import TYPE_CHECKING, Any, Optional

import aiohttp

from treesync.exceptions import ConfigurationError, NoUserError
from treesync.models import SyncConfig, SyncSettings, User

if TYPE_CHECKING:
    from .client import ContentAPIClient

log = logging.getLogger(__name__)


class UserSession:
    """
    Provides the configured user, verified once against the remote service.
    """

    def __init__(self, config: SyncConfig, api_client: "ContentAPIClient"):
        self._config = config
        self._api_client = api_client
        self._user: Optional[User] = None

    async def current_user(self) -> User:
        """
        Returns the user of this session, checking the token on first use.

        Raises:
            NoUserError: If the token is rejected or belongs to another user.
        """
        if self._user:
            return self._user

        try:
            info: dict[str, Any] = await self._api_client.fetch_user()
        except aiohttp.ClientResponseError as e:
            if e.status in (401, 403):
                raise NoUserError("The configured token is invalid or has expired.") from e
            raise

        remote_id = int(info.get("id", 0))
        if remote_id != self._config.user_id:
            raise NoUserError(
                f"Token belongs to user {remote_id}, but user {self._config.user_id} "
                "is configured."
            )

        self._user = User(
            user_id=remote_id, name=info.get("name") or self._config.user_name
        )
        log.info(f"Authenticated as: {self._user.name or self._user.user_id}")
        return self._user

    async def settings(self, user: User) -> SyncSettings:
        if user.user_id != self._config.user_id:
            raise ConfigurationError(f"No settings stored for user {user.user_id}.")
        return self._config.settings
