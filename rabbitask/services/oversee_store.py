"""Which connected user an agent is currently overseeing.

Only the user id is persisted in client storage, so it survives a reload;
the display name is session-only and must be re-supplied (or re-fetched with
``ConnectionService.restore_overseen_name``) after a reload.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..constants import OVERSEE_USER_ID_KEY
from ..repositories.storage import ClientStorage
from ..state_channel import ChannelView, StateChannel

logger = logging.getLogger("rabbitask.services.oversee_store")


def parse_user_id(value: Any) -> Optional[int]:
    """Coerce *value* to a user id; ``None`` for empty or non-numeric input."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


class OverseeStore:
    def __init__(self, storage: ClientStorage, storage_key: str = OVERSEE_USER_ID_KEY):
        self.storage = storage
        self._key = storage_key
        self._overseeing_user_id: StateChannel[Optional[int]] = StateChannel(
            self._read_from_storage(), name="overseeing"
        )
        self._overseeing_user_name: StateChannel[Optional[str]] = StateChannel(
            None, name="overseeing_user_name"
        )

    @property
    def overseeing(self) -> ChannelView[Optional[int]]:
        return self._overseeing_user_id.readonly()

    @property
    def overseeing_user_name(self) -> ChannelView[Optional[str]]:
        return self._overseeing_user_name.readonly()

    @property
    def current(self) -> Optional[int]:
        return self._overseeing_user_id.value

    @property
    def current_user_name(self) -> Optional[str]:
        return self._overseeing_user_name.value

    def set_overseeing(self, user_id: Any, user_name: Optional[str] = None) -> None:
        num = parse_user_id(user_id)
        if num is None:
            self.clear()
            return

        self.storage.set_item(self._key, str(num))
        if user_name:
            self._overseeing_user_name.publish(user_name)
        elif num != self.current:
            # A name belongs to one user; never show it next to another id.
            self._overseeing_user_name.publish(None)
        if num != self.current:
            logger.info("Overseeing user %s", num)
        self._overseeing_user_id.publish(num)

    def set_user_name(self, user_name: Optional[str]) -> None:
        """Attach a display name to the currently overseen user."""
        if self.current is not None:
            self._overseeing_user_name.publish(user_name or None)

    def clear(self) -> None:
        self.storage.remove_item(self._key)
        if self.current is not None:
            logger.info("Stopped overseeing user %s", self.current)
        self._overseeing_user_id.publish(None)
        self._overseeing_user_name.publish(None)

    def is_overseeing(self) -> bool:
        return self.current is not None

    def _read_from_storage(self) -> Optional[int]:
        return parse_user_id(self.storage.get_item(self._key))
