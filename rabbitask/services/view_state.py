"""Persisted task display mode (list, calendar, timeline or kanban)."""

from __future__ import annotations

import logging
from typing import Optional, Union

from ..constants import PREFERRED_VIEW_KEY
from ..repositories.storage import ClientStorage
from ..schemas.context import ViewMode
from ..state_channel import ChannelView, StateChannel

logger = logging.getLogger("rabbitask.services.view_state")

DEFAULT_VIEW = ViewMode.LIST


def _as_view_mode(value: Optional[str]) -> Optional[ViewMode]:
    try:
        return ViewMode(value)
    except ValueError:
        return None


class ViewStateStore:
    def __init__(self, storage: ClientStorage, storage_key: str = PREFERRED_VIEW_KEY):
        self.storage = storage
        self._key = storage_key
        self._current_view: StateChannel[ViewMode] = StateChannel(
            self._stored_view(), name="current_view"
        )

    @property
    def current_view(self) -> ChannelView[ViewMode]:
        return self._current_view.readonly()

    @property
    def current(self) -> ViewMode:
        return self._current_view.value

    def set_view(self, view: Union[ViewMode, str]) -> None:
        mode = _as_view_mode(view)
        if mode is None:
            raise ValueError(f"Unknown view mode: {view!r}")
        self.storage.set_item(self._key, mode.value)
        self._current_view.publish(mode)

    def load_from_storage(self) -> ViewMode:
        mode = self._stored_view()
        self._current_view.publish(mode)
        return mode

    def _stored_view(self) -> ViewMode:
        stored = self.storage.get_item(self._key)
        if stored is None:
            return DEFAULT_VIEW
        mode = _as_view_mode(stored)
        if mode is None:
            logger.warning("Ignoring invalid stored view mode %r", stored)
            return DEFAULT_VIEW
        return mode
