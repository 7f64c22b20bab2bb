from __future__ import annotations

from typing import Any, Optional, Union

from ..schemas.context import ModalName, ModalState
from ..state_channel import ChannelView, StateChannel

CLOSED = ModalState()


class ModalStateStore:
    """Tracks the single open modal; opening the same modal again closes it."""

    def __init__(self):
        self._modal_state: StateChannel[ModalState] = StateChannel(CLOSED, name="modal_state")

    @property
    def modal_state(self) -> ChannelView[ModalState]:
        return self._modal_state.readonly()

    def open_modal(self, modal: Optional[Union[ModalName, str]], data: Any = None) -> None:
        if modal is None:
            self.close_all_modals()
            return
        name = ModalName(modal)
        if self._modal_state.value.active_modal is name:
            self.close_all_modals()
            return
        self._modal_state.publish(
            ModalState(active_modal=name, show_blocking_overlay=True, modal_data=data)
        )

    def close_all_modals(self) -> None:
        self._modal_state.publish(CLOSED)

    def get_current_state(self) -> ModalState:
        return self._modal_state.value

    def get_active_modal(self) -> Optional[ModalName]:
        return self._modal_state.value.active_modal

    def get_modal_data(self) -> Any:
        return self._modal_state.value.modal_data

    def is_blocking(self) -> bool:
        return self._modal_state.value.show_blocking_overlay
