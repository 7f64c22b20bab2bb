"""Single answer to "whose tasks am I looking at?" (own user or an overseen one).

Pure combinator over :class:`UserContextAggregator` and :class:`OverseeStore`:
it keeps no state of its own and re-derives synchronously whenever either
source publishes.
"""

from __future__ import annotations

from typing import Any, Optional, Tuple

from ..schemas.context import UserContext, ViewedUser
from ..state_channel import ChannelView, DerivedChannel, combine_latest
from .oversee_store import OverseeStore
from .user_context import UserContextAggregator


def _viewed_user(values: Tuple[UserContext, Optional[int]]) -> ViewedUser:
    context, overseeing_user_id = values
    return ViewedUser(
        context=context,
        is_overseen=overseeing_user_id is not None,
        overseeing_user_id=overseeing_user_id,
    )


def _active_user_id(viewed: ViewedUser) -> Optional[int]:
    if viewed.overseeing_user_id is not None:
        return viewed.overseeing_user_id
    return viewed.context.user_id


class UserContextFacade:
    def __init__(self, user_context: UserContextAggregator, oversee: OverseeStore):
        self._user_context = user_context
        self._oversee = oversee

        self._sources: DerivedChannel = combine_latest(
            user_context.user_context, oversee.overseeing, name="viewed_user.sources"
        )
        self._viewed_user: DerivedChannel[ViewedUser] = self._sources.map(
            _viewed_user, name="viewed_user"
        )
        # Only an actual change of user id counts (tags loading must not reload tasks).
        self._active_user_for_tasks: DerivedChannel[Optional[int]] = self._viewed_user.map(
            _active_user_id, name="active_user_for_tasks.raw"
        ).distinct(name="active_user_for_tasks")
        self._is_overseeing = oversee.overseeing.map(
            lambda user_id: user_id is not None, name="is_overseeing"
        ).distinct(name="is_overseeing.distinct")

    @property
    def user_context(self) -> ChannelView[UserContext]:
        return self._user_context.user_context

    @property
    def viewed_user(self) -> ChannelView[ViewedUser]:
        return ChannelView(self._viewed_user)

    @property
    def active_user_for_tasks(self) -> ChannelView[Optional[int]]:
        return ChannelView(self._active_user_for_tasks)

    @property
    def is_overseeing(self) -> ChannelView[bool]:
        return ChannelView(self._is_overseeing)

    @property
    def overseeing_user_name(self) -> ChannelView[Optional[str]]:
        return self._oversee.overseeing_user_name

    def get_viewed_user(self) -> ViewedUser:
        return self._viewed_user.value

    def get_active_user_for_tasks(self) -> Optional[int]:
        return self._active_user_for_tasks.value

    def set_overseeing(self, user_id: Any, user_name: Optional[str] = None) -> None:
        self._oversee.set_overseeing(user_id, user_name)

    def clear_overseeing(self) -> None:
        self._oversee.clear()
