from .connection_service import CodeCountdown, ConnectionService, GeneratedCodeStore, format_remaining
from .context_facade import UserContextFacade
from .modal_state import ModalStateStore
from .oversee_store import OverseeStore, parse_user_id
from .session_store import SessionStore
from .task_state import TaskStateService
from .user_context import UserContextAggregator
from .view_state import ViewStateStore

__all__ = [
    "CodeCountdown", "ConnectionService", "GeneratedCodeStore", "format_remaining",
    "UserContextFacade",
    "ModalStateStore",
    "OverseeStore", "parse_user_id",
    "SessionStore",
    "TaskStateService",
    "UserContextAggregator",
    "ViewStateStore",
]
