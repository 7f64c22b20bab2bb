from .common import ApiResponse, NamedRef
from .context import (
    EMPTY_USER_CONTEXT,
    ModalName,
    ModalState,
    UserContext,
    UserRole,
    ViewedUser,
    ViewMode,
)
from .task import CreateTaskRequest, Task, TaskCategories, TaskQueryParams, UpdateTaskRequest
from .user import (
    ConnectedUser,
    GeneratedCode,
    LoginRequest,
    RegisterForm,
    RegisterRequest,
    SessionData,
    UpdateProfileRequest,
    UserProfile,
)

__all__ = [
    "ApiResponse", "NamedRef",
    "EMPTY_USER_CONTEXT", "ModalName", "ModalState", "UserContext", "UserRole",
    "ViewedUser", "ViewMode",
    "CreateTaskRequest", "Task", "TaskCategories", "TaskQueryParams", "UpdateTaskRequest",
    "ConnectedUser", "GeneratedCode", "LoginRequest", "RegisterForm", "RegisterRequest",
    "SessionData", "UpdateProfileRequest", "UserProfile",
]
