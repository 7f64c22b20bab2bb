from abc import ABC, abstractmethod
from typing import List, Optional

from ..schemas.common import NamedRef
from ..schemas.task import CreateTaskRequest, Task, TaskQueryParams, UpdateTaskRequest
from ..schemas.user import (
    ConnectedUser,
    GeneratedCode,
    LoginRequest,
    RegisterRequest,
    SessionData,
    UpdateProfileRequest,
    UserProfile,
)


class AuthGateway(ABC):
    @abstractmethod
    async def login(self, credentials: LoginRequest) -> SessionData:
        pass

    @abstractmethod
    async def register(self, req: RegisterRequest) -> str:
        """Return the server's confirmation message."""
        pass


class UserGateway(ABC):
    @abstractmethod
    async def get_me(self) -> UserProfile:
        pass

    @abstractmethod
    async def update_profile(self, user_id: int, req: UpdateProfileRequest) -> UserProfile:
        pass

    @abstractmethod
    async def get_user_by_id(self, user_id: int) -> ConnectedUser:
        pass

    @abstractmethod
    async def get_tags(self) -> List[NamedRef]:
        pass

    # ── Connections ─────────────────────────────────────────────────────────────

    @abstractmethod
    async def list_managed_users(self) -> List[ConnectedUser]:
        pass

    @abstractmethod
    async def list_my_agents(self) -> List[ConnectedUser]:
        pass

    @abstractmethod
    async def list_responsible_users(self) -> List[ConnectedUser]:
        pass

    @abstractmethod
    async def generate_code(self) -> GeneratedCode:
        pass

    @abstractmethod
    async def connect(self, code: str) -> Optional[ConnectedUser]:
        pass

    @abstractmethod
    async def disconnect(self, agent_id: int, user_id: int) -> None:
        pass


class TaskGateway(ABC):
    @abstractmethod
    async def list_tasks(self, params: TaskQueryParams) -> List[Task]:
        pass

    @abstractmethod
    async def create_task(self, req: CreateTaskRequest) -> Optional[Task]:
        pass

    @abstractmethod
    async def update_task(self, task_id: int, user_id: int, req: UpdateTaskRequest) -> Optional[Task]:
        pass

    @abstractmethod
    async def complete_task(self, task_id: int, user_id: int) -> Optional[Task]:
        """Return the updated task, or ``None`` when the API omits it."""
        pass

    @abstractmethod
    async def reopen_task(self, task_id: int, user_id: int) -> Optional[Task]:
        pass

    @abstractmethod
    async def delete_task(self, task_id: int, user_id: int) -> None:
        pass
