from abc import ABC, abstractmethod
from typing import Optional


class ClientStorage(ABC):
    """Durable string key/value storage shared by the client-side stores."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        pass
