import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from ..models.client_state import ClientStateEntry
from .storage import ClientStorage

logger = logging.getLogger("rabbitask.repositories.sql_storage")


class SqlClientStorage(ClientStorage):
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get_item(self, key: str) -> Optional[str]:
        with self._session_factory() as db:
            return db.execute(
                select(ClientStateEntry.value).where(ClientStateEntry.key == key)
            ).scalar_one_or_none()

    def set_item(self, key: str, value: str) -> None:
        with self._session_factory() as db:
            entry = db.get(ClientStateEntry, key)
            if entry is None:
                db.add(ClientStateEntry(key=key, value=value))
            else:
                entry.value = value
            db.commit()
        logger.debug("Stored client state '%s'", key)

    def remove_item(self, key: str) -> None:
        with self._session_factory() as db:
            entry = db.get(ClientStateEntry, key)
            if entry is not None:
                db.delete(entry)
                db.commit()
                logger.debug("Removed client state '%s'", key)
