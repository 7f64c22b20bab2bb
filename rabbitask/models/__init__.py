"""SQLAlchemy models — import all models here so create_all can discover them."""

from .client_state import ClientStateEntry

__all__ = ["ClientStateEntry"]
