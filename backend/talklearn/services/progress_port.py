"""Key/value ports holding serialized deck progress."""

from __future__ import annotations

from typing import Protocol

from sqlalchemy.engine import Engine
from sqlmodel import Session

from ..models.progress import ProgressEntry, utcnow


class ProgressPort(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class InMemoryProgressPort:
    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class SqlProgressPort:
    """Stores each namespace as one row of the ``progressentry`` table."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def get(self, key: str) -> str | None:
        with Session(self._engine) as session:
            entry = session.get(ProgressEntry, key)
            return entry.value if entry else None

    def set(self, key: str, value: str) -> None:
        with Session(self._engine) as session:
            entry = session.get(ProgressEntry, key)
            if entry:
                entry.value = value
                entry.updated_at = utcnow()
            else:
                entry = ProgressEntry(key=key, value=value)
            session.add(entry)
            session.commit()

    def remove(self, key: str) -> None:
        with Session(self._engine) as session:
            entry = session.get(ProgressEntry, key)
            if not entry:
                return
            session.delete(entry)
            session.commit()
