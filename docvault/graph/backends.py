"""
Бэкенды реплицируемого графа.

MemoryGraphBackend моделирует задержку распространения между пирами:
запись сразу видна пиру-источнику, остальным - через propagation_delay.
SqlGraphBackend хранит граф в таблице graph_nodes (локальная реплика).
"""

import copy
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from docvault.core.errors import StorageError
from docvault.db.repositories.graph_repository import GraphRepository

logger = logging.getLogger(__name__)

LIVE = "live"
TOMBSTONE = "tombstone"


@dataclass
class GraphRecord:
    """Состояние узла графа"""
    soul: str
    parent: Optional[str]
    key: str
    value: Any
    state: str
    origin: str

    @property
    def is_live(self) -> bool:
        return self.state == LIVE


def merge_value(existing: Optional[GraphRecord], value: Any) -> Tuple[Any, str]:
    """Слияние новой записи с текущим состоянием узла (last-write-wins по полям)"""
    if value is None:
        return None, TOMBSTONE

    if isinstance(value, dict) and existing is not None and existing.is_live and isinstance(existing.value, dict):
        merged = dict(existing.value)
        merged.update(value)
        return merged, LIVE

    return copy.deepcopy(value), LIVE


class GraphBackend:
    """Интерфейс хранилища узлов"""

    async def read(self, soul: str, peer: str) -> Optional[GraphRecord]:
        raise NotImplementedError

    async def write(self, soul: str, parent: Optional[str], key: str, value: Any, peer: str) -> GraphRecord:
        raise NotImplementedError

    async def ensure(self, soul: str, parent: Optional[str], key: str, peer: str) -> None:
        raise NotImplementedError

    async def children(self, soul: str, peer: str) -> List[GraphRecord]:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class MemoryGraphBackend(GraphBackend):
    """Граф в памяти, общий для нескольких пиров одного процесса"""

    def __init__(self, propagation_delay: float = 0.0):
        self.propagation_delay = propagation_delay
        self._versions: Dict[str, List[Tuple[float, GraphRecord]]] = {}
        self._children: Dict[str, Set[str]] = {}

    def _visible(self, soul: str, peer: str) -> Optional[GraphRecord]:
        now = time.monotonic()
        for written_at, record in reversed(self._versions.get(soul, [])):
            if record.origin == peer or now - written_at >= self.propagation_delay:
                return record
        return None

    def _latest(self, soul: str) -> Optional[GraphRecord]:
        versions = self._versions.get(soul)
        return versions[-1][1] if versions else None

    def _append(self, record: GraphRecord) -> None:
        self._versions.setdefault(record.soul, []).append((time.monotonic(), record))
        if record.parent is not None:
            self._children.setdefault(record.parent, set()).add(record.soul)

    async def read(self, soul: str, peer: str) -> Optional[GraphRecord]:
        record = self._visible(soul, peer)
        return copy.deepcopy(record) if record else None

    async def write(self, soul: str, parent: Optional[str], key: str, value: Any, peer: str) -> GraphRecord:
        merged, state = merge_value(self._latest(soul), value)
        record = GraphRecord(soul=soul, parent=parent, key=key, value=merged, state=state, origin=peer)
        self._append(record)
        return copy.deepcopy(record)

    async def ensure(self, soul: str, parent: Optional[str], key: str, peer: str) -> None:
        if soul not in self._versions:
            self._append(GraphRecord(soul=soul, parent=parent, key=key, value={}, state=LIVE, origin=peer))

    async def children(self, soul: str, peer: str) -> List[GraphRecord]:
        records = []
        for child in sorted(self._children.get(soul, ())):
            record = self._visible(child, peer)
            if record is not None and record.is_live:
                records.append(copy.deepcopy(record))
        return records


class SqlGraphBackend(GraphBackend):
    """Граф в SQL через async SQLAlchemy"""

    def __init__(self, session_factory: sessionmaker, engine=None):
        self.session_factory = session_factory
        self.engine = engine

    @staticmethod
    def _to_record(node) -> GraphRecord:
        return GraphRecord(
            soul=node.soul,
            parent=node.parent,
            key=node.key,
            value=node.value,
            state=node.state,
            origin=node.origin,
        )

    async def read(self, soul: str, peer: str) -> Optional[GraphRecord]:
        try:
            async with self.session_factory() as session:
                node = await GraphRepository(session).get_by_soul(soul)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read {soul}", details=e) from e
        return self._to_record(node) if node else None

    async def write(self, soul: str, parent: Optional[str], key: str, value: Any, peer: str) -> GraphRecord:
        try:
            async with self.session_factory() as session:
                repository = GraphRepository(session)
                existing = await repository.get_by_soul(soul)
                merged, state = merge_value(self._to_record(existing) if existing else None, value)
                node = await repository.upsert(soul, parent, key, merged, state, peer)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to write {soul}", details=e) from e
        return self._to_record(node)

    async def ensure(self, soul: str, parent: Optional[str], key: str, peer: str) -> None:
        try:
            async with self.session_factory() as session:
                await GraphRepository(session).create_if_absent(soul, parent, key, peer)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to write {soul}", details=e) from e

    async def children(self, soul: str, peer: str) -> List[GraphRecord]:
        try:
            async with self.session_factory() as session:
                nodes = await GraphRepository(session).get_children(soul)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list {soul}", details=e) from e
        return [self._to_record(node) for node in nodes]

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
            logger.info("SQL graph backend closed")
