import asyncio
import logging
from typing import Any, AsyncIterator, List, Optional, Tuple, TYPE_CHECKING

from docvault.core.errors import AuthRequired, NotReady, PermissionDenied, StorageError, ValidationError

if TYPE_CHECKING:
    from docvault.graph.backends import GraphBackend

logger = logging.getLogger(__name__)

SEPARATOR = "/"


def validate_segment(segment: str) -> str:
    """Сегмент пути: непустая строка без разделителя"""
    if not isinstance(segment, str) or not segment:
        raise ValidationError("Path segment must be a non-empty string")
    if SEPARATOR in segment:
        raise ValidationError(f"Path segment must not contain '{SEPARATOR}'")
    return segment


def _reject_arrays(value: Any) -> None:
    if isinstance(value, (list, tuple, set)):
        raise StorageError("Invalid data: Array")
    if isinstance(value, dict):
        for item in value.values():
            _reject_arrays(item)


class Node:
    """Ссылка на узел графа по пути"""

    def __init__(self, store: "GraphStore", path: Tuple[str, ...]):
        self.store = store
        self.path = path

    @property
    def soul(self) -> str:
        return SEPARATOR.join(self.path)

    @property
    def key(self) -> str:
        return self.path[-1]

    def get(self, segment: str) -> "Node":
        return Node(self.store, self.path + (validate_segment(segment),))

    async def put(self, value: Any) -> None:
        await self.store.put(self, value)

    async def once(self) -> Any:
        return await self.store.once(self)

    def map(self) -> AsyncIterator[Tuple[str, Any]]:
        return self.store.map(self)

    def __repr__(self) -> str:
        return f"Node(soul={self.soul})"


class GraphStore:
    """
    Адресуемое путями хранилище графа для одного пира.

    Пространство ~{pub} доступно на запись только владельцу с готовой сессией,
    ~@alias и входящие ящики - всем.
    """

    def __init__(self, backend: "GraphBackend", peer_id: str, sessions, list_timeout: float = 2.0):
        self.backend = backend
        self.peer_id = peer_id
        self.sessions = sessions
        self.list_timeout = list_timeout

    def get(self, segment: str) -> Node:
        return Node(self, (validate_segment(segment),))

    def user(self, pub: Optional[str] = None) -> Node:
        """Корень пользовательского пространства ~{pub}"""
        if pub is None:
            pub = self.sessions.require().pub
        return self.get(f"~{pub}")

    def _check_writable(self, node: Node) -> None:
        root = node.path[0]
        if not root.startswith("~") or root.startswith("~@"):
            return

        session = self.sessions.current
        if session is None:
            raise AuthRequired("Authentication required to write to user space")
        if f"~{session.pub}" != root:
            raise PermissionDenied("Cannot write to another user's space")
        if not session.is_ready:
            raise NotReady("Signing state not initialized")

    async def put(self, node: Node, value: Any) -> None:
        """
        Запись значения в узел.

        dict сливается со скалярными полями узла, вложенные dict становятся
        дочерними узлами, None помечает узел удаленным. Массивы не поддерживаются.
        """
        _reject_arrays(value)
        self._check_writable(node)

        for depth in range(1, len(node.path)):
            ancestor = node.path[:depth]
            parent = SEPARATOR.join(ancestor[:-1]) or None
            await self.backend.ensure(SEPARATOR.join(ancestor), parent, ancestor[-1], self.peer_id)

        await self._write(node, value)

    async def _write(self, node: Node, value: Any) -> None:
        parent = SEPARATOR.join(node.path[:-1]) or None

        if not isinstance(value, dict):
            await self.backend.write(node.soul, parent, node.key, value, self.peer_id)
            return

        fields = {key: item for key, item in value.items() if not isinstance(item, dict)}
        await self.backend.write(node.soul, parent, node.key, fields, self.peer_id)

        for key, item in value.items():
            if isinstance(item, dict):
                await self._write(node.get(key), item)

    async def once(self, node: Node) -> Any:
        """Текущее видимое значение узла или None"""
        record = await self.backend.read(node.soul, self.peer_id)
        if record is None or not record.is_live:
            return None
        return record.value

    async def map(self, node: Node) -> AsyncIterator[Tuple[str, Any]]:
        """Живые дочерние узлы; итерация завершается явно"""
        for record in await self.backend.children(node.soul, self.peer_id):
            yield record.key, record.value

    async def collect(self, node: Node, timeout: Optional[float] = None) -> List[Tuple[str, Any]]:
        """Сбор дочерних узлов с ограничением по времени"""
        items: List[Tuple[str, Any]] = []

        async def drain():
            async for key, value in node.map():
                items.append((key, value))

        try:
            await asyncio.wait_for(drain(), timeout or self.list_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Listing {node.soul} timed out, returning {len(items)} partial results")
        return items
