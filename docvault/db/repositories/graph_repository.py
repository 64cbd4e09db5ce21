from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.db.models.graph import GraphNode


class GraphRepository:
    """Репозиторий узлов графа в SQL"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_soul(self, soul: str) -> Optional[GraphNode]:
        """Получение узла по soul"""
        result = await self.session.execute(
            select(GraphNode).where(GraphNode.soul == soul)
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        soul: str,
        parent: Optional[str],
        key: str,
        value: Any,
        state: str,
        origin: str,
    ) -> GraphNode:
        """Создание или замена узла"""
        node = await self.get_by_soul(soul)
        if node is None:
            node = GraphNode(soul=soul, parent=parent, key=key)
            self.session.add(node)

        node.value = value
        node.state = state
        node.origin = origin

        await self.session.commit()
        await self.session.refresh(node)
        return node

    async def create_if_absent(self, soul: str, parent: Optional[str], key: str, origin: str) -> bool:
        """Создание пустого узла, если soul еще не встречался"""
        if await self.get_by_soul(soul) is not None:
            return False

        self.session.add(GraphNode(soul=soul, parent=parent, key=key, value={}, state="live", origin=origin))
        await self.session.commit()
        return True

    async def get_children(self, parent: str) -> List[GraphNode]:
        """Живые дочерние узлы"""
        result = await self.session.execute(
            select(GraphNode)
            .where(GraphNode.parent == parent, GraphNode.state == "live")
            .order_by(GraphNode.key)
        )
        return list(result.scalars().all())
