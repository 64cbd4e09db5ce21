from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, String

from docvault.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GraphNode(Base):
    """Узел реплицируемого графа: одна запись на soul"""
    __tablename__ = "graph_nodes"

    soul = Column(String(1024), primary_key=True)
    parent = Column(String(1024), nullable=True, index=True)
    key = Column(String(512), nullable=False)
    value = Column(JSON, nullable=True)
    state = Column(String(16), nullable=False, default="live")
    origin = Column(String(64), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
