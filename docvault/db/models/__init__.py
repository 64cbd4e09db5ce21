from docvault.db.models.graph import GraphNode

__all__ = ["GraphNode"]
