from docvault.graph.backends import GraphBackend, GraphRecord, MemoryGraphBackend, SqlGraphBackend
from docvault.graph.private import PrivateNamespace, PrivatePathHasher
from docvault.graph.store import GraphStore, Node

__all__ = [
    "GraphBackend",
    "GraphRecord",
    "MemoryGraphBackend",
    "SqlGraphBackend",
    "GraphStore",
    "Node",
    "PrivatePathHasher",
    "PrivateNamespace",
]
