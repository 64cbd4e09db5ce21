from docvault.client import DocVault, create_backend

__all__ = ["DocVault", "create_backend"]
