from docvault.domains.branches.services import BranchService

__all__ = ["BranchService"]
