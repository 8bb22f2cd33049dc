"""SQLAlchemy ORM models for Verlux."""

from verlux.models.base import Base
from verlux.models.admin_user import AdminUser
from verlux.models.tree_node import TreeNode

__all__ = [
    "Base",
    "AdminUser",
    "TreeNode",
]
