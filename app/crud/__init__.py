"""
CRUD 操作模块
"""
from .lead import lead_crud
from .user import user_crud

__all__ = [
    "lead_crud",
    "user_crud",
]
