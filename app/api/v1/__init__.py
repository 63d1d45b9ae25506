"""
API v1 路由模块
"""
from . import leads, users, auth, zalo

__all__ = [
    "leads",
    "users",
    "auth",
    "zalo",
]
