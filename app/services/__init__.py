"""
服务层模块
"""
from . import auth, lead, user
from .zalo import PhoneExtractor, ZaloClient, extract_phone_from_payload, is_zalo_environment

__all__ = [
    "auth",
    "lead",
    "user",
    "PhoneExtractor",
    "ZaloClient",
    "extract_phone_from_payload",
    "is_zalo_environment",
]
