"""
Schema 基类模块
"""
from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """
    Schema 基类

    对外字段使用 camelCase（前端约定），请求同时接受 snake_case
    """

    model_config = ConfigDict(
        from_attributes=True,  # 支持从 ORM 模型转换
        populate_by_name=True,  # 支持别名填充
        str_strip_whitespace=True,  # 自动去除字符串首尾空格
        alias_generator=to_camel,
    )

    def to_response(self) -> dict:
        """序列化为响应字典（camelCase）"""
        return self.model_dump(by_alias=True, mode="json")


class TimestampSchema(BaseSchema):
    """带时间戳的 Schema 基类"""

    id: str
    created_at: datetime
    updated_at: datetime


# 手机号允许数字、+、-、空格和括号
PHONE_PATTERN = r"^[0-9+\-\s()]+$"

MIN_BIRTH_YEAR = 1950


def check_birth_year(value):
    """出生年份必须在 [1950, 今年] 之间"""
    if value is None:
        return value
    current_year = datetime.now().year
    if value < MIN_BIRTH_YEAR or value > current_year:
        raise ValueError(f"Năm sinh phải trong khoảng {MIN_BIRTH_YEAR} - {current_year}")
    return value


def lower_email(value):
    return value.lower() if isinstance(value, str) else value
