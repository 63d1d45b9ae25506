"""
应用配置模块

使用 pydantic-settings 管理环境变量和应用配置
"""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
import json

# 项目根目录
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Zalo Mini App 运行环境使用的域名
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:2999",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:2999",
    "https://zaloapp.com",
    "https://zalo.me",
    "https://*.zaloapp.com",
    "https://*.zalo.me",
    "https://h5.zdn.vn",
    "https://*.zdn.vn",
    "https://h5.zadn.vn",
    "https://*.zadn.vn",
    "https://zmp.zalo.me",
    "https://*.zmp.zalo.me",
]


class Settings(BaseSettings):
    """应用配置类"""

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # 应用基础配置
    app_name: str = "HaiPhong-Recruitment-API"
    app_env: str = "development"
    debug: bool = True

    # 数据库配置
    database_url: str = f"sqlite+aiosqlite:///{BASE_DIR / 'data' / 'recruitment.db'}"

    # CORS 配置
    cors_origins: List[str] = DEFAULT_CORS_ORIGINS
    frontend_url: Optional[str] = None

    # JWT 配置
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expire_days: int = 7

    # 密码配置
    bcrypt_rounds: int = 12
    reset_token_expire_minutes: int = 10

    # Zalo 配置
    zalo_app_id: str = ""
    zalo_app_secret: str = ""
    zalo_api_url: str = "https://graph.zalo.me/v2.0/me/phonenumber"
    zalo_api_timeout: float = 5.0

    # 限流配置（次数 / 窗口秒数）
    rate_limit_enabled: bool = True
    api_rate_limit: int = 200
    api_rate_window: int = 15 * 60
    auth_rate_limit: int = 10
    auth_rate_window: int = 15 * 60
    lead_rate_limit: int = 5
    lead_rate_window: int = 60

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("database_url", mode="before")
    @classmethod
    def fix_database_path(cls, v):
        if isinstance(v, str) and "./data/" in v:
            return v.replace("./data/", str(BASE_DIR / "data") + "/")
        return v

    @property
    def allowed_origins(self) -> List[str]:
        """CORS 白名单（含前端地址）"""
        origins = list(self.cors_origins)
        if self.frontend_url and self.frontend_url not in origins:
            origins.append(self.frontend_url)
        return origins

    @property
    def zalo_configured(self) -> bool:
        """Zalo 应用凭据是否已配置"""
        return bool(self.zalo_app_id and self.zalo_app_secret)

    @property
    def is_development(self) -> bool:
        """是否为开发环境"""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """是否为生产环境"""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """获取配置单例"""
    return Settings()


# 全局配置实例
settings = get_settings()
