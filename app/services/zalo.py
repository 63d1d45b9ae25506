"""
Zalo 手机号提取服务

Zalo Mini App 的 getPhoneNumber() 返回一个不透明令牌，结构随版本变化。
按固定顺序尝试以下方式，任何一步成功即返回：

1. 结构化数据中的已知字段
2. 嵌套对象 (user / profile / contact / contacts[])
3. 在令牌原文中用正则匹配越南手机号，取最长匹配
4. base64 解码后重复第 3 步
5. 调用 Zalo Graph API（三种参数组合，单次 5 秒超时，失败继续）
6. 令牌中最长的连续数字（至少 9 位）
"""
import base64
import binascii
import json
import re
from typing import Any, Iterable, List, Optional

import httpx
from loguru import logger

from app.core.config import Settings

# 可能包含手机号的字段名
PHONE_FIELDS = [
    "phoneNumber",
    "phone",
    "mobile",
    "tel",
    "phone_number",
    "phoneNumberMasked",
    "phoneNumberUnmasked",
    "userPhone",
    "userPhoneNumber",
    "contactPhone",
    "contactPhoneNumber",
    "phoneNumberFormatted",
    "phoneNumberRaw",
    "phoneNumberDisplay",
]

# 用户数据中嵌套 phoneNumber 的路径
PAYLOAD_NESTED_KEYS = ("user", "profile", "contact")
# API 响应中嵌套 phoneNumber 的路径
RESPONSE_NESTED_KEYS = ("data", "user", "profile")

PHONE_VALUE_RE = re.compile(r"^[0-9+\-\s()]+$")
VN_PHONE_RE = re.compile(r"(\+84|84|0)[0-9]{9,10}")
GENERIC_PHONE_RE = re.compile(r"[0-9]{10,11}")
DIGITS_RE = re.compile(r"\d+")
TOKEN_PATTERNS = (VN_PHONE_RE, GENERIC_PHONE_RE)

MIN_PHONE_LENGTH = 9


def mask_token(token: str, size: int = 20) -> str:
    return token[:size] + "..." if len(token) > size else token


def _longest(candidates: Iterable[str]) -> Optional[str]:
    """取最长的候选值，长度相同时取后出现的"""
    best = None
    for candidate in candidates:
        if best is None or not len(best) > len(candidate):
            best = candidate
    return best


# ========== 结构化数据扫描 ==========

def scan_phone_fields(payload: dict) -> Optional[str]:
    """第 1 步：已知字段，值必须只包含手机号字符"""
    for field in PHONE_FIELDS:
        value = payload.get(field)
        if isinstance(value, str):
            phone = value.strip()
            if phone and PHONE_VALUE_RE.match(phone):
                logger.debug("在字段 {} 中找到手机号", field)
                return phone
    return None


def _nested_phone(payload: dict, keys: Iterable[str]) -> Optional[str]:
    for key in keys:
        nested = payload.get(key)
        if isinstance(nested, dict) and nested.get("phoneNumber"):
            logger.debug("在 {}.phoneNumber 中找到手机号", key)
            return str(nested["phoneNumber"])

    contacts = payload.get("contacts")
    if isinstance(contacts, list):
        for contact in contacts:
            if isinstance(contact, dict) and contact.get("phoneNumber"):
                logger.debug("在 contacts[].phoneNumber 中找到手机号")
                return str(contact["phoneNumber"])
    return None


def extract_phone_from_payload(payload: dict) -> Optional[str]:
    """从 Zalo 用户数据中提取手机号（第 1、2 步）"""
    if not isinstance(payload, dict):
        return None
    return scan_phone_fields(payload) or _nested_phone(payload, PAYLOAD_NESTED_KEYS)


def search_phone(value: Any) -> Optional[str]:
    """递归查找第一个形如越南手机号的字符串"""
    if isinstance(value, str):
        match = VN_PHONE_RE.search(value)
        return match.group(0) if match else None
    if isinstance(value, dict):
        items = value.values()
    elif isinstance(value, list):
        items = value
    else:
        return None
    for item in items:
        found = search_phone(item)
        if found:
            return found
    return None


def extract_phone_from_api_response(data: Any) -> Optional[str]:
    """从 Zalo Graph API 响应中提取手机号"""
    if not isinstance(data, dict):
        return None
    return (
        scan_phone_fields(data)
        or _nested_phone(data, RESPONSE_NESTED_KEYS)
        or search_phone(data)
    )


# ========== 令牌文本扫描 ==========

def find_phone_in_text(text: str) -> Optional[str]:
    """第 3 步：依次用各正则匹配，取最长匹配且长度不少于 9"""
    for pattern in TOKEN_PATTERNS:
        phone = _longest(m.group(0) for m in pattern.finditer(text))
        if phone and len(phone) >= MIN_PHONE_LENGTH:
            return phone
    return None


def decode_base64(token: str) -> str:
    """宽松的 base64 解码（兼容 URL 安全字符、缺少填充），失败返回空串"""
    cleaned = token.replace("-", "+").replace("_", "/")
    cleaned = re.sub(r"[^A-Za-z0-9+/]", "", cleaned)
    if len(cleaned) % 4 == 1:
        cleaned = cleaned[:-1]
    cleaned += "=" * (-len(cleaned) % 4)
    try:
        return base64.b64decode(cleaned).decode("utf-8", errors="ignore")
    except (binascii.Error, ValueError):
        return ""


def longest_digit_run(token: str) -> Optional[str]:
    """第 6 步：最长连续数字"""
    run = _longest(DIGITS_RE.findall(token))
    if run and len(run) >= MIN_PHONE_LENGTH:
        return run
    return None


def is_zalo_environment(user_agent: Optional[str], url: Optional[str]) -> bool:
    """根据 User-Agent 和页面地址判断是否运行在 Zalo 中"""
    if user_agent and "Zalo" in user_agent:
        return True
    return bool(url and "zalo" in url)


# ========== Zalo Graph API ==========

class ZaloClient:
    """
    Zalo Graph API 客户端

    未配置 app id / secret 时不发起请求。transport 可注入 httpx.MockTransport 用于测试。
    """

    def __init__(
        self,
        app_id: str = "",
        app_secret: str = "",
        api_url: str = "https://graph.zalo.me/v2.0/me/phonenumber",
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.app_id = app_id
        self.app_secret = app_secret
        self.api_url = api_url
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "ZaloClient":
        return cls(
            app_id=settings.zalo_app_id,
            app_secret=settings.zalo_app_secret,
            api_url=settings.zalo_api_url,
            timeout=settings.zalo_api_timeout,
            transport=transport,
        )

    def is_configured(self) -> bool:
        """检查 Zalo 凭据是否已配置。"""
        return bool(self.app_id and self.app_secret)

    def _attempts(self, token: str) -> List[dict]:
        """三种请求方式：标准参数、code/secret_key 参数、请求头"""
        return [
            {"params": {"access_token": token, "app_id": self.app_id, "app_secret": self.app_secret}},
            {"params": {"access_token": token, "code": token, "secret_key": self.app_secret}},
            {"headers": {"access_token": token, "code": token, "secret_key": self.app_secret}},
        ]

    async def fetch_phone(self, token: str) -> Optional[str]:
        """
        调用 /me/phonenumber 获取手机号

        每种方式失败（网络错误、非 200、响应带 error、无手机号）都继续尝试下一种，
        全部失败返回 None，不抛出异常。
        """
        if not self.is_configured():
            logger.debug("Zalo 凭据未配置，跳过 API 调用")
            return None

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            for index, options in enumerate(self._attempts(token), start=1):
                try:
                    response = await client.get(self.api_url, **options)
                    if response.status_code != 200:
                        logger.debug("Zalo API 方式 {} 返回状态码 {}", index, response.status_code)
                        continue
                    data = response.json()
                except (httpx.HTTPError, ValueError) as exc:
                    logger.debug("Zalo API 方式 {} 调用失败: {}", index, exc)
                    continue

                if isinstance(data, dict) and data.get("error"):
                    logger.debug(
                        "Zalo API 方式 {} 返回错误: {} {}", index, data.get("error"), data.get("message")
                    )
                    continue

                phone = extract_phone_from_api_response(data)
                if phone:
                    logger.info("通过 Zalo API (方式 {}) 获取到手机号", index)
                    return phone
        return None

    def get_status(self) -> dict:
        """获取客户端状态。"""
        return {
            "configured": self.is_configured(),
            "api_url": self.api_url,
            "timeout": self.timeout,
        }


class PhoneExtractor:
    """按固定顺序从令牌或用户数据中提取手机号"""

    def __init__(self, client: ZaloClient):
        self.client = client

    @staticmethod
    def _as_payload(value: Any) -> Optional[dict]:
        if isinstance(value, dict):
            return value
        if isinstance(value, str) and value.lstrip().startswith("{"):
            try:
                parsed = json.loads(value)
            except ValueError:
                return None
            return parsed if isinstance(parsed, dict) else None
        return None

    async def extract(self, token_or_payload: Any) -> Optional[str]:
        """提取手机号，全部失败返回 None"""
        payload = self._as_payload(token_or_payload)
        if payload is not None:
            phone = extract_phone_from_payload(payload)
            if phone:
                return phone

        if not isinstance(token_or_payload, str) or not token_or_payload:
            return None
        token = token_or_payload
        logger.debug("解析 Zalo 令牌: {}", mask_token(token))

        phone = find_phone_in_text(token)
        if phone:
            logger.debug("在令牌原文中找到手机号")
            return phone

        decoded = decode_base64(token)
        if decoded:
            phone = find_phone_in_text(decoded)
            if phone:
                logger.debug("在 base64 解码结果中找到手机号")
                return phone

        phone = await self.client.fetch_phone(token)
        if phone:
            return phone

        phone = longest_digit_run(token)
        if phone:
            logger.debug("使用最长数字串作为手机号")
            return phone

        logger.info("无法从令牌中提取手机号: {}", mask_token(token))
        return None
