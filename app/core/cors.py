"""
CORS 白名单匹配

支持精确来源和 `https://*.zalo.me` 形式的通配子域名。
"""
import re
from typing import Iterable, List


def _pattern_to_regex(pattern: str) -> str:
    # "*." 匹配一级或多级子域名
    escaped = re.escape(pattern.rstrip("/"))
    return escaped.replace(r"\*\.", r"(?:[a-zA-Z0-9-]+\.)+")


class OriginMatcher:
    """来源白名单匹配器"""

    def __init__(self, origins: Iterable[str]):
        self.origins: List[str] = [o.rstrip("/") for o in origins if o]
        self._exact = {o for o in self.origins if "*" not in o}
        self._wildcards = [o for o in self.origins if "*" in o]
        self._regex = re.compile(self.to_regex()) if self.origins else None

    def matches(self, origin: str) -> bool:
        """来源是否在白名单内"""
        if not origin:
            return False
        origin = origin.rstrip("/")
        if origin in self._exact:
            return True
        return bool(self._regex and self._regex.fullmatch(origin))

    def to_regex(self) -> str:
        """合并为单个正则，供 CORSMiddleware(allow_origin_regex=...) 使用"""
        parts = [re.escape(o) for o in sorted(self._exact)]
        parts += [_pattern_to_regex(o) for o in self._wildcards]
        return "^(?:" + "|".join(parts) + ")$"
