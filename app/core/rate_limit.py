"""
限流模块

按客户端 IP 的固定窗口计数器。实例挂在 app.state.rate_limiters 上，
由 create_app() 创建，测试之间互不影响。
"""
import time
from threading import Lock
from typing import Callable, Dict, Optional, Tuple

from fastapi import Request

from .config import Settings
from .exceptions import TooManyRequestsException


class RateLimiter:
    """固定窗口限流器：每个 key 在 window 秒内最多 limit 次"""

    def __init__(self, limit: int, window: int, clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.window = window
        self._clock = clock
        self._hits: Dict[str, Tuple[float, int]] = {}
        self._lock = Lock()
        self._last_sweep = clock()

    def __len__(self) -> int:
        return len(self._hits)

    def _sweep(self, now: float):
        """每个窗口清理一次已过期的 key"""
        if now - self._last_sweep < self.window:
            return
        expired = [k for k, (start, _) in self._hits.items() if now - start >= self.window]
        for key in expired:
            del self._hits[key]
        self._last_sweep = now

    def _current(self, key: str, now: float) -> Tuple[float, int]:
        start, count = self._hits.get(key, (now, 0))
        if now - start >= self.window:
            return now, 0
        return start, count

    def retry_after(self, key: str) -> int:
        """距离窗口重置还剩多少秒"""
        with self._lock:
            now = self._clock()
            start, _ = self._current(key, now)
            return max(1, int(self.window - (now - start)))

    def check(self, key: str) -> bool:
        """是否还有剩余额度（不计数）"""
        with self._lock:
            _, count = self._current(key, self._clock())
            return count < self.limit

    def hit(self, key: str) -> bool:
        """计数一次，超过额度返回 False"""
        with self._lock:
            now = self._clock()
            self._sweep(now)
            start, count = self._current(key, now)
            count += 1
            self._hits[key] = (start, count)
            return count <= self.limit

    def reset(self, key: Optional[str] = None):
        with self._lock:
            if key is None:
                self._hits.clear()
            else:
                self._hits.pop(key, None)


def build_rate_limiters(settings: Settings) -> Dict[str, RateLimiter]:
    """根据配置创建各类限流器"""
    return {
        "api": RateLimiter(settings.api_rate_limit, settings.api_rate_window),
        "auth": RateLimiter(settings.auth_rate_limit, settings.auth_rate_window),
        "lead": RateLimiter(settings.lead_rate_limit, settings.lead_rate_window),
    }


def client_ip(request: Request) -> str:
    """客户端 IP（优先取代理头）"""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


def get_limiter(request: Request, name: str) -> Optional[RateLimiter]:
    """取出 app.state 上的限流器，未启用时返回 None"""
    limiters = getattr(request.app.state, "rate_limiters", None)
    if not limiters:
        return None
    return limiters.get(name)


def rate_limit(name: str, message: str = "Quá nhiều yêu cầu, vui lòng thử lại sau"):
    """
    限流依赖工厂：每次请求计数一次

    使用方式:
        @router.post("", dependencies=[Depends(rate_limit("lead"))])
    """

    async def dependency(request: Request):
        limiter = get_limiter(request, name)
        if limiter is None:
            return
        key = client_ip(request)
        if not limiter.hit(key):
            raise TooManyRequestsException(message, retry_after=limiter.retry_after(key))

    return dependency
