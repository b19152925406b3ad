"""
Per-request abuse gate: blocks automated clients and applies role-based rate limits.

Limits are per client address and role (guest, user, admin) over a sliding
window. The in-process SlidingWindowLimiter only sees one worker's traffic;
deployments with several workers should plug in a shared RateLimitBackend.

The client address is the ASGI peer. Behind a reverse proxy set
FORWARDED_ALLOW_IPS so create_app installs uvicorn's ProxyHeadersMiddleware
and the peer becomes the X-Forwarded-For client.
"""

import logging
import threading
import time
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, Protocol
from urllib.parse import unquote, unquote_plus

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from userhub.core.errors import error_body
from userhub.core.security import InvalidTokenError, TokenService

if TYPE_CHECKING:
    from userhub.core.config import Settings

logger = logging.getLogger(__name__)

GUEST_ROLE = "guest"

DenyReason = Literal["bot", "shield", "rate_limit"]

BOT_BLOCKED_MESSAGE = "Automated requests are not allowed."
SHIELD_BLOCKED_MESSAGE = (
    "Request blocked due to security policy. "
    "If you believe this is an error, please contact support."
)
RATE_LIMITED_MESSAGE = "You have exceeded your request limit. Please try again later."

# Decides whether a request target (decoded path and query) looks like an attack.
ShieldRule = Callable[[str], bool]


def pattern_shield(patterns: Iterable[str]) -> ShieldRule:
    """Shield rule matching lowercase substrings in the decoded request target."""
    needles = tuple(p.lower() for p in patterns)

    def rule(target: str) -> bool:
        lowered = target.lower()
        return any(needle in lowered for needle in needles)

    return rule


class RateLimitBackend(Protocol):
    def hit(self, key: str, limit: int, window_seconds: int) -> bool:
        """Record one request for key; return False if it exceeds limit in the window."""
        ...


class SlidingWindowLimiter:
    """
    Thread-safe in-memory sliding window (timestamps per key).

    Keys whose newest hit has left the window are swept at most once per
    window, so the map only holds clients seen in roughly the last window.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._hits)

    def hit(self, key: str, limit: int, window_seconds: int) -> bool:
        now = self._clock()
        cutoff = now - window_seconds
        with self._lock:
            if now - self._last_sweep >= window_seconds:
                self._sweep(cutoff)
                self._last_sweep = now
            hits = self._hits.setdefault(key, deque())
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if len(hits) >= limit:
                return False
            hits.append(now)
            return True

    def _sweep(self, cutoff: float) -> None:
        stale = [key for key, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for key in stale:
            del self._hits[key]

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: DenyReason | None = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenyReason) -> "Decision":
        return cls(allowed=False, reason=reason)


class AbuseGate:
    """Decides whether a request may proceed, given client address, role and User-Agent."""

    def __init__(
        self,
        limits: dict[str, int],
        window_seconds: int = 60,
        bot_patterns: Iterable[str] = (),
        backend: RateLimitBackend | None = None,
        enabled: bool = True,
        shield_rules: Iterable[ShieldRule] = (),
    ) -> None:
        self.limits = dict(limits)
        self.window_seconds = window_seconds
        self.bot_patterns = tuple(p.lower() for p in bot_patterns)
        self.backend = backend or SlidingWindowLimiter()
        self.enabled = enabled
        self.shield_rules = tuple(shield_rules)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "AbuseGate":
        shield_rules = []
        if settings.SHIELD_PATTERNS:
            shield_rules.append(pattern_shield(settings.SHIELD_PATTERNS))
        return cls(
            limits={
                GUEST_ROLE: settings.RATE_LIMIT_GUEST,
                "user": settings.RATE_LIMIT_USER,
                "admin": settings.RATE_LIMIT_ADMIN,
            },
            window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
            bot_patterns=settings.BOT_USER_AGENT_PATTERNS,
            enabled=settings.RATE_LIMIT_ENABLED,
            shield_rules=shield_rules,
        )

    def is_bot(self, user_agent: str | None) -> bool:
        if not user_agent or not user_agent.strip():
            return True
        ua = user_agent.lower()
        return any(pattern in ua for pattern in self.bot_patterns)

    def limit_for(self, role: str) -> int:
        return self.limits.get(role, self.limits[GUEST_ROLE])

    def is_attack(self, target: str) -> bool:
        return any(rule(target) for rule in self.shield_rules)

    def check(
        self, client: str, role: str, user_agent: str | None, target: str = ""
    ) -> Decision:
        """Bot detection, then shield rules, then the per-role rate limit."""
        if not self.enabled:
            return Decision.allow()
        if self.is_bot(user_agent):
            return Decision.deny("bot")
        if self.is_attack(target):
            return Decision.deny("shield")
        key = f"{role}-rate-limit:{client}"
        if not self.backend.hit(key, self.limit_for(role), self.window_seconds):
            return Decision.deny("rate_limit")
        return Decision.allow()


class AbuseGateMiddleware(BaseHTTPMiddleware):
    """Runs the gate before routing; role comes from a valid session cookie, else guest."""

    def __init__(
        self,
        app: ASGIApp,
        gate: AbuseGate,
        token_service: TokenService,
        cookie_name: str = "token",
    ) -> None:
        super().__init__(app)
        self.gate = gate
        self.token_service = token_service
        self.cookie_name = cookie_name

    def _role(self, request: Request) -> str:
        token = request.cookies.get(self.cookie_name)
        if not token:
            return GUEST_ROLE
        try:
            return self.token_service.verify(token).role
        except InvalidTokenError:
            return GUEST_ROLE

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        client = request.client.host if request.client else "unknown"
        user_agent = request.headers.get("user-agent")
        target = unquote(request.url.path)
        if request.url.query:
            target = f"{target}?{unquote_plus(request.url.query)}"
        try:
            decision = self.gate.check(client, self._role(request), user_agent, target)
        except Exception as e:
            logger.exception("Abuse gate error: %s", e)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=error_body(
                    "Internal Server Error",
                    "An error occurred while processing your request by security middleware.",
                ),
            )

        if decision.reason == "bot":
            logger.warning(
                "Bot request blocked: ip=%s path=%s user_agent=%s",
                client,
                request.url.path,
                user_agent,
            )
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content=error_body("Forbidden", BOT_BLOCKED_MESSAGE),
            )
        if decision.reason == "shield":
            logger.warning(
                "Shield blocked request: ip=%s method=%s path=%s user_agent=%s",
                client,
                request.method,
                request.url.path,
                user_agent,
            )
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content=error_body("Forbidden", SHIELD_BLOCKED_MESSAGE),
            )
        if decision.reason == "rate_limit":
            logger.warning(
                "Rate limit exceeded: ip=%s path=%s user_agent=%s",
                client,
                request.url.path,
                user_agent,
            )
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content=error_body("Too Many Requests", RATE_LIMITED_MESSAGE),
                headers={"Retry-After": str(self.gate.window_seconds)},
            )
        return await call_next(request)
