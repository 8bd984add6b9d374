"""
Per-user throttle for expensive creations (e.g. organizations).

The throttle is an explicit object with its own storage, attached to app.state and
handed to routes through a dependency, so each process (or test) decides where the
counters live: memory:// for a single instance, redis:// when horizontally scaled.
"""

import logging
from fastapi import Request
from limits import parse
from limits.storage import storage_from_string
from limits.strategies import FixedWindowRateLimiter

from app.config import settings
from app.core.errors import RateLimited

logger = logging.getLogger(__name__)


class CreationThrottle:
    def __init__(self, limit: str, storage_uri: str = "memory://", namespace: str = "create"):
        self.limit = parse(limit)
        self.namespace = namespace
        self.storage = storage_from_string(storage_uri)
        self.limiter = FixedWindowRateLimiter(self.storage)

    @classmethod
    def from_settings(cls, namespace: str = "create_org") -> "CreationThrottle":
        return cls(settings.organization_creation_limit, settings.rate_limit_storage_uri, namespace)

    def check(self, user_id: str) -> None:
        """Consume one slot for user_id or raise RateLimited when the window is full."""
        if not self.limiter.hit(self.limit, self.namespace, user_id):
            logger.warning(f"Creation throttle hit for user {user_id} ({self.namespace})")
            raise RateLimited(
                f"Rate limit exceeded: at most {self.limit.amount} per {self.limit.get_expiry()} seconds"
            )

    def remaining(self, user_id: str) -> int:
        return self.limiter.get_window_stats(self.limit, self.namespace, user_id).remaining

    def reset(self) -> None:
        self.storage.reset()

    def is_healthy(self) -> bool:
        return self.storage.check()


def get_creation_throttle(request: Request) -> CreationThrottle:
    return request.app.state.creation_throttle
