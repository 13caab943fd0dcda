"""Proxy rotation and user agent selection."""

from __future__ import annotations

import random
from typing import Optional, Sequence

from .config import Settings

USER_AGENTS = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) "
    "Version/17.1 Safari/605.1.15",
)


class ProxyRotator:
    """Round-robin over a fixed list of proxy URIs."""

    def __init__(self, proxies: Sequence[str] = ()):
        self._proxies = [proxy.strip() for proxy in proxies if proxy and proxy.strip()]
        self._index = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProxyRotator":
        return cls(settings.proxies)

    def __len__(self) -> int:
        return len(self._proxies)

    def next(self) -> Optional[str]:
        """Next proxy in the cycle, or ``None`` when none are configured."""
        if not self._proxies:
            return None
        proxy = self._proxies[self._index % len(self._proxies)]
        self._index += 1
        return proxy


def random_user_agent(rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(USER_AGENTS)
