"""User-Agent pool abstraction."""

from __future__ import annotations

import random
from typing import Iterable, List, Optional

from ..config import HttpConfig


class UserAgentPool:
    """Pick a random user agent per request from the configured list."""

    def __init__(self, user_agents: Iterable[str] | None = None) -> None:
        self._uas: List[str] = [ua.strip() for ua in user_agents or () if ua and ua.strip()]

    @classmethod
    def from_config(cls, http_config: HttpConfig) -> Optional["UserAgentPool"]:
        """Return a pool when the config lists user agents, else ``None``."""

        agents = http_config.user_agent_list
        pool = cls(agents if isinstance(agents, list) else None)
        return None if pool.empty else pool

    @property
    def empty(self) -> bool:
        return not self._uas

    def __len__(self) -> int:
        return len(self._uas)

    def get(self) -> Optional[str]:
        if not self._uas:
            return None
        return random.choice(self._uas)


__all__ = ["UserAgentPool"]
