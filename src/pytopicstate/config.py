"""Store configuration for pytopicstate."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pytopicstate._constants import DEFAULT_CONTEXT, DEFAULT_PROTOCOL, DEFAULT_VERSION
from pytopicstate.exceptions import TopicStateConfigError


@dataclasses.dataclass(frozen=True)
class StoreConfig:
    """Identity of the client owning a set of stores.

    These fields only feed storage key derivation; they never change the
    behaviour of a store.

    Parameters
    ----------
    protocol : str
        Protocol name (e.g. ``"wc"``).
    version : int
        Protocol version.
    context : str
        Client context name (e.g. ``"client"`` or ``"wallet"``).
    """

    protocol: str = DEFAULT_PROTOCOL
    version: int = DEFAULT_VERSION
    context: str = DEFAULT_CONTEXT

    def __post_init__(self) -> None:
        if not self.protocol.strip():
            raise TopicStateConfigError("protocol must be non-empty")
        if not self.context.strip():
            raise TopicStateConfigError("context must be non-empty")
        if isinstance(self.version, bool) or not isinstance(self.version, int) or self.version < 0:
            raise TopicStateConfigError(f"version must be a non-negative integer, got {self.version!r}")

    @property
    def key_prefix(self) -> str:
        """``"{protocol}@{version}:{context}"`` prefix shared by every store key."""
        return f"{self.protocol}@{self.version}:{self.context}"

    @classmethod
    def from_env(cls, **overrides: Any) -> StoreConfig:
        """Create configuration from environment variables.

        Reads ``TOPICSTATE_PROTOCOL``, ``TOPICSTATE_VERSION`` and
        ``TOPICSTATE_CONTEXT``.  Explicit keyword arguments override
        environment values.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "TOPICSTATE_PROTOCOL": "protocol",
            "TOPICSTATE_CONTEXT": "context",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        # version is numeric, handle separately
        version_env = env.get("TOPICSTATE_VERSION")
        if version_env is not None and "version" not in overrides:
            try:
                config_kwargs["version"] = int(version_env)
            except ValueError as exc:
                raise TopicStateConfigError(f"TOPICSTATE_VERSION must be an integer, got {version_env!r}") from exc

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
