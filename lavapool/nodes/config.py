from __future__ import annotations

import dataclasses
from typing import Any

from lavapool.constants.config import RECONNECT_INTERVAL, RECONNECT_TRIES, RESUME_TIMEOUT
from lavapool.exceptions.client import ConfigurationException

# Registration keys accepted in camelCase, mapped to their field names
_ALIASES = {
    "reconnectInterval": "reconnect_interval",
    "reconnectTries": "reconnect_tries",
    "resumeKey": "resume_key",
    "resumeTimeout": "resume_timeout",
}


@dataclasses.dataclass(repr=False, frozen=True, kw_only=True, slots=True)
class NodeConfig:
    """The registration options of a node.

    ``reconnect_interval`` is in seconds, ``reconnect_tries`` of ``-1`` retries forever.
    """

    host: str
    port: int
    password: str
    name: str | None = None
    secure: bool = False
    reconnect_interval: float = RECONNECT_INTERVAL
    reconnect_tries: int = RECONNECT_TRIES
    resume_key: str | None = None
    resume_timeout: int = RESUME_TIMEOUT

    def __post_init__(self) -> None:
        if not isinstance(self.host, str) or not self.host:
            raise ConfigurationException("Node host must be a non-empty string")
        if isinstance(self.port, bool) or not isinstance(self.port, int) or not 0 < self.port < 65536:
            raise ConfigurationException(f"Node port must be an integer between 1 and 65535, got {self.port!r}")
        if not isinstance(self.password, str):
            raise ConfigurationException("Node password must be a string")
        if self.name is not None and not isinstance(self.name, str):
            raise ConfigurationException("Node name must be a string")
        if self.resume_key is not None and not isinstance(self.resume_key, str):
            raise ConfigurationException("Node resume key must be a string")
        if isinstance(self.reconnect_interval, bool) or not isinstance(self.reconnect_interval, (int, float)):
            raise ConfigurationException("Node reconnect interval must be a number")
        if self.reconnect_interval < 0:
            raise ConfigurationException("Node reconnect interval can't be negative")
        if self.reconnect_tries < -1:
            raise ConfigurationException("Node reconnect tries must be -1 (forever) or a positive integer")

    @property
    def key(self) -> str:
        """The key the node is registered under in the pool."""
        return self.name or self.host

    def __repr__(self) -> str:
        return (
            f"<NodeConfig key={self.key!r} host={self.host!r} port={self.port} secure={self.secure} "
            f"reconnect_interval={self.reconnect_interval} reconnect_tries={self.reconnect_tries} "
            f"resume_key={'set' if self.resume_key else None}>"
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NodeConfig:
        """Builds a config from a registration mapping.

        Parameters
        ----------
        data: :class:`dict`
            ``{name?, host, port, password, secure?, reconnectInterval?, reconnectTries?, resumeKey?, resumeTimeout?}``.
            ``reconnectInterval`` is given in milliseconds, ``reconnect_interval`` in seconds.

        Raises
        ------
        ConfigurationException
            If a required option is missing or an option is invalid.
        """
        if isinstance(data, NodeConfig):
            return data
        if not isinstance(data, dict):
            raise ConfigurationException(f"Node config must be a mapping, got {type(data).__name__}")
        missing = [k for k in ("host", "port", "password") if data.get(k) is None]
        if missing:
            raise ConfigurationException(f"Node config is missing required options: {', '.join(missing)}")
        known = {f.name for f in dataclasses.fields(cls)}
        kwargs = {}
        for key, value in data.items():
            field_name = _ALIASES.get(key, key)
            if field_name not in known:
                raise ConfigurationException(f"Unknown node option: {key}")
            kwargs[field_name] = value
        try:
            if "reconnectInterval" in data:
                kwargs["reconnect_interval"] = data["reconnectInterval"] / 1000
            return cls(**kwargs)
        except TypeError as e:
            raise ConfigurationException(str(e)) from e
