from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, TypeAlias

JSON_DICT_TYPE: TypeAlias = dict[str, Any]
GatewaySender: TypeAlias = Callable[[str, JSON_DICT_TYPE], Awaitable[None] | None]
