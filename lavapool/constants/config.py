from __future__ import annotations

import os

from lavapool.logging import getLogger

LOGGER = getLogger("LavaPool.Environment")

DEFAULT_SEARCH_SOURCE = os.getenv("LAVAPOOL__DEFAULT_SEARCH_SOURCE") or "ytsearch"
RECONNECT_INTERVAL = max(float(os.getenv("LAVAPOOL__RECONNECT_INTERVAL", "5")), 0.0)
RECONNECT_TRIES = int(os.getenv("LAVAPOOL__RECONNECT_TRIES", "5"))
RESUME_TIMEOUT = int(os.getenv("LAVAPOOL__RESUME_TIMEOUT", "60"))
REQUEST_TIMEOUT = max(float(os.getenv("LAVAPOOL__REQUEST_TIMEOUT", "120")), 1.0)
CLIENT_NAME = os.getenv("LAVAPOOL__CLIENT_NAME") or "LavaPool"

if RECONNECT_TRIES < -1:
    LOGGER.warning("LAVAPOOL__RECONNECT_TRIES=%s is invalid, retrying forever instead", RECONNECT_TRIES)
    RECONNECT_TRIES = -1

LOGGER.verbose(
    "Environment: search source=%s reconnect=%ss x%s resume timeout=%ss",
    DEFAULT_SEARCH_SOURCE,
    RECONNECT_INTERVAL,
    RECONNECT_TRIES,
    RESUME_TIMEOUT,
)
