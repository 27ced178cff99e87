from __future__ import annotations

import re

BASIC_URL_REGEX = re.compile(r"^(https?)://(\S+)$")
DEEZER_REGEX = re.compile(
    r"^(?:https?://|)?(?:www\.)?deezer\.com/(?:\w{2}/)?(?P<type>track|album|playlist|artist)/(?P<identifier>\d+)"
)
