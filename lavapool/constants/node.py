from __future__ import annotations

GOOD_RESPONSE_RANGE = range(200, 300)
NOT_DECODABLE_STATUS = 500

CLEAN_CLOSE_CODE = 1000
# Voice connection close codes after which the player should re-join its channel
VOICE_RENEGOTIATION_CODES = frozenset({4015, 4009})

GATEWAY_VOICE_STATE_OP = 4
VOICE_STATE_UPDATE = "VOICE_STATE_UPDATE"
VOICE_SERVER_UPDATE = "VOICE_SERVER_UPDATE"

BEST_NODE_KEY = "best"
