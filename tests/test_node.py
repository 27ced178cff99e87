from __future__ import annotations

import pytest

from lavapool.events.player import PlayerUpdateEvent
from lavapool.events.track import TrackStartEvent
from lavapool.exceptions.request import HTTPException, UnauthorizedException
from tests.conftest import GUILD_ID, FakeResponse, make_session, make_track, register_node, stats_payload

TRACK_PAYLOAD = {
    "encoded": "QAAAjQIAJVJpY2sgQXN0bGV5",
    "info": {
        "identifier": "dQw4w9WgXcQ",
        "isSeekable": True,
        "author": "RickAstleyVEVO",
        "length": 212000,
        "isStream": False,
        "position": 0,
        "title": "Rick Astley - Never Gonna Give You Up",
        "uri": "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        "sourceName": "youtube",
    },
}


class TestStats:
    @pytest.mark.asyncio
    async def test_stats_replace_previous_snapshot(self, node):
        await node.handle_message(stats_payload(0.5, cores=2, players=3))
        assert node.stats.players == 3
        assert node.stats.load == pytest.approx(25)

        await node.handle_message({"op": "stats", "players": 1, "playingPlayers": 1, "uptime": 5})

        assert node.stats.players == 1
        assert not node.stats.has_cpu_stats
        assert node.stats.load == 0

    @pytest.mark.asyncio
    async def test_integer_loads_are_accepted(self, node):
        payload = stats_payload(1, cores=4)
        payload["cpu"]["lavalinkLoad"] = 0
        await node.handle_message(payload)
        assert node.stats.load == pytest.approx(25)


class TestRouting:
    @pytest.mark.asyncio
    async def test_event_is_routed_to_player(self, player, node, events):
        player.current = make_track()
        await node.handle_message(
            '{"op": "event", "type": "TrackStartEvent", "guildId": "%s", "track": "T1"}' % GUILD_ID
        )
        assert player.playing
        assert any(isinstance(e, TrackStartEvent) and e.player is player for e in events)

    @pytest.mark.asyncio
    async def test_player_update(self, player, node, events):
        await node.handle_message(
            {
                "op": "playerUpdate",
                "guildId": GUILD_ID,
                "state": {"time": 1, "position": 4200, "connected": True, "ping": 12},
            }
        )
        assert player.position == 4200
        assert player.connected
        assert player.position_synced
        assert any(isinstance(e, PlayerUpdateEvent) for e in events)

    @pytest.mark.asyncio
    async def test_message_for_player_on_other_node_is_dropped(self, client, player, events):
        other = register_node(client, "other")
        await other.handle_message({"op": "event", "type": "TrackStartEvent", "guildId": GUILD_ID})
        assert not player.playing
        assert not any(isinstance(e, TrackStartEvent) for e in events)

    @pytest.mark.asyncio
    async def test_message_for_unknown_guild_is_dropped(self, node, events):
        await node.handle_message({"op": "event", "type": "TrackStartEvent", "guildId": "404"})
        assert events == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["{not json", "[1, 2]", '{"op": "playerUpdate", "guildId": "100"}'])
    async def test_bad_messages_are_dropped(self, player, node, raw):
        await node.handle_message(raw)
        assert not player.playing

    @pytest.mark.asyncio
    async def test_unknown_event_does_not_break_the_player(self, player, node, socket, events):
        await node.handle_message({"op": "event", "type": "SegmentSkippedEvent", "guildId": GUILD_ID})
        await node.handle_message({"op": "event", "type": "TrackStartEvent", "guildId": GUILD_ID})
        assert player.playing
        assert [type(e) for e in events] == [TrackStartEvent]


class TestRest:
    @pytest.mark.asyncio
    async def test_loadtracks(self, client, node):
        session = make_session(FakeResponse(200, {"loadType": "TRACK_LOADED", "tracks": [TRACK_PAYLOAD]}))
        # noinspection PyProtectedMember
        client.node_manager._session = session

        result = await node.fetch_loadtracks("ytsearch:never gonna")

        assert result.loadType == "TRACK_LOADED"
        assert result.tracks[0].encoded == TRACK_PAYLOAD["encoded"]
        assert result.tracks[0].info.sourceName == "youtube"
        assert session.get.call_args.kwargs["params"] == {"identifier": "ytsearch:never gonna"}
        assert str(session.get.call_args.args[0]).endswith("/loadtracks")

    @pytest.mark.asyncio
    async def test_loadtracks_accepts_legacy_track_key(self, client, node):
        legacy = {"track": "legacy-blob", "info": TRACK_PAYLOAD["info"]}
        # noinspection PyProtectedMember
        client.node_manager._session = make_session(
            FakeResponse(200, {"loadType": "SEARCH_RESULT", "tracks": [legacy], "playlistInfo": {}})
        )
        result = await node.fetch_loadtracks("ytsearch:x")
        assert result.tracks[0].encoded == "legacy-blob"

    @pytest.mark.asyncio
    async def test_loadtracks_failure_is_a_load_failed_result(self, client, node):
        # noinspection PyProtectedMember
        client.node_manager._session = make_session(FakeResponse(502, text="Bad Gateway"))
        result = await node.fetch_loadtracks("ytsearch:x")
        assert result.failed
        assert not result
        assert result.exception.severity == "FAULT"

    @pytest.mark.asyncio
    async def test_loadtracks_unauthorized(self, client, node):
        # noinspection PyProtectedMember
        client.node_manager._session = make_session(FakeResponse(401, text="Unauthorized"))
        with pytest.raises(UnauthorizedException):
            await node.fetch_loadtracks("ytsearch:x")

    @pytest.mark.asyncio
    async def test_decodetrack(self, client, node):
        # noinspection PyProtectedMember
        client.node_manager._session = make_session(FakeResponse(200, TRACK_PAYLOAD["info"]))
        track = await node.fetch_decodetrack("blob")
        assert track.encoded == "blob"
        assert track.info.title == TRACK_PAYLOAD["info"]["title"]

    @pytest.mark.asyncio
    async def test_decodetrack_not_decodable(self, client, node):
        # noinspection PyProtectedMember
        client.node_manager._session = make_session(FakeResponse(500, text="Internal Server Error"))
        assert await node.fetch_decodetrack("garbage") is None

    @pytest.mark.asyncio
    async def test_decodetrack_unexpected_status(self, client, node):
        # noinspection PyProtectedMember
        client.node_manager._session = make_session(FakeResponse(404, text="Not Found"))
        with pytest.raises(HTTPException):
            await node.fetch_decodetrack("blob")
