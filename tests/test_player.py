from __future__ import annotations

import math
from unittest.mock import AsyncMock, patch

import pytest

from lavapool.events.node import NodeChangedEvent, WebSocketClosedEvent
from lavapool.events.player import PlayerDestroyedEvent, PlayerPausedEvent, PlayerResumedEvent, PlayerVolumeChangedEvent
from lavapool.events.queue import QueueEndEvent
from lavapool.events.track import (
    TrackAutoPlayEvent,
    TrackEndEvent,
    TrackExceptionEvent,
    TrackSeekEvent,
    TrackSkippedEvent,
    TrackStuckEvent,
)
from lavapool.exceptions.client import InvalidArgumentsException
from lavapool.exceptions.player import OutOfRangeException, UnknownEventException
from lavapool.nodes.api.responses.rest_api import LoadResult
from lavapool.nodes.api.responses.track import Info
from lavapool.nodes.api.responses.track import Track as APITrack
from lavapool.nodes.api.responses.websocket import UnknownEvent
from lavapool.nodes.node import Node
from lavapool.players.autoplay import AutoplayPolicy
from lavapool.players.tracks.obj import Track
from lavapool.players.utils import LoopMode
from tests.conftest import GUILD_ID, VOICE_CHANNEL_ID, attach_socket, make_track, register_node


def track_end(reason: str = "FINISHED") -> dict:
    return {"op": "event", "type": "TrackEndEvent", "guildId": GUILD_ID, "track": "x", "reason": reason}


def played(socket) -> list[str]:
    return [p["track"] for p in socket.sent_ops("play")]


class TestPlay:
    @pytest.mark.asyncio
    async def test_empty_queue(self, player, socket):
        assert await player.play() is None
        assert socket.sent == []
        assert not player.playing

    @pytest.mark.asyncio
    async def test_play_sends_head_of_queue(self, player, socket):
        first, second = make_track("T1", "a"), make_track("T2", "b")
        player.queue.put([first, second])

        assert await player.play() is first

        assert socket.sent == [{"op": "play", "guildId": GUILD_ID, "track": "T1", "noReplace": True}]
        assert player.current is first
        assert player.playing
        assert player.position == 0
        assert list(player.queue) == [second]

    @pytest.mark.asyncio
    async def test_start_time(self, player, socket):
        player.queue.put(make_track("T1"))
        await player.play(no_replace=False, start_time=30000)
        assert socket.sent[0]["startTime"] == 30000
        assert socket.sent[0]["noReplace"] is False

    @pytest.mark.asyncio
    async def test_plays_through_queue_then_ends(self, player, node, socket, events):
        first, second = make_track("T1", "a"), make_track("T2", "b")
        player.queue.put([first, second])
        await player.play()

        await node.handle_message(track_end())

        assert played(socket) == ["T1", "T2"]
        assert player.previous is first
        assert player.current is second

        await node.handle_message(track_end())

        assert played(socket) == ["T1", "T2"]
        assert not player.playing
        assert player.current is None
        ends = [e for e in events if isinstance(e, TrackEndEvent)]
        assert [e.track for e in ends] == [first, second]
        queue_end = [e for e in events if isinstance(e, QueueEndEvent)]
        assert len(queue_end) == 1 and queue_end[0].previous is second
        assert events.index(ends[-1]) < events.index(queue_end[0])

    @pytest.mark.asyncio
    async def test_replaced_track_does_not_advance(self, player, node, socket):
        first, second = make_track("T1", "a"), make_track("T2", "b")
        player.queue.put([first, second])
        await player.play()

        await node.handle_message(track_end("REPLACED"))

        assert played(socket) == ["T1"]
        assert player.current is first
        assert list(player.queue) == [second]

    @pytest.mark.asyncio
    async def test_unresolved_track_is_resolved_on_the_node(self, player, socket):
        unresolved = Track.unresolved(title="Song", author="Band", identifier="123", source_name="deezer")
        player.queue.put(unresolved)
        match = APITrack(info=Info(identifier="yt", author="Band", length=1, title="Song"), encoded="YT")
        lookup = AsyncMock(return_value=LoadResult(loadType="SEARCH_RESULT", tracks=[match]))

        with patch.object(Node, "fetch_loadtracks", lookup):
            assert await player.play() is unresolved

        lookup.assert_awaited_once_with(f"{player.client.default_search_source}:Band - Song")
        assert unresolved.is_resolved
        assert played(socket) == ["YT"]

    @pytest.mark.asyncio
    async def test_unresolvable_track_is_skipped(self, player, socket):
        unresolved = Track.unresolved(title="Song", author="Band", identifier="123")
        playable = make_track("T2")
        player.queue.put([unresolved, playable])

        with patch.object(Node, "fetch_loadtracks", AsyncMock(return_value=LoadResult.no_matches())):
            assert await player.play() is playable

        assert played(socket) == ["T2"]


class TestLoopModes:
    @pytest.mark.asyncio
    async def test_loop_track_replays_the_same_track(self, player, node, socket):
        track = make_track("T1")
        player.queue.put(track)
        player.set_loop_mode("track")
        await player.play()

        await node.handle_message(track_end())
        await node.handle_message(track_end())

        assert played(socket) == ["T1", "T1", "T1"]
        assert player.queue.empty()

    @pytest.mark.asyncio
    async def test_loop_queue_appends_to_the_tail(self, player, node, socket):
        first, second = make_track("T1", "a"), make_track("T2", "b")
        player.queue.put([first, second])
        player.set_loop_mode(LoopMode.QUEUE)
        await player.play()

        await node.handle_message(track_end())

        assert played(socket) == ["T1", "T2"]
        assert list(player.queue) == [first]

    def test_invalid_loop_mode(self, player):
        with pytest.raises(InvalidArgumentsException):
            player.set_loop_mode("forever")
        assert player.loop is LoopMode.DISABLED


class TestCommands:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", ["yes", 1, None])
    async def test_pause_requires_bool(self, player, socket, value):
        with pytest.raises(InvalidArgumentsException):
            await player.pause(value)
        assert socket.sent == []
        assert not player.paused

    @pytest.mark.asyncio
    async def test_pause_and_resume(self, player, socket, events):
        await player.pause(True)
        assert player.paused and not player.playing
        await player.pause(False)
        assert not player.paused and player.playing
        assert [p["pause"] for p in socket.sent_ops("pause")] == [True, False]
        assert [type(e) for e in events] == [PlayerPausedEvent, PlayerResumedEvent]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("position", [-1, math.nan, math.inf, "10", True])
    async def test_seek_validation(self, player, socket, position):
        with pytest.raises(InvalidArgumentsException):
            await player.seek(position)
        assert socket.sent == []
        assert player.position == 0

    @pytest.mark.asyncio
    async def test_seek_updates_position_optimistically(self, player, socket, events):
        await player.seek(1500.7)
        assert player.position == 1500.7
        assert socket.sent == [{"op": "seek", "guildId": GUILD_ID, "position": 1500}]
        assert isinstance(events[-1], TrackSeekEvent) and events[-1].after == 1500.7

    @pytest.mark.asyncio
    async def test_volume(self, player, socket, events):
        await player.set_volume(50)
        assert player.volume == 50
        assert socket.sent == [{"op": "volume", "guildId": GUILD_ID, "volume": 50}]
        assert isinstance(events[-1], PlayerVolumeChangedEvent) and events[-1].before == 100

    @pytest.mark.asyncio
    @pytest.mark.parametrize("volume", [-5, "loud", math.nan])
    async def test_volume_validation(self, player, socket, volume):
        with pytest.raises(InvalidArgumentsException):
            await player.set_volume(volume)
        assert player.volume == 100
        assert socket.sent == []

    @pytest.mark.asyncio
    async def test_stop(self, player, socket):
        await player.stop()
        assert socket.sent == [{"op": "stop", "guildId": GUILD_ID}]

    @pytest.mark.asyncio
    async def test_text_channel_requires_string(self, player):
        with pytest.raises(InvalidArgumentsException):
            await player.set_text_channel(123)
        await player.set_text_channel("300")
        assert player.text_channel_id == "300"

    @pytest.mark.asyncio
    async def test_voice_channel_change_rejoins(self, player, gateway):
        gateway.reset_mock()
        await player.set_voice_channel("201")
        assert player.voice_channel_id == "201"
        gateway.assert_awaited_once()
        assert gateway.await_args.args[1]["d"]["channel_id"] == "201"


class TestSkip:
    @pytest.mark.asyncio
    async def test_skip_out_of_range_does_not_mutate(self, player, socket):
        tracks = [make_track(f"T{i}", str(i)) for i in range(3)]
        player.queue.put(tracks)
        await player.play()
        socket.send_json.reset_mock()

        with pytest.raises(OutOfRangeException):
            await player.skip(5)

        assert list(player.queue) == tracks[1:]
        assert socket.sent == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -1, 1.5, "2", True])
    async def test_skip_invalid_amount(self, player, socket, amount):
        with pytest.raises(InvalidArgumentsException):
            await player.skip(amount)
        assert socket.sent == []

    @pytest.mark.asyncio
    async def test_skip_drops_then_stops(self, player, node, socket, events):
        tracks = [make_track(f"T{i}", str(i)) for i in range(4)]
        player.queue.put(tracks)
        await player.play()

        await player.skip(2)

        assert list(player.queue) == tracks[2:]
        assert socket.sent[-1] == {"op": "stop", "guildId": GUILD_ID}
        skipped = [e for e in events if isinstance(e, TrackSkippedEvent)]
        assert skipped[0].track is tracks[0] and skipped[0].amount == 2

        await node.handle_message(track_end("STOPPED"))
        assert player.current is tracks[2]

    @pytest.mark.asyncio
    async def test_skip_single_with_empty_queue(self, player, socket, events):
        player.queue.put(make_track("T1"))
        current = await player.play()
        socket.send_json.reset_mock()

        with pytest.raises(OutOfRangeException):
            await player.skip()

        assert player.current is current
        assert socket.sent == []
        assert not any(isinstance(e, TrackSkippedEvent) for e in events)

    @pytest.mark.asyncio
    async def test_skip_single(self, player, socket):
        tracks = [make_track("T1", "1"), make_track("T2", "2")]
        player.queue.put(tracks)
        await player.play()

        await player.skip()

        assert list(player.queue) == [tracks[1]]
        assert socket.sent[-1] == {"op": "stop", "guildId": GUILD_ID}


class TestNodeEvents:
    @pytest.mark.asyncio
    async def test_stuck_track_is_stopped(self, player, node, socket, events):
        player.queue.put(make_track("T1"))
        await player.play()
        await node.handle_message(
            {"op": "event", "type": "TrackStuckEvent", "guildId": GUILD_ID, "track": "T1", "thresholdMs": 10000}
        )
        assert isinstance(events[-1], TrackStuckEvent)
        assert events[-1].threshold == 10000
        assert socket.sent[-1] == {"op": "stop", "guildId": GUILD_ID}

    @pytest.mark.asyncio
    async def test_exception_track_is_stopped(self, player, node, socket, events):
        player.queue.put(make_track("T1"))
        await player.play()
        await node.handle_message(
            {
                "op": "event",
                "type": "TrackExceptionEvent",
                "guildId": GUILD_ID,
                "track": "T1",
                "exception": {"message": "Video unavailable", "severity": "COMMON", "cause": "x"},
            }
        )
        assert isinstance(events[-1], TrackExceptionEvent)
        assert events[-1].exception == "Video unavailable"
        assert socket.sent[-1]["op"] == "stop"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", [4015, 4009])
    async def test_voice_renegotiation_rejoins(self, player, node, gateway, events, code):
        gateway.reset_mock()
        await node.handle_message(
            {"op": "event", "type": "WebSocketClosedEvent", "guildId": GUILD_ID, "code": code, "byRemote": True}
        )
        gateway.assert_awaited_once()
        assert gateway.await_args.args == (
            GUILD_ID,
            {
                "op": 4,
                "d": {"guild_id": GUILD_ID, "channel_id": VOICE_CHANNEL_ID, "self_mute": False, "self_deaf": False},
            },
        )
        assert isinstance(events[-1], WebSocketClosedEvent) and events[-1].code == code

    @pytest.mark.asyncio
    async def test_other_close_codes_only_notify(self, player, node, gateway, events):
        gateway.reset_mock()
        await node.handle_message(
            {"op": "event", "type": "WebSocketClosedEvent", "guildId": GUILD_ID, "code": 4014, "reason": "kicked"}
        )
        gateway.assert_not_awaited()
        assert isinstance(events[-1], WebSocketClosedEvent)

    @pytest.mark.asyncio
    async def test_unknown_event_raises(self, player):
        with pytest.raises(UnknownEventException):
            await player._handle_event(UnknownEvent(op="event", guildId=GUILD_ID, type="Whatever"))


class TestAutoplay:
    @pytest.mark.asyncio
    async def test_policy_is_consulted_when_queue_ends(self, player, node, socket, events):
        class Next(AutoplayPolicy):
            async def next_track(self, player, previous):
                return make_track("AUTO", "auto")

        player.autoplay = Next()
        player.queue.put(make_track("T1"))
        await player.play()

        await node.handle_message(track_end())

        assert played(socket) == ["T1", "AUTO"]
        assert any(isinstance(e, TrackAutoPlayEvent) for e in events)
        assert not any(isinstance(e, QueueEndEvent) for e in events)

    @pytest.mark.asyncio
    async def test_failing_policy_ends_the_queue(self, player, node, events):
        class Broken(AutoplayPolicy):
            async def next_track(self, player, previous):
                raise RuntimeError("boom")

        player.autoplay = Broken()
        player.queue.put(make_track("T1"))
        await player.play()

        await node.handle_message(track_end())

        assert any(isinstance(e, QueueEndEvent) for e in events)
        assert not player.playing


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_destroy_unregisters_when_gateway_fails(self, client, player, socket, gateway):
        gateway.side_effect = RuntimeError("gateway down")

        with pytest.raises(RuntimeError):
            await player.destroy()

        assert player.destroyed
        assert client.get(GUILD_ID) is None
        assert GUILD_ID not in client.voice_tracker
        assert socket.sent_ops("destroy") == [{"op": "destroy", "guildId": GUILD_ID}]

    @pytest.mark.asyncio
    async def test_disconnect_pauses_and_leaves(self, player, socket, gateway):
        player.queue.put(make_track("T1"))
        await player.play()
        gateway.reset_mock()

        await player.disconnect()

        assert player.paused
        assert player.voice_channel_id is None
        assert gateway.await_args.args[1]["d"]["channel_id"] is None

    @pytest.mark.asyncio
    async def test_destroy(self, client, player, socket, events):
        await player.destroy()
        await player.destroy()

        assert client.get(GUILD_ID) is None
        assert socket.sent_ops("destroy") == [{"op": "destroy", "guildId": GUILD_ID}]
        assert [e for e in events if isinstance(e, PlayerDestroyedEvent)][0].player is player

    @pytest.mark.asyncio
    async def test_restart_replays_at_last_position(self, player, socket):
        voice = {"sessionId": "s1", "event": {"token": "t", "guild_id": GUILD_ID, "endpoint": "e"}}
        await player.update_session(voice)
        player.queue.put(make_track("T1"))
        await player.play()
        await player.seek(42000)
        await player.set_volume(80)
        socket.send_json.reset_mock()

        await player.restart()

        assert socket.sent[0] == {"op": "voiceUpdate", "guildId": GUILD_ID, **voice}
        assert socket.sent[1] == {
            "op": "play",
            "guildId": GUILD_ID,
            "track": "T1",
            "noReplace": False,
            "pause": False,
            "startTime": 42000,
        }
        assert socket.sent[2] == {"op": "volume", "guildId": GUILD_ID, "volume": 80}

    @pytest.mark.asyncio
    async def test_change_node(self, client, player, node, socket, events):
        other = register_node(client, "other")
        other_socket = attach_socket(other)
        player.queue.put(make_track("T1"))
        await player.play()

        await player.change_node(other)

        assert player.node is other
        assert socket.sent_ops("destroy") == [{"op": "destroy", "guildId": GUILD_ID}]
        assert played(other_socket) == ["T1"]
        changed = [e for e in events if isinstance(e, NodeChangedEvent)]
        assert changed[0].old_node is node and changed[0].new_node is other
        assert player in other.players and player not in node.players
