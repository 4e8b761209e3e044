"""Tests for the JSON-RPC dispatcher and the transcription tools."""

import asyncio
import json
import uuid

import pytest

from zelo import __version__
from zelo.config.schema import DeepgramConfig
from zelo.mcp.dispatcher import MCPDispatcher
from zelo.providers.base import ProviderPool
from zelo.providers.deepgram import DeepgramProvider
from zelo.runtime import build_runtime


@pytest.fixture
def dispatcher(runtime):
    return MCPDispatcher(runtime.tools)


def _call(name, arguments=None, request_id=1):
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "tools/call",
        "params": {"name": name, "arguments": arguments or {}},
    }


def _result(response):
    """Decode the JSON text carried by a tool result."""
    wire = response.to_wire()
    assert "error" not in wire, wire
    return json.loads(wire["result"]["content"][0]["text"])


def _error(response):
    wire = response.to_wire()
    assert "error" in wire, wire
    return wire["error"]


class TestLifecycleMethods:
    @pytest.mark.asyncio
    async def test_initialize(self, dispatcher):
        response = await dispatcher.handle({"jsonrpc": "2.0", "id": 1, "method": "initialize"})

        result = response.to_wire()["result"]
        assert result["protocolVersion"] == "2024-11-05"
        assert result["serverInfo"] == {"name": "zelo-transcription", "version": __version__}
        assert result["capabilities"] == {"tools": {}}

    @pytest.mark.asyncio
    async def test_initialized_notification_has_no_response(self, dispatcher):
        response = await dispatcher.handle(
            {"jsonrpc": "2.0", "method": "notifications/initialized"}
        )
        assert response is None

    @pytest.mark.asyncio
    async def test_tools_list(self, dispatcher):
        response = await dispatcher.handle({"jsonrpc": "2.0", "id": 2, "method": "tools/list"})

        tools = {t["name"]: t for t in response.to_wire()["result"]["tools"]}
        assert set(tools) == {
            "start_transcription",
            "stop_transcription",
            "get_transcription",
            "list_sessions",
            "get_session_status",
            "export_session",
        }
        schema = tools["get_transcription"]["inputSchema"]
        assert schema["type"] == "object"
        assert {"sessionId", "fromSegment", "limit"} <= set(schema["properties"])
        assert schema["required"] == ["sessionId"]

    @pytest.mark.asyncio
    async def test_unknown_method(self, dispatcher):
        response = await dispatcher.handle({"jsonrpc": "2.0", "id": 3, "method": "prompts/list"})
        assert _error(response)["code"] == -32601

    @pytest.mark.asyncio
    async def test_parse_error(self, dispatcher):
        response = await dispatcher.handle_raw(b"{not json")
        assert _error(response)["code"] == -32700

    @pytest.mark.asyncio
    async def test_non_object_request(self, dispatcher):
        response = await dispatcher.handle([1, 2, 3])
        assert _error(response)["code"] == -32600


class TestTranscriptionTools:
    @pytest.mark.asyncio
    async def test_start_returns_audio_endpoint(self, dispatcher, fake_provider):
        """Test start_transcription uses the default language and advertises the socket."""
        result = _result(await dispatcher.handle(_call("start_transcription")))

        session_id = result["sessionId"]
        uuid.UUID(session_id)
        assert result["status"] == "active"
        assert result["language"] == "pt-BR"
        assert result["provider"] == "deepgram"
        assert result["wsEndpoint"] == f"ws://localhost:8080/audio/{session_id}"
        assert fake_provider.language == "pt-BR"

    @pytest.mark.asyncio
    async def test_start_with_unknown_provider(self, dispatcher):
        response = await dispatcher.handle(_call("start_transcription", {"provider": "whisper"}))
        assert _error(response)["code"] == -32003

    @pytest.mark.asyncio
    async def test_start_without_credentials(self, default_config, json_store):
        """Test a missing API key surfaces as -32004."""
        pool = ProviderPool(lambda: DeepgramProvider(DeepgramConfig(), environ={}))
        runtime = build_runtime(default_config, store=json_store, provider_pool=pool)
        dispatcher = MCPDispatcher(runtime.tools)

        response = await dispatcher.handle(_call("start_transcription", {"language": "en-US"}))

        error = _error(response)
        assert error["code"] == -32004
        assert "DEEPGRAM_API_KEY" in error["message"]

    @pytest.mark.asyncio
    async def test_full_session_flow(self, dispatcher, fake_provider, make_segment):
        """Test start, receive segments, read them back, stop and export."""
        started = _result(await dispatcher.handle(_call("start_transcription", {"language": "en"})))
        session_id = started["sessionId"]

        fake_provider.emit(make_segment("hello there", start=0.0, end=1.2, confidence=0.9))
        fake_provider.emit(make_segment("partial", is_final=False, start=1.2, end=1.5))
        await asyncio.sleep(0)

        page = _result(
            await dispatcher.handle(
                _call("get_transcription", {"sessionId": session_id, "fromSegment": 1})
            )
        )
        assert page["totalSegments"] == 2
        assert page["fromSegment"] == 1
        assert page["returnedCount"] == 1
        assert page["segments"][0] == {
            "id": page["segments"][0]["id"],
            "text": "partial",
            "startTime": 1.2,
            "endTime": 1.5,
            "confidence": 0,
            "speaker": 0,
            "isFinal": False,
        }

        stopped = _result(
            await dispatcher.handle(_call("stop_transcription", {"sessionId": session_id}))
        )
        assert stopped["status"] == "stopped"
        assert stopped["segmentCount"] == 2
        assert stopped["duration"] >= 0

        exported = _result(
            await dispatcher.handle(
                _call("export_session", {"sessionId": session_id, "format": "txt"})
            )
        )
        assert exported == {"sessionId": session_id, "format": "txt", "data": "hello there"}

    @pytest.mark.asyncio
    async def test_stop_unknown_session(self, dispatcher):
        response = await dispatcher.handle(
            _call("stop_transcription", {"sessionId": str(uuid.uuid4())})
        )
        assert _error(response)["code"] == -32001

    @pytest.mark.asyncio
    async def test_invalid_session_id(self, dispatcher):
        response = await dispatcher.handle(_call("get_session_status", {"sessionId": "nope"}))
        assert _error(response)["code"] == -32602

    @pytest.mark.asyncio
    async def test_missing_session_id(self, dispatcher):
        response = await dispatcher.handle(_call("stop_transcription", {}))
        assert _error(response)["code"] == -32602

    @pytest.mark.asyncio
    async def test_invalid_export_format(self, dispatcher):
        response = await dispatcher.handle(
            _call("export_session", {"sessionId": str(uuid.uuid4()), "format": "pdf"})
        )
        assert _error(response)["code"] == -32602

    @pytest.mark.asyncio
    async def test_tools_call_without_params(self, dispatcher):
        response = await dispatcher.handle({"jsonrpc": "2.0", "id": 9, "method": "tools/call"})

        error = _error(response)
        assert error["code"] == -32602
        assert response.id == 9

    @pytest.mark.asyncio
    async def test_unknown_tool(self, dispatcher):
        response = await dispatcher.handle(_call("delete_everything"))
        assert _error(response)["code"] == -32601

    @pytest.mark.asyncio
    async def test_list_sessions(self, dispatcher):
        first = _result(await dispatcher.handle(_call("start_transcription")))
        second = _result(await dispatcher.handle(_call("start_transcription")))
        await dispatcher.handle(_call("stop_transcription", {"sessionId": first["sessionId"]}))

        everything = _result(await dispatcher.handle(_call("list_sessions")))
        active = _result(await dispatcher.handle(_call("list_sessions", {"status": "active"})))

        assert everything["count"] == 2
        assert [s["sessionId"] for s in active["sessions"]] == [second["sessionId"]]
        stopped_entry = next(
            s for s in everything["sessions"] if s["sessionId"] == first["sessionId"]
        )
        assert "stoppedAt" in stopped_entry
        assert "duration" in stopped_entry

    @pytest.mark.asyncio
    async def test_session_status_shows_recent_segments(
        self, dispatcher, fake_provider, make_segment
    ):
        started = _result(await dispatcher.handle(_call("start_transcription")))
        for i in range(7):
            fake_provider.emit(make_segment(f"line {i}"))
        await asyncio.sleep(0)

        status = _result(
            await dispatcher.handle(
                _call("get_session_status", {"sessionId": started["sessionId"]})
            )
        )

        assert status["status"] == "active"
        assert status["segmentCount"] == 7
        assert [s["text"] for s in status["recentSegments"]] == [f"line {i}" for i in range(2, 7)]
        assert "stoppedAt" not in status

    @pytest.mark.asyncio
    async def test_results_are_sorted_json(self, dispatcher):
        response = await dispatcher.handle(_call("start_transcription"))
        text = response.to_wire()["result"]["content"][0]["text"]

        keys = list(json.loads(text))
        assert keys == sorted(keys)
