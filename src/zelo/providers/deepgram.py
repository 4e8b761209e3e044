"""Deepgram live-transcription provider over a websocket."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
from collections.abc import Awaitable, Callable, Mapping
from typing import Any
from urllib.parse import urlencode

import websockets
from pydantic import BaseModel, ConfigDict, ValidationError
from websockets.exceptions import ConnectionClosed

from zelo.config.schema import DeepgramConfig, ReconnectConfig
from zelo.errors import CredentialsMissing, ProviderNotConnected, ReconnectionFailed
from zelo.providers.base import ErrorCallback, SegmentCallback
from zelo.session.models import Segment, TranscriptionWord

logger = logging.getLogger(__name__)

# Fixed stream parameters: 16-bit little-endian PCM, 16 kHz, mono.
STREAM_PARAMS = {
    "encoding": "linear16",
    "sample_rate": "16000",
    "channels": "1",
    "smart_format": "true",
    "interim_results": "true",
    "punctuate": "true",
}

CLOSE_STREAM_MESSAGE = json.dumps({"type": "CloseStream"})

Connector = Callable[..., Awaitable[Any]]
Sleeper = Callable[[float], Awaitable[None]]


class _DeepgramWord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    word: str
    punctuated_word: str | None = None
    start: float | None = None
    end: float | None = None
    confidence: float | None = None
    speaker: int | None = None


class _DeepgramAlternative(BaseModel):
    model_config = ConfigDict(extra="ignore")

    transcript: str
    confidence: float | None = None
    words: list[_DeepgramWord] | None = None


class _DeepgramChannel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    alternatives: list[_DeepgramAlternative] | None = None


class _DeepgramResults(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str | None = None
    channel: _DeepgramChannel | None = None
    is_final: bool | None = None
    speech_final: bool | None = None
    start: float | None = None
    duration: float | None = None


class DeepgramProvider:
    """Streams audio to Deepgram and turns ``Results`` events into segments.

    The websocket is opened lazily by the first ``send`` and reopened with
    exponential backoff after an unsolicited close.

    All connection state belongs to the event loop that called ``connect``.
    Inbound frames are posted onto that loop before they touch any state,
    and transitions that await the network (open, close, reconnect) hold
    ``_lock`` so they cannot interleave.
    """

    name = "deepgram"

    def __init__(
        self,
        config: DeepgramConfig | None = None,
        reconnect: ReconnectConfig | None = None,
        environ: Mapping[str, str] | None = None,
        connector: Connector | None = None,
        sleep: Sleeper | None = None,
    ):
        """Initialize the provider.

        Args:
            config: Deepgram endpoint configuration
            reconnect: Reconnection policy
            environ: Environment used to look up the API key (defaults to os.environ)
            connector: Websocket connect coroutine (defaults to websockets.connect)
            sleep: Backoff sleep coroutine (defaults to asyncio.sleep)
        """
        self.config = config or DeepgramConfig()
        self.reconnect_config = reconnect or ReconnectConfig()
        self._environ = environ if environ is not None else os.environ
        self._connector = connector or websockets.connect
        self._sleep = sleep or asyncio.sleep

        self._lock = asyncio.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._websocket: Any = None
        self._reader_task: asyncio.Task | None = None
        self._reconnect_task: asyncio.Task | None = None
        self._api_key = ""
        self._connected = False
        self._segment_counter = 0
        self._language = "en"
        self._on_segment: SegmentCallback | None = None
        self._on_error: ErrorCallback | None = None

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def language(self) -> str:
        return self._language

    @property
    def segment_count(self) -> int:
        """Segments produced on the current connection."""
        return self._segment_counter

    def build_url(self, language: str) -> str:
        """Build the streaming URL for a language."""
        params = {"model": self.config.model, "language": language, **STREAM_PARAMS}
        return f"{self.config.base_url}?{urlencode(params)}"

    def _resolve_api_key(self) -> str:
        if self.config.api_key:
            return self.config.api_key
        return self._environ.get(self.config.api_key_env, "").strip()

    async def connect(
        self,
        language: str,
        on_segment: SegmentCallback,
        on_error: ErrorCallback,
    ) -> None:
        """Validate credentials and register callbacks; the socket opens on first send.

        Raises:
            CredentialsMissing: If no API key is configured
        """
        api_key = self._resolve_api_key()
        if not api_key:
            raise CredentialsMissing(self.config.api_key_env)

        async with self._lock:
            self._loop = asyncio.get_running_loop()
            self._api_key = api_key
            self._language = language
            self._segment_counter = 0
            self._on_segment = on_segment
            self._on_error = on_error

        logger.info("Prepared Deepgram connection (language=%s)", language)

    async def send(self, audio: bytes) -> None:
        """Send one binary audio frame, opening the connection first if needed.

        Raises:
            ProviderNotConnected: If the connection cannot be established or is lost
        """
        async with self._lock:
            if not self._api_key:
                raise ProviderNotConnected("connect() must be called before sending audio")
            if not self._connected:
                try:
                    await self._open()
                except Exception as e:
                    raise ProviderNotConnected(str(e) or type(e).__name__) from e
                logger.info("Connected to Deepgram on first audio chunk")
            websocket = self._websocket

        if websocket is None:
            raise ProviderNotConnected("websocket not available after connect")

        try:
            await websocket.send(audio)
        except ConnectionClosed as e:
            raise ProviderNotConnected(f"connection closed while sending: {e}") from e

    async def disconnect(self) -> None:
        """Close the stream gracefully and release connection-scoped tasks."""
        self._cancel_reconnect()

        async with self._lock:
            if not self._connected or self._websocket is None:
                return

            websocket = self._websocket
            reader = self._reader_task
            # Cleared first so the close below is not treated as unsolicited.
            self._connected = False
            try:
                await websocket.send(CLOSE_STREAM_MESSAGE)
                await websocket.close()
            except ConnectionClosed:
                logger.debug("Deepgram connection already closed during disconnect")
            finally:
                self._websocket = None
                self._reader_task = None
                self._on_segment = None
                self._on_error = None
                if reader is not None and reader is not asyncio.current_task():
                    reader.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await reader

        logger.info("Disconnected from Deepgram")

    def post(self, callback: Callable[..., None], *args: Any) -> None:
        """Schedule ``callback(*args)`` on the provider's owner loop. Safe from any thread."""
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.debug("Dropping provider event: owner loop is not available")
            return
        loop.call_soon_threadsafe(callback, *args)

    async def _open(self) -> None:
        """Open the websocket and start its reader. Caller holds ``_lock``."""
        url = self.build_url(self._language)
        websocket = await self._connector(
            url,
            additional_headers={"Authorization": f"Token {self._api_key}"},
        )
        self._websocket = websocket
        self._connected = True
        self._reader_task = asyncio.create_task(self._read_loop(websocket))

    async def _read_loop(self, websocket: Any) -> None:
        try:
            async for message in websocket:
                if isinstance(message, str):
                    self.post(self._handle_message, message)
        except ConnectionClosed as e:
            logger.warning("Deepgram connection closed with error: %s", e)
        self.post(self._handle_close, websocket)

    def _handle_close(self, websocket: Any) -> None:
        if not self._connected or self._websocket is not websocket:
            return

        logger.warning("Deepgram websocket closed unexpectedly, reconnecting")
        self._connected = False
        self._websocket = None
        self._reader_task = None
        self._reconnect_task = asyncio.create_task(self._reconnect())

    def _cancel_reconnect(self) -> None:
        task = self._reconnect_task
        self._reconnect_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _reconnect(self) -> None:
        attempts = self.reconnect_config.max_attempts
        last_error: Exception | None = None

        for attempt in range(attempts):
            delay = self.reconnect_config.initial_delay * (2**attempt)
            await self._sleep(delay)

            async with self._lock:
                if self._connected:
                    logger.info("Deepgram connection already reopened, stopping reconnection")
                    return
                try:
                    await self._open()
                except Exception as e:
                    last_error = e
                    logger.warning(
                        "Reconnection attempt %d/%d failed: %s", attempt + 1, attempts, e
                    )
                    continue

            logger.info("Reconnected to Deepgram after %d attempt(s)", attempt + 1)
            return

        error = ReconnectionFailed(attempts, str(last_error) if last_error else "unknown error")
        logger.error("%s", error)
        self._emit_error(error)

    def _handle_message(self, text: str) -> None:
        try:
            segment = self._parse_message(text)
        except (ValueError, ValidationError) as e:
            # Keep-alive pings and other tiny frames are not worth reporting.
            if len(text.encode("utf-8")) > 2:
                self._emit_error(ValueError(f"Malformed Deepgram payload: {e}"))
            return

        if segment is not None:
            self._emit_segment(segment)

    def _parse_message(self, text: str) -> Segment | None:
        payload = json.loads(text)
        if not isinstance(payload, dict):
            raise ValueError("expected a JSON object")
        if payload.get("type") != "Results":
            return None

        results = _DeepgramResults.model_validate(payload)
        alternatives = results.channel.alternatives if results.channel else None
        if not alternatives:
            return None

        alternative = alternatives[0]
        if not alternative.transcript.strip():
            return None

        self._segment_counter += 1

        words = tuple(
            TranscriptionWord(
                word=word.word,
                punctuated_word=word.punctuated_word,
                start=word.start,
                end=word.end,
                confidence=word.confidence,
                speaker=word.speaker,
            )
            for word in alternative.words or []
        )
        start = results.start or 0.0

        return Segment(
            id=f"{self.name}-{self._segment_counter}",
            text=alternative.transcript,
            words=words,
            start_time=start,
            end_time=start + (results.duration or 0.0),
            confidence=alternative.confidence,
            speaker=words[0].speaker if words else None,
            is_final=bool(results.is_final),
        )

    def _emit_segment(self, segment: Segment) -> None:
        callback = self._on_segment
        if callback is None:
            return
        try:
            callback(segment)
        except Exception:
            logger.exception("Error in segment callback")

    def _emit_error(self, error: Exception) -> None:
        callback = self._on_error
        if callback is None:
            return
        try:
            callback(error)
        except Exception:
            logger.exception("Error in error callback")
