"""Inbound audio websocket relay."""

from zelo.audio.relay import AudioIngressRelay

__all__ = ["AudioIngressRelay"]
