"""Streaming speech-to-text providers.

Components:

- :class:`TranscriptionProvider` - Protocol every provider implements
- :class:`ProviderPool` - Capacity-checked pool leasing providers to sessions
- :class:`DeepgramProvider` - Deepgram live-transcription websocket client
"""

from zelo.config.schema import ProviderConfig
from zelo.errors import ProviderNotConfigured
from zelo.providers.base import ProviderPool, TranscriptionProvider
from zelo.providers.deepgram import DeepgramProvider


def create_provider(config: ProviderConfig) -> TranscriptionProvider:
    """Create a provider instance from configuration.

    Raises:
        ProviderNotConfigured: If the provider name is not supported
    """
    if config.name == "deepgram":
        return DeepgramProvider(config.deepgram, config.reconnect)
    raise ProviderNotConfigured(config.name)


def create_provider_pool(config: ProviderConfig) -> ProviderPool:
    """Create the provider pool sized by ``config.capacity``."""
    return ProviderPool(
        factory=lambda: create_provider(config),
        capacity=config.capacity,
        share_when_full=config.share_when_full,
    )


__all__ = [
    "DeepgramProvider",
    "ProviderPool",
    "TranscriptionProvider",
    "create_provider",
    "create_provider_pool",
]
