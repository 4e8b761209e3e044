"""Error kinds raised by the transcription core.

Every error carries a JSON-RPC error code so the RPC layer can map it
without knowing the concrete type.
"""


class ZeloError(Exception):
    """Base class for all transcription core errors."""

    code: int = -32000

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SessionNotFound(ZeloError):
    """No session exists for the given id."""

    code = -32001

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class SessionAlreadyStopped(ZeloError):
    """The session was already stopped."""

    code = -32002

    def __init__(self, session_id: str):
        super().__init__(f"Session already stopped: {session_id}")
        self.session_id = session_id


class SessionAlreadyActive(ZeloError):
    """The operation requires a stopped session but it is still active."""

    def __init__(self, session_id: str):
        super().__init__(f"Session already active: {session_id}")
        self.session_id = session_id


class ProviderConnectionFailed(ZeloError):
    """The streaming provider connection could not be opened or was lost."""

    def __init__(self, detail: str):
        super().__init__(f"Provider connection failed: {detail}")
        self.detail = detail


class ProviderNotConnected(ProviderConnectionFailed):
    """Audio was sent but no provider connection could be established."""


class ReconnectionFailed(ProviderConnectionFailed):
    """All reconnection attempts after an unsolicited close failed."""

    def __init__(self, attempts: int, detail: str):
        super().__init__(f"Reconnection failed after {attempts} attempts: {detail}")
        self.attempts = attempts


class ProviderCapacityExceeded(ZeloError):
    """The provider pool has no free slot."""

    def __init__(self, capacity: int):
        super().__init__(f"Provider capacity exceeded (capacity={capacity})")
        self.capacity = capacity


class ProviderNotConfigured(ZeloError):
    """The requested provider is unknown or not configured."""

    code = -32003

    def __init__(self, name: str):
        super().__init__(f"Provider not configured: {name}")
        self.name = name


class CredentialsMissing(ZeloError):
    """The provider's API credentials are absent."""

    code = -32004

    def __init__(self, name: str):
        super().__init__(f"API key missing for: {name}")
        self.name = name


class RepositoryError(ZeloError):
    """The session store failed to serialize, read or write a record."""

    def __init__(self, detail: str):
        super().__init__(f"Repository error: {detail}")
        self.detail = detail
