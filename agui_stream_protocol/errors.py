"""
Error taxonomy for the AG-UI bridge.

- MalformedRequestError: request body missing or unparseable, rejected before streaming
- SessionLookupError: session store failed while resolving a thread, request-level error
- SessionPersistenceError: session save failed after the stream was fully consumed
- AdkRunError: the ADK runner reported an error code mid-generation
- ClientDisconnectedError: the client went away, never reported as an application error

No component retries. Retries belong to the caller or to the agent itself.
"""


class AGUIBridgeError(Exception):
    """Base class for bridge errors."""


class MalformedRequestError(AGUIBridgeError):
    """The run request body is absent or cannot be parsed."""


class SessionLookupError(AGUIBridgeError):
    """The session store failed to resolve a session for a thread."""

    def __init__(self, thread_id: str, message: str) -> None:
        super().__init__(f"Session lookup failed for thread '{thread_id}': {message}")
        self.thread_id = thread_id


class SessionPersistenceError(AGUIBridgeError):
    """The session store failed to persist a session after the run."""

    def __init__(self, thread_id: str, message: str) -> None:
        super().__init__(f"Session persistence failed for thread '{thread_id}': {message}")
        self.thread_id = thread_id


class AdkRunError(AGUIBridgeError):
    """ADK reported an error event during generation."""

    def __init__(self, code: str, message: str | None = None) -> None:
        super().__init__(f"{code}: {message or 'Unknown error'}")
        self.code = code
        self.error_message = message or "Unknown error"


class ClientDisconnectedError(AGUIBridgeError):
    """The streaming client closed the connection."""
