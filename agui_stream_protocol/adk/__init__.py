"""Google ADK implementation of the AIAgent contract."""

from .agent import (
    CLIENT_TOOLS_STATE_KEY,
    AdkAgent,
    ClientToolProxy,
    inject_client_tools,
)
from .conversion import (
    AdkEventTranslator,
    map_adk_finish_reason,
    to_adk_content,
    to_adk_contents,
)


__all__ = [
    "CLIENT_TOOLS_STATE_KEY",
    "AdkAgent",
    "AdkEventTranslator",
    "ClientToolProxy",
    "inject_client_tools",
    "map_adk_finish_reason",
    "to_adk_content",
    "to_adk_contents",
]
