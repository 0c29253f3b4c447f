"""
Settings read from environment variables.

server.py loads .env.local with python-dotenv before calling
BridgeSettings.from_env(), so values from that file are visible here.

Environment Variables:
    AGUI_ENDPOINT_PATH: Route the AG-UI endpoint is mapped to (default: /agui)
    AGUI_SESSION_STORE: "memory" (default) or "none" to disable persistence
    AGUI_USER_ID: ADK user id used for AG-UI sessions (default: ag_ui)
    AGUI_CORS_ORIGINS: Comma-separated allowed origins (default: http://localhost:3000)
    ADK_APP_NAME: ADK application name (default: agui_app)
    ADK_MODEL: Model used by the demo ADK agent (default: gemini-2.5-flash)
"""

import os
from dataclasses import dataclass, field
from typing import Literal


SessionStoreKind = Literal["memory", "none"]

DEFAULT_ENDPOINT_PATH = "/agui"
DEFAULT_APP_NAME = "agui_app"
DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_USER_ID = "ag_ui"
DEFAULT_CORS_ORIGINS = ("http://localhost:3000",)


def _parse_origins(value: str | None) -> tuple[str, ...]:
    if not value:
        return DEFAULT_CORS_ORIGINS
    return tuple(origin.strip() for origin in value.split(",") if origin.strip())


def _parse_session_store(value: str | None) -> SessionStoreKind:
    normalized = (value or "memory").strip().lower()
    if normalized not in {"memory", "none"}:
        msg = f"Unsupported AGUI_SESSION_STORE: {value!r} (expected 'memory' or 'none')"
        raise ValueError(msg)
    return "none" if normalized == "none" else "memory"


@dataclass(frozen=True)
class BridgeSettings:
    """Runtime settings for server.py."""

    endpoint_path: str = DEFAULT_ENDPOINT_PATH
    session_store: SessionStoreKind = "memory"
    user_id: str = DEFAULT_USER_ID
    app_name: str = DEFAULT_APP_NAME
    model: str = DEFAULT_MODEL
    cors_origins: tuple[str, ...] = field(default=DEFAULT_CORS_ORIGINS)

    @classmethod
    def from_env(cls) -> "BridgeSettings":
        return cls(
            endpoint_path=os.getenv("AGUI_ENDPOINT_PATH", DEFAULT_ENDPOINT_PATH),
            session_store=_parse_session_store(os.getenv("AGUI_SESSION_STORE")),
            user_id=os.getenv("AGUI_USER_ID", DEFAULT_USER_ID),
            app_name=os.getenv("ADK_APP_NAME", DEFAULT_APP_NAME),
            model=os.getenv("ADK_MODEL", DEFAULT_MODEL),
            cors_origins=_parse_origins(os.getenv("AGUI_CORS_ORIGINS")),
        )
