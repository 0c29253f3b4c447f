"""
AG-UI Backend Server with FastAPI

Serves a Google ADK agent to AG-UI clients (CopilotKit and friends) over
Server-Sent Events.

Endpoints:
    GET  /                 service info
    GET  /health           health check
    POST /clear-sessions   drop stored sessions (testing/development)
    POST {AGUI_ENDPOINT_PATH}  AG-UI run endpoint (default: /agui)

Run:
    uvicorn server:app --port 8000
"""

import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

from dotenv import load_dotenv


# Load environment variables from .env.local BEFORE any local imports
# ChunkLogger reads its configuration at import time
load_dotenv(".env.local")

from fastapi import FastAPI  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from google.adk.agents import Agent  # noqa: E402
from google.adk.runners import InMemoryRunner  # noqa: E402
from loguru import logger  # noqa: E402

from agui_stream_protocol import (  # noqa: E402
    BridgeSettings,
    InMemoryAgentSessionStore,
    chunk_logger,
    configure_logging,
    map_agui,
    register_session_store,
)
from agui_stream_protocol.adk import AdkAgent, inject_client_tools  # noqa: E402
from agui_stream_protocol.logging_config import add_file_sink  # noqa: E402


configure_logging()

# Configure file logging
log_dir = Path("logs")
log_dir.mkdir(exist_ok=True)
# session id or time jst format for uniqueness
jst_time_str = datetime.now(timezone(timedelta(hours=9))).strftime("%Y%m%d_%H%M%S")
log_file = log_dir / f"server_{os.getenv('CHUNK_LOGGER_SESSION_ID', jst_time_str)}.log"
add_file_sink(str(log_file))

logger.info("AG-UI Backend Server starting up...")
logger.info(f"Logging to: {log_file}")

chunk_info = chunk_logger.get_info()
logger.info(f"Chunk Logger: enabled={chunk_info['enabled']}")
if chunk_info["enabled"]:
    logger.info(f"Chunk Logger: session_id={chunk_info['session_id']}")
    logger.info(f"Chunk Logger: output_path={chunk_info['output_path']}")

settings = BridgeSettings.from_env()


# ========== Agent ==========

AGENT_INSTRUCTION = (
    "You are a helpful AI assistant embedded in a web application. "
    "The application may offer tools that run in the user's browser; "
    "use them when they help answer the request."
)

agui_agent = Agent(
    name="agui_assistant",
    model=settings.model,
    description="An assistant served over the AG-UI protocol",
    instruction=AGENT_INSTRUCTION,
    before_model_callback=inject_client_tools,
)
agui_runner = InMemoryRunner(agent=agui_agent, app_name=settings.app_name)
adk_agent = AdkAgent(agui_runner, user_id=settings.user_id)


# ========== App ==========

app = FastAPI(
    title="AG-UI Stream Protocol Server",
    description="Google ADK backend for AG-UI clients",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

session_store: InMemoryAgentSessionStore | None = None
if settings.session_store == "memory":
    session_store = InMemoryAgentSessionStore()
    register_session_store(app, session_store)
else:
    logger.info("Session persistence disabled (AGUI_SESSION_STORE=none)")

map_agui(app, settings.endpoint_path, adk_agent)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "AG-UI Stream Protocol Server",
        "version": "0.1.0",
        "status": "running",
        "agui_endpoint": settings.endpoint_path,
    }


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "healthy"}


@app.post("/clear-sessions")
async def clear_backend_sessions():
    """
    Clear all stored AG-UI sessions (for testing/development)

    Also closes chunk logger file handles so tests can delete and recreate
    log files between runs.
    """
    logger.info("[/clear-sessions] Clearing all stored sessions")
    if session_store is not None:
        session_store.clear_all()
    chunk_logger.close()
    return {"status": "success", "message": "All sessions cleared"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
