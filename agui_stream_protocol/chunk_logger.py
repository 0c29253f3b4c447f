"""
Chunk Logger for the AG-UI bridge

Records chunks at points of the streaming pipeline for debugging and replay.
Outputs JSONL format (1 line = 1 chunk).

Usage:
    from agui_stream_protocol.chunk_logger import chunk_logger

    chunk_logger.log_chunk(
        location="agent-update",
        direction="in",
        chunk=update.model_dump(mode="json"),
        run_id=run_id,
    )

Environment Variables:
    CHUNK_LOGGER_ENABLED: Enable/disable logging (default: false)
    CHUNK_LOGGER_OUTPUT_DIR: Output directory (default: ./chunk_logs)
    CHUNK_LOGGER_SESSION_ID: Session identifier (default: auto-generated)

Output Structure:
    chunk_logs/
      └─ {session_id}/
          ├─ agent-update.jsonl
          └─ agui-event.jsonl
"""

import json
import os
import time
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal


LogLocation = Literal[
    "agent-update",  # ChatResponseUpdate entering the encoder (input)
    "agui-event",  # AG-UI event leaving the encoder (output)
]

Direction = Literal["in", "out"]


@dataclass
class ChunkLogEntry:
    """Single chunk log entry."""

    timestamp: int  # Unix timestamp (ms)
    session_id: str
    run_id: str | None
    location: LogLocation
    direction: Direction
    sequence_number: int

    chunk: Any

    metadata: dict[str, Any] | None = None


class ChunkLogger:
    """
    Chunk logger for recording data flow.

    Writes chunks to JSONL files organized by session and location.
    """

    def __init__(
        self,
        enabled: bool | None = None,
        output_dir: str | None = None,
        session_id: str | None = None,
    ):
        """
        Initialize chunk logger.

        Args:
            enabled: Enable/disable logging (default: from env CHUNK_LOGGER_ENABLED)
            output_dir: Output directory (default: from env CHUNK_LOGGER_OUTPUT_DIR or ./chunk_logs)
            session_id: Session ID (default: from env CHUNK_LOGGER_SESSION_ID or auto-generated)
        """
        self._enabled = (
            enabled
            if enabled is not None
            else os.getenv("CHUNK_LOGGER_ENABLED", "false").lower() == "true"
        )

        output_dir_str = (
            output_dir
            if output_dir is not None
            else os.getenv("CHUNK_LOGGER_OUTPUT_DIR", "./chunk_logs")
        )
        self._output_dir = Path(output_dir_str)

        self._session_id = (
            session_id or os.getenv("CHUNK_LOGGER_SESSION_ID") or self._generate_session_id()
        )

        self._sequence_counters: dict[LogLocation, int] = {}
        self._file_handles: dict[LogLocation, Any] = {}

        if self._enabled:
            self._ensure_session_dir()

    def _generate_session_id(self) -> str:
        timestamp = datetime.now(UTC).strftime("%Y-%m-%d-%H%M%S")
        return f"session-{timestamp}"

    def _ensure_session_dir(self) -> None:
        session_dir = self._output_dir / self._session_id
        session_dir.mkdir(parents=True, exist_ok=True)

    def _get_file_handle(self, location: LogLocation) -> Any:
        if location not in self._file_handles:
            file_path = self._output_dir / self._session_id / f"{location}.jsonl"
            self._file_handles[location] = file_path.open(
                "a", encoding="utf-8", buffering=1
            )  # Line buffering
        return self._file_handles[location]

    def is_enabled(self) -> bool:
        """Check if logger is enabled."""
        return self._enabled

    def log_chunk(
        self,
        location: LogLocation,
        direction: Direction,
        chunk: Any,
        run_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """
        Log a chunk.

        Args:
            location: Recording point
            direction: Input or output
            chunk: JSON-serializable chunk data
            run_id: AG-UI run the chunk belongs to
            metadata: Optional metadata
        """
        if not self._enabled:
            return

        self._sequence_counters[location] = self._sequence_counters.get(location, 0) + 1

        entry = ChunkLogEntry(
            timestamp=int(time.time() * 1000),
            session_id=self._session_id,
            run_id=run_id,
            location=location,
            direction=direction,
            sequence_number=self._sequence_counters[location],
            chunk=chunk,
            metadata=metadata,
        )

        file_handle = self._get_file_handle(location)
        file_handle.write(json.dumps(asdict(entry), ensure_ascii=False, default=str) + "\n")

    def get_output_path(self) -> Path:
        """Get the full output path for the current session."""
        return self._output_dir / self._session_id

    def get_info(self) -> dict[str, Any]:
        """Get logger configuration information."""
        return {
            "enabled": self._enabled,
            "output_dir": str(self._output_dir),
            "session_id": self._session_id,
            "output_path": str(self.get_output_path()),
        }

    def close(self) -> None:
        """Close all file handles."""
        for handle in self._file_handles.values():
            handle.close()
        self._file_handles.clear()

    def __enter__(self) -> "ChunkLogger":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


# Global singleton instance
chunk_logger = ChunkLogger()
