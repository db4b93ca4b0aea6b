"""Structured JSONL audit trail for dependency and schedule changes."""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any


class AuditLogger:
    """Appends one JSON line per mutating engine operation."""

    def __init__(self, log_path: Path | None) -> None:
        self.log_path = log_path
        if self.log_path is not None:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self.logger = logging.getLogger("taskline.audit")

    @staticmethod
    def _hash_inputs(inputs: dict[str, Any]) -> str:
        payload = json.dumps(inputs, sort_keys=True, default=str).encode("utf-8")
        return hashlib.sha256(payload).hexdigest()

    def log(
        self,
        action: str,
        task_id: str,
        inputs: dict[str, Any],
        outcome: str,
        forced: bool = False,
        details: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Record one event and return it."""
        event = {
            "timestamp": datetime.now(UTC).isoformat(),
            "action": action,
            "task_id": task_id,
            "inputs_hash": self._hash_inputs(inputs),
            "outcome": outcome,
            "forced": forced,
            "details": details or {},
        }
        line = json.dumps(event, ensure_ascii=True, default=str)
        if self.log_path is not None:
            with self.log_path.open("a", encoding="utf-8") as fh:
                fh.write(line + "\n")
        if forced:
            self.logger.warning(line)
        else:
            self.logger.info(line)
        return event

    def read(self, limit: int = 50) -> list[dict[str, Any]]:
        """Most recent events, oldest first."""
        if self.log_path is None or not self.log_path.exists():
            return []
        lines = self.log_path.read_text(encoding="utf-8").splitlines()
        return [json.loads(line) for line in lines[-limit:] if line.strip()]
