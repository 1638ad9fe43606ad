"""
Append-only log of failed escalations.

Each failure is one record an external retry driver can replay. The JSONL
sink writes one JSON object per line and never rewrites existing lines.
"""

import json
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..config import settings


logger = structlog.get_logger(__name__)


class FailureRecord(BaseModel):
    """One failed escalation attempt."""

    model_config = ConfigDict(frozen=True)

    source_id: str
    prompt: str = Field(default="", description="Rendered user prompt sent to the scorer")
    request: Dict[str, Any] = Field(default_factory=dict, description="Escalation request payload")
    error: str
    error_type: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    retry_count: int = Field(default=0, ge=0)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class FailureLog(ABC):
    """Sink for escalation failures."""

    @abstractmethod
    def append(self, record: FailureRecord) -> None:
        """Persist one record. Must not mutate earlier records."""
        pass

    @abstractmethod
    def read_failures(self) -> List[FailureRecord]:
        """All records, oldest first."""
        pass

    def append_failure(
        self,
        source_id: str,
        error: Exception,
        prompt: str = "",
        request: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> FailureRecord:
        """Build a record from an exception and append it."""
        record = FailureRecord(
            source_id=source_id,
            prompt=prompt,
            request=request or {},
            error=str(error),
            error_type=type(error).__name__,
            metadata=metadata or {},
        )
        self.append(record)
        return record


class InMemoryFailureLog(FailureLog):
    """Failure log kept in a list (tests, short-lived runs)."""

    def __init__(self):
        self._records: List[FailureRecord] = []
        self._lock = threading.Lock()

    def append(self, record: FailureRecord) -> None:
        with self._lock:
            self._records.append(record)

    def read_failures(self) -> List[FailureRecord]:
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        return len(self._records)


class JsonlFailureLog(FailureLog):
    """
    Failure log appended to a JSON Lines file.

    Writes are serialized with a lock; each record is one line.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path or settings.failure_log_path)
        self._lock = threading.Lock()

    def append(self, record: FailureRecord) -> None:
        line = record.model_dump_json()
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")

        logger.info(
            "escalation_failure_logged",
            source_id=record.source_id,
            error_type=record.error_type,
            path=str(self.path),
        )

    def read_failures(self) -> List[FailureRecord]:
        """
        Read every record back.

        Lines that are not valid records are logged and skipped.
        """
        if not self.path.exists():
            return []

        records = []
        with self._lock:
            lines = self.path.read_text(encoding="utf-8").splitlines()

        for line_no, line in enumerate(lines, 1):
            if not line.strip():
                continue
            try:
                records.append(FailureRecord.model_validate(json.loads(line)))
            except (json.JSONDecodeError, ValidationError) as e:
                logger.warning(
                    "failure_log_line_invalid",
                    path=str(self.path),
                    line=line_no,
                    error=str(e),
                )
        return records
