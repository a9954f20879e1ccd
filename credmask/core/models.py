from __future__ import annotations
import enum
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .errors import CancelledError


@dataclass(frozen=True)
class Finding:
    rule_id: str
    file: str  # string path, rewritten into the target tree by group_findings
    start_line: int
    end_line: int
    match: str = ""
    secret: str = ""
    entropy: float = 0.0
    fingerprint: str = ""
    id: str = ""

    @property
    def span(self) -> Tuple[int, int]:
        return (self.start_line, self.end_line)

    @property
    def needle(self) -> str:
        return self.match or self.secret

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ruleID": self.rule_id,
            "file": self.file,
            "startLine": self.start_line,
            "endLine": self.end_line,
            "match": self.match,
            "secret": self.secret,
            "entropy": self.entropy,
            "fingerprint": self.fingerprint,
            "id": self.id,
        }


# destination path -> findings in discovery order
FileGroup = Dict[str, List[Finding]]


@dataclass
class Chunk:
    """One line range of a file (0-based, inclusive) and what replaces it."""

    start: int
    end: int
    text: str
    findings: List[Finding] = field(default_factory=list)
    replacement: Optional[str] = None


class FileKind(str, enum.Enum):
    NONE = "none"
    EMPTY = "empty"
    BINARY = "binary"
    TEXT = "text"


class FileStatus(str, enum.Enum):
    DONE = "done"
    FAILED = "failed"


@dataclass
class FileResult:
    path: str
    status: FileStatus
    kind: Optional[FileKind] = None
    handled: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is FileStatus.DONE


@dataclass
class MaskReport:
    groups: FileGroup
    results: Dict[str, FileResult] = field(default_factory=dict)
    interrupted: bool = False
    timed_out: bool = False

    @property
    def total(self) -> int:
        return len(self.groups)

    @property
    def failed(self) -> List[FileResult]:
        return [r for r in self.results.values() if not r.ok]

    @property
    def handled_findings(self) -> int:
        return sum(r.handled for r in self.results.values() if r.ok)

    @property
    def pending(self) -> List[str]:
        return [p for p in self.groups if p not in self.results]

    @property
    def complete(self) -> bool:
        return not self.interrupted and not self.pending and not self.failed


class CancelToken:
    """Cooperative cancellation flag shared by every file task."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    def raise_if_set(self) -> None:
        if self._event.is_set():
            raise CancelledError("cancelled before the file was written")

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)
