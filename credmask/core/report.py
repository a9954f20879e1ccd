"""Findings report I/O and grouping.

Reads a gitleaks-style JSON array into :class:`Finding` records, mirrors the
source tree into the target tree and buckets the findings per target file.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import uuid
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .config import SUCCESS
from .errors import ReportError
from .models import FileGroup, Finding


# report key (lower-cased) -> Finding attribute
_FIELDS = {
    "ruleid": "rule_id",
    "file": "file",
    "startline": "start_line",
    "endline": "end_line",
    "match": "match",
    "secret": "secret",
    "entropy": "entropy",
    "fingerprint": "fingerprint",
    "id": "id",
}


def finding_from_dict(raw: Dict[str, Any], index: int = 0) -> Finding:
    if not isinstance(raw, dict):
        raise ReportError(f"finding #{index} is not an object")

    values: Dict[str, Any] = {}
    for key, value in raw.items():
        attr = _FIELDS.get(str(key).lower())
        if attr is not None and value is not None:
            values[attr] = value

    try:
        finding = Finding(
            rule_id=str(values.get("rule_id", "")),
            file=str(values.get("file", "")),
            start_line=int(values.get("start_line", 0)),
            end_line=int(values.get("end_line", values.get("start_line", 0))),
            match=str(values.get("match", "")),
            secret=str(values.get("secret", "")),
            entropy=float(values.get("entropy", 0.0)),
            fingerprint=str(values.get("fingerprint", "")),
            id=str(values.get("id", "")),
        )
    except (TypeError, ValueError) as exc:
        raise ReportError(f"finding #{index} has a malformed field: {exc}") from exc

    if not finding.file:
        raise ReportError(f"finding #{index} has no file")
    if finding.start_line < 1:
        raise ReportError(f"finding #{index} ({finding.file}) has startLine {finding.start_line} < 1")
    if finding.end_line < finding.start_line:
        raise ReportError(
            f"finding #{index} ({finding.file}) has endLine {finding.end_line} before startLine {finding.start_line}"
        )
    return finding


def load_findings(path: Path) -> List[Finding]:
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise ReportError(f"error reading findings JSON {path}: {exc}") from exc
    except ValueError as exc:
        raise ReportError(f"error parsing findings JSON {path}: {exc}") from exc

    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ReportError(f"findings JSON {path} must contain a list, got {type(raw).__name__}")
    return [finding_from_dict(item, i) for i, item in enumerate(raw)]


def summarize_rules(findings: Iterable[Finding]) -> List[str]:
    return sorted({f.rule_id for f in findings})


def rewrite_path(path: str, source_dir: str, target_dir: str) -> str:
    # textual prefix swap on the normalised path, nothing is resolved against the filesystem
    path = os.path.normpath(path)
    if source_dir and path.startswith(source_dir):
        return target_dir + path[len(source_dir):]
    return path


def group_findings(findings: Iterable[Finding], source_dir: str, target_dir: str) -> FileGroup:
    groups: FileGroup = {}
    for f in findings:
        f = replace(
            f,
            file=rewrite_path(f.file, source_dir, target_dir),
            id=f.id or str(uuid.uuid4()),
        )
        groups.setdefault(f.file, []).append(f)
    return groups


def mirror_tree(source_dir: Path, target_dir: Path, logger: Optional[logging.Logger] = None) -> bool:
    """Copy ``source_dir`` to ``target_dir`` unless the target already exists.

    Returns True when a copy was made.
    """

    log = logger or logging.getLogger("credmask")
    if target_dir.exists():
        log.info("Target directory already exists: %s", target_dir)
        return False
    if not source_dir.is_dir():
        raise ReportError(f"source directory does not exist: {source_dir}")

    log.info("Target directory does not exist, copying %s", source_dir)
    shutil.copytree(source_dir, target_dir, symlinks=True)
    log.log(SUCCESS, "Copied %s to %s", source_dir, target_dir)
    return True
