from __future__ import annotations
import json
from pathlib import Path
from typing import Any, Dict, List

from .models import MaskReport

GROUPED_MARKER = "gitleaks"


def default_output_path(findings_path: Path) -> Path:
    """``x.gitleaks.json`` -> ``x.gitleaks-grouped.json``; otherwise ``<stem>.grouped<suffix>``."""

    name = findings_path.name
    if GROUPED_MARKER in name:
        return findings_path.with_name(name.replace(GROUPED_MARKER, f"{GROUPED_MARKER}-grouped"))
    return findings_path.with_name(f"{findings_path.stem}.grouped{findings_path.suffix or '.json'}")


class Reporter:
    def __init__(self, out_path: Path) -> None:
        self.out_path = out_path

    @property
    def summary_path(self) -> Path:
        return self.out_path.with_suffix(".md")

    def build(self, report: MaskReport) -> Dict[str, Dict[str, Any]]:
        grouped: Dict[str, Dict[str, Any]] = {}
        for path, findings in report.groups.items():
            result = report.results.get(path)
            grouped[path] = {
                "status": result.status.value if result else "pending",
                "kind": result.kind.value if result and result.kind else None,
                "handled": result.handled if result else 0,
                "error": result.error if result else None,
                "findings": [f.to_dict() for f in findings],
            }
        return grouped

    def write_all(self, report: MaskReport) -> Path:
        self.out_path.parent.mkdir(parents=True, exist_ok=True)
        self.out_path.write_text(json.dumps(self.build(report), indent=2), encoding="utf-8")

        if report.complete:
            state = "completed"
        elif report.interrupted:
            state = "interrupted"
        else:
            state = "completed with failures"
        lines: List[str] = ["# Masking Summary", ""]
        lines.append(f"- status: {state}")
        lines.append(f"- files: {report.total}")
        lines.append(f"- files masked: {sum(1 for r in report.results.values() if r.ok)}")
        lines.append(f"- files failed: {len(report.failed)}")
        lines.append(f"- files not processed: {len(report.pending)}")
        lines.append(f"- findings handled: {report.handled_findings}")
        lines.append("")
        if report.failed:
            lines.append("## Failures")
            for result in sorted(report.failed, key=lambda r: r.path):
                lines.append(f"- **file**: {result.path}  ")
                lines.append(f"  **error**: `{result.error}`  ")
            lines.append("")
        self.summary_path.write_text("\n".join(lines), encoding="utf-8")
        return self.out_path
