from __future__ import annotations
from typing import Callable, Dict, List, Optional, Tuple

from ..core.errors import OverlappingSpansError, SpanOutOfBoundsError
from ..core.models import CancelToken, Finding

Renderer = Callable[[Finding], str]


class ReplacementStrategy:
    """
    Base class for replacement strategies. Subclasses set NAME and implement
    ``apply``, which turns the decoded file content into its masked version.
    Strategies are stateless and shared by every worker thread.
    """
    NAME: str = "base"
    DESCRIPTION: str = ""

    def apply(
        self,
        text: str,
        path: str,
        findings: List[Finding],
        newline: str,
        render: Renderer,
        cancel: Optional[CancelToken] = None,
    ) -> str:
        raise NotImplementedError

    @staticmethod
    def check_bounds(path: str, findings: List[Finding], line_count: int) -> None:
        for f in findings:
            if f.end_line > line_count:
                raise SpanOutOfBoundsError(
                    f"{path}: finding {f.id or f.rule_id} spans lines {f.start_line}-{f.end_line}, "
                    f"file has {line_count} line(s)"
                )

    @staticmethod
    def check_ranges(path: str, findings: List[Finding]) -> Dict[Tuple[int, int], List[Finding]]:
        """Group findings by line range, sorted by position.

        Findings sharing the exact same range share one entry. Distinct ranges
        that overlap or touch have no defined merge and fail the file.
        """

        by_range: Dict[Tuple[int, int], List[Finding]] = {}
        for f in findings:
            by_range.setdefault(f.span, []).append(f)

        prev: Optional[Tuple[int, int]] = None
        for start_line, end_line in sorted(by_range):
            if prev is not None and start_line <= prev[1] + 1:
                kind = "overlap" if start_line <= prev[1] else "are adjacent to"
                raise OverlappingSpansError(
                    f"{path}: lines {start_line}-{end_line} {kind} lines {prev[0]}-{prev[1]}"
                )
            prev = (start_line, end_line)
        return {span: by_range[span] for span in sorted(by_range)}
