from __future__ import annotations
import re
from typing import List, Optional

from ..core.errors import MatchNotFoundError
from ..core.models import CancelToken, Chunk, Finding
from ..core.utils import join_lines, split_lines
from .base import ReplacementStrategy, Renderer

_LINE_BREAK_RE = re.compile(r"\r\n|\n|\r")


class SpanStrategy(ReplacementStrategy):
    """
    Span-addressed replacement. Each distinct line range is cut out of the
    file, its matches are swapped for placeholders, and the ranges are put
    back in a single pass keyed by their original position. Secrets that
    recur outside their recorded range are left alone.
    """
    NAME = "span"
    DESCRIPTION = "replace each match inside its recorded line range"

    def apply(
        self,
        text: str,
        path: str,
        findings: List[Finding],
        newline: str,
        render: Renderer,
        cancel: Optional[CancelToken] = None,
    ) -> str:
        lines = split_lines(text, newline)
        chunks = self.plan(path, lines, findings, newline)
        for chunk in chunks:
            if cancel is not None:
                cancel.raise_if_set()
            chunk.replacement = self.replace_chunk(path, chunk, newline, render)
        return join_lines(self.reassemble(lines, chunks), newline)

    def plan(self, path: str, lines: List[str], findings: List[Finding], newline: str) -> List[Chunk]:
        """Cut one chunk per distinct line range, in file order."""

        self.check_bounds(path, findings, len(lines))
        return [
            Chunk(
                start=start_line - 1,
                end=end_line - 1,
                text=join_lines(lines[start_line - 1:end_line], newline),
                findings=range_findings,
            )
            for (start_line, end_line), range_findings in self.check_ranges(path, findings).items()
        ]

    @staticmethod
    def replace_chunk(path: str, chunk: Chunk, newline: str, render: Renderer) -> str:
        out = chunk.text
        for f in chunk.findings:
            needle = _locate(chunk.text, f.needle, newline)
            if needle is None:
                raise MatchNotFoundError(
                    f"{path}: match of finding {f.id or f.rule_id} not found on lines {f.start_line}-{f.end_line}"
                )
            # a duplicate finding finds its needle already replaced; count=1 keeps it a no-op
            out = out.replace(needle, render(f), 1)
        return out

    @staticmethod
    def reassemble(lines: List[str], chunks: List[Chunk]) -> List[str]:
        out: List[str] = []
        cursor = 0
        for chunk in chunks:
            out.extend(lines[cursor:chunk.start])
            out.append(chunk.replacement if chunk.replacement is not None else chunk.text)
            cursor = chunk.end + 1
        out.extend(lines[cursor:])
        return out


def _locate(text: str, needle: str, newline: str) -> Optional[str]:
    if not needle:
        return None
    if needle in text:
        return needle
    # multi-line matches are reported with whatever line breaks the scanner saw
    normalized = _LINE_BREAK_RE.sub(lambda _m: newline, needle)
    if normalized in text:
        return normalized
    return None
