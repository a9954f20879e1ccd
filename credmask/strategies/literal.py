from __future__ import annotations
from typing import List, Optional

from ..core.errors import MatchNotFoundError
from ..core.models import CancelToken, Finding
from ..core.utils import count_lines
from .base import ReplacementStrategy, Renderer


class LiteralStrategy(ReplacementStrategy):
    """
    Whole-text replacement: every verbatim occurrence of a finding's secret is
    replaced, wherever it sits in the file. Line numbers are only checked for
    consistency, counted on any line break.
    """
    NAME = "literal"
    DESCRIPTION = "replace every occurrence of each secret anywhere in the file"

    def apply(
        self,
        text: str,
        path: str,
        findings: List[Finding],
        newline: str,
        render: Renderer,
        cancel: Optional[CancelToken] = None,
    ) -> str:
        self.check_bounds(path, findings, count_lines(text))
        self.check_ranges(path, findings)
        for f in findings:
            if cancel is not None:
                cancel.raise_if_set()
            needle = f.secret or f.match
            if not needle:
                raise MatchNotFoundError(f"{path}: finding {f.id or f.rule_id} has neither secret nor match")
            text = text.replace(needle, render(f))
        return text
