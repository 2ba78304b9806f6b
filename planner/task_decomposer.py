"""Approach-text segmentation into ordered clauses.

Three strategies are tried in priority order:

1. explicit enumeration markers (``1.``, ``2)``, ``Step 3:``, ``阶段4：``,
   ``-``/``*``/``•`` bullets),
2. sentence-boundary punctuation,
3. the whole text as a single clause (a degraded parse).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger("ap.planner.decomposer")

EMPTY_APPROACH_CLAUSE = "Clarify the empty approach with the user"

# A numbered marker must open the text or a line, or follow whitespace, and be
# followed by whitespace so that "2.5" or "config.yaml" never split. A full-width
# colon ("阶段1：") needs no trailing whitespace.
_NUMBER_MARKER = re.compile(
    r"(?:(?<=\s)|^)(?:step\s+|阶段\s*)?(\d{1,3})(?:[.):](?=\s|$)|：)",
    flags=re.IGNORECASE | re.MULTILINE,
)
_BULLET_LINE = re.compile(r"^\s*[-*•]\s+(.*)$")
_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?;。；！？])\s+|\n+")
_BOUNDARY_CHARS = re.compile(r"[.!?;。；！？\n]")


class SegmentStrategy(str, Enum):
    ENUMERATED = "enumerated"
    BULLETED = "bulleted"
    SENTENCES = "sentences"
    WHOLE = "whole"


@dataclass
class Segmentation:
    """Clauses found in an approach text and how they were found."""

    clauses: list[str] = field(default_factory=list)
    strategy: SegmentStrategy = SegmentStrategy.WHOLE

    @property
    def degraded(self) -> bool:
        return self.strategy is SegmentStrategy.WHOLE


def clean_clause(text: str) -> str:
    """Collapse whitespace and drop trailing separators."""
    collapsed = re.sub(r"\s+", " ", text).strip()
    return collapsed.rstrip(".;,:!?。；，！？").strip()


class TaskDecomposer:
    """Split approach text into clauses."""

    def __init__(self, max_clauses: int = 50) -> None:
        self.max_clauses = max_clauses

    def decompose(self, text: str) -> Segmentation:
        """Segment text; never raises and never returns zero clauses."""
        normalized = (text or "").strip()
        segmentation = (
            self._enumerated(normalized)
            or self._bulleted(normalized)
            or self._sentences(normalized)
            or self._whole(normalized)
        )
        if len(segmentation.clauses) > self.max_clauses:
            logger.warning(
                "Approach produced %d clauses; keeping the first %d",
                len(segmentation.clauses),
                self.max_clauses,
            )
            segmentation.clauses = segmentation.clauses[: self.max_clauses]
        return segmentation

    @staticmethod
    def _enumerated(text: str) -> Segmentation | None:
        matches = list(_NUMBER_MARKER.finditer(text))
        accepted: list[re.Match[str]] = []
        expected: int | None = None
        for position, match in enumerate(matches):
            number = int(match.group(1))
            if expected is None:
                # The first marker opens a line, or starts a run "n ... n+1"
                # after a preamble, which is dropped.
                line_start = text.rfind("\n", 0, match.start()) + 1
                opens_line = not text[line_start : match.start()].strip()
                if not opens_line and not any(int(later.group(1)) == number + 1 for later in matches[position + 1 :]):
                    continue
                accepted.append(match)
                expected = number + 1
            elif number == expected:
                accepted.append(match)
                expected += 1
        if not accepted:
            return None

        clauses: list[str] = []
        for position, match in enumerate(accepted):
            end = accepted[position + 1].start() if position + 1 < len(accepted) else len(text)
            clause = clean_clause(text[match.end() : end])
            if clause:
                clauses.append(clause)
        if not clauses:
            return None
        return Segmentation(clauses=clauses, strategy=SegmentStrategy.ENUMERATED)

    @staticmethod
    def _bulleted(text: str) -> Segmentation | None:
        chunks: list[list[str]] = []
        for line in text.splitlines():
            match = _BULLET_LINE.match(line)
            if match:
                chunks.append([match.group(1)])
            elif chunks and line.strip():
                # Continuation of the previous bullet; text before the first
                # bullet is treated as preamble.
                chunks[-1].append(line)
        clauses = [clause for clause in (clean_clause(" ".join(chunk)) for chunk in chunks) if clause]
        if not clauses:
            return None
        return Segmentation(clauses=clauses, strategy=SegmentStrategy.BULLETED)

    @staticmethod
    def _sentences(text: str) -> Segmentation | None:
        if not _BOUNDARY_CHARS.search(text):
            return None
        clauses = [clause for clause in (clean_clause(part) for part in _SENTENCE_BOUNDARY.split(text)) if clause]
        if not clauses:
            return None
        return Segmentation(clauses=clauses, strategy=SegmentStrategy.SENTENCES)

    @staticmethod
    def _whole(text: str) -> Segmentation:
        clause = clean_clause(text) or EMPTY_APPROACH_CLAUSE
        logger.warning("No structure found in approach text; using a single catch-all step")
        return Segmentation(clauses=[clause], strategy=SegmentStrategy.WHOLE)
