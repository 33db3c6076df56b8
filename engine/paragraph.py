"""
engine/paragraph.py — Paragraph substitution service.

The templating core only needs two operations on a DrawingML paragraph
(`a:p`): read its text and replace a tag inside it. They are described by the
`ParagraphSubstitution` protocol so callers can inject their own matcher;
`RunParagraphSubstitution` is the default one, working directly on the
paragraph's runs.
"""

from __future__ import annotations

import re
from typing import List, Optional, Protocol, Tuple

from lxml import etree
from pptx.oxml.ns import namespaces

NS = namespaces("a", "p", "r")

_XP_RUN_TEXTS = etree.XPath("./a:r/a:t", namespaces=NS)


class ParagraphSubstitution(Protocol):
    """Reads and rewrites the text of a single `a:p` element."""

    def get_text(self, paragraph: etree._Element) -> str:
        ...

    def replace_tag(self, paragraph: etree._Element, tag: str, new_text: Optional[str]) -> bool:
        ...


class RunParagraphSubstitution:
    """Replaces regex tags spanning any number of runs of a paragraph.

    A tag split across runs (PowerPoint does this after spell-check or partial
    formatting) is still found because matching happens on the concatenated
    run text. The replacement lands in the run where the match starts, so it
    inherits that run's formatting; the matched text is cut out of the
    following runs.
    """

    def get_text(self, paragraph: etree._Element) -> str:
        """Concatenated text of every run, empty string if none."""
        return "".join(t.text or "" for t in _XP_RUN_TEXTS(paragraph))

    def replace_tag(self, paragraph: etree._Element, tag: str, new_text: Optional[str]) -> bool:
        """Replace every match of `tag` (a regex) by `new_text`.

        Returns True when at least one match was replaced. An empty tag is a
        no-op; a None `new_text` is treated as an empty string.
        """
        if not tag:
            return False

        texts = list(_XP_RUN_TEXTS(paragraph))
        full_text = "".join(t.text or "" for t in texts)
        matches = [m for m in re.finditer(tag, full_text) if m.end() > m.start()]
        if not matches:
            return False

        bounds = self._run_bounds(texts)
        replacement = new_text or ""

        # Right to left so earlier offsets stay valid
        for match in reversed(matches):
            self._splice(texts, bounds, match.start(), match.end(), replacement)
        return True

    @staticmethod
    def _run_bounds(texts: List[etree._Element]) -> List[Tuple[int, int]]:
        bounds = []
        pos = 0
        for t in texts:
            length = len(t.text or "")
            bounds.append((pos, pos + length))
            pos += length
        return bounds

    @staticmethod
    def _splice(
        texts: List[etree._Element],
        bounds: List[Tuple[int, int]],
        start: int,
        end: int,
        replacement: str,
    ) -> None:
        first = next(i for i, (lo, hi) in enumerate(bounds) if lo <= start < hi)
        last = next(i for i, (lo, hi) in enumerate(bounds) if lo < end <= hi)

        head = texts[first].text or ""
        local_start = start - bounds[first][0]
        if first == last:
            local_end = end - bounds[first][0]
            texts[first].text = head[:local_start] + replacement + head[local_end:]
            return

        tail = texts[last].text or ""
        local_end = end - bounds[last][0]
        texts[first].text = head[:local_start] + replacement
        for i in range(first + 1, last):
            texts[i].text = ""
        texts[last].text = tail[local_end:]
