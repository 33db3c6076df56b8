"""
generators/substitution.py — Tag substitution at cell and slide level.
Drives the paragraph substitution service and applies the side effects it
does not own: run formatting and table-cell picture fills.
"""

from __future__ import annotations

from typing import Optional

from lxml import etree
from pptx.parts.slide import SlidePart

from config import Settings, get_settings
from engine.paragraph import NS, ParagraphSubstitution, RunParagraphSubstitution
from engine.template_logger import TemplateLogger
from generators.pictures import PictureBinder
from models import Cell, ReplacementScope

_XP_PARAGRAPHS = etree.XPath(".//a:p", namespaces=NS)
_XP_RUNS = etree.XPath("./a:r", namespaces=NS)
_XP_TABLE_ANCESTOR = etree.XPath("ancestor::a:tbl", namespaces=NS)


class TagSubstitutor:
    """Replaces tags in slides and table cells."""

    def __init__(
        self,
        paragraphs: Optional[ParagraphSubstitution] = None,
        pictures: Optional[PictureBinder] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._log = TemplateLogger("TagSubstitutor", self._settings)
        self._paragraphs = paragraphs or RunParagraphSubstitution()
        self._pictures = pictures or PictureBinder(self._settings)

    @property
    def paragraphs(self) -> ParagraphSubstitution:
        return self._paragraphs

    @property
    def pictures(self) -> PictureBinder:
        return self._pictures

    def get_text(self, paragraph) -> str:
        return self._paragraphs.get_text(paragraph)

    # ── Slide level ─────────────────────────────────────────

    def replace_in_slide(
        self,
        slide_part: SlidePart,
        tag: Optional[str],
        new_text: Optional[str],
        scope: ReplacementScope = ReplacementScope.GLOBAL,
    ) -> int:
        """Replace `tag` in every paragraph of the slide; return matched paragraphs."""
        if not tag:
            return 0

        matched = 0
        for p in _XP_PARAGRAPHS(slide_part._element):
            if scope == ReplacementScope.NO_TABLE and _XP_TABLE_ANCESTOR(p):
                continue
            if self._paragraphs.replace_tag(p, tag, new_text):
                matched += 1

        if matched:
            self._log.debug(f"Tag '{tag}' replaced in {matched} paragraph(s) ({scope.value})")
        return matched

    # ── Cell level ──────────────────────────────────────────

    def replace_in_cell(self, slide_part: SlidePart, tc, cell: Cell) -> bool:
        """Replace `cell.tag` inside table cell `tc` (an `a:tc` element).

        Every paragraph that matched gets its runs' bold / italic /
        strikethrough forced to the cell's values, and the cell background
        becomes `cell.background_picture` when one with content is given.
        """
        replaced = False
        for p in _XP_PARAGRAPHS(tc):
            if not self._paragraphs.replace_tag(p, cell.tag, cell.new_text):
                continue
            replaced = True

            picture = cell.background_picture
            if picture is not None and picture.content:
                self._pictures.fill_cell(slide_part, tc, picture)

            self._apply_formatting(p, cell)

        return replaced

    def _apply_formatting(self, paragraph, cell: Cell) -> None:
        for r in _XP_RUNS(paragraph):
            rPr = r.get_or_add_rPr()
            rPr.set("b", "1" if cell.bold else "0")
            rPr.set("i", "1" if cell.italic else "0")
            rPr.set("strike", "sngStrike" if cell.strikethrough else "noStrike")
            if self._settings.apply_underline:
                rPr.set("u", "sng" if cell.underline else "none")
