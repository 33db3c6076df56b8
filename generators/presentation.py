"""
generators/presentation.py — Presentation facade.

Opens a .pptx from a path or a binary stream and hands out slide handles.
Meant to be used as a scoped resource:

    with Powerpoint("template.pptx") as pptx:
        slide = pptx.get_slide(0)
        slide.replace_tag("{{name}}", "ACME")

An editable document is written back to where it came from on close
(unless `settings.autosave` is off).
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import IO, List, Optional, Sequence, Tuple, Union

from PIL import Image
from pptx import Presentation
from pptx.opc.constants import RELATIONSHIP_TYPE as RT

from config import Settings, get_settings
from engine.errors import ReadOnlyDocumentError
from engine.paragraph import ParagraphSubstitution
from engine.template_logger import TemplateLogger
from generators.pagination import RowPaginationEngine
from generators.slide import PowerpointSlide, SlideSequence
from generators.substitution import TagSubstitutor
from generators.table import PowerpointTable
from models import Row

Source = Union[str, Path, IO[bytes]]


class Powerpoint:
    """An open presentation document."""

    TAG_PATTERN = r"{{[A-Za-z0-9_+\-\.]*}}"
    MIME_TYPE = "application/vnd.openxmlformats-officedocument.presentationml.presentation"

    def __init__(
        self,
        file: Source,
        editable: bool = True,
        settings: Optional[Settings] = None,
        paragraphs: Optional[ParagraphSubstitution] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._log = TemplateLogger("Powerpoint", self._settings)
        self._source = file
        self._editable = editable
        self._closed = False

        if isinstance(file, (str, Path)):
            self._prs = Presentation(str(file))
        else:
            file.seek(0)
            self._prs = Presentation(file)

        self._substitutor = TagSubstitutor(paragraphs=paragraphs, settings=self._settings)
        self._sequence = SlideSequence(self._prs.part, self._substitutor)
        self._pagination = RowPaginationEngine(self._settings)
        self._log.debug(
            f"Opened {self._describe_source()} ({len(self._sequence)} slides, "
            f"{'editable' if editable else 'read-only'})"
        )

    # ── Scoped resource ─────────────────────────────────────

    def __enter__(self) -> Powerpoint:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is None:
            self.close()
        else:
            # Don't write a half-templated deck over the source
            self._log.warning(f"Closing {self._describe_source()} without saving: {exc_val}")
            self._closed = True

    def close(self) -> None:
        if self._closed:
            return
        if self._editable and self._settings.autosave:
            self.save()
        self._closed = True

    def save(self, target: Optional[Source] = None) -> None:
        """Write the document to `target`, or back to its source when None."""
        if target is None:
            if not self._editable:
                raise ReadOnlyDocumentError(f"{self._describe_source()} was opened read-only")
            target = self._source

        if isinstance(target, (str, Path)):
            self._prs.save(str(target))
        else:
            target.seek(0)
            target.truncate()
            self._prs.save(target)
        self._log.info(f"Presentation saved: {target if isinstance(target, (str, Path)) else 'stream'}")

    # ── Accessors ───────────────────────────────────────────

    @property
    def presentation(self):
        """The underlying python-pptx Presentation."""
        return self._prs

    @property
    def substitutor(self) -> TagSubstitutor:
        return self._substitutor

    @property
    def pagination(self) -> RowPaginationEngine:
        return self._pagination

    @property
    def editable(self) -> bool:
        return self._editable

    def slides_count(self) -> int:
        return len(self._sequence)

    def get_slide(self, index: int) -> PowerpointSlide:
        return self._sequence.slide(self._sequence.part_at(index))

    def get_slides(self) -> List[PowerpointSlide]:
        return [self.get_slide(i) for i in range(self.slides_count())]

    def find_slides(self, note: str) -> List[PowerpointSlide]:
        """Slides whose notes page contains `note`."""
        return [
            slide for slide in self.get_slides()
            if any(note in text for text in slide.get_notes())
        ]

    def get_thumbnail(self, size: Optional[Tuple[int, int]] = None) -> Optional[bytes]:
        """PNG of the package thumbnail resized to `size`, None if there is none."""
        try:
            thumbnail = self._prs.part.package.part_related_by(RT.THUMBNAIL)
        except KeyError:
            return None

        width, height = size or self._settings.thumbnail_size
        with Image.open(io.BytesIO(thumbnail.blob)) as image:
            resized = image.convert("RGB").resize((width, height))
        buffer = io.BytesIO()
        resized.save(buffer, format="PNG")
        return buffer.getvalue()

    # ── Pagination entry points ─────────────────────────────

    @staticmethod
    def replace_table_one(
        slide_template: PowerpointSlide,
        table_template: PowerpointTable,
        rows: Sequence[Row],
        settings: Optional[Settings] = None,
    ) -> List[PowerpointSlide]:
        return RowPaginationEngine(settings).replace_table_one(slide_template, table_template, rows)

    @staticmethod
    def replace_table_multiple(
        slide_template: PowerpointSlide,
        table_tag: str,
        rows: Sequence[Row],
        existing_slides: Optional[Sequence[PowerpointSlide]] = None,
        settings: Optional[Settings] = None,
    ) -> List[PowerpointSlide]:
        return RowPaginationEngine(settings).replace_table(slide_template, table_tag, rows, existing_slides)

    def _describe_source(self) -> str:
        return str(self._source) if isinstance(self._source, (str, Path)) else "stream"
