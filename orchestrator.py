"""
orchestrator.py — Templating job controller.
Turns a template deck plus a TemplateJob (JSON data file) into a finished deck.
"""

from __future__ import annotations

import json
import re
from collections import OrderedDict
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from config import Settings, get_settings
from engine.errors import JobValidationError
from engine.template_logger import TemplateLogger
from generators.presentation import Powerpoint
from generators.slide import PowerpointSlide
from models import (
    BackgroundPicture,
    Cell,
    CellSpec,
    PictureFill,
    Row,
    TableFill,
    TemplateJob,
    TemplateReport,
)


class TemplateOrchestrator:
    """Runs a templating job against an open presentation.

    Order of work: pictures → text tags → table pagination → template cleanup.
    Text tags run before pagination so that every cloned page inherits them;
    their default scope skips tables, whose cells belong to the row data.

    `on_status_change(status, step)` is called as the run progresses.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        on_status_change: Optional[Callable[[str, str], None]] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._log = TemplateLogger("Orchestrator", self._settings)
        self._on_status_change = on_status_change

    def _set_status(self, status: str, step: str = "") -> None:
        self._log.info(f"Templating status: {status} | {step}")
        if self._on_status_change:
            self._on_status_change(status, step)

    # ── Job loading ─────────────────────────────────────────

    @staticmethod
    def load_job(path: Union[str, Path]) -> TemplateJob:
        """Read and validate a JSON job file."""
        path = Path(path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise JobValidationError([f"Data file not found: {path}"]) from e
        except json.JSONDecodeError as e:
            raise JobValidationError([f"{path}: invalid JSON ({e})"]) from e

        try:
            return TemplateJob.model_validate(raw)
        except ValidationError as e:
            issues = [
                f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
                for err in e.errors()
            ]
            raise JobValidationError(issues) from e

    def validate(self, pptx: Powerpoint, job: TemplateJob, base_dir: Optional[Path] = None) -> None:
        """Check slide indexes and file references before anything is edited."""
        base_dir = Path(base_dir or ".")
        issues: List[str] = []
        count = pptx.slides_count()

        for i, fill in enumerate(job.tables):
            if fill.slide >= count:
                issues.append(f"tables.{i}.slide: {fill.slide} is out of range ({count} slides)")
            elif not pptx.get_slide(fill.slide).find_tables(fill.tag):
                issues.append(f"tables.{i}.tag: no table tagged '{fill.tag}' on slide {fill.slide}")
            for r, row in enumerate(fill.rows):
                for c, spec in enumerate(row):
                    if spec.background_path and not (base_dir / spec.background_path).is_file():
                        issues.append(
                            f"tables.{i}.rows.{r}.{c}.background_path: file not found: {spec.background_path}"
                        )

        for i, picture in enumerate(job.pictures):
            if not (base_dir / picture.path).is_file():
                issues.append(f"pictures.{i}.path: file not found: {picture.path}")

        if issues:
            raise JobValidationError(issues)

    # ── Run ─────────────────────────────────────────────────

    def run(self, pptx: Powerpoint, job: TemplateJob, base_dir: Optional[Path] = None) -> TemplateReport:
        """Apply `job` to `pptx`. Not atomic: a failure leaves earlier edits in place."""
        base_dir = Path(base_dir or ".")
        report = TemplateReport()

        self._set_status("validating")
        self.validate(pptx, job, base_dir)

        # Resolve template slides before any clone shifts the sequence
        groups: "OrderedDict[int, List[TableFill]]" = OrderedDict()
        for fill in job.tables:
            groups.setdefault(fill.slide, []).append(fill)
        templates: Dict[int, PowerpointSlide] = {index: pptx.get_slide(index) for index in groups}

        self._set_status("pictures", f"{len(job.pictures)} picture tag(s)")
        for picture in job.pictures:
            report.pictures_rebound += self._apply_picture(pptx, picture, base_dir)

        self._set_status("tags", f"{len(job.tags)} text tag(s), scope={job.tag_scope.value}")
        for slide in pptx.get_slides():
            for tag, text in job.tags.items():
                report.paragraphs_replaced += slide.replace_tag(re.escape(tag), text, job.tag_scope)

        self._set_status("tables", f"{len(job.tables)} table(s) on {len(groups)} slide(s)")
        for index, fills in groups.items():
            template = templates[index]
            created: List[PowerpointSlide] = []
            for fill in fills:
                rows = self.build_rows(fill, base_dir)
                created.extend(
                    pptx.pagination.replace_table(template, fill.tag, rows, created)
                )
            report.slides_created += len(created)

            if job.remove_template_slides:
                template.remove()
                report.template_slides_removed += 1
                self._log.decision(f"Template slide {index} removed", f"{len(created)} page(s) replace it")

        report.slides_count = pptx.slides_count()
        self._set_status("done", f"{report.slides_count} slides")
        return report

    def _apply_picture(self, pptx: Powerpoint, picture: PictureFill, base_dir: Path) -> int:
        content = (base_dir / picture.path).read_bytes()
        rebound = 0
        for slide in pptx.get_slides():
            rebound += slide.replace_picture(picture.tag, content, picture.content_type)
        self._log.debug(f"Picture '{picture.tag}' rebound on {rebound} shape(s)")
        return rebound

    @staticmethod
    def build_rows(fill: TableFill, base_dir: Path) -> List[Row]:
        """Turn the JSON rows of a TableFill into Cell rows, loading pictures."""
        return [[_to_cell(spec, base_dir) for spec in row] for row in fill.rows]

    # ── Inspection ──────────────────────────────────────────

    @staticmethod
    def list_tags(pptx: Powerpoint) -> List[str]:
        """Every distinct text tag of the deck, plus table tags, in first-seen order."""
        seen: "OrderedDict[str, None]" = OrderedDict()
        for slide in pptx.get_slides():
            for text in slide.get_texts():
                for tag in re.findall(Powerpoint.TAG_PATTERN, text):
                    seen.setdefault(tag, None)
            for table in slide.get_tables():
                seen.setdefault(table.title, None)
        return list(seen)


def _to_cell(spec: CellSpec, base_dir: Path) -> Cell:
    picture = None
    if spec.background_path:
        top, right, bottom, left = spec.background_insets
        picture = BackgroundPicture(
            content=(base_dir / spec.background_path).read_bytes(),
            content_type=spec.background_content_type,
            top=top,
            right=right,
            bottom=bottom,
            left=left,
        )
    return Cell(
        tag=re.escape(spec.tag),
        new_text=spec.text,
        bold=spec.bold,
        underline=spec.underline,
        italic=spec.italic,
        strikethrough=spec.strikethrough,
        background_picture=picture,
    )
