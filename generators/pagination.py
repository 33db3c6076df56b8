"""
generators/pagination.py — Row pagination engine.

Distributes a queue of data rows over a tagged table, cloning the slide that
holds it as many times as the table's capacity requires:

    template (header + 2 rows), 5 rows of data

    template   ->  page 1 [r1, r2]  ->  page 2 [r3, r4]  ->  page 3 [r5]

Pages are inserted right after the template (or after the last page created
for another table of the same template), in order.

Nothing here is transactional: if a page fails halfway, the pages created
before it stay in the presentation. The scratch page and a page that was
not placed yet are always removed.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from config import Settings, get_settings
from engine.errors import TemplaterError
from engine.template_logger import TemplateLogger
from generators.slide import PowerpointSlide
from generators.table import PowerpointTable
from models import Row


class RowPaginationEngine:
    """Fills tagged tables with rows, one slide page per table capacity."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._log = TemplateLogger("RowPagination", self._settings)

    def set_rows(self, table: PowerpointTable, rows: Sequence[Row]) -> List[Row]:
        """Write `rows` into the table's body rows; return the rows that did not fit.

        Capacity is the table's current row count minus the header, measured
        on the live tree. Every body row past the last written one is
        removed, so an empty `rows` leaves the header alone.
        """
        rows = list(rows)
        rows_count = table.rows_count()

        done = 0
        while done < len(rows) and 1 + done < rows_count:
            table.write_row(1 + done, rows[done])
            done += 1

        scrubbed = table.remove_rows_from(1 + done)
        self._log.debug(
            f"Table '{table.title}': wrote {done} row(s), removed {scrubbed}, "
            f"{len(rows) - done} left"
        )
        return rows[done:]

    def replace_table(
        self,
        slide_template: PowerpointSlide,
        table_tag: str,
        rows: Sequence[Row],
        existing_slides: Optional[Sequence[PowerpointSlide]] = None,
    ) -> List[PowerpointSlide]:
        """Paginate `rows` into the table tagged `table_tag`; return the new slides.

        Slides already produced for this template (by another table) are
        filled first, then new pages are cloned after the last of them. With
        no existing slides at least one page is produced, even for no rows.
        The template slide itself is never modified.
        """
        existing = list(existing_slides or [])
        remaining = list(rows)

        with self._log.step_start(f"Paginate '{table_tag}' ({len(remaining)} rows)"):
            last_slide = existing[-1] if existing else slide_template
            # Fail before anything is cloned when the tag is wrong
            last_slide.find_table(table_tag)
            working = last_slide.clone()

            created: List[PowerpointSlide] = []
            new_slide: Optional[PowerpointSlide] = None
            try:
                for slide in existing:
                    remaining = self.set_rows(slide.find_table(table_tag), remaining)

                loop_once = not existing
                while loop_once or remaining:
                    loop_once = False
                    new_slide = working.clone()
                    before = len(remaining)
                    remaining = self.set_rows(new_slide.find_table(table_tag), remaining)
                    if remaining and len(remaining) == before:
                        raise TemplaterError(f"Table '{table_tag}' has no body row to paginate into")
                    slide_id = PowerpointSlide.insert_after(new_slide, last_slide)
                    last_slide = new_slide
                    new_slide = None
                    created.append(last_slide)
                    self._log.action(
                        "Page Created",
                        f"'{table_tag}' page {len(created)} (slide id {slide_id}), {len(remaining)} rows left",
                    )
            finally:
                # Scratch and unplaced pages never outlive the call
                if new_slide is not None:
                    new_slide.remove()
                working.remove()

        self._log.info(
            f"Table '{table_tag}': {len(created)} new slide(s), {len(existing)} existing reused"
        )
        return created

    def replace_table_one(
        self,
        slide_template: PowerpointSlide,
        table_template: PowerpointTable,
        rows: Sequence[Row],
    ) -> List[PowerpointSlide]:
        """Single-table form of `replace_table`, keyed by an already found table."""
        return self.replace_table(slide_template, table_template.title, rows)
