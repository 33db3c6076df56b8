"""
generators/table.py — Table view over a tagged graphic frame of a slide.

A table is never held as a live handle: it is identified by `tbl_id`, its
position among the discoverable table frames of the slide, and every
operation re-traverses the slide tree to find it again.

Structure of a table (3 columns x 2 rows):

    p:graphicFrame
      p:nvGraphicFramePr
        p:cNvPr              title="..." / descr="..."  (the tag)
      a:graphic
        a:graphicData
          a:tbl
            a:tblGrid
              a:gridCol  x3
            a:tr             row 0, the header
              a:tc  x3
            a:tr             row 1, first data row
              a:tc  x3
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Iterator, List, Tuple

from lxml import etree

from engine.errors import IndexOutOfRangeError
from engine.paragraph import NS
from models import Cell

if TYPE_CHECKING:
    from generators.slide import PowerpointSlide

_XP_FRAMES = etree.XPath(".//p:graphicFrame", namespaces=NS)
_XP_FRAME_CNVPR = etree.XPath("./p:nvGraphicFramePr/p:cNvPr", namespaces=NS)
_XP_FRAME_TABLE = etree.XPath("./a:graphic/a:graphicData/a:tbl", namespaces=NS)
_XP_PARAGRAPHS = etree.XPath(".//a:p", namespaces=NS)


def iter_table_frames(slide_element) -> Iterator[Tuple[etree._Element, str]]:
    """Yield (graphicFrame, title) for every discoverable table, in document order.

    The title is the frame's accessible title, or its description when it
    has no title. Frames with neither, and frames not holding a table, are
    skipped.
    """
    for frame in _XP_FRAMES(slide_element):
        if not _XP_FRAME_TABLE(frame):
            continue
        cNvPr = _XP_FRAME_CNVPR(frame)
        if not cNvPr:
            continue
        title = cNvPr[0].get("title") or cNvPr[0].get("descr")
        if title:
            yield frame, title


class PowerpointTable:
    """A table (`a:tbl`) found inside a slide by its tag."""

    def __init__(self, slide: PowerpointSlide, tbl_id: int, title: str) -> None:
        self._slide = slide
        self._tbl_id = tbl_id
        self.title = title

    def __repr__(self) -> str:
        return f"PowerpointTable(tbl_id={self._tbl_id}, title={self.title!r})"

    @property
    def slide(self) -> PowerpointSlide:
        return self._slide

    @property
    def tbl_id(self) -> int:
        return self._tbl_id

    def element(self):
        """The `a:tbl` element, looked up again in the live slide tree."""
        return self._slide.table_element(self._tbl_id)

    # ── Measurements ────────────────────────────────────────

    def rows_count(self) -> int:
        return len(self.element().tr_lst)

    def columns_count(self) -> int:
        return len(self.element().tblGrid.gridCol_lst)

    def cells_count(self) -> int:
        return sum(len(tr.tc_lst) for tr in self.element().tr_lst)

    def column_titles(self) -> List[str]:
        """Text of each header cell, paragraphs joined by a space."""
        tbl = self.element()
        if not tbl.tr_lst:
            return []
        header = tbl.tr_lst[0]
        return [
            " ".join(self._slide.substitutor.get_text(p) for p in _XP_PARAGRAPHS(tc))
            for tc in header.tc_lst
        ]

    def get_row(self, row: int):
        """The `a:tr` element at `row`."""
        rows = self.element().tr_lst
        if not 0 <= row < len(rows):
            raise IndexOutOfRangeError("row", row, len(rows))
        return rows[row]

    def get_cell(self, row: int, column: int):
        """The `a:tc` element at (`row`, `column`)."""
        cells = self.get_row(row).tc_lst
        if not 0 <= column < len(cells):
            raise IndexOutOfRangeError("column", column, len(cells))
        return cells[column]

    # ── Edits ───────────────────────────────────────────────

    def remove(self) -> None:
        """Remove the whole table frame from the slide.

        Invalidates this view and every table view with a greater tbl_id.
        """
        self._slide.remove_table(self._tbl_id)

    def remove_rows_from(self, first_row: int) -> int:
        """Remove every row at index >= `first_row`; return how many went."""
        tbl = self.element()
        doomed = tbl.tr_lst[max(first_row, 0):]
        for tr in doomed:
            tbl.remove(tr)
        return len(doomed)

    def remove_columns(self, columns: Iterable[int]) -> None:
        """Remove the given column indexes from every row and from the grid."""
        tbl = self.element()
        grid_cols = tbl.tblGrid.gridCol_lst
        wanted = sorted(set(columns), reverse=True)
        for column in wanted:
            if not 0 <= column < len(grid_cols):
                raise IndexOutOfRangeError("column", column, len(grid_cols))

        # Highest index first so lower indexes stay valid
        for column in wanted:
            for tr in tbl.tr_lst:
                cells = tr.tc_lst
                if column < len(cells):
                    tr.remove(cells[column])
            grid_col = tbl.tblGrid.gridCol_lst[column]
            tbl.tblGrid.remove(grid_col)

    def replace_tag(self, cell: Cell) -> bool:
        """Replace `cell.tag` in every cell of every row, header included."""
        slide_part = self._slide.part
        substitutor = self._slide.substitutor
        replaced = False
        for tr in self.element().tr_lst:
            for tc in tr.tc_lst:
                if substitutor.replace_in_cell(slide_part, tc, cell):
                    replaced = True
        return replaced

    def write_row(self, row: int, cells: Iterable[Cell]) -> None:
        """Apply every Cell of `cells` to every physical cell of row `row`."""
        slide_part = self._slide.part
        substitutor = self._slide.substitutor
        cells = list(cells)
        for tc in self.get_row(row).tc_lst:
            for cell in cells:
                substitutor.replace_in_cell(slide_part, tc, cell)
