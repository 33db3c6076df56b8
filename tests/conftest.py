from __future__ import annotations

import io
import re
from typing import List, Sequence

import pytest
from PIL import Image
from pptx import Presentation
from pptx.util import Inches

from generators.presentation import Powerpoint
from models import Cell, Row

NAME = re.escape("{{name}}")
AMOUNT = re.escape("{{amount}}")

TITLE_SLIDE_LAYOUT = 0
TITLE_ONLY_LAYOUT = 5


def png_bytes(color: str = "red", size=(8, 8)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def add_table(
    slide,
    title: str = "",
    body_rows: int = 2,
    tags: Sequence[str] = ("{{name}}", "{{amount}}"),
    attr: str = "title",
):
    """Add a header + `body_rows` table whose body cells hold `tags`."""
    frame = slide.shapes.add_table(
        1 + body_rows, len(tags), Inches(0.5), Inches(1.5), Inches(8), Inches(0.4) * (1 + body_rows)
    )
    if title:
        frame._element.nvGraphicFramePr.cNvPr.set(attr, title)
    for c, tag in enumerate(tags):
        frame.table.cell(0, c).text = f"Header {c}"
        for r in range(1, 1 + body_rows):
            frame.table.cell(r, c).text = tag
    return frame


def add_picture(slide, content: bytes, descr: str = "", title: str = ""):
    pic = slide.shapes.add_picture(io.BytesIO(content), Inches(1), Inches(1))
    cNvPr = pic._element.nvPicPr.cNvPr
    # python-pptx describes pictures by file name, which would shadow the title
    cNvPr.set("descr", descr)
    if title:
        cNvPr.set("title", title)
    return pic


def open_deck(prs, **kwargs) -> Powerpoint:
    stream = io.BytesIO()
    prs.save(stream)
    return Powerpoint(stream, **kwargs)


def make_rows(count: int, prefix: str = "n") -> List[Row]:
    return [
        [Cell(tag=NAME, new_text=f"{prefix}{i}"), Cell(tag=AMOUNT, new_text=str(i))]
        for i in range(count)
    ]


def cell_text(element) -> str:
    """Concatenated `a:t` text below `element`."""
    return "".join(element.xpath(".//a:t/text()"))


def body_texts(table) -> List[str]:
    """First-column text of every body row."""
    return [cell_text(tr.tc_lst[0]) for tr in table.element().tr_lst[1:]]


def build_table_presentation(body_rows: int = 2):
    """Cover, a template slide holding 'SalesTable_Q1', closing slide."""
    prs = Presentation()

    cover = prs.slides.add_slide(prs.slide_layouts[TITLE_SLIDE_LAYOUT])
    cover.shapes.title.text = "Cover {{title}}"

    template = prs.slides.add_slide(prs.slide_layouts[TITLE_ONLY_LAYOUT])
    template.shapes.title.text = "Sales {{period}}"
    add_table(template, "SalesTable_Q1", body_rows=body_rows)

    closing = prs.slides.add_slide(prs.slide_layouts[TITLE_ONLY_LAYOUT])
    closing.shapes.title.text = "Thanks"
    return prs


@pytest.fixture
def table_deck() -> Powerpoint:
    return open_deck(build_table_presentation(), editable=False)
