from __future__ import annotations

import re

import pytest
from pptx import Presentation
from pptx.opc.constants import RELATIONSHIP_TYPE as RT

from conftest import (
    TITLE_ONLY_LAYOUT,
    add_picture,
    add_table,
    open_deck,
    png_bytes,
)
from engine.errors import (
    IndexOutOfRangeError,
    SlideRemovedError,
    TableNotFoundError,
)


def _titles(pptx):
    return [slide.get_title() for slide in pptx.get_slides()]


# ── Sequence ────────────────────────────────────────────────

def test_get_slide_and_count_follow_sequence_order(table_deck) -> None:
    assert table_deck.slides_count() == 3
    assert _titles(table_deck) == ["Cover {{title}}", "Sales {{period}}", "Thanks"]


def test_get_slide_out_of_range_raises(table_deck) -> None:
    with pytest.raises(IndexOutOfRangeError) as exc:
        table_deck.get_slide(3)
    assert isinstance(exc.value, IndexError)
    assert exc.value.count == 3


def test_get_slide_returns_one_handle_per_slide(table_deck) -> None:
    assert table_deck.get_slide(1) is table_deck.get_slide(1)
    assert table_deck.get_slide(0) != table_deck.get_slide(1)


def test_clone_is_not_in_sequence_until_inserted(table_deck) -> None:
    template = table_deck.get_slide(1)
    clone = template.clone()

    assert table_deck.slides_count() == 3
    assert clone.slide_id is None

    template.insert_after(clone, template)
    assert table_deck.slides_count() == 4
    assert table_deck.get_slide(2) == clone


def test_insert_after_places_entry_right_after_and_uses_max_plus_one(table_deck) -> None:
    cover = table_deck.get_slide(0)
    ids = [slide.slide_id for slide in table_deck.get_slides()]

    clone = table_deck.get_slide(2).clone()
    new_id = cover.insert_after(clone, cover)

    assert new_id == max(ids) + 1
    assert _titles(table_deck) == ["Cover {{title}}", "Thanks", "Sales {{period}}", "Thanks"]


def test_slide_ids_are_never_reused_after_removal(table_deck) -> None:
    cover = table_deck.get_slide(0)

    first = cover.clone()
    first_id = cover.insert_after(first, cover)
    first.remove()

    second = cover.clone()
    second_id = cover.insert_after(second, cover)

    assert second_id > first_id
    assert table_deck.slides_count() == 4


def test_remove_drops_slide_and_kills_handle(table_deck) -> None:
    template = table_deck.get_slide(1)
    template.remove()

    assert table_deck.slides_count() == 2
    assert _titles(table_deck) == ["Cover {{title}}", "Thanks"]
    assert template.is_removed
    with pytest.raises(SlideRemovedError):
        template.get_texts()
    with pytest.raises(SlideRemovedError):
        template.remove()


def test_removed_slide_part_is_not_saved(table_deck, tmp_path) -> None:
    table_deck.get_slide(1).remove()
    target = tmp_path / "out.pptx"
    table_deck.save(target)

    assert len(Presentation(str(target)).slides) == 2


# ── Clone ───────────────────────────────────────────────────

def test_clone_content_is_independent(table_deck) -> None:
    template = table_deck.get_slide(1)
    clone = template.clone()

    clone.replace_tag(re.escape("{{period}}"), "Q2")

    assert clone.get_title() == "Sales Q2"
    assert template.get_title() == "Sales {{period}}"


def test_clone_shares_layout(table_deck) -> None:
    template = table_deck.get_slide(1)
    clone = template.clone()

    assert clone.part.part_related_by(RT.SLIDE_LAYOUT) is template.part.part_related_by(RT.SLIDE_LAYOUT)


def test_clone_copies_images_into_new_parts() -> None:
    prs = Presentation()
    slide = prs.slides.add_slide(prs.slide_layouts[TITLE_ONLY_LAYOUT])
    content = png_bytes("blue")
    add_picture(slide, content, descr="{{logo}}")
    pptx = open_deck(prs)

    source = pptx.get_slide(0)
    clone = source.clone()

    source_embed = source.element.xpath(".//p:pic/p:blipFill/a:blip/@r:embed")[0]
    clone_embed = clone.element.xpath(".//p:pic/p:blipFill/a:blip/@r:embed")[0]
    source_image = source.part.related_part(source_embed)
    clone_image = clone.part.related_part(clone_embed)

    assert clone_image is not source_image
    assert clone_image.partname != source_image.partname
    assert clone_image.blob == source_image.blob == content


def test_clone_leaves_notes_behind() -> None:
    prs = Presentation()
    slide = prs.slides.add_slide(prs.slide_layouts[TITLE_ONLY_LAYOUT])
    slide.notes_slide.notes_text_frame.text = "chapter one"
    pptx = open_deck(prs)

    source = pptx.get_slide(0)
    clone = source.clone()

    assert "chapter one" in source.get_notes()
    assert clone.get_notes() == []


# ── Read-only queries ───────────────────────────────────────

def test_get_texts_includes_table_paragraphs(table_deck) -> None:
    texts = table_deck.get_slide(1).get_texts()

    assert "Sales {{period}}" in texts
    assert texts.count("{{name}}") == 2
    assert "Header 0" in texts


def test_get_title_empty_without_title_placeholder() -> None:
    prs = Presentation()
    prs.slides.add_slide(prs.slide_layouts[6])  # blank
    assert open_deck(prs).get_slide(0).get_title() == ""


# ── Tables ──────────────────────────────────────────────────

def _three_tables_deck():
    prs = Presentation()
    slide = prs.slides.add_slide(prs.slide_layouts[TITLE_ONLY_LAYOUT])
    add_table(slide, "SalesTable_Q1")
    add_table(slide, "")  # no title, no description: not discoverable
    add_table(slide, "Returns", attr="descr")
    add_table(slide, "SalesTable_Q2")
    return open_deck(prs)


def test_get_tables_skips_untagged_frames_and_falls_back_to_description() -> None:
    tables = _three_tables_deck().get_slide(0).get_tables()

    assert [(t.tbl_id, t.title) for t in tables] == [
        (0, "SalesTable_Q1"),
        (1, "Returns"),
        (2, "SalesTable_Q2"),
    ]


def test_find_tables_uses_substring_match() -> None:
    slide = _three_tables_deck().get_slide(0)

    assert [t.title for t in slide.find_tables("SalesTable")] == ["SalesTable_Q1", "SalesTable_Q2"]
    assert [t.title for t in slide.find_tables("Q1")] == ["SalesTable_Q1"]
    assert slide.find_tables("Missing") == []


def test_find_table_prefers_exact_title() -> None:
    slide = _three_tables_deck().get_slide(0)

    assert slide.find_table("SalesTable_Q2").tbl_id == 2
    assert slide.find_table("SalesTable").title == "SalesTable_Q1"
    with pytest.raises(TableNotFoundError):
        slide.find_table("Missing")


def test_removing_first_table_renumbers_the_rest() -> None:
    slide = _three_tables_deck().get_slide(0)

    slide.get_tables()[0].remove()

    assert [(t.tbl_id, t.title) for t in slide.get_tables()] == [
        (0, "Returns"),
        (1, "SalesTable_Q2"),
    ]


def test_table_measurements_and_titles(table_deck) -> None:
    table = table_deck.get_slide(1).find_table("SalesTable")

    assert table.rows_count() == 3
    assert table.columns_count() == 2
    assert table.cells_count() == 6
    assert table.column_titles() == ["Header 0", "Header 1"]


def test_table_index_errors(table_deck) -> None:
    slide = table_deck.get_slide(1)
    table = slide.find_table("SalesTable")

    with pytest.raises(IndexOutOfRangeError):
        slide.table_element(1)
    with pytest.raises(IndexOutOfRangeError):
        table.get_row(3)
    with pytest.raises(IndexOutOfRangeError):
        table.get_cell(0, 2)


def test_remove_columns_drops_cells_and_grid() -> None:
    prs = Presentation()
    slide = prs.slides.add_slide(prs.slide_layouts[TITLE_ONLY_LAYOUT])
    add_table(slide, "Wide", tags=("{{a}}", "{{b}}", "{{c}}"))
    table = open_deck(prs).get_slide(0).find_table("Wide")

    table.remove_columns([0, 2])

    assert table.columns_count() == 1
    assert table.cells_count() == 3
    assert table.column_titles() == ["Header 1"]
    with pytest.raises(IndexOutOfRangeError):
        table.remove_columns([5])
