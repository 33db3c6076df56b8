"""
generators/slide.py — Slide cloning, sequence bookkeeping and slide-level edits.

`SlideSequence` owns the ordered slide entries of the presentation part
(`p:sldIdLst`), each a `(numeric id, relationship id)` pair. Visual order is
entry order; ids are only handed out, never reused, for the lifetime of the
open document.

`PowerpointSlide` wraps one slide part. It is a handle, not a cache: tables,
rows and shapes are found again in the live XML tree on every call.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from lxml import etree
from pptx.opc.constants import RELATIONSHIP_TYPE as RT
from pptx.oxml import parse_xml
from pptx.oxml.ns import qn
from pptx.oxml.xmlchemy import OxmlElement
from pptx.parts.image import ImagePart
from pptx.parts.slide import SlidePart

from engine.errors import (
    IndexOutOfRangeError,
    SlideNotFoundError,
    SlideRemovedError,
    TableNotFoundError,
    TemplaterError,
)
from engine.paragraph import NS
from engine.template_logger import TemplateLogger
from generators.substitution import TagSubstitutor
from generators.table import PowerpointTable, iter_table_frames
from models import Cell, ReplacementScope

SLIDE_PARTNAME_TEMPLATE = "/ppt/slides/slide%d.xml"
_R_ATTRIBUTE_PREFIX = "{%s}" % NS["r"]

_XP_PARAGRAPHS = etree.XPath(".//a:p", namespaces=NS)
_XP_TABLE = etree.XPath("./a:graphic/a:graphicData/a:tbl", namespaces=NS)
_XP_TITLE_SHAPES = etree.XPath(
    ".//p:sp[p:nvSpPr/p:nvPr/p:ph[@type='title' or @type='ctrTitle']]",
    namespaces=NS,
)


# ── Presentation sequence ───────────────────────────────────────

class SlideSequence:
    """Ordered slide entries of a presentation part."""

    MIN_SLIDE_ID = 256

    def __init__(self, presentation_part, substitutor: TagSubstitutor) -> None:
        self._part = presentation_part
        self._substitutor = substitutor
        self._log = TemplateLogger("SlideSequence")
        ids = [sldId.id for sldId in self._sld_id_lst().sldId_lst]
        self._high_water = max(ids, default=self.MIN_SLIDE_ID - 1)
        # id(part) -> handle; holding the part keeps its id from being reused
        self._handles: Dict[int, PowerpointSlide] = {}

    def slide(self, slide_part: SlidePart) -> PowerpointSlide:
        """The one handle for `slide_part`, created on first use."""
        handle = self._handles.get(id(slide_part))
        if handle is None:
            handle = PowerpointSlide(self, slide_part)
            self._handles[id(slide_part)] = handle
        return handle

    @property
    def presentation_part(self):
        return self._part

    @property
    def substitutor(self) -> TagSubstitutor:
        return self._substitutor

    def _sld_id_lst(self):
        return self._part._element.get_or_add_sldIdLst()

    def entries(self) -> List[Tuple[int, str]]:
        """(numeric id, relationship id) of every entry, in visual order."""
        return [(sldId.id, sldId.rId) for sldId in self._sld_id_lst().sldId_lst]

    def __len__(self) -> int:
        return len(self._sld_id_lst().sldId_lst)

    def part_at(self, index: int) -> SlidePart:
        entries = self._sld_id_lst().sldId_lst
        if not 0 <= index < len(entries):
            raise IndexOutOfRangeError("slide", index, len(entries))
        return self._part.related_part(entries[index].rId)

    def rid_of(self, slide_part: SlidePart) -> Optional[str]:
        """Relationship id of `slide_part` from the presentation, None if unrelated."""
        for rId, rel in self._part.rels.items():
            if rel.is_external or rel.reltype != RT.SLIDE:
                continue
            if rel.target_part is slide_part:
                return rId
        return None

    def entry_of(self, slide_part: SlidePart):
        """The `p:sldId` entry pointing at `slide_part`, None if not in the sequence."""
        rId = self.rid_of(slide_part)
        if rId is None:
            return None
        for sldId in self._sld_id_lst().sldId_lst:
            if sldId.rId == rId:
                return sldId
        return None

    def attach(self, slide_part: SlidePart) -> str:
        """Relate `slide_part` to the presentation without giving it an entry."""
        return self._part.relate_to(slide_part, RT.SLIDE)

    def insert_after(self, slide_part: SlidePart, after_part: SlidePart) -> int:
        """Add an entry for `slide_part` right after `after_part`'s; return its id."""
        after = self.entry_of(after_part)
        if after is None:
            raise SlideNotFoundError(f"{after_part.partname} is not in the slide sequence")
        if self.entry_of(slide_part) is not None:
            raise TemplaterError(f"{slide_part.partname} is already in the slide sequence")

        rId = self.rid_of(slide_part) or self.attach(slide_part)
        slide_id = self._next_id()

        sldId = OxmlElement("p:sldId")
        sldId.set("id", str(slide_id))
        sldId.set(qn("r:id"), rId)
        after.addnext(sldId)

        self._log.debug(f"Inserted {slide_part.partname} as id {slide_id} after {after.id}")
        return slide_id

    def remove(self, slide_part: SlidePart) -> None:
        """Drop the entry (if any) and release the part from the package."""
        rId = self.rid_of(slide_part)
        if rId is None:
            raise SlideNotFoundError(f"{slide_part.partname} is not part of the presentation")

        entry = self.entry_of(slide_part)
        if entry is not None:
            self._sld_id_lst().remove(entry)
        self._part.drop_rel(rId)
        self._handles.pop(id(slide_part), None)
        self._log.debug(f"Removed {slide_part.partname} ({rId})")

    def _next_id(self) -> int:
        ids = [sldId.id for sldId in self._sld_id_lst().sldId_lst]
        slide_id = max(ids + [self._high_water]) + 1
        self._high_water = slide_id
        return slide_id


# ── Slide ───────────────────────────────────────────────────────

class PowerpointSlide:
    """A slide of the presentation, or an unattached clone of one."""

    def __init__(self, sequence: SlideSequence, slide_part: SlidePart) -> None:
        self._sequence = sequence
        self._slide_part = slide_part
        self._removed = False
        self._log = TemplateLogger("Slide")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PowerpointSlide):
            return NotImplemented
        return other._slide_part is self._slide_part

    def __hash__(self) -> int:
        return id(self._slide_part)

    def __repr__(self) -> str:
        state = " removed" if self._removed else ""
        return f"<PowerpointSlide {self._slide_part.partname}{state}>"

    @property
    def part(self) -> SlidePart:
        if self._removed:
            raise SlideRemovedError(f"{self._slide_part.partname} was removed")
        return self._slide_part

    @property
    def element(self):
        return self.part._element

    @property
    def substitutor(self) -> TagSubstitutor:
        return self._sequence.substitutor

    @property
    def slide_id(self) -> Optional[int]:
        """Numeric id of the sequence entry, None for an unattached clone."""
        entry = self._sequence.entry_of(self.part)
        return None if entry is None else entry.id

    @property
    def is_removed(self) -> bool:
        return self._removed

    # ── Read-only queries ───────────────────────────────────

    def get_texts(self) -> List[str]:
        """Text of every paragraph of the slide, tables included."""
        return [self.substitutor.get_text(p) for p in _XP_PARAGRAPHS(self.element)]

    def get_title(self) -> str:
        """Text of the title placeholder, empty string when there is none."""
        shapes = _XP_TITLE_SHAPES(self.element)
        if not shapes:
            return ""
        return " ".join(self.substitutor.get_text(p) for p in _XP_PARAGRAPHS(shapes[0]))

    def get_notes(self) -> List[str]:
        """Paragraph texts of the notes page, empty when the slide has none."""
        try:
            notes_part = self.part.part_related_by(RT.NOTES_SLIDE)
        except KeyError:
            return []
        return [self.substitutor.get_text(p) for p in _XP_PARAGRAPHS(notes_part._element)]

    # ── Tables ──────────────────────────────────────────────

    def get_tables(self) -> List[PowerpointTable]:
        return [
            PowerpointTable(self, tbl_id, title)
            for tbl_id, (_, title) in enumerate(iter_table_frames(self.element))
        ]

    def find_tables(self, tag: str) -> List[PowerpointTable]:
        """Tables whose title contains `tag`."""
        return [table for table in self.get_tables() if tag in table.title]

    def find_table(self, tag: str) -> PowerpointTable:
        """The table titled exactly `tag`, else the first whose title contains it."""
        tables = self.find_tables(tag)
        if not tables:
            raise TableNotFoundError(f"No table tagged '{tag}' on {self._slide_part.partname}")
        for table in tables:
            if table.title == tag:
                return table
        return tables[0]

    def _table_frame(self, tbl_id: int):
        frames = [frame for frame, _ in iter_table_frames(self.element)]
        if not 0 <= tbl_id < len(frames):
            raise IndexOutOfRangeError("table", tbl_id, len(frames))
        return frames[tbl_id]

    def table_element(self, tbl_id: int):
        """The `a:tbl` of the `tbl_id`-th discoverable table frame."""
        return _XP_TABLE(self._table_frame(tbl_id))[0]

    def remove_table(self, tbl_id: int) -> None:
        frame = self._table_frame(tbl_id)
        frame.getparent().remove(frame)

    # ── Substitution ────────────────────────────────────────

    def replace_tag(
        self,
        tag: Optional[str],
        new_text: Optional[str],
        scope: ReplacementScope = ReplacementScope.GLOBAL,
    ) -> int:
        """Replace `tag` in the slide's paragraphs; return matched paragraphs."""
        return self.substitutor.replace_in_slide(self.part, tag, new_text, scope)

    def replace_cell_tag(
        self, cell: Cell, scope: ReplacementScope = ReplacementScope.GLOBAL
    ) -> int:
        return self.replace_tag(cell.tag, cell.new_text, scope)

    def replace_picture(
        self,
        tag: Optional[str],
        picture: Union[bytes, str, Path, None],
        content_type: Optional[str] = "image/png",
    ) -> int:
        """Rebind every picture tagged `tag`; `picture` is bytes or a file path."""
        if isinstance(picture, (str, Path)):
            picture = Path(picture).read_bytes()
        return self.substitutor.pictures.replace_picture(self.part, tag, picture, content_type)

    # ── Structure ───────────────────────────────────────────

    def clone(self) -> PowerpointSlide:
        """Deep copy of this slide, related to the presentation but not in its sequence.

        The content tree is re-parsed from the serialised part. Images are
        copied into new parts, hyperlinks and the layout are related again,
        the notes page is left behind.
        """
        source = self.part
        package = source.package
        element = parse_xml(source.blob)
        clone_part = SlidePart(
            package.next_partname(SLIDE_PARTNAME_TEMPLATE),
            source.content_type,
            package,
            element,
        )
        # Reserve the partname before any other part is named
        self._sequence.attach(clone_part)

        rid_map = {}
        for rId, rel in source.rels.items():
            if rel.is_external:
                rid_map[rId] = clone_part.relate_to(rel.target_ref, rel.reltype, is_external=True)
            elif rel.reltype == RT.NOTES_SLIDE:
                continue
            elif rel.reltype == RT.IMAGE:
                image = rel.target_part
                image_copy = ImagePart(
                    package.next_image_partname(image.partname.ext),
                    image.content_type,
                    package,
                    image.blob,
                )
                rid_map[rId] = clone_part.relate_to(image_copy, RT.IMAGE)
            else:
                rid_map[rId] = clone_part.relate_to(rel.target_part, rel.reltype)

        _remap_relationship_ids(element, rid_map)
        self._log.debug(f"Cloned {source.partname} -> {clone_part.partname}")
        return self._sequence.slide(clone_part)

    @staticmethod
    def insert_after(new_slide: PowerpointSlide, after_slide: PowerpointSlide) -> int:
        """Put `new_slide` right after `after_slide` in the sequence; return its id."""
        if new_slide._sequence is not after_slide._sequence:
            raise TemplaterError("Slides belong to different presentations")
        return new_slide._sequence.insert_after(new_slide.part, after_slide.part)

    def remove(self) -> None:
        """Remove the slide from the presentation. The handle is dead afterwards."""
        self._sequence.remove(self.part)
        self._removed = True


def _remap_relationship_ids(element, rid_map) -> None:
    for node in element.iter(etree.Element):
        for name, value in node.attrib.items():
            if name.startswith(_R_ATTRIBUTE_PREFIX) and value in rid_map:
                node.set(name, rid_map[value])
