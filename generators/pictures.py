"""
generators/pictures.py — Picture embedding and tag-driven picture rebinding.
Adds image parts to a slide, points tagged picture shapes at them and
writes picture fills into table cells.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from lxml import etree
from pptx.opc.constants import CONTENT_TYPE as CT
from pptx.opc.constants import RELATIONSHIP_TYPE as RT
from pptx.oxml import parse_xml
from pptx.oxml.ns import nsdecls, qn
from pptx.parts.image import ImagePart
from pptx.parts.slide import SlidePart

from config import Settings, get_settings
from engine.errors import UnsupportedImageTypeError
from engine.paragraph import NS
from engine.template_logger import TemplateLogger
from models import BackgroundPicture


# content type given by the caller -> (partname extension, part content type)
IMAGE_TYPES: Dict[str, Tuple[str, str]] = {
    "image/bmp": ("bmp", CT.BMP),
    "image/emf": ("emf", CT.X_EMF),
    "image/x-emf": ("emf", CT.X_EMF),
    "image/gif": ("gif", CT.GIF),
    "image/ico": ("ico", "image/x-icon"),
    "image/x-icon": ("ico", "image/x-icon"),
    "image/jpeg": ("jpeg", CT.JPEG),
    "image/pcx": ("pcx", "image/x-pcx"),
    "image/png": ("png", CT.PNG),
    "image/tiff": ("tiff", CT.TIFF),
    "image/wmf": ("wmf", CT.X_WMF),
    "image/x-wmf": ("wmf", CT.X_WMF),
}

_XP_PICTURES = etree.XPath(".//p:pic", namespaces=NS)
_XP_PIC_CNVPR = etree.XPath("./p:nvPicPr/p:cNvPr", namespaces=NS)
_XP_PIC_BLIP = etree.XPath("./p:blipFill/a:blip", namespaces=NS)


class PictureBinder:
    """Embeds images into slide parts and binds them to tagged shapes."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._log = TemplateLogger("PictureBinder", self._settings)

    def resolve_type(self, content_type: Optional[str]) -> Tuple[str, str]:
        """Map a caller content type to (extension, part content type)."""
        key = (content_type or "").strip().lower()
        if key in IMAGE_TYPES:
            return IMAGE_TYPES[key]

        if self._settings.strict_image_types:
            raise UnsupportedImageTypeError(f"Unsupported picture content type: {content_type!r}")

        fallback = self._settings.default_image_content_type.strip().lower()
        self._log.warning(f"Unknown picture content type {content_type!r}, using {fallback}")
        return IMAGE_TYPES.get(fallback, IMAGE_TYPES["image/png"])

    def embed(self, slide_part: SlidePart, content: bytes, content_type: Optional[str]) -> str:
        """Add `content` as a new image part of `slide_part`; return its rId.

        Identical images are not de-duplicated, each call adds a part.
        """
        ext, part_content_type = self.resolve_type(content_type)
        package = slide_part.package
        image_part = ImagePart(
            package.next_image_partname(ext), part_content_type, package, content
        )
        rId = slide_part.relate_to(image_part, RT.IMAGE)
        self._log.debug(f"Embedded {image_part.partname} ({len(content)} bytes) as {rId}")
        return rId

    def replace_picture(
        self,
        slide_part: SlidePart,
        tag: Optional[str],
        content: Optional[bytes],
        content_type: Optional[str],
    ) -> int:
        """Point every picture tagged with `tag` at a newly embedded image.

        A picture's tag is matched against its description first and, when it
        has none, against its title. Returns the number of rebound pictures.
        """
        if not tag or content is None:
            return 0

        rId = self.embed(slide_part, content, content_type)

        rebound = 0
        for pic in _XP_PICTURES(slide_part._element):
            if not self._is_tagged(pic, tag):
                continue
            for blip in _XP_PIC_BLIP(pic):
                blip.set(qn("r:embed"), rId)
            rebound += 1

        if not rebound:
            slide_part.drop_rel(rId)
        self._log.debug(f"Picture tag '{tag}' rebound on {rebound} shape(s)")
        return rebound

    def fill_cell(self, slide_part: SlidePart, tc, picture: BackgroundPicture) -> bool:
        """Make `picture` the only fill of table cell `tc` (an `a:tc`)."""
        if not picture.content:
            return False

        rId = self.embed(slide_part, picture.content, picture.content_type)
        blip_fill = parse_xml(
            f'<a:blipFill {nsdecls("a", "r")} dpi="0" rotWithShape="1">'
            f'<a:blip r:embed="{rId}"/>'
            f"<a:srcRect/>"
            f"<a:stretch>"
            f'<a:fillRect t="{picture.top}" r="{picture.right}" b="{picture.bottom}" l="{picture.left}"/>'
            f"</a:stretch>"
            f"</a:blipFill>"
        )

        tcPr = tc.get_or_add_tcPr()
        tcPr._remove_eg_fillProperties()
        tcPr.insert_element_before(blip_fill, "a:headers", "a:extLst")
        return True

    @staticmethod
    def _is_tagged(pic, tag: str) -> bool:
        cNvPr = _XP_PIC_CNVPR(pic)
        if not cNvPr:
            return False
        description = cNvPr[0].get("descr")
        if description:
            return tag in description
        title = cNvPr[0].get("title")
        return bool(title) and tag in title
