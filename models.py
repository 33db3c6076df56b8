"""
models.py — Shared Pydantic data models used across the templater.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class ReplacementScope(str, Enum):
    """Where slide-level tag replacement is allowed to look."""
    GLOBAL = "global"        # every paragraph, tables included
    NO_TABLE = "no_table"    # skip paragraphs that live inside a table


class BackgroundPicture(BaseModel):
    """A picture stretched over a table cell's background."""
    content: Optional[bytes] = None
    content_type: str = "image/png"
    top: int = Field(default=0, description="fillRect inset, 1/1000 of a percent")
    right: int = 0
    bottom: int = 0
    left: int = 0


class Cell(BaseModel):
    """One tag substitution that lands in a table row."""
    tag: str
    new_text: str = ""
    bold: bool = False
    underline: bool = Field(
        default=False,
        description="Kept on the model; only applied when settings.apply_underline is on",
    )
    italic: bool = False
    strikethrough: bool = False
    background_picture: Optional[BackgroundPicture] = None

    @field_validator("new_text", mode="before")
    @classmethod
    def _none_is_empty(cls, value):
        return "" if value is None else value


Row = List[Cell]


# ── Templating job (JSON data file) ─────────────────────────────

class CellSpec(BaseModel):
    """JSON form of a Cell; pictures are referenced by path."""
    tag: str
    text: Optional[str] = ""
    bold: bool = False
    underline: bool = False
    italic: bool = False
    strikethrough: bool = False
    background_path: Optional[str] = None
    background_content_type: str = "image/png"
    background_insets: List[int] = Field(
        default_factory=lambda: [0, 0, 0, 0],
        description="top, right, bottom, left",
    )

    @field_validator("background_insets")
    @classmethod
    def _four_insets(cls, value: List[int]) -> List[int]:
        if len(value) != 4:
            raise ValueError("background_insets needs exactly 4 values (top, right, bottom, left)")
        return value


class TableFill(BaseModel):
    """Rows to paginate into one tagged table of a template slide."""
    slide: int = Field(ge=0, description="Index of the template slide")
    tag: str
    rows: List[List[CellSpec]] = Field(default_factory=list)


class PictureFill(BaseModel):
    """A picture replacing every tagged picture shape of the deck."""
    tag: str
    path: str
    content_type: str = "image/png"


class TemplateJob(BaseModel):
    """Everything needed to turn a template deck into a finished one."""
    tags: Dict[str, Optional[str]] = Field(default_factory=dict)
    tag_scope: ReplacementScope = ReplacementScope.NO_TABLE
    pictures: List[PictureFill] = Field(default_factory=list)
    tables: List[TableFill] = Field(default_factory=list)
    remove_template_slides: bool = True


class TemplateReport(BaseModel):
    """What a templating run changed."""
    pictures_rebound: int = 0
    paragraphs_replaced: int = 0
    slides_created: int = 0
    template_slides_removed: int = 0
    slides_count: int = 0
