"""Slide deck: markup parsing and pptx rendering."""

from .markup import (
    DEFAULT_DOCUMENT,
    BulletBlock,
    BulletItem,
    CodeBlock,
    Deck,
    ImageBlock,
    MathBlock,
    Slide,
    TableBlock,
    TextBlock,
    load_document,
    parse_markup,
)
from .pptx_renderer import plain_inline_math, render_pptx, slide_titles

__all__ = [
    "DEFAULT_DOCUMENT",
    "BulletBlock",
    "BulletItem",
    "CodeBlock",
    "Deck",
    "ImageBlock",
    "MathBlock",
    "Slide",
    "TableBlock",
    "TextBlock",
    "load_document",
    "parse_markup",
    "plain_inline_math",
    "render_pptx",
    "slide_titles",
]
