"""Render a parsed Deck into a 16:9 PowerPoint file.

Blocks are laid out top to bottom under the slide title. Text and bullets go
into text frames, code into a monospace panel, tables into native pptx tables,
and display math is typeset with matplotlib mathtext and inserted as a picture.
Inline ``$...$`` math in text is written out in Unicode.
Images take whatever vertical space is left on the slide.

Example:
    >>> from slides.markup import load_document
    >>> deck = load_document(context=context)
    >>> render_pptx(deck, "results/deck.pptx")
"""

import math
import re
from pathlib import Path
from typing import List, Union

from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.enum.shapes import MSO_SHAPE
from pptx.enum.text import PP_ALIGN
from pptx.util import Emu, Inches, Pt

from slides.markup import (
    BulletBlock,
    CodeBlock,
    Deck,
    ImageBlock,
    MathBlock,
    Slide,
    TableBlock,
    TextBlock,
)
from viz.plots import render_math

# ---------------------------------------------------------------------------
# Design tokens
# ---------------------------------------------------------------------------
BG_PAPER = RGBColor(0xFB, 0xF7, 0xF0)
INK_NAVY = RGBColor(0x0B, 0x1F, 0x33)
SLATE = RGBColor(0x54, 0x65, 0x7A)
BORDER_TAN = RGBColor(0xD7, 0xCB, 0xBE)
ACCENT = RGBColor(0x4C, 0x72, 0xB0)
MONO_BG = RGBColor(0xF5, 0xF0, 0xE8)
WHITE = RGBColor(0xFF, 0xFF, 0xFF)

FONT_TITLE = "Segoe UI Semibold"
FONT_BODY = "Segoe UI"
FONT_MONO = "Consolas"

SLIDE_W = Inches(13.333)
SLIDE_H = Inches(7.5)
MARGIN = Inches(0.6)
CONTENT_TOP = Inches(1.6)
CONTENT_W = SLIDE_W - 2 * MARGIN
BLOCK_GAP = Inches(0.15)

BODY_SIZE = Pt(18)
CODE_SIZE = Pt(12)
TABLE_SIZE = Pt(11)

# Rough text metrics for vertical layout
CHARS_PER_LINE = 95
LINE_HEIGHT = Inches(0.36)
CODE_LINE_HEIGHT = Inches(0.22)
TABLE_ROW_HEIGHT = Inches(0.32)
MATH_HEIGHT_PER_LINE = Inches(0.55)

BLANK_LAYOUT = 6


def _set_background(slide, color=BG_PAPER):
    fill = slide.background.fill
    fill.solid()
    fill.fore_color.rgb = color


def _add_textbox(slide, left, top, width, height, text, font_name=FONT_BODY,
                 font_size=BODY_SIZE, font_color=INK_NAVY, bold=False,
                 alignment=PP_ALIGN.LEFT):
    box = slide.shapes.add_textbox(left, top, width, height)
    tf = box.text_frame
    tf.word_wrap = True
    p = tf.paragraphs[0]
    p.text = text
    p.font.name = font_name
    p.font.size = font_size
    p.font.color.rgb = font_color
    p.font.bold = bold
    p.alignment = alignment
    return box


def _add_title(slide, title, subtitle=None):
    _add_textbox(slide, MARGIN, Inches(0.45), CONTENT_W, Inches(0.7), title,
                 font_name=FONT_TITLE, font_size=Pt(30), bold=True)
    if subtitle:
        _add_textbox(slide, MARGIN, Inches(1.05), CONTENT_W, Inches(0.4), subtitle,
                     font_size=Pt(16), font_color=SLATE)


_INLINE_MATH = re.compile(r"\$([^$]+)\$")
_TEX_HAT = re.compile(r"\\hat\{([^}]*)\}")
_TEX_COMMAND = re.compile(r"\\([A-Za-z]+|,|;)")

# Unicode for the inline commands the deck uses; other commands are dropped
TEX_SYMBOLS = {
    "alpha": "α",
    "beta": "β",
    "theta": "θ",
    "sigma": "σ",
    "epsilon": "ε",
    "mu": "μ",
    "mid": "|",
    "log": "log",
    "times": "×",
    "propto": "∝",
    "sim": "~",
    "rightarrow": "→",
    "cdot": "·",
    "quad": "  ",
    ",": " ",
    ";": " ",
}


def _tex_to_text(tex: str) -> str:
    tex = _TEX_HAT.sub(lambda m: _tex_to_text(m.group(1)) + "\u0302", tex)
    tex = _TEX_COMMAND.sub(lambda m: TEX_SYMBOLS.get(m.group(1), ""), tex)
    return tex.replace("^*", "*").replace("{", "").replace("}", "")


def plain_inline_math(text: str) -> str:
    """Replace inline ``$...$`` math with its Unicode reading, e.g. ``$\\hat{a}$`` -> ``â``."""
    return _INLINE_MATH.sub(lambda m: _tex_to_text(m.group(1)), text)


def _text_lines(text: str, chars_per_line: int = CHARS_PER_LINE) -> int:
    return max(1, math.ceil(len(text) / chars_per_line))


def _add_text(slide, block: TextBlock, top) -> Emu:
    text = plain_inline_math(block.text)
    height = LINE_HEIGHT * _text_lines(text)
    _add_textbox(slide, MARGIN, top, CONTENT_W, height, text)
    return height


def _add_bullets(slide, block: BulletBlock, top) -> Emu:
    n_lines = sum(_text_lines(item.text, CHARS_PER_LINE - 6 * item.level) for item in block.items)
    height = LINE_HEIGHT * n_lines
    box = slide.shapes.add_textbox(MARGIN, top, CONTENT_W, height)
    tf = box.text_frame
    tf.word_wrap = True
    for i, item in enumerate(block.items):
        p = tf.paragraphs[0] if i == 0 else tf.add_paragraph()
        marker = "•" if item.level == 0 else "–"
        p.text = f"{marker} {plain_inline_math(item.text)}"
        p.level = item.level
        p.font.name = FONT_BODY
        p.font.size = Pt(BODY_SIZE.pt - 2 * item.level)
        p.font.color.rgb = INK_NAVY
        p.space_after = Pt(4)
    return height


def _add_code(slide, block: CodeBlock, top) -> Emu:
    lines = block.code.splitlines() or [""]
    height = CODE_LINE_HEIGHT * len(lines) + Inches(0.25)
    panel = slide.shapes.add_shape(MSO_SHAPE.RECTANGLE, MARGIN, top, CONTENT_W, height)
    panel.fill.solid()
    panel.fill.fore_color.rgb = MONO_BG
    panel.line.color.rgb = BORDER_TAN
    panel.line.width = Pt(0.75)

    tf = panel.text_frame
    tf.word_wrap = False
    tf.margin_left = tf.margin_right = Inches(0.15)
    for i, line in enumerate(lines):
        p = tf.paragraphs[0] if i == 0 else tf.add_paragraph()
        p.text = line
        p.alignment = PP_ALIGN.LEFT
        p.font.name = FONT_MONO
        p.font.size = CODE_SIZE
        p.font.color.rgb = INK_NAVY
    return height


def _add_table(slide, block: TableBlock, top) -> Emu:
    rows = [block.header] + block.rows
    n_cols = max(len(r) for r in rows)
    height = TABLE_ROW_HEIGHT * len(rows)
    shape = slide.shapes.add_table(len(rows), n_cols, MARGIN, top, CONTENT_W, height)
    table = shape.table
    for r_idx, row in enumerate(rows):
        for c_idx in range(n_cols):
            cell = table.cell(r_idx, c_idx)
            cell.text = row[c_idx] if c_idx < len(row) else ""
            for paragraph in cell.text_frame.paragraphs:
                paragraph.font.name = FONT_TITLE if r_idx == 0 else FONT_MONO
                paragraph.font.size = TABLE_SIZE
                paragraph.font.bold = r_idx == 0
                paragraph.font.color.rgb = INK_NAVY
            cell.fill.solid()
            cell.fill.fore_color.rgb = MONO_BG if r_idx == 0 else WHITE
    return height


def _add_picture(slide, path: Union[str, Path], top, max_height, caption: str = "") -> Emu:
    path = Path(path)
    if not path.is_file():
        raise ValueError(f"Image not found: {path}")

    caption_height = Inches(0.35) if caption else 0
    max_height = max(int(max_height - caption_height), int(Inches(1.0)))
    pic = slide.shapes.add_picture(str(path), MARGIN, top, height=max_height)
    if pic.width > CONTENT_W:
        scale = CONTENT_W / pic.width
        pic.width = int(pic.width * scale)
        pic.height = int(pic.height * scale)
    pic.left = int((SLIDE_W - pic.width) / 2)

    if caption:
        _add_textbox(slide, MARGIN, top + pic.height, CONTENT_W, caption_height,
                     plain_inline_math(caption),
                     font_size=Pt(12), font_color=SLATE, alignment=PP_ALIGN.CENTER)
    return pic.height + caption_height


def _add_math(slide, block: MathBlock, top, math_dir: Path, index: int) -> Emu:
    n_lines = max(1, len([line for line in block.tex.splitlines() if line.strip()]))
    height = MATH_HEIGHT_PER_LINE * n_lines
    try:
        image = render_math(block.tex, math_dir / f"math_{index:03d}.png")
    except ValueError:
        # mathtext covers a subset of TeX; show the source instead
        return _add_code(slide, CodeBlock(code=block.tex, language="tex"), top)
    pic = slide.shapes.add_picture(str(image), MARGIN, top, height=height)
    if pic.width > CONTENT_W:
        scale = CONTENT_W / pic.width
        pic.width = int(pic.width * scale)
        pic.height = int(pic.height * scale)
    pic.left = int((SLIDE_W - pic.width) / 2)
    return pic.height


def _add_footer(slide, slide_num: int, total: int, title: str):
    _add_textbox(slide, MARGIN, Inches(7.05), Inches(8), Inches(0.3), title,
                 font_size=Pt(9), font_color=SLATE)
    _add_textbox(slide, Inches(11.2), Inches(7.05), Inches(1.5), Inches(0.3),
                 f"{slide_num}/{total}", font_size=Pt(9), font_color=SLATE,
                 alignment=PP_ALIGN.RIGHT)


def _build_title_slide(prs, deck: Deck):
    slide = prs.slides.add_slide(prs.slide_layouts[BLANK_LAYOUT])
    _set_background(slide)
    bar = slide.shapes.add_shape(MSO_SHAPE.RECTANGLE, MARGIN, Inches(2.4), Inches(0.12), Inches(2.2))
    bar.fill.solid()
    bar.fill.fore_color.rgb = ACCENT
    bar.line.fill.background()

    _add_textbox(slide, MARGIN + Inches(0.4), Inches(2.3), CONTENT_W, Inches(1.0), deck.title,
                 font_name=FONT_TITLE, font_size=Pt(40), bold=True)
    if deck.subtitle:
        _add_textbox(slide, MARGIN + Inches(0.4), Inches(3.3), CONTENT_W, Inches(0.6), deck.subtitle,
                     font_size=Pt(22), font_color=SLATE)
    byline = " · ".join(part for part in (deck.author, deck.date) if part)
    if byline:
        _add_textbox(slide, MARGIN + Inches(0.4), Inches(4.0), CONTENT_W, Inches(0.5), byline,
                     font_size=Pt(16), font_color=SLATE)
    return slide


def _build_content_slide(prs, deck: Deck, content: Slide, slide_num: int, total: int, math_dir: Path):
    slide = prs.slides.add_slide(prs.slide_layouts[BLANK_LAYOUT])
    _set_background(slide)
    _add_title(slide, content.title, content.subtitle)

    bottom = SLIDE_H - Inches(0.6)
    top = CONTENT_TOP
    for index, block in enumerate(content.blocks):
        if isinstance(block, TextBlock):
            height = _add_text(slide, block, top)
        elif isinstance(block, BulletBlock):
            height = _add_bullets(slide, block, top)
        elif isinstance(block, CodeBlock):
            height = _add_code(slide, block, top)
        elif isinstance(block, TableBlock):
            height = _add_table(slide, block, top)
        elif isinstance(block, MathBlock):
            height = _add_math(slide, block, top, math_dir, slide_num * 100 + index)
        elif isinstance(block, ImageBlock):
            height = _add_picture(slide, block.path, top, bottom - top, block.caption)
        else:
            raise ValueError(f"Unsupported block type: {type(block).__name__}")
        top += height + BLOCK_GAP

    if content.notes:
        slide.notes_slide.notes_text_frame.text = "\n".join(content.notes)

    _add_footer(slide, slide_num, total, deck.title)
    return slide


def render_pptx(deck: Deck, path: Union[str, Path]) -> Path:
    """
    Write the deck as a .pptx file.

    Produces a title slide followed by one slide per deck slide. Typeset math
    images are written to a ``math/`` directory beside the output file.

    Args:
        deck: Parsed deck
        path: Output .pptx path (parent directories are created)

    Returns:
        Path of the written presentation

    Raises:
        ValueError: If an image referenced by the deck does not exist
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    math_dir = path.parent / "math"

    prs = Presentation()
    prs.slide_width = SLIDE_W
    prs.slide_height = SLIDE_H

    total = len(deck.slides) + 1
    _build_title_slide(prs, deck)
    for i, content in enumerate(deck.slides, start=2):
        _build_content_slide(prs, deck, content, i, total, math_dir)

    prs.save(str(path))
    return path


def slide_titles(path: Union[str, Path]) -> List[str]:
    """Read back the first text of every slide of a rendered deck."""
    prs = Presentation(str(path))
    titles = []
    for slide in prs.slides:
        texts = [s.text_frame.text for s in slide.shapes if s.has_text_frame and s.text_frame.text]
        titles.append(texts[0] if texts else "")
    return titles
