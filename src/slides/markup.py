"""Markup document parser for the slide deck.

The deck is written as a small Markdown dialect:

    ---
    title: Bayesian Data Analysis
    author: ...
    ---

    # Slide title
    ## Optional subtitle
    A paragraph, possibly with an inline {{ value }}.
    - bullet
      - nested bullet
    $$ p(\\theta \\mid y) \\propto p(y \\mid \\theta)\\, p(\\theta) $$
    ```python
    code
    ```
    ![Caption](figure:trace)
    {{ summary_table }}
    > speaker note

A placeholder alone on a line is replaced by a block taken from the render
context (a block, a DataFrame, or a string). Image targets of the form
``figure:<key>`` are looked up in the same context. HTML comments are removed
before parsing, including comments that span several lines.

Example:
    >>> deck = parse_markup("# Hello\\n- {{ n }} points", {"n": 50})
    >>> deck.slides[0].blocks[0].items[0].text
    '50 points'
"""

import re
from pathlib import Path
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Union

import pandas as pd
from pydantic import BaseModel, Field

DOCUMENT_DIR = Path(__file__).resolve().parent / "content"
DEFAULT_DOCUMENT = DOCUMENT_DIR / "bayesian_data_analysis.md"

_PLACEHOLDER_LINE = re.compile(r"^\{\{\s*([A-Za-z_][\w]*)\s*\}\}$")
_INLINE_PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z_][\w]*)\s*\}\}")
_IMAGE_LINE = re.compile(r"^!\[(?P<caption>[^\]]*)\]\((?P<target>[^)]+)\)$")
_BULLET_LINE = re.compile(r"^(?P<indent>\s*)[-*]\s+(?P<text>.*)$")
_FIGURE_PREFIX = "figure:"
_COMMENT = re.compile(r"<!--.*?-->", re.DOTALL)

MAX_BULLET_LEVEL = 2


class TextBlock(BaseModel):
    kind: Literal["text"] = "text"
    text: str


class BulletItem(BaseModel):
    text: str
    level: int = Field(0, ge=0, le=MAX_BULLET_LEVEL)


class BulletBlock(BaseModel):
    kind: Literal["bullets"] = "bullets"
    items: List[BulletItem]


class MathBlock(BaseModel):
    """Display math, kept as TeX source."""

    kind: Literal["math"] = "math"
    tex: str


class CodeBlock(BaseModel):
    kind: Literal["code"] = "code"
    code: str
    language: str = ""


class ImageBlock(BaseModel):
    kind: Literal["image"] = "image"
    path: str
    caption: str = ""


class TableBlock(BaseModel):
    kind: Literal["table"] = "table"
    header: List[str]
    rows: List[List[str]]

    @classmethod
    def from_frame(cls, frame: pd.DataFrame, float_format: str = "{:.2f}") -> "TableBlock":
        """Build a table from a DataFrame, index included as the first column."""
        header = [str(frame.index.name or "")] + [str(c) for c in frame.columns]
        rows = []
        for index, values in zip(frame.index, frame.itertuples(index=False)):
            cells = [str(index)]
            for value in values:
                if isinstance(value, float):
                    cells.append(float_format.format(value))
                else:
                    cells.append(str(value))
            rows.append(cells)
        return cls(header=header, rows=rows)


Block = Annotated[
    Union[TextBlock, BulletBlock, MathBlock, CodeBlock, ImageBlock, TableBlock],
    Field(discriminator="kind"),
]


class Slide(BaseModel):
    title: str
    subtitle: Optional[str] = None
    blocks: List[Block] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)


class Deck(BaseModel):
    """A parsed slide deck."""

    title: str = "Untitled"
    subtitle: Optional[str] = None
    author: Optional[str] = None
    date: Optional[str] = None
    slides: List[Slide] = Field(default_factory=list)

    @property
    def image_paths(self) -> List[str]:
        return [b.path for s in self.slides for b in s.blocks if isinstance(b, ImageBlock)]


def _format_scalar(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


def _substitute(text: str, context: Mapping[str, Any], where: str) -> str:
    """Replace inline ``{{ name }}`` placeholders with scalar context values."""

    def _replace(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name not in context:
            raise ValueError(f"Unknown placeholder '{name}' in {where}")
        value = context[name]
        if not isinstance(value, (str, int, float)):
            raise ValueError(f"Placeholder '{name}' in {where} must be a scalar for inline use")
        return _format_scalar(value)

    return _INLINE_PLACEHOLDER.sub(_replace, text)


def _resolve_block(name: str, context: Mapping[str, Any], where: str):
    """Turn a standalone placeholder into a block."""
    if name not in context:
        raise ValueError(f"Unknown placeholder '{name}' in {where}")
    value = context[name]
    if isinstance(value, (TextBlock, BulletBlock, MathBlock, CodeBlock, ImageBlock, TableBlock)):
        return value
    if isinstance(value, pd.DataFrame):
        return TableBlock.from_frame(value)
    if isinstance(value, (str, int, float)):
        return TextBlock(text=_format_scalar(value))
    raise ValueError(f"Placeholder '{name}' in {where} has unsupported type {type(value).__name__}")


def _split_front_matter(lines: List[str]) -> tuple[Dict[str, str], List[str]]:
    """Split ``key: value`` front matter fenced by ``---`` lines from the body."""
    start = 0
    while start < len(lines) and not lines[start].strip():
        start += 1
    if start >= len(lines) or lines[start].strip() != "---":
        return {}, lines

    meta: Dict[str, str] = {}
    for i in range(start + 1, len(lines)):
        line = lines[i].strip()
        if line == "---":
            return meta, lines[i + 1 :]
        if not line:
            continue
        if ":" not in line:
            raise ValueError(f"Malformed front matter line {i + 1}: '{line}'")
        key, value = line.split(":", 1)
        meta[key.strip()] = value.strip().strip('"')
    raise ValueError("Unterminated front matter: missing closing '---'")


class _SlideBuilder:
    """Accumulates paragraph and bullet lines for the slide being parsed."""

    def __init__(self, title: str, context: Mapping[str, Any]):
        self.context = context
        self.where = f"slide '{title}'"
        self.slide = Slide(title=_substitute(title, context, f"slide '{title}'"))
        self.paragraph: List[str] = []
        self.bullets: List[BulletItem] = []

    def flush(self) -> None:
        if self.paragraph:
            text = " ".join(self.paragraph)
            self.slide.blocks.append(TextBlock(text=_substitute(text, self.context, self.where)))
            self.paragraph = []
        if self.bullets:
            self.slide.blocks.append(BulletBlock(items=self.bullets))
            self.bullets = []

    def add(self, block) -> None:
        self.flush()
        self.slide.blocks.append(block)

    def add_bullet(self, indent: str, text: str) -> None:
        if self.paragraph:
            self.flush()
        level = min(len(indent.expandtabs(2)) // 2, MAX_BULLET_LEVEL)
        self.bullets.append(BulletItem(text=_substitute(text.strip(), self.context, self.where), level=level))

    def finish(self) -> Slide:
        self.flush()
        return self.slide


def parse_markup(text: str, context: Optional[Mapping[str, Any]] = None) -> Deck:
    """
    Parse a markup document into a Deck.

    Args:
        text: Markup source
        context: Values for ``{{ name }}`` placeholders and ``figure:<key>`` images

    Returns:
        Deck with one Slide per ``# `` heading

    Raises:
        ValueError: On unknown placeholders or figures, unterminated fences,
            malformed front matter, or content before the first slide heading
    """
    context = dict(context or {})
    # Comments keep their newlines so error line numbers still match the source
    text = _COMMENT.sub(lambda m: "\n" * m.group(0).count("\n"), text)
    meta, lines = _split_front_matter(text.splitlines())

    deck = Deck(
        title=_substitute(meta.get("title", "Untitled"), context, "front matter"),
        subtitle=_substitute(meta["subtitle"], context, "front matter") if "subtitle" in meta else None,
        author=_substitute(meta["author"], context, "front matter") if "author" in meta else None,
        date=_substitute(meta["date"], context, "front matter") if "date" in meta else None,
    )

    builder: Optional[_SlideBuilder] = None
    i = 0
    while i < len(lines):
        raw = lines[i]
        line = raw.strip()
        i += 1

        if raw.startswith("# "):
            if builder is not None:
                deck.slides.append(builder.finish())
            builder = _SlideBuilder(raw[2:].strip(), context)
            continue

        if builder is None:
            if line:
                raise ValueError(f"Content before the first slide heading on line {i}: '{line}'")
            continue

        if not line:
            builder.flush()
        elif raw.startswith("## "):
            builder.flush()
            builder.slide.subtitle = _substitute(raw[3:].strip(), context, builder.where)
        elif line.startswith("```"):
            language = line[3:].strip()
            start = i
            body: List[str] = []
            while i < len(lines) and lines[i].strip() != "```":
                body.append(lines[i])
                i += 1
            if i >= len(lines):
                raise ValueError(f"Unterminated code fence opened on line {start} in {builder.where}")
            i += 1
            builder.add(CodeBlock(code="\n".join(body), language=language))
        elif line.startswith("$$"):
            start = i
            tex_lines = [line[2:]]
            while not tex_lines[-1].rstrip().endswith("$$") or (len(tex_lines) == 1 and line == "$$"):
                if i >= len(lines):
                    raise ValueError(f"Unterminated math block opened on line {start} in {builder.where}")
                tex_lines.append(lines[i].strip())
                i += 1
            tex = "\n".join(tex_lines).rstrip()[:-2].strip()
            builder.add(MathBlock(tex=tex))
        elif line.startswith("> "):
            builder.slide.notes.append(_substitute(line[2:], context, builder.where))
        elif _PLACEHOLDER_LINE.match(line):
            name = _PLACEHOLDER_LINE.match(line).group(1)
            builder.add(_resolve_block(name, context, builder.where))
        elif _IMAGE_LINE.match(line):
            match = _IMAGE_LINE.match(line)
            target = match.group("target").strip()
            if target.startswith(_FIGURE_PREFIX):
                key = target[len(_FIGURE_PREFIX) :]
                if key not in context:
                    raise ValueError(f"Unknown figure '{key}' in {builder.where}")
                target = str(context[key])
            builder.add(ImageBlock(path=target, caption=_substitute(match.group("caption"), context, builder.where)))
        elif _BULLET_LINE.match(raw):
            match = _BULLET_LINE.match(raw)
            builder.add_bullet(match.group("indent"), match.group("text"))
        else:
            if builder.bullets:
                builder.flush()
            builder.paragraph.append(line)

    if builder is not None:
        deck.slides.append(builder.finish())

    return deck


def load_document(path: Union[str, Path] = DEFAULT_DOCUMENT, context: Optional[Mapping[str, Any]] = None) -> Deck:
    """Read and parse a markup document from disk.

    Raises:
        ValueError: If the document does not exist or fails to parse
    """
    path = Path(path)
    if not path.is_file():
        raise ValueError(f"Markup document not found: {path}")
    return parse_markup(path.read_text(encoding="utf-8"), context)
