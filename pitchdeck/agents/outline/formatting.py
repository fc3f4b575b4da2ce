"""
Deterministic clean-up of model-written outline markdown.

``format_outline`` is pure and idempotent: formatting already-formatted text
changes nothing. It works line by line:

  - inline "## Slide" headings move onto their own line
  - each section label ("**Key Points:**" …) starts its own line
  - inline " - " runs in body lines become one bullet per line
  - headings and section labels get one blank line before them
  - runs of blank lines collapse to one; leading/trailing blanks are dropped
"""

from __future__ import annotations

import re

SECTION_LABELS = (
    "Key Takeaway",
    "Key Points",
    "Value Framing",
    "Supporting Evidence",
    "Visual Recommendation",
    "Relationship Building Opportunity",
)

_HEADING = re.compile(r"^\s*#{1,6}\s")
_INLINE_SLIDE_HEADING = re.compile(r"(?<=[^\s#])\s*(?=#{1,6}\s+Slide\b)")
_SLIDE_HEADING_SPACING = re.compile(r"^(\s*#{1,6})\s+Slide\b")
_LABEL_RE = "|".join(re.escape(label) for label in SECTION_LABELS)
_INLINE_LABEL = re.compile(rf"(?<=\S)\s*(?=\*\*(?:{_LABEL_RE}):\*\*)")
_LABEL_LINE = re.compile(rf"^\s*\*\*(?:{_LABEL_RE}):\*\*")
_INLINE_BULLET = re.compile(r"(?<=\S)\s+-\s+")
_BULLET_MARKERS = re.compile(r"^(?:-(?:\s+|$))+")


def _split_line(line: str) -> list[str]:
    pieces: list[str] = []
    for chunk in _INLINE_SLIDE_HEADING.split(line):
        chunk = _SLIDE_HEADING_SPACING.sub(r"\1 Slide", chunk.rstrip())
        for part in _INLINE_LABEL.split(chunk):
            if _LABEL_LINE.match(part):
                part = part.lstrip()
            if _HEADING.match(part):
                pieces.append(part.rstrip())
                continue
            bullets = _INLINE_BULLET.split(part.rstrip())
            if bullets[0].strip() != "-":
                pieces.append(bullets[0])
            for item in bullets[1:]:
                # Nested markers collapse into one bullet.
                item = _BULLET_MARKERS.sub("", item.strip())
                if item:
                    pieces.append(f"- {item}")
    return pieces


def format_outline(text: str) -> str:
    """Normalise heading spacing, bullet line-breaks and blank lines."""
    if not text:
        return ""

    out: list[str] = []
    pending_blank = False
    for raw_line in text.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        for line in _split_line(raw_line):
            if not line.strip():
                pending_blank = True
                continue
            if _HEADING.match(line) or _LABEL_LINE.match(line):
                pending_blank = True
            if pending_blank and out:
                out.append("")
            pending_blank = False
            out.append(line)

    return "\n".join(out)
