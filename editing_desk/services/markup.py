from __future__ import annotations

import html
import re
from typing import List

from editing_desk.schemas.analysis import CORRECTION_MARKER_CLASS, ERROR_MARKER_CLASS, Correction

_CLASSES = f"{ERROR_MARKER_CLASS}|{CORRECTION_MARKER_CLASS}"

_SPAN_RE = re.compile(
    rf"<span\s+class=(['\"])({_CLASSES})\1\s*>(.*?)</span>",
    re.S | re.I,
)

_PAIR_RE = re.compile(
    rf"<span\s+class=(['\"]){ERROR_MARKER_CLASS}\1\s*>(.*?)</span>"
    rf"\s*<span\s+class=(['\"]){CORRECTION_MARKER_CLASS}\3\s*>(.*?)</span>",
    re.S | re.I,
)

_TAG_RE = re.compile(r"<[^>]+>")


def _plain(fragment: str) -> str:
    return html.unescape(_TAG_RE.sub("", fragment)).strip()


def render_annotations(annotated_text: str) -> str:
    """
    HTML-escape the model's annotated text, keeping only the two marker spans.
    Anything else the model emitted (scripts, other tags) is shown as text.
    """
    out: List[str] = []
    pos = 0
    for m in _SPAN_RE.finditer(annotated_text or ""):
        out.append(html.escape(annotated_text[pos:m.start()]))
        cls = m.group(2).lower()
        out.append(f'<span class="{cls}">{html.escape(_plain(m.group(3)))}</span>')
        pos = m.end()
    out.append(html.escape((annotated_text or "")[pos:]))
    return "".join(out)


def extract_corrections(annotated_text: str) -> List[Correction]:
    """Error/correction marker pairs in order of appearance."""
    found: List[Correction] = []
    for m in _PAIR_RE.finditer(annotated_text or ""):
        original = _plain(m.group(2))
        corrected = _plain(m.group(4))
        if corrected.startswith("[") and corrected.endswith("]"):
            corrected = corrected[1:-1].strip()
        if original or corrected:
            found.append(Correction(original_error=original, corrected_text=corrected))
    return found
