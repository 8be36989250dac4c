"""Expression normalizer.

Rewrites the glyphs a user types or pastes into the canonical syntax the
evaluator understands.
"""

import re

GLYPHS = {
    "×": "*",
    "÷": "/",
    "π": "pi",
    "√": "sqrt",
}

_VALID_CHARS = re.compile(r"^[0-9A-Za-z_+\-*/^().,=\[\]\s×÷π√]*$")


def normalize(raw: str) -> str:
    """Return ``raw`` with calculator glyphs replaced by canonical names.

    None of the replacements produce a glyph, so applying this twice is the
    same as applying it once.
    """
    text = raw
    for glyph, canonical in GLYPHS.items():
        text = text.replace(glyph, canonical)
    return text


def is_valid_expression(raw: str) -> bool:
    """Check that ``raw`` only uses characters a calculator expression can contain."""
    if not raw or not raw.strip():
        return False
    return bool(_VALID_CHARS.match(raw))
