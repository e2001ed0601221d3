"""Cleanup applied to model output before it is posted to Slack."""

import re

_BOLD_RE = re.compile(r"\*\*(.*?)\*\*")


def clean_response(raw_text: str | None) -> str:
    """Trim, drop one pair of enclosing double quotes, and unwrap ``**bold**``."""
    if not raw_text:
        return ""

    text = raw_text.strip()
    if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
        text = text[1:-1]

    return _BOLD_RE.sub(r"\1", text)
