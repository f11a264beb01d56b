"""
Code Extractor - Pull a verification code out of message text

Two rules, first match wins:
1. Structured marker: <div class="code">148885</div>, where the class
   attribute may still carry its quoted-printable form (class=3D"code")
   and the code is 4-8 digits.
2. Fallback: the first standalone 6-digit run that is not all zeros and
   does not start with "20" (years embedded in timestamps).
"""

import re
from typing import Optional

MARKER_PATTERN = re.compile(r'<div class=(?:3D)?"code"[^>]*>(\d{4,8})</div>')
SIX_DIGIT_PATTERN = re.compile(r"\b(\d{6})\b")


def _is_plausible(candidate: str) -> bool:
    return candidate.strip("0") != "" and not candidate.startswith("20")


def extract_verification_code(text: str) -> Optional[str]:
    """
    Extract a verification code from message text

    Args:
        text: Plain-text or HTML message body

    Returns:
        Optional[str]: The code, or None if nothing qualifies
    """
    match = MARKER_PATTERN.search(text)
    if match:
        return match.group(1)

    for match in SIX_DIGIT_PATTERN.finditer(text):
        candidate = match.group(1)
        if _is_plausible(candidate):
            return candidate

    return None
