from __future__ import annotations

import re


_RE_BEARER = re.compile(r"(?i)\bBearer\s+([A-Za-z0-9._\-+/=]{8,})")
_RE_OPENAI_PROJECT_SK = re.compile(r"\bsk-proj-[A-Za-z0-9_\-]{10,}\b")
_RE_OPENAI_SK = re.compile(r"\bsk-[A-Za-z0-9_\-]{10,}\b")


def redact_secrets(text: str) -> str:
    """
    Best-effort redaction of API credentials before upstream error text is logged.

    NOTE: Do not rely on this as the only control; also avoid logging secrets in the first place.
    """
    if not text:
        return text

    out = text
    out = _RE_BEARER.sub("Bearer [REDACTED]", out)
    out = _RE_OPENAI_PROJECT_SK.sub("[REDACTED]", out)
    out = _RE_OPENAI_SK.sub("[REDACTED]", out)
    return out
