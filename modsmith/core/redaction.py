# modsmith/core/redaction.py
from __future__ import annotations

import re

__all__ = ["redactText"]



# Build tools echo their environment and CLI flags on failure; scrub the usual suspects
_SENSITIVE_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"(?iu)(Bearer\s+)[A-Za-z0-9._\-]+"), r"\1***"),
    (re.compile(r"""(?iu)(Authorization\s*[:=]\s*)[^\s"',]+"""), r"\1***"),

    # KEY=value pairs, e.g. from `env` dumps or -Dprop=value flags
    (re.compile(r"""(?iu)\b([A-Z0-9_.]*(?:PASSWORD|SECRET|TOKEN|API[_\-]?KEY)[A-Z0-9_.]*\s*=\s*)[^\s"',]+"""), r"\1***"),

    # JSON-ish fields
    (re.compile(r'(?iu)("(?:password|pass|token|api[_\-]?key)"\s*:\s*")[^"]+(")'), r"\1***\2"),
]



def redactText(text: str) -> str:
    """Return sanitized text with sensitive substrings replaced by ***."""
    if not text:
        return text
    out = text
    for pattern, repl in _SENSITIVE_PATTERNS:
        try:
            out = pattern.sub(repl, out)
        except re.error:
            continue # Never crash logging on regex errors
    return out
