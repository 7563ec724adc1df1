"""
Safety Gate
===========

Static deny-list scan run before any code-execution tool touches its input.

The scan is purely textual: it never parses or evaluates the payload. A
non-empty result means the code must not run; the tool reports the matches
as ``violations`` on a ``success=False`` result.
"""

import re

# (pattern, human-readable reason)
DENY_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"\brequire\s*\("), "dynamic require"),
    (re.compile(r"\bimport\b"), "module import"),
    (re.compile(r"__\w+__"), "dunder attribute access"),
    (re.compile(r"\beval\s*\("), "eval"),
    (re.compile(r"\bexec\s*\("), "exec"),
    (re.compile(r"\bFunction\s*\("), "Function constructor"),
    (re.compile(r"\bcompile\s*\("), "compile"),
    (re.compile(r"\bfs\."), "filesystem access"),
    (re.compile(r"\bopen\s*\("), "filesystem access"),
    (re.compile(r"\bprocess\."), "process access"),
    (re.compile(r"\bos\."), "operating system access"),
    (re.compile(r"\bsubprocess\b"), "process spawning"),
    (re.compile(r"\bfetch\s*\("), "network access"),
    (re.compile(r"\bXMLHttpRequest\b"), "network access"),
    (re.compile(r"\bWebSocket\b"), "network access"),
    (re.compile(r"\bsocket\b"), "network access"),
    (re.compile(r"\bdocument\."), "DOM access"),
    (re.compile(r"\bwindow\."), "DOM access"),
    (re.compile(r"\b(?:localStorage|sessionStorage|indexedDB)\b"), "storage access"),
    (re.compile(r"\bset(?:Timeout|Interval)\s*\("), "timer scheduling"),
]


def scan_code(code: str) -> list[str]:
    """
    Scan code against the deny-list.

    Args:
        code: The untrusted source text

    Returns:
        One entry per matching pattern, e.g. ``"eval: eval("``; empty when
        the code is allowed to run
    """
    violations = []
    for pattern, reason in DENY_PATTERNS:
        match = pattern.search(code)
        if match:
            violations.append(f"{reason}: {match.group(0)}")
    return violations


def is_safe(code: str) -> bool:
    return not scan_code(code)
