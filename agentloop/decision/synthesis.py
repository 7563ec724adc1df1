"""
Tool-Input Synthesis
====================

Turns a free-text request into the input map a tool expects, without
calling a model. Each tool has its own extractor; when no structural cue
is found the raw message is passed through.

    code_execution  fenced block -> inline `code` -> arithmetic span -> message
    web_search      query with instruction verbs stripped, search type
    data_analysis   the numbers in the message, basic_stats or trend
    file_operation  operation verb, absolute path, content to write
    code_analysis   fenced block (or message) and its language
    anything else   {"input": message}
"""

import re
from typing import Any, Callable

DEFAULT_MAX_RESULTS = 5

_FENCED_BLOCK = re.compile(r"```([\w+#-]*)[ \t]*\n?([\s\S]*?)\n?```")
_INLINE_CODE = re.compile(r"`([^`\n]+)`")

# A run of arithmetic that starts and ends on an operand
_ARITHMETIC_SPAN = re.compile(r"[\d.(][\d\s+\-*/().×÷^%]*[\d.)]")
_HAS_OPERATOR = re.compile(r"\d\s*[+\-*/×÷^%]\s*[\d(]")

_MATH_PREFIX = re.compile(
    r"^(请|帮我)?(计算|求解?|算出?|算一下|calculate|compute|evaluate|what is|what's)\s*[:：]?\s*",
    re.IGNORECASE
)
_MATH_SUFFIX = re.compile(r"\s*(=\s*[?？]?|等于多少|是多少|的结果|[?？。.!！])\s*$")

_SEARCH_PREFIX = re.compile(
    r"^(请|麻烦)?(你)?(帮我|帮忙)?(搜索|查找|查询|搜一下|查一下|找一下|搜|查|找)\s*[:：]?\s*"
    r"|^(please\s+)?(search\s+(the\s+web\s+)?for|search|look\s+up|google|find(\s+me)?)\s*[:：]?\s*",
    re.IGNORECASE
)
_SEARCH_SUFFIX = re.compile(r"(的)?(相关)?(信息|资料|内容)?\s*[。.!！?？]*\s*$")

_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")
_TREND_MARKERS = re.compile(r"(趋势|增长|下降|预测|trend|growth|forecast|slope)", re.IGNORECASE)

_ABSOLUTE_PATH = re.compile(r"(/[^\s'\"，。,;；：:]+)")
_WRITE_MARKERS = re.compile(r"(写入|保存|写到|write|save)", re.IGNORECASE)
_LIST_MARKERS = re.compile(r"(列出|列表|目录下|\blist\b|\bls\b)", re.IGNORECASE)
_CONTENT_MARKER = re.compile(r"(?:内容|content)\s*[:：]\s*([\s\S]+)$", re.IGNORECASE)
_QUOTED = re.compile(r"[\"“「']([^\"”」']+)[\"”」']")


def detect_language(message: str) -> str:
    """Programming language named in the message; javascript by default."""
    lowered = message.lower()
    if "python" in lowered:
        return "python"
    if "typescript" in lowered:
        return "typescript"
    if "sql" in lowered:
        return "sql"
    if "shell" in lowered or "bash" in lowered:
        return "shell"
    return "javascript"


def detect_search_type(message: str) -> str:
    lowered = message.lower()
    if any(marker in lowered for marker in ("api", "文档", "技术", "documentation", "docs", "technical")):
        return "technical"
    if any(marker in lowered for marker in ("新闻", "最新", "news", "latest")):
        return "news"
    if any(marker in lowered for marker in ("学术", "论文", "academic", "paper", "research")):
        return "academic"
    return "general"


def normalize_arithmetic(expression: str) -> str:
    return (
        expression.replace("×", "*")
        .replace("÷", "/")
        .replace("^", "**")
        .strip()
    )


def extract_arithmetic(message: str) -> str | None:
    """
    Find an arithmetic expression in the message.

    Tries the whole message with question words stripped first, then the
    longest operator-bearing span inside it.
    """
    core = _MATH_SUFFIX.sub("", _MATH_PREFIX.sub("", message.strip()))
    if core and re.fullmatch(r"[\d\s+\-*/().×÷^%]+", core) and re.search(r"\d", core):
        return normalize_arithmetic(core)

    spans = [
        span.strip() for span in _ARITHMETIC_SPAN.findall(message)
        if _HAS_OPERATOR.search(span)
    ]
    if not spans:
        return None
    return normalize_arithmetic(max(spans, key=len))


def extract_code(message: str) -> tuple[str, str | None] | None:
    """
    Code embedded in the message.

    Returns:
        (code, fence_language) or None. ``fence_language`` is the tag of a
        fenced block, if it had one.
    """
    fenced = _FENCED_BLOCK.search(message)
    if fenced:
        return fenced.group(2).strip(), (fenced.group(1) or None)

    inline = _INLINE_CODE.search(message)
    if inline:
        return inline.group(1).strip(), None

    return None


# ==============================================================================
# Per-tool extractors
# ==============================================================================

def _code_execution_input(message: str) -> dict[str, Any]:
    language = detect_language(message)

    embedded = extract_code(message)
    if embedded:
        code, fence_language = embedded
        return {"code": code, "language": (fence_language or language).lower()}

    expression = extract_arithmetic(message)
    if expression:
        return {"code": expression, "language": language}

    return {"code": message.strip(), "language": language}


def _web_search_input(message: str) -> dict[str, Any]:
    query = _SEARCH_PREFIX.sub("", message.strip())
    query = _SEARCH_SUFFIX.sub("", query).strip()
    return {
        "query": query or message.strip(),
        "search_type": detect_search_type(message),
        "max_results": DEFAULT_MAX_RESULTS,
    }


def _data_analysis_input(message: str) -> dict[str, Any]:
    numbers: list[int | float] = []
    for raw in _NUMBER.findall(message):
        numbers.append(float(raw) if "." in raw else int(raw))
    return {
        "data": numbers,
        "analysis_type": "trend" if _TREND_MARKERS.search(message) else "basic_stats",
    }


def _file_operation_input(message: str) -> dict[str, Any]:
    if _WRITE_MARKERS.search(message):
        operation = "write"
    elif _LIST_MARKERS.search(message):
        operation = "list"
    else:
        operation = "read"

    path_match = _ABSOLUTE_PATH.search(message)
    params: dict[str, Any] = {
        "operation": operation,
        "path": path_match.group(1) if path_match else "",
    }

    if operation == "write":
        content = _CONTENT_MARKER.search(message)
        if content:
            params["content"] = content.group(1).strip()
        else:
            quoted = _QUOTED.search(message)
            params["content"] = quoted.group(1) if quoted else ""

    return params


def _code_analysis_input(message: str) -> dict[str, Any]:
    embedded = extract_code(message)
    if embedded:
        code, fence_language = embedded
        return {"code": code, "language": (fence_language or detect_language(message)).lower()}
    return {"code": message.strip(), "language": detect_language(message)}


_EXTRACTORS: dict[str, Callable[[str], dict[str, Any]]] = {
    "code_execution": _code_execution_input,
    "web_search": _web_search_input,
    "data_analysis": _data_analysis_input,
    "file_operation": _file_operation_input,
    "code_analysis": _code_analysis_input,
}


def synthesize_tool_input(tool_name: str, message: str) -> dict[str, Any]:
    """
    Build a tool's input map from the raw request.

    Example:
        synthesize_tool_input("code_execution", "计算 3×4+2")
        # {"code": "3*4+2", "language": "javascript"}
    """
    extractor = _EXTRACTORS.get(tool_name)
    if extractor is None:
        return {"input": message}
    return extractor(message)
