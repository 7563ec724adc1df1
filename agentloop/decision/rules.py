"""
Rule-Based Classification
=========================

Deterministic fallback for ``DecisionEngine.analyze``. It is used when the
judgment call fails or returns something that is neither yes nor no, and
it is what the engine consults to decide which non-code tools a request
needs.

Rules are checked in order and the first match wins:

    1. greeting            -> none,          no tools,        low
    2. knowledge question  -> none,          no tools,        low
    3. math expression     -> quick,         code_execution,  medium
    4. real-time info      -> quick,         web_search,      medium
    5. programming task    -> step-by-step,  code_execution,  high
    6. complex analysis    -> deep,          no tools,        high
    7. explicit search     -> quick,         web_search,      medium
    8. anything else       -> none,          no tools,        low

Every function here is pure: same string in, same classification out.
Rule confidences stay at or below 0.8 so an LLM-backed classification
always outranks them.
"""

import re
from dataclasses import dataclass
from typing import Callable, Iterable

from agentloop.decision.models import Complexity, TaskClassification, ThinkingStrategy

# ==============================================================================
# Predicates
# ==============================================================================

_GREETING = [
    re.compile(r"^(你好|您好|hi|hello|hey|嗨)([！!。.]?$|[，,\s])", re.IGNORECASE),
    re.compile(r"^(谢谢|thank you|thanks)([！!。.]?$)", re.IGNORECASE),
    re.compile(r"^(再见|bye|goodbye|拜拜)([！!。.]?$)", re.IGNORECASE),
    re.compile(r"^(早上好|晚上好|下午好|good morning|good afternoon|good evening)([！!。.]?$)", re.IGNORECASE),
]

_KNOWLEDGE = [
    re.compile(r"^(什么是|what is|what are|define)", re.IGNORECASE),
    re.compile(r"^(为什么).*?(是|会|能|要)"),
    re.compile(r"^why\b", re.IGNORECASE),
    re.compile(r"^(解释|explain|介绍|introduce|describe)", re.IGNORECASE),
    re.compile(r"(历史|文化|地理|生物|物理|化学).*?(是什么|意思|概念)"),
    re.compile(r"天空.*?蓝色|重力.*?原理|光.*?传播"),
]

_REAL_TIME_EXCLUSIONS = [
    re.compile(r"(今天|现在|最新|当前|2024|2025|today|now|latest|current)", re.IGNORECASE),
    re.compile(r"(价格|股价|汇率|天气|price|stock|exchange rate|weather)", re.IGNORECASE),
    re.compile(r"(新闻|动态|发展|趋势|news|trend)", re.IGNORECASE),
]

# Two numbers joined by an operator
_ARITHMETIC = re.compile(r"\d\s*[+\-*/×÷^%]\s*[\d(]")

_MATH = [
    re.compile(r"^\s*[\d\s+\-*/().=×÷^%]+\s*$"),
    re.compile(r"^(计算|求解?|算出?)[:：]?\s*[\d\s+\-*/().×÷^%]+"),
    re.compile(r"[\d+\-*/()=].*?(等于|结果|答案)"),
    re.compile(r"^[\d.,]+\s*[+\-*/×÷^%]\s*[\d.,]+"),
    re.compile(
        r"^(calculate|compute|evaluate|what is|what's)\s*[:：]?\s*[\d\s+\-*/().×÷^%]+[?？]?\s*$",
        re.IGNORECASE
    ),
]

_REAL_TIME = [
    re.compile(r"(今天|现在|当前|实时|最新).*?(天气|气温|温度)"),
    re.compile(r"(股票|股价|比特币|汇率).*?(价格|行情)"),
    re.compile(r"(今日|最新).*?(新闻|消息|动态)"),
    re.compile(r"(2024|2025)年?.*?(发展|变化|情况)"),
    re.compile(r"(疫情|病毒).*?(最新|当前|现状)"),
    re.compile(r"\b(today|current|latest|now)\b.*?\b(weather|temperature|news|price)\b", re.IGNORECASE),
    re.compile(r"\b(stock|bitcoin|exchange rate)\b.*?\b(price|quote)\b", re.IGNORECASE),
]

_PROGRAMMING = [
    re.compile(r"```[\w]*[\s\S]*?```"),
    re.compile(r"(写|编写|实现).*?(代码|程序|函数|算法)"),
    re.compile(r"(如何|怎么).*?(编程|coding|开发)"),
    re.compile(r"(debug|调试|修复).*?(代码|bug)", re.IGNORECASE),
    re.compile(r"\b(function|class|def|var|let|const)\s+[A-Za-z_$][\w$]*\s*[=(:{]"),
    re.compile(r"(javascript|python|java|typescript|sql).*?(代码|实现)", re.IGNORECASE),
    re.compile(r"\b(write|implement)\b.*?\b(code|program|function|algorithm|script)\b", re.IGNORECASE),
]

_ANALYSIS = [
    re.compile(r"(分析|分析一下|深入分析).*?(问题|情况|原因|影响)"),
    re.compile(r"(比较|对比).*?(优缺点|差异|区别)"),
    re.compile(r"(评估|评价).*?(方案|选择|策略)"),
    re.compile(r"(如何解决|解决方案|建议).*?(复杂|困难|挑战)"),
    re.compile(r"(设计|规划|制定).*?(方案|计划|策略)"),
    re.compile(r"\b(analy[sz]e|compare|evaluate|assess)\b.*?\b(pros|cons|differences?|impact|causes?|options?|strateg(y|ies))\b", re.IGNORECASE),
]

_SEARCH = [
    re.compile(r"^(搜索|查找|查询|search).*?(信息|资料|内容)", re.IGNORECASE),
    re.compile(r"(帮我|帮忙).*?(找|查|搜)"),
    re.compile(r"(官网|网站|链接)"),
    re.compile(r"(了解|想知道).*?(公司|产品|服务)"),
    re.compile(r"^(search|look up|google|find)\b", re.IGNORECASE),
]


def _any(patterns: list[re.Pattern], text: str) -> bool:
    return any(pattern.search(text) for pattern in patterns)


def is_greeting(message: str) -> bool:
    return _any(_GREETING, message)


def is_knowledge_question(message: str) -> bool:
    """General knowledge, unless it asks for live data or does arithmetic."""
    if not _any(_KNOWLEDGE, message):
        return False
    if _any(_REAL_TIME_EXCLUSIONS, message):
        return False
    return not _ARITHMETIC.search(message)


def is_math_expression(message: str) -> bool:
    return _any(_MATH, message) and bool(re.search(r"\d", message))


def needs_real_time_info(message: str) -> bool:
    return _any(_REAL_TIME, message)


def is_programming_task(message: str) -> bool:
    return _any(_PROGRAMMING, message)


def is_complex_analysis(message: str) -> bool:
    return _any(_ANALYSIS, message)


def is_explicit_search(message: str) -> bool:
    return _any(_SEARCH, message)


# ==============================================================================
# Rule Table
# ==============================================================================

@dataclass(frozen=True)
class _Rule:
    name: str
    matches: Callable[[str], bool]
    strategy: ThinkingStrategy
    tools: tuple[str, ...]
    confidence: float
    complexity: Complexity
    reasoning_zh: str
    reasoning_en: str


RULES: list[_Rule] = [
    _Rule("greeting", is_greeting, ThinkingStrategy.NONE, (), 0.8, Complexity.LOW,
          "简单社交对话，直接回答即可", "Small talk; answer directly"),
    _Rule("knowledge", is_knowledge_question, ThinkingStrategy.NONE, (), 0.75, Complexity.LOW,
          "基础常识问题，模型可以直接回答", "General knowledge; the model can answer directly"),
    _Rule("math", is_math_expression, ThinkingStrategy.QUICK, ("code_execution",), 0.8, Complexity.MEDIUM,
          "数学计算需要代码执行工具确保准确性", "Arithmetic; use code execution for an exact result"),
    _Rule("real_time", needs_real_time_info, ThinkingStrategy.QUICK, ("web_search",), 0.75, Complexity.MEDIUM,
          "需要搜索最新的实时信息", "Needs up-to-date information from the web"),
    _Rule("programming", is_programming_task, ThinkingStrategy.STEP_BY_STEP, ("code_execution",), 0.7, Complexity.HIGH,
          "编程问题需要逐步分析和实现", "Programming task; work through it step by step"),
    _Rule("analysis", is_complex_analysis, ThinkingStrategy.DEEP, (), 0.65, Complexity.HIGH,
          "复杂分析问题需要深度思考", "Complex analysis; needs deep thinking"),
    _Rule("search", is_explicit_search, ThinkingStrategy.QUICK, ("web_search",), 0.75, Complexity.MEDIUM,
          "用户明确要求搜索信息", "Explicit search request"),
]

DEFAULT_CONFIDENCE = 0.6


def _build(rule: _Rule, language: str) -> TaskClassification:
    return TaskClassification(
        needs_thinking=rule.strategy != ThinkingStrategy.NONE,
        thinking_strategy=rule.strategy,
        tools_required=rule.tools,
        confidence=rule.confidence,
        reasoning=rule.reasoning_zh if language.startswith("zh") else rule.reasoning_en,
        estimated_complexity=rule.complexity
    )


def matching_rule(message: str) -> str | None:
    """Name of the first rule that matches, or None for the default."""
    text = message.strip()
    for rule in RULES:
        if rule.matches(text):
            return rule.name
    return None


def classify_by_rules(message: str, language: str = "zh") -> TaskClassification:
    """
    Classify a request with the ordered rule table.

    Args:
        message: The raw user request
        language: Language of the ``reasoning`` text ("zh" or "en")
    """
    text = message.strip()
    for rule in RULES:
        if rule.matches(text):
            return _build(rule, language)

    return TaskClassification(
        needs_thinking=False,
        thinking_strategy=ThinkingStrategy.NONE,
        tools_required=(),
        confidence=DEFAULT_CONFIDENCE,
        reasoning="一般问题，尝试直接回答" if language.startswith("zh") else "General request; answer directly",
        estimated_complexity=Complexity.LOW
    )


# ==============================================================================
# Keyword Tool Selection
# ==============================================================================

TOOL_MARKERS: list[tuple[str, tuple[str, ...]]] = [
    ("web_search", ("搜索", "查找", "查询", "search", "look up")),
    ("code_execution", ("计算", "数学", "算", "math", "calculate", "compute")),
    ("code_analysis", ("代码", "程序", "编程", "code", "program")),
    ("file_operation", ("文件", "目录", "file", "folder", "directory")),
    ("data_analysis", ("数据", "统计", "分析", "data", "statistic")),
]


def select_tools(message: str, available: Iterable[str]) -> list[str]:
    """
    Pick tools by keyword markers, restricted to ``available``.

    A bare arithmetic expression selects code_execution even without a
    marker word. No match returns an empty list; there is no default tool.
    """
    names = list(available)
    lowered = message.lower()
    selected = []

    if is_math_expression(message.strip()):
        selected.append("code_execution")

    for tool_name, markers in TOOL_MARKERS:
        if tool_name in selected:
            continue
        if any(marker in lowered for marker in markers):
            selected.append(tool_name)

    return [name for name in selected if name in names]
