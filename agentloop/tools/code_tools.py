"""
Code Tools
==========

Tools that work on small code snippets:

1. code_execution: evaluates arithmetic-style code in a restricted evaluator
2. code_analysis: cheap static review (debug statements, length, comments)

Execution Model:
    The input first goes through the deny-list in ``agentloop.tools.safety``.
    Code that passes is never handed to ``eval``/``exec``. It is parsed with
    ``ast`` and walked by ``_SafeEvaluator``, which only knows numbers,
    arithmetic operators, a handful of math functions, simple assignments
    and ``print``/``console.log``. Anything else is rejected.

    JavaScript-isms the models like to produce are normalized first:
    ``Math.sqrt(2)`` -> ``sqrt(2)``, ``console.log(x)`` -> ``print(x)``,
    ``let x = 3;`` -> ``x = 3``, ``×``/``÷`` -> ``*``/``/``.

    Results are formatted the way a JavaScript runtime prints numbers, so
    ``3+4*2`` reports ``"14"`` and ``7/2`` reports ``"3.5"``.
"""

import ast
import math
import operator
import re
import time
from typing import Any, Callable

from agentloop.tools import Tool, ToolResult
from agentloop.tools.safety import scan_code
from agentloop.utils.logger import Logger

logger = Logger("CodeTools")

SUPPORTED_LANGUAGES = ("javascript", "python")

# Largest exponent accepted by ** / pow()
MAX_EXPONENT = 1000

# Largest integer result, in bits (about 4200 decimal digits)
MAX_INTEGER_BITS = 14000


class UnsupportedCodeError(ValueError):
    """The snippet uses a construct the evaluator does not allow."""


def _check_size(value: Any) -> Any:
    if isinstance(value, int) and value.bit_length() > MAX_INTEGER_BITS:
        raise UnsupportedCodeError(f"Result exceeds {MAX_INTEGER_BITS} bits")
    return value


def _bounded_pow(base: Any, exponent: Any) -> Any:
    if abs(exponent) > MAX_EXPONENT:
        raise UnsupportedCodeError(f"Exponent {exponent} exceeds limit of {MAX_EXPONENT}")
    # Estimated before computing; int ** int is the only case that grows unbounded
    if isinstance(base, int) and isinstance(exponent, int) and exponent > 0:
        if (abs(base).bit_length() - 1) * exponent > MAX_INTEGER_BITS:
            raise UnsupportedCodeError(f"Result exceeds {MAX_INTEGER_BITS} bits")
    return _check_size(operator.pow(base, exponent))


def _bounded_factorial(n: Any) -> int:
    if n > MAX_EXPONENT:
        raise UnsupportedCodeError(f"factorial({n}) exceeds limit of {MAX_EXPONENT}")
    return math.factorial(n)


_BINARY_OPERATORS: dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: _bounded_pow,
}

_UNARY_OPERATORS: dict[type, Callable[[Any], Any]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

_FUNCTIONS: dict[str, Callable[..., Any]] = {
    "abs": abs,
    "round": round,
    "min": min,
    "max": max,
    "pow": _bounded_pow,
    "sqrt": math.sqrt,
    "cbrt": lambda x: math.copysign(abs(x) ** (1 / 3), x),
    "floor": math.floor,
    "ceil": math.ceil,
    "trunc": math.trunc,
    "exp": math.exp,
    "log": math.log,
    "log2": math.log2,
    "log10": math.log10,
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "asin": math.asin,
    "acos": math.acos,
    "atan": math.atan,
    "hypot": math.hypot,
    "factorial": _bounded_factorial,
}

_CONSTANTS: dict[str, float] = {
    "pi": math.pi,
    "PI": math.pi,
    "e": math.e,
    "E": math.e,
}

_MATH_PREFIX = re.compile(r"\b(?:Math|math)\.")
_CONSOLE_LOG = re.compile(r"\bconsole\.log\s*\(")
_DECLARATION = re.compile(r"^(?:let|const|var)\s+")


def format_number(value: Any) -> str:
    """
    Render a result the way JavaScript prints numbers.

    Integral floats lose their fractional part: 14.0 -> "14".
    """
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return str(int(value))
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        return repr(value)
    return str(value)


def normalize_source(code: str) -> str:
    """Rewrite JavaScript-flavoured arithmetic into the evaluator's dialect."""
    code = code.replace("×", "*").replace("÷", "/")
    code = _MATH_PREFIX.sub("", code)
    code = _CONSOLE_LOG.sub("print(", code)

    lines = []
    for raw in re.split(r"[;\n]", code):
        line = raw.strip()
        if not line or line.startswith("//") or line.startswith("#"):
            continue
        lines.append(_DECLARATION.sub("", line))
    return "\n".join(lines)


class _SafeEvaluator:
    """Walks a parsed snippet, allowing arithmetic only."""

    def __init__(self):
        self.variables: dict[str, Any] = {}
        self.output: list[str] = []

    def run(self, source: str) -> Any:
        """
        Execute every statement and return the last expression's value.

        Returns None when the snippet ends with an assignment or print.
        """
        tree = ast.parse(source, mode="exec")
        result = None

        for statement in tree.body:
            if isinstance(statement, ast.Assign):
                if len(statement.targets) != 1 or not isinstance(statement.targets[0], ast.Name):
                    raise UnsupportedCodeError("Only simple assignments are supported")
                self.variables[statement.targets[0].id] = self.evaluate(statement.value)
                result = None
            elif isinstance(statement, ast.Expr):
                node = statement.value
                if (
                    isinstance(node, ast.Call)
                    and isinstance(node.func, ast.Name)
                    and node.func.id == "print"
                ):
                    values = [format_number(self.evaluate(arg)) for arg in node.args]
                    self.output.append(" ".join(values))
                    result = None
                else:
                    result = self.evaluate(node)
            else:
                raise UnsupportedCodeError(
                    f"Unsupported statement: {type(statement).__name__}"
                )

        return result

    def evaluate(self, node: ast.AST) -> Any:
        if isinstance(node, ast.Constant):
            if isinstance(node.value, (int, float)) and not isinstance(node.value, bool):
                return node.value
            raise UnsupportedCodeError(f"Unsupported literal: {node.value!r}")

        if isinstance(node, ast.Name):
            if node.id in self.variables:
                return self.variables[node.id]
            if node.id in _CONSTANTS:
                return _CONSTANTS[node.id]
            raise UnsupportedCodeError(f"Unknown name: {node.id}")

        if isinstance(node, ast.BinOp):
            op = _BINARY_OPERATORS.get(type(node.op))
            if op is None:
                raise UnsupportedCodeError(f"Unsupported operator: {type(node.op).__name__}")
            return _check_size(op(self.evaluate(node.left), self.evaluate(node.right)))

        if isinstance(node, ast.UnaryOp):
            op = _UNARY_OPERATORS.get(type(node.op))
            if op is None:
                raise UnsupportedCodeError(f"Unsupported operator: {type(node.op).__name__}")
            return op(self.evaluate(node.operand))

        if isinstance(node, ast.Call):
            if not isinstance(node.func, ast.Name) or node.func.id not in _FUNCTIONS:
                raise UnsupportedCodeError("Only whitelisted math functions can be called")
            if node.keywords:
                raise UnsupportedCodeError("Keyword arguments are not supported")
            args = [self.evaluate(arg) for arg in node.args]
            return _check_size(_FUNCTIONS[node.func.id](*args))

        raise UnsupportedCodeError(f"Unsupported expression: {type(node).__name__}")


def evaluate_code(code: str) -> tuple[str, list[str]]:
    """
    Evaluate a snippet that already passed the safety gate.

    Returns:
        (result, printed_lines). ``result`` is the last expression's value,
        or the last printed line when the snippet ends with a print.

    Raises:
        SyntaxError, ValueError, TypeError, ArithmeticError on bad input
    """
    evaluator = _SafeEvaluator()
    value = evaluator.run(normalize_source(code))

    if value is not None:
        return format_number(value), evaluator.output
    if evaluator.output:
        return evaluator.output[-1], evaluator.output
    return "", evaluator.output


# ==============================================================================
# Tool: Code Execution
# ==============================================================================

async def _execute_code(params: dict) -> ToolResult:
    """
    Run a snippet behind the deny-list.

    Violations, syntax errors and unsupported constructs all come back as
    ``success=False``.
    """
    code = str(params.get("code") or "").strip()
    language = str(params.get("language") or "javascript").lower()

    if not code:
        return ToolResult(success=False, error="No code provided", data={"language": language})

    violations = scan_code(code)
    if violations:
        logger.warning("Code execution refused by safety gate", {"violations": violations})
        return ToolResult(
            success=False,
            error="Code contains unsafe operations; execution refused",
            violations=violations,
            data={"language": language, "code": code[:100]}
        )

    if language not in SUPPORTED_LANGUAGES:
        return ToolResult(
            success=False,
            error=f"Unsupported language: {language}",
            data={"language": language}
        )

    start = time.perf_counter()
    try:
        result, output = evaluate_code(code)
    except (SyntaxError, ValueError, TypeError, ArithmeticError) as e:
        return ToolResult(
            success=False,
            error=f"Code execution failed: {e}",
            data={"language": language, "code": code[:100]}
        )
    elapsed_ms = (time.perf_counter() - start) * 1000

    return ToolResult(success=True, data={
        "language": language,
        "code": code,
        "result": result,
        "output": output,
        "execution_time_ms": round(elapsed_ms, 3)
    })


def create_code_execution_tool() -> Tool:
    return Tool(
        name="code_execution",
        description="Safely evaluate a short arithmetic or math snippet and return its result",
        parameters={
            "type": "object",
            "properties": {
                "code": {"type": "string", "description": "The code or expression to evaluate"},
                "language": {
                    "type": "string",
                    "enum": list(SUPPORTED_LANGUAGES),
                    "description": "Source language of the snippet"
                }
            },
            "required": ["code"]
        },
        execute=_execute_code,
        category="computation"
    )


# ==============================================================================
# Tool: Code Analysis
# ==============================================================================

async def _analyze_code(params: dict) -> ToolResult:
    """Heuristic review: one issue costs two points off a score of 10."""
    code = str(params.get("code") or "")
    language = str(params.get("language") or "javascript").lower()

    if not code.strip():
        return ToolResult(success=False, error="No code provided")

    issues = []
    suggestions = []

    if "console.log" in code or re.search(r"^\s*print\(", code, re.MULTILINE):
        issues.append("Debug statements found; remove them before production")

    if len(code) > 1000:
        issues.append("Code is long; consider splitting it into smaller functions")

    if "//" not in code and "/*" not in code and "#" not in code:
        suggestions.append("Add comments to improve readability")

    if language == "javascript" and "use strict" not in code:
        suggestions.append("Consider enabling strict mode")

    lines = len(code.split("\n"))
    if lines > 50:
        complexity = "high"
    elif lines > 20:
        complexity = "medium"
    else:
        complexity = "low"

    return ToolResult(success=True, data={
        "language": language,
        "lines": lines,
        "issues": issues,
        "suggestions": suggestions,
        "complexity": complexity,
        "score": max(10 - len(issues) * 2, 1)
    })


def create_code_analysis_tool() -> Tool:
    return Tool(
        name="code_analysis",
        description="Review a code snippet for quality issues",
        parameters={
            "type": "object",
            "properties": {
                "code": {"type": "string", "description": "The code to review"},
                "language": {"type": "string", "description": "Source language"}
            },
            "required": ["code"]
        },
        execute=_analyze_code,
        category="analysis"
    )
