"""
Data Analysis Tool
==================

Numeric analysis over a flat list of numbers, computed with numpy.

Analysis types:
- basic_stats: count, sum, mean, median, variance, standard deviation,
  min, max, range (population statistics, rounded to 2 decimals)
- trend: least-squares line through the series (slope, intercept,
  direction, next-value projection)
"""

import numpy as np

from agentloop.tools import Tool, ToolResult
from agentloop.utils.logger import Logger

logger = Logger("DataTools")

ANALYSIS_TYPES = ("basic_stats", "trend")

# Slopes smaller than this count as flat
FLAT_SLOPE = 1e-9


def _coerce_numbers(raw) -> list[float] | None:
    """Accept a list of ints/floats; anything else is rejected."""
    if not isinstance(raw, (list, tuple)) or not raw:
        return None
    numbers = []
    for value in raw:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        numbers.append(float(value))
    return numbers


def basic_stats(values: np.ndarray) -> dict:
    minimum = float(values.min())
    maximum = float(values.max())
    return {
        "count": int(values.size),
        "sum": round(float(values.sum()), 2),
        "mean": round(float(values.mean()), 2),
        "median": round(float(np.median(values)), 2),
        "variance": round(float(values.var()), 2),
        "standard_deviation": round(float(values.std()), 2),
        "min": minimum,
        "max": maximum,
        "range": maximum - minimum,
    }


def trend(values: np.ndarray) -> dict:
    x = np.arange(values.size, dtype=float)
    slope, intercept = np.polyfit(x, values, 1)

    if abs(slope) < FLAT_SLOPE:
        direction = "flat"
    elif slope > 0:
        direction = "increasing"
    else:
        direction = "decreasing"

    return {
        "count": int(values.size),
        "slope": round(float(slope), 4),
        "intercept": round(float(intercept), 4),
        "direction": direction,
        "next_value": round(float(slope * values.size + intercept), 4),
    }


async def _analyze_data(params: dict) -> ToolResult:
    analysis_type = params.get("analysis_type") or params.get("analysisType") or "basic_stats"
    numbers = _coerce_numbers(params.get("data"))

    if numbers is None:
        return ToolResult(
            success=False,
            error="Data must be a non-empty list of numbers",
            data={"analysis_type": analysis_type}
        )

    if analysis_type not in ANALYSIS_TYPES:
        return ToolResult(
            success=False,
            error=f"Unsupported analysis type: {analysis_type}",
            data={"analysis_type": analysis_type}
        )

    values = np.asarray(numbers, dtype=float)

    if analysis_type == "trend":
        if values.size < 2:
            return ToolResult(
                success=False,
                error="Trend analysis needs at least two data points",
                data={"analysis_type": analysis_type}
            )
        results = trend(values)
    else:
        results = basic_stats(values)

    logger.debug(f"Analyzed {values.size} values", {"analysis_type": analysis_type})
    return ToolResult(success=True, data={
        "analysis_type": analysis_type,
        "results": results
    })


def create_data_analysis_tool() -> Tool:
    return Tool(
        name="data_analysis",
        description="Compute statistics or a linear trend over a list of numbers",
        parameters={
            "type": "object",
            "properties": {
                "data": {"type": "array", "items": {"type": "number"}},
                "analysis_type": {"type": "string", "enum": list(ANALYSIS_TYPES)}
            },
            "required": ["data"]
        },
        execute=_analyze_data,
        category="analysis"
    )
