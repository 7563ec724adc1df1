"""
Agent Prompts
=============

Bilingual prompt templates and stage labels for the four agent stages.
Every user-visible string an agent produces comes from here, keyed by
language ("zh" or "en").
"""

import json
from typing import Any

# ==============================================================================
# Stage labels
# ==============================================================================

_LABELS: dict[str, dict[str, str]] = {
    "zh": {
        "observe_title": "观察分析",
        "observe_placeholder": "正在观察和分析用户请求...",
        "observe_error": "观察分析时遇到错误",
        "think_title": "深度思考",
        "think_placeholder": "正在进行深度思考和推理...",
        "think_error": "思考过程中遇到错误",
        "think_done": "深度思考完成",
        "act_title": "执行操作",
        "act_placeholder": "正在分析需要执行的操作...",
        "act_error": "执行操作时遇到错误：{error}",
        "act_unknown_tool": "指定的工具不可用：{tool}",
        "act_no_tool": "未找到适合的工具执行此操作",
        "act_found": "找到合适的工具: {tool}，正在准备执行...",
        "act_running": "正在执行{tool}...",
        "act_success": "使用{tool}成功完成操作",
        "act_tool_failed": "{tool}执行失败：{error}",
        "reflect_title": "反思总结",
        "reflect_placeholder": "正在反思整个处理过程...",
        "reflect_error": "反思过程中遇到错误",
        "memory_title": "记忆检索",
        "memory_found": "找到 {count} 条相关记忆",
        "decision_title": "决策分析",
        "collab_title": "多智能体协作",
        "collab_start": "启动多智能体协作：{names}",
        "collab_done": "{count} 个智能体完成协作",
        "timeout": "处理超时（{seconds} 秒）",
    },
    "en": {
        "observe_title": "Observation",
        "observe_placeholder": "Observing and analyzing user request...",
        "observe_error": "Error during observation",
        "think_title": "Deep Thinking",
        "think_placeholder": "Conducting deep thinking and reasoning...",
        "think_error": "Error during thinking",
        "think_done": "Deep thinking completed",
        "act_title": "Execute Action",
        "act_placeholder": "Analyzing action to execute...",
        "act_error": "Error during action execution: {error}",
        "act_unknown_tool": "Specified tool not available: {tool}",
        "act_no_tool": "No suitable tools found for this action",
        "act_found": "Found suitable tool: {tool}, preparing to execute...",
        "act_running": "Executing {tool}...",
        "act_success": "Successfully completed action using {tool}",
        "act_tool_failed": "{tool} reported a failure: {error}",
        "reflect_title": "Reflection",
        "reflect_placeholder": "Reflecting on the entire process...",
        "reflect_error": "Error during reflection",
        "memory_title": "Memory Retrieval",
        "memory_found": "Found {count} related memories",
        "decision_title": "Decision Analysis",
        "collab_title": "Multi-Agent Collaboration",
        "collab_start": "Starting multi-agent collaboration: {names}",
        "collab_done": "{count} agents completed collaboration",
        "timeout": "Run timed out after {seconds} seconds",
    },
}


def _lang(language: str) -> str:
    return "zh" if language.startswith("zh") else "en"


def label(language: str, key: str, **values: Any) -> str:
    """
    Localized label.

    Example:
        label("en", "act_running", tool="Code execution")
        # "Executing Code execution..."
    """
    text = _LABELS[_lang(language)][key]
    return text.format(**values) if values else text


# ==============================================================================
# Observe
# ==============================================================================

def observe_prompt(
    language: str,
    role: str,
    message: str,
    context: str | dict | None = None,
    memories: list[str] | None = None
) -> str:
    zh = _lang(language) == "zh"

    context_block = ""
    if context:
        rendered = context if isinstance(context, str) else json.dumps(context, ensure_ascii=False)
        context_block = f"上下文：{rendered}\n" if zh else f"Context: {rendered}\n"

    memory_block = ""
    if memories:
        lines = "\n".join(f"- {m}" for m in memories)
        memory_block = f"相关记忆：\n{lines}\n" if zh else f"Related memories:\n{lines}\n"

    if zh:
        return (
            f"作为{role}，请观察和分析以下用户请求：\n\n"
            f"用户请求：\"{message}\"\n"
            f"{context_block}{memory_block}\n"
            "请从专业角度分析：\n"
            "1. 用户的核心需求是什么？\n"
            "2. 这个问题涉及哪些关键方面？\n"
            "3. 需要哪些信息才能很好地回答？\n"
            "4. 可能存在哪些挑战或风险？\n\n"
            "请简洁但深入地分析。"
        )
    return (
        f"As a {role}, please observe and analyze the following user request:\n\n"
        f"User request: \"{message}\"\n"
        f"{context_block}{memory_block}\n"
        "Please analyze from a professional perspective:\n"
        "1. What is the user's core need?\n"
        "2. What key aspects does this problem involve?\n"
        "3. What information is needed to answer it well?\n"
        "4. What challenges or risks might exist?\n\n"
        "Please provide a concise but in-depth analysis."
    )


# ==============================================================================
# Think
# ==============================================================================

_THINK_SCHEMA = """{
  "reasoning_steps": [
    {"step": 1, "description": "...", "conclusion": "...", "confidence": 0.8}
  ],
  "alternatives": [
    {"option": "...", "pros": ["..."], "cons": ["..."], "feasibility": 0.7}
  ],
  "final_recommendation": "..."
}"""


def think_prompt(language: str, observation: str, message: str) -> str:
    if _lang(language) == "zh":
        return (
            "基于以下观察分析，请进行深度思考：\n\n"
            f"观察结果：{observation}\n\n"
            f"用户原始请求：{message}\n\n"
            "请提供结构化的思考过程：\n"
            "1. 逐步推理过程（每步包含描述、结论和置信度0-1）\n"
            "2. 至少2个解决方案（包含优缺点和可行性评分0-1）\n\n"
            "请只以JSON格式回复：\n"
            f"{_THINK_SCHEMA}"
        )
    return (
        "Based on the following observation, please think deeply:\n\n"
        f"Observation: {observation}\n\n"
        f"Original user request: {message}\n\n"
        "Please provide a structured thinking process:\n"
        "1. Step-by-step reasoning (each step with description, conclusion and confidence 0-1)\n"
        "2. At least 2 alternative solutions (with pros, cons and a feasibility score 0-1)\n\n"
        "Reply with JSON only:\n"
        f"{_THINK_SCHEMA}"
    )


# ==============================================================================
# Reflect
# ==============================================================================

def reflect_prompt(language: str, steps: list[tuple[str, str]], final_result: str) -> str:
    """
    Args:
        steps: (kind, content) of each earlier Thought, in order
        final_result: What the run produced so far
    """
    lines = "\n".join(
        f"{i + 1}. {kind}: {content[:100]}..." for i, (kind, content) in enumerate(steps)
    )
    if _lang(language) == "zh":
        return (
            "请反思以下处理过程并提供详细的分析：\n\n"
            f"处理步骤：\n{lines}\n\n"
            f"最终结果：{final_result}\n\n"
            "请详细分析：\n"
            "1. 处理过程是否合理有效？\n"
            "2. 各个步骤的执行情况如何？\n"
            "3. 是否有可以改进的地方？\n"
            "4. 对类似问题的建议？"
        )
    return (
        "Please reflect on the following process and provide a detailed analysis:\n\n"
        f"Processing steps:\n{lines}\n\n"
        f"Final result: {final_result}\n\n"
        "Please analyze in detail:\n"
        "1. Was the process reasonable and effective?\n"
        "2. How did each step perform?\n"
        "3. What could be improved?\n"
        "4. What would you suggest for similar problems?"
    )


def improvement_prompt(language: str) -> str:
    if _lang(language) == "zh":
        return "基于以上反思，请提供1-2条具体的改进建议："
    return "Based on the above reflection, please provide 1-2 specific improvement suggestions:"
