"""
Token Budgets
=============

Every provider call asks for a stage-specific (max_tokens, temperature)
pair. Observe and Act run cold for precision, Think runs a little warmer
for exploration, and the yes/no judgment call gets barely any tokens.

Stage defaults:

    stage     max_tokens  temperature
    observe   800         0.3
    think     1500        0.4
    act       300         0.2
    reflect   800         0.3
    improve   300         0.3
    judge     10          0.1
    decide    800         0.3

Each default is clamped to the model: never above ``max_tokens`` and never
above 80% of the context window.

The final answer is sized from the prompt instead:

    max(min(max_tokens, context_window - ceil(len(prompt) / 4) - 300, 4096), 200)

at ``min(model temperature, 0.3)``.
"""

import math

from agentloop.llm.client import StageBudget
from agentloop.utils.config import ModelConfig

STAGE_DEFAULTS: dict[str, StageBudget] = {
    "observe": StageBudget(max_tokens=800, temperature=0.3),
    "think": StageBudget(max_tokens=1500, temperature=0.4),
    "act": StageBudget(max_tokens=300, temperature=0.2),
    "reflect": StageBudget(max_tokens=800, temperature=0.3),
    "improve": StageBudget(max_tokens=300, temperature=0.3),
    "judge": StageBudget(max_tokens=10, temperature=0.1),
    "decide": StageBudget(max_tokens=800, temperature=0.3),
}

# Share of the context window a single stage may request
CONTEXT_SHARE = 0.8

# Final-answer sizing
ANSWER_RESERVED_TOKENS = 300
ANSWER_MAX_TOKENS = 4096
ANSWER_MIN_TOKENS = 200
ANSWER_MAX_TEMPERATURE = 0.3
CHARS_PER_TOKEN = 4


class TokenBudget:
    """
    Per-stage token budgets derived from one model configuration.

    Example:
        budget = TokenBudget(config.model)
        budget.for_stage("think")   # StageBudget(max_tokens=1500, temperature=0.4)
    """

    def __init__(self, model: ModelConfig):
        self.model = model

    @property
    def ceiling(self) -> int:
        """The most any single stage may request."""
        return max(1, min(self.model.max_tokens, math.floor(self.model.context_window * CONTEXT_SHARE)))

    def for_stage(self, stage: str) -> StageBudget:
        """
        Budget for a named stage.

        Raises:
            KeyError: For an unknown stage name
        """
        default = STAGE_DEFAULTS[stage]
        return StageBudget(
            max_tokens=max(1, min(default.max_tokens, self.ceiling)),
            temperature=default.temperature
        )

    def answer_budget(self, input_text: str) -> StageBudget:
        """Budget for the final answer given the full prompt text."""
        estimated_input = math.ceil(len(input_text) / CHARS_PER_TOKEN)
        max_tokens = max(
            min(
                self.model.max_tokens,
                self.model.context_window - estimated_input - ANSWER_RESERVED_TOKENS,
                ANSWER_MAX_TOKENS
            ),
            ANSWER_MIN_TOKENS
        )
        return StageBudget(
            max_tokens=max_tokens,
            temperature=min(self.model.temperature, ANSWER_MAX_TEMPERATURE)
        )
