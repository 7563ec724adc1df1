"""
Structured Thinking
===================

Decoding of the Think stage answer.

The Think prompt asks for strict JSON:

    {
      "reasoning_steps": [{"step", "description", "conclusion", "confidence"}],
      "alternatives": [{"option", "pros", "cons", "feasibility"}],
      "final_recommendation": "..."
    }

Models often miss. ``decode_thinking`` returns a ``StructuredThinking``
when the answer validates against the schema and a ``RawThinking``
carrying the whole text otherwise. Neither case is an error.
"""

from dataclasses import dataclass, field

from pydantic import BaseModel, Field, ValidationError

from agentloop.agent.models import Alternative, ReasoningStep
from agentloop.decision.engine import extract_json_object
from agentloop.utils.logger import Logger

logger = Logger("Thinking")


# ==============================================================================
# Schema
# ==============================================================================

class ReasoningStepSchema(BaseModel):
    step: int
    description: str
    conclusion: str = ""
    confidence: float = Field(ge=0, le=1)


class AlternativeSchema(BaseModel):
    option: str
    pros: list[str] = Field(default_factory=list)
    cons: list[str] = Field(default_factory=list)
    feasibility: float = Field(ge=0, le=1)


class ThinkingPayload(BaseModel):
    reasoning_steps: list[ReasoningStepSchema] = Field(min_length=1)
    alternatives: list[AlternativeSchema] = Field(min_length=2)
    final_recommendation: str = ""


# ==============================================================================
# Decoded forms
# ==============================================================================

@dataclass
class StructuredThinking:
    reasoning_steps: list[ReasoningStep] = field(default_factory=list)
    alternatives: list[Alternative] = field(default_factory=list)
    final_recommendation: str = ""


@dataclass
class RawThinking:
    text: str


ThinkingResult = StructuredThinking | RawThinking


def decode_thinking(text: str) -> ThinkingResult:
    """
    Decode a Think stage answer.

    Args:
        text: The complete model answer, possibly fenced or wrapped in prose

    Returns:
        StructuredThinking if the embedded JSON object satisfies the
        schema, RawThinking(text) otherwise
    """
    parsed = extract_json_object(text)
    if not parsed:
        logger.debug("Thinking answer has no JSON object, keeping raw text")
        return RawThinking(text)

    try:
        payload = ThinkingPayload.model_validate(parsed)
    except ValidationError as e:
        logger.debug("Thinking answer failed validation", {"errors": e.error_count()})
        return RawThinking(text)

    return StructuredThinking(
        reasoning_steps=[
            ReasoningStep(
                step=step.step,
                description=step.description,
                conclusion=step.conclusion,
                confidence=step.confidence
            )
            for step in payload.reasoning_steps
        ],
        alternatives=[
            Alternative(
                option=alt.option,
                pros=list(alt.pros),
                cons=list(alt.cons),
                feasibility=alt.feasibility
            )
            for alt in payload.alternatives
        ],
        final_recommendation=payload.final_recommendation
    )
