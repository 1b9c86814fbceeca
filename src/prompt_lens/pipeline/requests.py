"""Stage 0: caller-facing request records (validated, trimmed, non-empty)."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Technique(str, Enum):
    ONE_SHOT = "one-shot"
    FEW_SHOT = "few-shot"
    CHAIN_OF_THOUGHT = "chain-of-thought"

    @property
    def label(self) -> str:
        return TECHNIQUE_LABELS[self]


TECHNIQUE_LABELS = {
    Technique.ONE_SHOT: "One-shot",
    Technique.FEW_SHOT: "Few-shot",
    Technique.CHAIN_OF_THOUGHT: "Chain-of-Thought",
}


def _require_text(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be empty")
    return value


class EvaluationRequest(BaseModel):
    """Prompt text plus the technique it is supposed to follow."""

    model_config = ConfigDict(frozen=True)

    prompt_text: str = Field(..., description="Prompt submitted for evaluation")
    technique: Technique

    @field_validator("prompt_text")
    @classmethod
    def _strip_prompt(cls, value: str) -> str:
        return _require_text(value)

    @field_validator("technique", mode="before")
    @classmethod
    def _normalize_technique(cls, value):
        # "Chain of Thought", " FEW-SHOT " etc.
        if isinstance(value, str):
            return "-".join(value.strip().lower().replace("_", " ").split())
        return value


class UseCaseRequest(BaseModel):
    """Department name and the task/challenge to find AI use cases for."""

    model_config = ConfigDict(frozen=True)

    department: str
    task: str

    @field_validator("department", "task")
    @classmethod
    def _strip_fields(cls, value: str) -> str:
        return _require_text(value)
