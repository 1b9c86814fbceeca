"""Result records handed back to callers once the output contract holds."""

from __future__ import annotations

from enum import Enum
from typing import List, Union

from pydantic import BaseModel, Field

MAX_USECASES = 5


class UseCaseFormat(str, Enum):
    SHORT = "short"
    LONG = "long"


class EvaluationResult(BaseModel):
    match: str
    reason: str
    rating: str


class UseCasePrompt(BaseModel):
    """Short form: one action statement per use case."""

    prompt: str


class UseCaseIdea(BaseModel):
    """Long form: titled idea with supporting detail."""

    title: str
    description: str
    benefits: str
    implementation: str


UseCaseItem = Union[UseCasePrompt, UseCaseIdea]


class UseCaseResult(BaseModel):
    usecases: List[UseCaseItem] = Field(..., min_length=1, max_length=MAX_USECASES)
