"""API request/response schemas (FastAPI/Pydantic)."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from ..pipeline.results import UseCaseItem


class EvaluatePromptRequestModel(BaseModel):
    prompt: str
    technique: str = Field(..., description="one-shot, few-shot or chain-of-thought")
    title: Optional[str] = None
    save: bool = Field(
        default=True,
        description="Store the result in history when an owner header is present.",
    )


class EvaluationResponseModel(BaseModel):
    match: str
    reason: str
    rating: str
    record_id: Optional[str] = None


class GenerateUseCasesRequestModel(BaseModel):
    department: str
    task: str
    title: Optional[str] = None
    save: bool = True


class UseCaseResponseModel(BaseModel):
    usecases: List[UseCaseItem]
    record_id: Optional[str] = None


class UpstreamErrorDetail(BaseModel):
    error: str
    status: Optional[int] = None
    body: str = ""
