"""Typed schemas for configuration files (generation profiles, departments)."""

from __future__ import annotations

from typing import Dict, Literal

from pydantic import BaseModel, Field


class GenerationProfile(BaseModel):
    """Provider, model and fixed sampling parameters for one pipeline."""

    provider: Literal["openai", "gemini"]
    model: str
    temperature: float = Field(..., ge=0.0, le=2.0)
    max_output_tokens: int = Field(..., gt=0)


class GenerationConfig(BaseModel):
    evaluation: GenerationProfile
    usecases_short: GenerationProfile
    usecases_long: GenerationProfile

    def for_usecases(self, usecase_format: str) -> GenerationProfile:
        if usecase_format == "long":
            return self.usecases_long
        return self.usecases_short


class DepartmentsConfig(BaseModel):
    """Department name (lower-cased) to descriptive domain context."""

    fallback: str
    departments: Dict[str, str] = Field(default_factory=dict)
