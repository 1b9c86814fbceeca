"""In-process history of evaluations and use-case generations, keyed by owner."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .pipeline.results import EvaluationResult, UseCaseIdea, UseCaseResult

USECASE_SEPARATOR = "\n\n---\n\n"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class EvaluationRecord(BaseModel):
    id: str = Field(default_factory=_new_id)
    owner_id: str
    title: str
    prompt_text: str
    selected_technique: str
    evaluation_match: str
    evaluation_reason: str
    evaluation_rating: str
    created_at: datetime = Field(default_factory=_now)


class UseCaseGenerationRecord(BaseModel):
    id: str = Field(default_factory=_new_id)
    owner_id: str
    title: str
    department: str
    task: str
    generated_usecases: str
    created_at: datetime = Field(default_factory=_now)


def format_usecases_text(result: UseCaseResult) -> str:
    """Flatten generated use cases into the stored text representation."""

    if all(isinstance(item, UseCaseIdea) for item in result.usecases):
        return USECASE_SEPARATOR.join(
            f"{index}. {item.title}\n\nDescription: {item.description}\n\n"
            f"Benefits: {item.benefits}\n\nImplementation: {item.implementation}"
            for index, item in enumerate(result.usecases, start=1)
        )
    return "\n".join(
        f"{index}. {item.prompt}" for index, item in enumerate(result.usecases, start=1)
    )


@dataclass
class InMemoryRecordStore:
    """Owner-scoped insert/select/delete; no search."""

    evaluations: Dict[str, EvaluationRecord] = field(default_factory=dict)
    usecases: Dict[str, UseCaseGenerationRecord] = field(default_factory=dict)

    def add_evaluation(
        self,
        owner_id: str,
        prompt_text: str,
        technique: str,
        result: EvaluationResult,
        title: Optional[str] = None,
    ) -> EvaluationRecord:
        record = EvaluationRecord(
            owner_id=owner_id,
            title=(title or "").strip() or f"{technique} Evaluation",
            prompt_text=prompt_text,
            selected_technique=technique,
            evaluation_match=result.match,
            evaluation_reason=result.reason,
            evaluation_rating=result.rating,
        )
        self.evaluations[record.id] = record
        return record

    def add_usecases(
        self,
        owner_id: str,
        department: str,
        task: str,
        result: UseCaseResult,
        title: Optional[str] = None,
    ) -> UseCaseGenerationRecord:
        record = UseCaseGenerationRecord(
            owner_id=owner_id,
            title=(title or "").strip() or f"{department} - AI Use Cases",
            department=department,
            task=task,
            generated_usecases=format_usecases_text(result),
        )
        self.usecases[record.id] = record
        return record

    def list_evaluations(self, owner_id: str) -> List[EvaluationRecord]:
        records = [r for r in self.evaluations.values() if r.owner_id == owner_id]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    def list_usecases(self, owner_id: str) -> List[UseCaseGenerationRecord]:
        records = [r for r in self.usecases.values() if r.owner_id == owner_id]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    def delete_evaluation(self, owner_id: str, record_id: str) -> bool:
        record = self.evaluations.get(record_id)
        if record is None or record.owner_id != owner_id:
            return False
        del self.evaluations[record_id]
        return True

    def delete_usecases(self, owner_id: str, record_id: str) -> bool:
        record = self.usecases.get(record_id)
        if record is None or record.owner_id != owner_id:
            return False
        del self.usecases[record_id]
        return True
