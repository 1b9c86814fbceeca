"""FastAPI server exposing prompt evaluation, use-case generation and history."""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException
from pydantic import ValidationError

from ..pipeline.invoker import ConfigurationError, UpstreamError
from ..pipeline.requests import EvaluationRequest, UseCaseRequest
from ..pipeline.service import build_service_context, evaluate_prompt, generate_use_cases
from ..records import EvaluationRecord, InMemoryRecordStore, UseCaseGenerationRecord
from ..settings import get_runtime_settings
from .schemas import (
    EvaluatePromptRequestModel,
    EvaluationResponseModel,
    GenerateUseCasesRequestModel,
    UpstreamErrorDetail,
    UseCaseResponseModel,
)

logger = logging.getLogger(__name__)
settings = get_runtime_settings()
logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
app = FastAPI(title="PromptLens API")


def get_context():
    if not hasattr(get_context, "_cache"):
        get_context._cache = build_service_context(settings)
    return get_context._cache


def get_store() -> InMemoryRecordStore:
    if not hasattr(get_store, "_cache"):
        get_store._cache = InMemoryRecordStore()
    return get_store._cache


def _provider_error(exc: Exception) -> HTTPException:
    if isinstance(exc, UpstreamError):
        logger.error("provider call failed status=%s: %s", exc.status, exc)
        detail = UpstreamErrorDetail(error=str(exc), status=exc.status, body=exc.body)
        return HTTPException(status_code=502, detail=detail.model_dump())
    logger.error("provider not configured: %s", exc)
    return HTTPException(status_code=500, detail=str(exc))


def _validation_error(exc: ValidationError) -> HTTPException:
    errors = exc.errors(include_url=False, include_context=False)
    return HTTPException(status_code=422, detail=errors)


@app.post("/api/prompts/evaluate", response_model=EvaluationResponseModel)
async def evaluate(
    payload: EvaluatePromptRequestModel,
    context=Depends(get_context),
    store: InMemoryRecordStore = Depends(get_store),
    owner_id: Optional[str] = Header(default=None, alias="X-Owner-Id"),
):
    try:
        request = EvaluationRequest(prompt_text=payload.prompt, technique=payload.technique)
    except ValidationError as exc:
        raise _validation_error(exc) from exc
    try:
        result = await evaluate_prompt(request, context)
    except (ConfigurationError, UpstreamError) as exc:
        raise _provider_error(exc) from exc

    record_id = None
    if owner_id and payload.save:
        record = store.add_evaluation(
            owner_id, request.prompt_text, request.technique.value, result, title=payload.title
        )
        record_id = record.id
    return EvaluationResponseModel(**result.model_dump(), record_id=record_id)


@app.post("/api/usecases/generate", response_model=UseCaseResponseModel)
async def generate(
    payload: GenerateUseCasesRequestModel,
    context=Depends(get_context),
    store: InMemoryRecordStore = Depends(get_store),
    owner_id: Optional[str] = Header(default=None, alias="X-Owner-Id"),
):
    try:
        request = UseCaseRequest(department=payload.department, task=payload.task)
    except ValidationError as exc:
        raise _validation_error(exc) from exc
    if settings.strict_departments and context["departments"].get(request.department) is None:
        raise HTTPException(
            status_code=422,
            detail=f"unknown department `{request.department}`; "
            f"expected one of {context['departments'].names}",
        )
    try:
        result = await generate_use_cases(request, context)
    except (ConfigurationError, UpstreamError) as exc:
        raise _provider_error(exc) from exc

    record_id = None
    if owner_id and payload.save:
        record = store.add_usecases(
            owner_id, request.department, request.task, result, title=payload.title
        )
        record_id = record.id
    return UseCaseResponseModel(usecases=result.usecases, record_id=record_id)


@app.get("/api/history/evaluations", response_model=List[EvaluationRecord])
async def list_evaluations(
    store: InMemoryRecordStore = Depends(get_store),
    owner_id: str = Header(..., alias="X-Owner-Id"),
):
    return store.list_evaluations(owner_id)


@app.delete("/api/history/evaluations/{record_id}", status_code=204)
async def delete_evaluation(
    record_id: str,
    store: InMemoryRecordStore = Depends(get_store),
    owner_id: str = Header(..., alias="X-Owner-Id"),
):
    if not store.delete_evaluation(owner_id, record_id):
        raise HTTPException(status_code=404, detail="evaluation not found")


@app.get("/api/history/usecases", response_model=List[UseCaseGenerationRecord])
async def list_usecases(
    store: InMemoryRecordStore = Depends(get_store),
    owner_id: str = Header(..., alias="X-Owner-Id"),
):
    return store.list_usecases(owner_id)


@app.delete("/api/history/usecases/{record_id}", status_code=204)
async def delete_usecases(
    record_id: str,
    store: InMemoryRecordStore = Depends(get_store),
    owner_id: str = Header(..., alias="X-Owner-Id"),
):
    if not store.delete_usecases(owner_id, record_id):
        raise HTTPException(status_code=404, detail="use-case generation not found")
