"""High-level orchestration: instruction -> model call -> normalize -> enforce."""

from __future__ import annotations

import logging
from typing import Optional, TypedDict

import httpx

from ..config_loader import load_departments, load_generation
from ..config_types import GenerationConfig
from ..departments_registry import DepartmentsRegistry
from ..settings import RuntimeSettings, get_runtime_settings
from .contract import enforce_evaluation, enforce_usecases
from .instructions import build_evaluation_instruction, build_usecase_instruction
from .invoker import ModelInvoker, build_invoker
from .normalizer import normalize_evaluation, normalize_usecases
from .requests import EvaluationRequest, UseCaseRequest
from .results import EvaluationResult, UseCaseFormat, UseCaseResult

logger = logging.getLogger(__name__)


class ServiceContext(TypedDict):
    departments: DepartmentsRegistry
    generation: GenerationConfig
    usecase_format: UseCaseFormat
    evaluation_invoker: ModelInvoker
    usecase_invoker: ModelInvoker


def build_service_context(
    settings: Optional[RuntimeSettings] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ServiceContext:
    """Load configuration and construct invokers with injected credentials."""

    settings = settings or get_runtime_settings()
    generation = load_generation(settings.config_dir)
    departments = DepartmentsRegistry(load_departments(settings.config_dir))
    usecase_format = UseCaseFormat(settings.usecase_format)
    usecase_profile = generation.for_usecases(usecase_format.value)
    return ServiceContext(
        departments=departments,
        generation=generation,
        usecase_format=usecase_format,
        evaluation_invoker=build_invoker(
            generation.evaluation.provider, settings, transport=transport
        ),
        usecase_invoker=build_invoker(usecase_profile.provider, settings, transport=transport),
    )


async def evaluate_prompt(request: EvaluationRequest, context: ServiceContext) -> EvaluationResult:
    """Ask the model whether a prompt follows the selected technique.

    Raises ``ConfigurationError`` / ``UpstreamError`` only for provider problems;
    malformed model output degrades to best-effort or placeholder values.
    """
    logger.info(
        "evaluating prompt technique=%s length=%s",
        request.technique.value,
        len(request.prompt_text),
    )
    instruction = build_evaluation_instruction(request)
    raw = await context["evaluation_invoker"].complete(
        instruction, context["generation"].evaluation
    )
    outcome = normalize_evaluation(raw)
    result = enforce_evaluation(outcome.value)
    logger.info(
        "evaluation done stage=%s match=%s rating=%s",
        type(outcome).__name__,
        result.match,
        result.rating,
    )
    return result


async def generate_use_cases(request: UseCaseRequest, context: ServiceContext) -> UseCaseResult:
    """Ask the model for up to five AI use cases for a department task."""

    usecase_format = context["usecase_format"]
    logger.info(
        "generating use cases department=%s format=%s", request.department, usecase_format.value
    )
    instruction = build_usecase_instruction(request, context["departments"], usecase_format)
    raw = await context["usecase_invoker"].complete(
        instruction, context["generation"].for_usecases(usecase_format.value)
    )
    outcome = normalize_usecases(raw, usecase_format)
    result = enforce_usecases(outcome.value, usecase_format)
    logger.info(
        "use cases done stage=%s count=%s", type(outcome).__name__, len(result.usecases)
    )
    return result
