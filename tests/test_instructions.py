from prompt_lens import config_loader
from prompt_lens.departments_registry import DepartmentsRegistry
from prompt_lens.pipeline.instructions import (
    RESPONSE_ONLY,
    build_evaluation_instruction,
    build_usecase_instruction,
)
from prompt_lens.pipeline.requests import EvaluationRequest, UseCaseRequest
from prompt_lens.pipeline.results import UseCaseFormat


def _departments() -> DepartmentsRegistry:
    return DepartmentsRegistry(config_loader.load_departments())


def test_evaluation_instruction_embeds_prompt_technique_and_schema() -> None:
    request = EvaluationRequest(prompt_text="Q: 2+2? A: 4\nQ: 3+3? A:", technique="few-shot")
    instruction = build_evaluation_instruction(request)

    assert 'Evaluate this prompt for the "few-shot" technique' in instruction
    assert "Q: 2+2? A: 4\nQ: 3+3? A:" in instruction
    assert "Contains multiple (2+) examples" in instruction
    assert '"rating": "X/10 with brief explanation"' in instruction
    assert instruction.endswith(RESPONSE_ONLY)


def test_instructions_are_deterministic() -> None:
    request = UseCaseRequest(department="Marketing", task="Low email open rates")
    first = build_usecase_instruction(request, _departments())
    second = build_usecase_instruction(request, _departments())
    assert first == second


def test_short_usecase_instruction_uses_department_context() -> None:
    request = UseCaseRequest(department="Digital Marketing", task="Low email open rates")
    instruction = build_usecase_instruction(request, _departments())

    assert "DEPARTMENT CONTEXT: Digital Marketing" in instruction
    assert "Marketing departments focus on customer acquisition" in instruction
    assert "SPECIFIC CHALLENGE: Low email open rates" in instruction
    assert '"prompt": "Action-oriented AI use case prompt for Digital Marketing"' in instruction
    assert "Return ONLY the JSON" in instruction


def test_unknown_department_gets_generic_context() -> None:
    request = UseCaseRequest(department="Legal", task="Contract review backlog")
    instruction = build_usecase_instruction(request, _departments())
    assert "This department focuses on core business operations and workflows." in instruction


def test_long_usecase_instruction_requests_full_schema() -> None:
    request = UseCaseRequest(department="Finance", task="Slow month-end close")
    instruction = build_usecase_instruction(request, _departments(), UseCaseFormat.LONG)
    for field in ('"title"', '"description"', '"benefits"', '"implementation"'):
        assert field in instruction
    assert '"prompt"' not in instruction
