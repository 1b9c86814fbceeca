import pytest
from pydantic import ValidationError

from prompt_lens.pipeline.requests import EvaluationRequest, Technique, UseCaseRequest


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("one-shot", Technique.ONE_SHOT),
        (" Few-Shot ", Technique.FEW_SHOT),
        ("Chain of Thought", Technique.CHAIN_OF_THOUGHT),
        ("chain_of_thought", Technique.CHAIN_OF_THOUGHT),
    ],
)
def test_technique_is_accepted_case_insensitively(raw, expected) -> None:
    assert EvaluationRequest(prompt_text="p", technique=raw).technique is expected


def test_prompt_is_trimmed_and_required() -> None:
    assert EvaluationRequest(prompt_text="  hello  ", technique="one-shot").prompt_text == "hello"
    with pytest.raises(ValidationError):
        EvaluationRequest(prompt_text="   ", technique="one-shot")
    with pytest.raises(ValidationError):
        EvaluationRequest(prompt_text="hello", technique="zero-shot")


def test_usecase_request_requires_both_fields() -> None:
    request = UseCaseRequest(department=" Finance ", task=" Close books faster ")
    assert request.department == "Finance"
    assert request.task == "Close books faster"
    with pytest.raises(ValidationError):
        UseCaseRequest(department="", task="x")
    with pytest.raises(ValidationError):
        UseCaseRequest(department="Finance", task="\n")
