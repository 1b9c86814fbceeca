"""Tests for configuration loading helpers."""

import pytest

from prompt_lens import config_loader
from prompt_lens.config_loader import ConfigLoaderError


def test_load_generation_profiles_per_pipeline() -> None:
    generation = config_loader.load_generation()
    assert generation.evaluation.provider == "openai"
    assert generation.evaluation.temperature == 0.3
    assert generation.evaluation.max_output_tokens == 500
    assert generation.usecases_short.provider == "gemini"
    assert generation.usecases_short.temperature == 0.7
    assert generation.usecases_long.max_output_tokens == 1500


def test_for_usecases_selects_profile_by_format() -> None:
    generation = config_loader.load_generation()
    assert generation.for_usecases("long") is generation.usecases_long
    assert generation.for_usecases("short") is generation.usecases_short


def test_load_departments_contains_known_keys() -> None:
    departments = config_loader.load_departments()
    assert "human resources" in departments.departments
    assert "customer service" in departments.departments
    assert departments.departments["it"].startswith("IT departments")
    assert departments.fallback == (
        "This department focuses on core business operations and workflows."
    )


def test_missing_config_file_raises(tmp_path) -> None:
    with pytest.raises(ConfigLoaderError):
        config_loader.load_generation(tmp_path)


def test_invalid_generation_profile_raises(tmp_path) -> None:
    (tmp_path / "generation.yaml").write_text(
        "evaluation:\n  provider: carrier-pigeon\n  model: x\n"
        "  temperature: 0.3\n  max_output_tokens: 10\n",
        encoding="utf-8",
    )
    with pytest.raises(ConfigLoaderError):
        config_loader.load_generation(tmp_path)


def test_departments_keys_are_lowercased(tmp_path) -> None:
    (tmp_path / "departments.yaml").write_text(
        "fallback: generic\ndepartments:\n  Legal Affairs: Contracts and compliance.\n",
        encoding="utf-8",
    )
    departments = config_loader.load_departments(tmp_path)
    assert departments.departments == {"legal affairs": "Contracts and compliance."}
