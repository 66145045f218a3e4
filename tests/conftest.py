"""Shared test fixtures for all test modules."""

# Note 1: conftest.py is loaded by pytest before any test in this directory runs;
# fixtures defined here are injected into tests by parameter name.
from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from platform_guardrails.config import GuardrailConfig

_GUARDRAIL_ENV_VARS = (
    "GUARDRAIL_CPU_MIN_MILLICORES",
    "GUARDRAIL_CPU_MAX_MILLICORES",
    "GUARDRAIL_MEMORY_MIN_MI",
    "GUARDRAIL_MEMORY_MAX_MI",
    "GUARDRAIL_MIN_REPLICAS_LOWER",
    "GUARDRAIL_MIN_REPLICAS_UPPER",
    "GUARDRAIL_MAX_REPLICAS_LOWER",
    "GUARDRAIL_MAX_REPLICAS_UPPER",
    "PLATFORM_GUARDRAILS_VALUES",
)


# Note 2: autouse=True applies this fixture to every test without it being named.
# Guardrail ranges read environment variables, so a developer shell that exports
# one of them must not change the ranges the tests assert against.
@pytest.fixture(autouse=True)
def _clean_guardrail_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _GUARDRAIL_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def guardrails() -> GuardrailConfig:
    """Default platform ranges (100m-4000m, 128Mi-8192Mi, 1-10 / 2-20 replicas)."""
    return GuardrailConfig()


def _make_values(**overrides: Any) -> dict[str, Any]:
    """Build a minimal valid values mapping; keyword overrides replace top-level sections."""
    values: dict[str, Any] = {
        "image": {"repository": "nginx", "tag": "1.25"},
        "container": {"port": 80},
        "healthChecks": {"path": "/"},
        "resources": {"cpu": "1000m", "memory": "2048Mi"},
        "autoscaling": {"enabled": False},
    }
    values.update(overrides)
    return values


@pytest.fixture
def nginx_values() -> dict[str, Any]:
    """The nginx end-to-end scenario: 1000m / 2048Mi, autoscaling disabled."""
    return _make_values()


@pytest.fixture
def make_values() -> Callable[..., dict[str, Any]]:
    """Factory for valid values mappings with top-level sections replaced."""
    return _make_values
