"""Guardrail ranges, chart defaults, and values file loading."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from platform_guardrails.utils import deep_merge

# Autoscaling targets are platform constants; they are never read from values.
TARGET_CPU_UTILIZATION = 75
TARGET_MEMORY_UTILIZATION = 75

CHART_NAME = "generic-app"


@dataclass(frozen=True)
class GuardrailConfig:
    """Inclusive platform ranges with environment variable overrides."""

    cpu_min_millicores: int = field(default_factory=lambda: int(os.environ.get("GUARDRAIL_CPU_MIN_MILLICORES", "100")))
    cpu_max_millicores: int = field(
        default_factory=lambda: int(os.environ.get("GUARDRAIL_CPU_MAX_MILLICORES", "4000"))
    )
    memory_min_mi: int = field(default_factory=lambda: int(os.environ.get("GUARDRAIL_MEMORY_MIN_MI", "128")))
    memory_max_mi: int = field(default_factory=lambda: int(os.environ.get("GUARDRAIL_MEMORY_MAX_MI", "8192")))
    min_replicas_lower: int = field(default_factory=lambda: int(os.environ.get("GUARDRAIL_MIN_REPLICAS_LOWER", "1")))
    min_replicas_upper: int = field(default_factory=lambda: int(os.environ.get("GUARDRAIL_MIN_REPLICAS_UPPER", "10")))
    max_replicas_lower: int = field(default_factory=lambda: int(os.environ.get("GUARDRAIL_MAX_REPLICAS_LOWER", "2")))
    max_replicas_upper: int = field(default_factory=lambda: int(os.environ.get("GUARDRAIL_MAX_REPLICAS_UPPER", "20")))


def get_guardrails() -> GuardrailConfig:
    """Return guardrail configuration with environment variable overrides applied."""
    return GuardrailConfig()


# Mirrors the generic-app chart's values.yaml.
DEFAULT_VALUES: dict[str, Any] = {
    "app": {"name": ""},
    "image": {"repository": "", "tag": ""},
    "container": {"port": 80, "env": []},
    "healthChecks": {"path": "/"},
    "resources": {"cpu": "500m", "memory": "512Mi"},
    "autoscaling": {"enabled": False, "minReplicas": 2, "maxReplicas": 5},
    "ingress": {
        "enabled": False,
        "hosts": [{"host": "chart-example.local"}],
        "tls": {"enabled": False},
    },
}


def merge_with_defaults(values: dict[str, Any] | None) -> dict[str, Any]:
    """Coalesce user-supplied values over the chart defaults."""
    return deep_merge(DEFAULT_VALUES, values or {})


def load_values_file(path: Path) -> dict[str, Any]:
    """Parse a YAML values file into a mapping of user overrides.

    Args:
        path: Path to the YAML values file.

    Returns:
        The parsed mapping; an empty file yields an empty dict.

    Raises:
        FileNotFoundError: If the values file does not exist.
        ValueError: If the document is not a mapping.
    """
    if not path.exists():
        msg = f"Values file not found: {path}. Set PLATFORM_GUARDRAILS_VALUES to point to your values file."
        raise FileNotFoundError(msg)
    return parse_values(path.read_text(), source=str(path))


def parse_values(text: str, source: str = "<values>") -> dict[str, Any]:
    """Parse YAML values text. Raises ValueError for malformed or non-mapping documents."""
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        msg = f"Values in {source} are not valid YAML: {e}"
        raise ValueError(msg) from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        msg = f"Values in {source} must be a mapping, got {type(raw).__name__}."
        raise ValueError(msg)
    return raw


def load_default_values_file() -> dict[str, Any]:
    """Load the values file named by ``PLATFORM_GUARDRAILS_VALUES`` (default ``values.yaml``)."""
    path = Path(os.environ.get("PLATFORM_GUARDRAILS_VALUES", "values.yaml"))
    return load_values_file(path)
