"""Guardrail checks for resource limits, image references, and autoscaling bounds."""

from __future__ import annotations

from decimal import Decimal

from platform_guardrails.config import GuardrailConfig, get_guardrails
from platform_guardrails.errors import ForbiddenTagError, GuardrailViolation, MissingFieldError, OrderingViolation
from platform_guardrails.models import AutoscalingSpec, ImageReference, ResourceQuantity

# Note 1: Case-sensitive, the same check as the chart's `contains "latest"`.
# It is a blunt substring match: "latestbuild" and "my-latest-app" fail too.
_FORBIDDEN_IMAGE_SUBSTRING = "latest"

_BASE_UNIT = {"cpu": "m", "memory": "Mi"}


def validate_guardrail(field: str, value: Decimal | int, minimum: int, maximum: int, unit: str = "") -> None:
    """Raise GuardrailViolation unless ``minimum <= value <= maximum``."""
    if value < minimum or value > maximum:
        raise GuardrailViolation(field, value, minimum, maximum, unit)


def validate_cpu_limit(
    quantity: ResourceQuantity, field: str = "resources.cpu", guardrails: GuardrailConfig | None = None
) -> None:
    """Validate a CPU limit against the platform millicore range (default 100m-4000m)."""
    guardrails = guardrails or get_guardrails()
    validate_guardrail(
        field,
        quantity.normalized,
        guardrails.cpu_min_millicores,
        guardrails.cpu_max_millicores,
        _BASE_UNIT["cpu"],
    )


def validate_memory_limit(
    quantity: ResourceQuantity, field: str = "resources.memory", guardrails: GuardrailConfig | None = None
) -> None:
    """Validate a memory limit against the platform mebibyte range (default 128Mi-8192Mi)."""
    guardrails = guardrails or get_guardrails()
    validate_guardrail(
        field,
        quantity.normalized,
        guardrails.memory_min_mi,
        guardrails.memory_max_mi,
        _BASE_UNIT["memory"],
    )


def validate_image(repository: str, tag: str) -> ImageReference:
    """Validate an image repository and tag, returning the reference.

    Emptiness is checked before the substring rule, repository before tag.
    """
    if not repository:
        raise MissingFieldError("image.repository")
    if not tag:
        raise MissingFieldError("image.tag")

    image = ImageReference(repository=repository, tag=tag)
    for field, text in (
        ("image.repository", image.repository),
        ("image.tag", image.tag),
        ("image", image.full_reference),
    ):
        if _FORBIDDEN_IMAGE_SUBSTRING in text:
            raise ForbiddenTagError(field, text)
    return image


def validate_autoscaling(spec: AutoscalingSpec, guardrails: GuardrailConfig | None = None) -> None:
    """Check replica bounds and ordering. Does nothing when autoscaling is disabled.

    First failure wins: minReplicas range, then maxReplicas range, then ordering.
    """
    if not spec.enabled:
        return
    guardrails = guardrails or get_guardrails()

    if spec.min_replicas is None:
        raise MissingFieldError("autoscaling.minReplicas")
    if spec.max_replicas is None:
        raise MissingFieldError("autoscaling.maxReplicas")

    validate_guardrail(
        "autoscaling.minReplicas", spec.min_replicas, guardrails.min_replicas_lower, guardrails.min_replicas_upper
    )
    validate_guardrail(
        "autoscaling.maxReplicas", spec.max_replicas, guardrails.max_replicas_lower, guardrails.max_replicas_upper
    )
    if spec.max_replicas <= spec.min_replicas:
        raise OrderingViolation(spec.min_replicas, spec.max_replicas)
