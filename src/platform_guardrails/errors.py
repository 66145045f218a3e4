"""Typed guardrail failures raised while validating chart values."""

from __future__ import annotations

from decimal import Decimal

# Note 1: Every failure is a ValueError carrying the dotted values path in
# `field`, plus class-specific attributes (value, bounds, replicas).
# str(error) is the message shown to the end user.


class GuardrailError(ValueError):
    """Base class for every validation failure. Carries the dotted values path."""

    kind = "guardrail_error"

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


class ParseError(GuardrailError):
    """A quantity string (or any typed value) could not be parsed."""

    kind = "parse_error"

    def __init__(self, field: str, value: object, reason: str) -> None:
        msg = f"Invalid {field}: {value!r}. {reason}"
        super().__init__(field, msg)
        self.value = value
        self.reason = reason


class MissingFieldError(GuardrailError):
    """A required value is missing or empty."""

    kind = "missing_field"

    def __init__(self, field: str) -> None:
        msg = f"Error: {field} is required and cannot be empty."
        super().__init__(field, msg)


class ForbiddenTagError(GuardrailError):
    """The image reference contains the literal substring 'latest'."""

    kind = "forbidden_tag"

    def __init__(self, field: str, reference: str) -> None:
        msg = (
            "Error: 'latest' is not allowed in image names or tags. "
            f"Please specify a specific version tag (got {reference!r} in {field})."
        )
        super().__init__(field, msg)
        self.reference = reference


# Human-readable labels used by the chart's failure messages.
_LABELS = {
    "resources.cpu": "CPU limit",
    "resources.memory": "Memory limit",
    "autoscaling.minReplicas": "autoscaling.minReplicas",
    "autoscaling.maxReplicas": "autoscaling.maxReplicas",
}


class GuardrailViolation(GuardrailError):
    """A numeric value falls outside its inclusive platform range."""

    kind = "guardrail_violation"

    def __init__(
        self,
        field: str,
        value: Decimal | int,
        minimum: int,
        maximum: int,
        unit: str = "",
    ) -> None:
        label = _LABELS.get(field, field)
        msg = (
            f"Error: {label} {_fmt(value)}{unit} is outside the allowed range "
            f"{minimum}{unit} - {maximum}{unit}."
        )
        super().__init__(field, msg)
        self.value = value
        self.minimum = minimum
        self.maximum = maximum
        self.unit = unit


class OrderingViolation(GuardrailError):
    """maxReplicas is not strictly greater than minReplicas."""

    kind = "ordering_violation"

    def __init__(self, min_replicas: int, max_replicas: int) -> None:
        msg = (
            f"Error: autoscaling.maxReplicas ({max_replicas}) must be greater than "
            f"autoscaling.minReplicas ({min_replicas})."
        )
        super().__init__("autoscaling.maxReplicas", msg)
        self.min_replicas = min_replicas
        self.max_replicas = max_replicas


def _fmt(value: Decimal | int) -> str:
    if isinstance(value, Decimal):
        # normalize() would print 1000 as 1E+3
        return format(value.normalize(), "f")
    return str(value)
