"""Assemble a validated DeploymentConfig from raw chart values."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from platform_guardrails.config import CHART_NAME, GuardrailConfig, get_guardrails, merge_with_defaults
from platform_guardrails.errors import GuardrailError, MissingFieldError, ParseError
from platform_guardrails.models import (
    AppValues,
    AutoscalingSpec,
    AutoscalingValues,
    ContainerValues,
    DeploymentConfig,
    DeploymentValues,
    HealthChecks,
    HealthCheckValues,
    ImageValues,
    IngressSpec,
    IngressValues,
    ResourceLimits,
    ResourceValues,
    ServiceSpec,
)
from platform_guardrails.quantity import calculate_requests, parse_cpu, parse_memory
from platform_guardrails.validation import (
    validate_autoscaling,
    validate_cpu_limit,
    validate_image,
    validate_memory_limit,
)

log = structlog.get_logger()

CLUSTER_ISSUER = "letsencrypt-prod"

_V = TypeVar("_V", bound=BaseModel)

# Kubernetes object names are DNS labels.
_MAX_NAME_LENGTH = 63


def fullname(release_name: str, app_name: str = "") -> str:
    """Derive the release's object name the way Helm charts conventionally do.

    The release name is used as-is when it already contains the app name,
    otherwise ``<release>-<name>``; truncated to 63 characters.
    """
    name = app_name or CHART_NAME
    full = release_name if name in release_name else f"{release_name}-{name}"
    return full[:_MAX_NAME_LENGTH].removesuffix("-")


def _values_error(error: ValidationError, prefix: str = "") -> GuardrailError:
    first = error.errors()[0]
    parts = [prefix] if prefix else []
    field = ".".join(parts + [str(part) for part in first["loc"]])
    if first["type"] == "missing":
        return MissingFieldError(field)
    return ParseError(field, first.get("input"), first["msg"])


def _coerce(model: type[_V], raw: Any, field: str) -> _V:
    """Parse one values section, reporting the first bad key by its dotted path."""
    try:
        return model.model_validate({} if raw is None else raw)
    except ValidationError as e:
        raise _values_error(e, field) from None


def load_deployment_values(raw: Mapping[str, Any] | None) -> DeploymentValues:
    """Merge raw values over the chart defaults and parse them into DeploymentValues.

    Every section is parsed, including autoscaling bounds while autoscaling is
    disabled; validate() only reads what each check needs.

    Raises:
        MissingFieldError: For a required key that is absent, e.g. ``ingress.hosts.0.host``.
        ParseError: For the first value of the wrong type, named by its dotted values path.
    """
    merged = merge_with_defaults(dict(raw or {}))
    try:
        return DeploymentValues.model_validate(merged)
    except ValidationError as e:
        raise _values_error(e) from None


def validate(
    values: DeploymentValues | Mapping[str, Any] | None,
    release_name: str = "release",
    guardrails: GuardrailConfig | None = None,
) -> DeploymentConfig:
    """Validate chart values and return the normalized config.

    Accepts either parsed DeploymentValues or a raw values mapping (merged over
    the chart defaults). Fails fast: the first GuardrailError propagates and no
    config is produced.
    """
    try:
        if isinstance(values, DeploymentValues):
            config = validate_deployment_values(values, release_name, guardrails)
        else:
            config = _assemble(merge_with_defaults(dict(values or {})), release_name, guardrails)
    except GuardrailError as e:
        log.warning("deployment_config_rejected", release=release_name, kind=e.kind, field=e.field, error=str(e))
        raise

    log.info(
        "deployment_config_validated",
        release=release_name,
        image=config.image.full_reference,
        cpu_request=config.requests.cpu.render(),
        memory_request=config.requests.memory.render(),
        autoscaling=config.autoscaling.enabled,
    )
    return config


def validate_deployment_values(
    values: DeploymentValues,
    release_name: str = "release",
    guardrails: GuardrailConfig | None = None,
) -> DeploymentConfig:
    """Run the guardrail pipeline over parsed values.

    Order: CPU limit, memory limit, image reference, autoscaling bounds.
    """
    return _assemble(values.model_dump(by_alias=True), release_name, guardrails)


def _assemble(
    values: Mapping[str, Any],
    release_name: str,
    guardrails: GuardrailConfig | None,
) -> DeploymentConfig:
    # Note 1: Each section is parsed only when its check runs, so a bad key
    # further down never hides an earlier guardrail failure.
    if not release_name:
        raise MissingFieldError("release_name")
    guardrails = guardrails or get_guardrails()

    resources = _coerce(ResourceValues, values.get("resources"), "resources")
    cpu = parse_cpu(resources.cpu)
    validate_cpu_limit(cpu, guardrails=guardrails)

    memory = parse_memory(resources.memory)
    validate_memory_limit(memory, guardrails=guardrails)

    image_values = _coerce(ImageValues, values.get("image"), "image")
    image = validate_image(image_values.repository, image_values.tag)

    autoscaling = _autoscaling_spec(values.get("autoscaling"))
    validate_autoscaling(autoscaling, guardrails)

    app = _coerce(AppValues, values.get("app"), "app")
    container = _coerce(ContainerValues, values.get("container"), "container")
    health = _coerce(HealthCheckValues, values.get("healthChecks"), "healthChecks")
    ingress = _coerce(IngressValues, values.get("ingress"), "ingress")

    limits = ResourceLimits(cpu=cpu, memory=memory)
    full = fullname(release_name, app.name)
    port = container.port
    tls_enabled = ingress.enabled and ingress.tls.enabled

    return DeploymentConfig(
        release_name=release_name,
        name=app.name or CHART_NAME,
        fullname=full,
        image=image,
        limits=limits,
        requests=calculate_requests(limits),
        autoscaling=autoscaling,
        container_port=port,
        health_checks=HealthChecks.for_path(health.path),
        env=list(container.env),
        service=ServiceSpec(port=port),
        ingress=IngressSpec(
            enabled=ingress.enabled,
            hosts=[h.host for h in ingress.hosts],
            backend_port=port,
            tls_enabled=tls_enabled,
            tls_secret_name=f"{full}-tls" if tls_enabled else None,
            cluster_issuer=CLUSTER_ISSUER if tls_enabled else None,
        ),
    )


def _autoscaling_spec(raw: Any) -> AutoscalingSpec:
    """Read the autoscaling section; replica bounds are only read when enabled."""
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ParseError("autoscaling", raw, "Must be a mapping.")
    toggle = _coerce(AutoscalingValues, {"enabled": raw.get("enabled", False)}, "autoscaling")
    if not toggle.enabled:
        return AutoscalingSpec(enabled=False)
    scaling = _coerce(AutoscalingValues, raw, "autoscaling")
    return AutoscalingSpec(enabled=True, min_replicas=scaling.min_replicas, max_replicas=scaling.max_replicas)
