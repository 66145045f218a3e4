"""Pydantic v2 models for chart values, normalized quantities, and the assembled config."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from platform_guardrails.config import CHART_NAME, TARGET_CPU_UTILIZATION, TARGET_MEMORY_UTILIZATION

# Note 1: Units are closed sets, so `Literal` is used instead of an Enum. Pydantic
# rejects any other string, and the values serialize as plain JSON strings.
QuantityUnit = Literal["millicpu", "core", "Mi", "Gi"]
ResourceClass = Literal["cpu", "memory"]

_UNIT_CLASS: dict[str, str] = {"millicpu": "cpu", "core": "cpu", "Mi": "memory", "Gi": "memory"}

# Multiplier from the written unit to the class's base unit (millicores / mebibytes).
_TO_BASE: dict[str, int] = {"millicpu": 1, "core": 1000, "Mi": 1, "Gi": 1024}


def format_decimal(value: Decimal) -> str:
    """Render a Decimal without exponent or trailing zeros (``Decimal("0.250")`` -> ``"0.25"``)."""
    return format(value.normalize(), "f")


# --- Quantities ---


class ResourceQuantity(BaseModel):
    """A CPU or memory amount as written, plus its normalized magnitude."""

    model_config = ConfigDict(frozen=True)

    magnitude: Decimal
    unit: QuantityUnit
    resource_class: ResourceClass

    @model_validator(mode="after")
    def _check_invariants(self) -> ResourceQuantity:
        if self.magnitude < 0:
            msg = f"Quantity magnitude must be non-negative, got {self.magnitude}"
            raise ValueError(msg)
        if _UNIT_CLASS[self.unit] != self.resource_class:
            msg = f"Unit {self.unit!r} does not belong to resource class {self.resource_class!r}"
            raise ValueError(msg)
        return self

    @property
    def normalized(self) -> Decimal:
        """Magnitude in millicores (cpu) or mebibytes (memory)."""
        return self.magnitude * _TO_BASE[self.unit]

    def render(self) -> str:
        """Render the quantity in the unit convention it was written in."""
        if self.unit == "millicpu":
            return f"{format_decimal(self.magnitude)}m"
        if self.unit == "core":
            return format_decimal(self.magnitude)
        return f"{format_decimal(self.magnitude)}{self.unit}"

    def __str__(self) -> str:
        return self.render()


class ResourceLimits(BaseModel):
    """User-supplied limits, already parsed and range-checked."""

    model_config = ConfigDict(frozen=True)

    cpu: ResourceQuantity
    memory: ResourceQuantity


class ResourceRequests(BaseModel):
    """Requests derived at 50% of the limits; never user-supplied."""

    model_config = ConfigDict(frozen=True)

    cpu: ResourceQuantity
    memory: ResourceQuantity


# --- Image / autoscaling ---


class ImageReference(BaseModel):
    """A validated container image reference."""

    model_config = ConfigDict(frozen=True)

    repository: str = Field(min_length=1)
    tag: str = Field(min_length=1)

    @property
    def full_reference(self) -> str:
        return f"{self.repository}:{self.tag}"


class AutoscalingSpec(BaseModel):
    """HPA settings. Bounds are only meaningful when ``enabled`` is true."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    min_replicas: int | None = None
    max_replicas: int | None = None
    target_cpu_utilization: Literal[75] = TARGET_CPU_UTILIZATION
    target_memory_utilization: Literal[75] = TARGET_MEMORY_UTILIZATION


# --- Probes / service / ingress ---


class ProbeSpec(BaseModel):
    """An HTTP probe on the named container port ``http``."""

    model_config = ConfigDict(frozen=True)

    path: str
    port: Literal["http"] = "http"
    initial_delay_seconds: int
    period_seconds: int
    timeout_seconds: int
    failure_threshold: int


class HealthChecks(BaseModel):
    """Liveness and readiness probes; both are always present."""

    model_config = ConfigDict(frozen=True)

    path: str
    liveness: ProbeSpec
    readiness: ProbeSpec

    @classmethod
    def for_path(cls, path: str) -> HealthChecks:
        return cls(
            path=path,
            liveness=ProbeSpec(
                path=path, initial_delay_seconds=30, period_seconds=10, timeout_seconds=5, failure_threshold=3
            ),
            readiness=ProbeSpec(
                path=path, initial_delay_seconds=5, period_seconds=5, timeout_seconds=3, failure_threshold=3
            ),
        )


class ServiceSpec(BaseModel):
    """The always-created Service; its port tracks ``container.port``."""

    model_config = ConfigDict(frozen=True)

    port: int
    target_port: Literal["http"] = "http"
    protocol: Literal["TCP"] = "TCP"


class IngressSpec(BaseModel):
    """Ingress settings with the platform-managed class, path, and issuer."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    hosts: list[str] = Field(default_factory=list)
    class_name: Literal["nginx"] = "nginx"
    path: Literal["/"] = "/"
    path_type: Literal["Prefix"] = "Prefix"
    backend_port: int
    tls_enabled: bool = False
    tls_secret_name: str | None = None
    cluster_issuer: str | None = None


# --- Raw chart values (input) ---


class _Values(BaseModel):
    # Chart keys are camelCase; unknown keys are ignored like Helm does.
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class AppValues(_Values):
    name: str = ""


class ImageValues(_Values):
    repository: str = ""
    tag: str = ""

    @field_validator("repository", "tag", mode="before")
    @classmethod
    def _scalar_to_str(cls, value: Any) -> Any:
        # `tag: 1.25` arrives from YAML as a float.
        if value is None:
            return ""
        if isinstance(value, int | float) and not isinstance(value, bool):
            return str(value)
        return value


class ContainerValues(_Values):
    port: int = 80
    env: list[dict[str, Any]] = Field(default_factory=list)


class HealthCheckValues(_Values):
    path: str = "/"


class ResourceValues(_Values):
    cpu: str = "500m"
    memory: str = "512Mi"

    @field_validator("cpu", "memory", mode="before")
    @classmethod
    def _quantity_to_str(cls, value: Any) -> Any:
        # `cpu: 2` and `cpu: 0.5` are valid YAML scalars for whole/fractional cores.
        if isinstance(value, int | float) and not isinstance(value, bool):
            return str(value)
        return value


class AutoscalingValues(_Values):
    enabled: bool = False
    min_replicas: int | None = Field(default=None, alias="minReplicas")
    max_replicas: int | None = Field(default=None, alias="maxReplicas")


class IngressHostValues(_Values):
    host: str


class IngressTlsValues(_Values):
    enabled: bool = False


class IngressValues(_Values):
    enabled: bool = False
    hosts: list[IngressHostValues] = Field(default_factory=list)
    tls: IngressTlsValues = Field(default_factory=IngressTlsValues)


class DeploymentValues(_Values):
    """The user-facing values of the generic-app chart, merged with defaults."""

    app: AppValues = Field(default_factory=AppValues)
    image: ImageValues = Field(default_factory=ImageValues)
    container: ContainerValues = Field(default_factory=ContainerValues)
    health_checks: HealthCheckValues = Field(default_factory=HealthCheckValues, alias="healthChecks")
    resources: ResourceValues = Field(default_factory=ResourceValues)
    autoscaling: AutoscalingValues = Field(default_factory=AutoscalingValues)
    ingress: IngressValues = Field(default_factory=IngressValues)


# --- Assembled output ---


class DeploymentConfig(BaseModel):
    """A fully validated, render-ready configuration for one release."""

    model_config = ConfigDict(frozen=True)

    release_name: str
    name: str
    fullname: str
    image: ImageReference
    limits: ResourceLimits
    requests: ResourceRequests
    autoscaling: AutoscalingSpec
    container_port: int
    health_checks: HealthChecks
    env: list[dict[str, Any]] = Field(default_factory=list)
    service: ServiceSpec
    ingress: IngressSpec

    def to_values(self) -> dict[str, Any]:
        """Return chart-shaped values with the derived fields filled in.

        Limits are echoed as written, so the result validates back to an
        equal config.
        """
        autoscaling: dict[str, Any] = {
            "enabled": self.autoscaling.enabled,
            "targetCPUUtilization": self.autoscaling.target_cpu_utilization,
            "targetMemoryUtilization": self.autoscaling.target_memory_utilization,
        }
        if self.autoscaling.min_replicas is not None:
            autoscaling["minReplicas"] = self.autoscaling.min_replicas
        if self.autoscaling.max_replicas is not None:
            autoscaling["maxReplicas"] = self.autoscaling.max_replicas

        return {
            "app": {"name": self.name if self.name != CHART_NAME else ""},
            "image": {"repository": self.image.repository, "tag": self.image.tag},
            "container": {"port": self.container_port, "env": [dict(e) for e in self.env]},
            "healthChecks": {"path": self.health_checks.path},
            "resources": {
                "cpu": self.limits.cpu.render(),
                "memory": self.limits.memory.render(),
                "requests": {
                    "cpu": self.requests.cpu.render(),
                    "memory": self.requests.memory.render(),
                },
            },
            "autoscaling": autoscaling,
            "ingress": {
                "enabled": self.ingress.enabled,
                "hosts": [{"host": h} for h in self.ingress.hosts],
                "tls": {"enabled": self.ingress.tls_enabled},
            },
        }
