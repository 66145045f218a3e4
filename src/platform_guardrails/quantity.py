"""Resource quantity parsing and request derivation for CPU and memory limits."""

from __future__ import annotations

import math
import re
from decimal import Decimal

from platform_guardrails.errors import ParseError
from platform_guardrails.models import ResourceLimits, ResourceQuantity, ResourceRequests

# Note 1: Kubernetes CPU values come in two forms:
#   "500m" is 500 millicores, i.e. half a core.
#   "2" or "0.5" is a (possibly fractional) number of whole cores.
# Both are normalized to millicores for comparison; the written form is kept
# so the derived request can be rendered the same way.
_MILLICPU_RE = re.compile(r"(\d+)m", re.ASCII)
_CORES_RE = re.compile(r"\d+(\.\d+)?|\.\d+", re.ASCII)

# Note 2: The platform only accepts binary Mi and Gi suffixes for memory, and
# only with an integer prefix. "512M", "1.5Gi" or a bare byte count are rejected.
_MEMORY_RE = re.compile(r"(\d+)(Mi|Gi)", re.ASCII)


def parse_cpu(value: str, field: str = "resources.cpu") -> ResourceQuantity:
    """Parse a CPU limit into a quantity normalized to millicores.

    Raises:
        ParseError: If the value is neither ``<int>m`` nor a decimal core count.
    """
    text = str(value)
    match = _MILLICPU_RE.fullmatch(text)
    if match:
        return ResourceQuantity(magnitude=Decimal(match.group(1)), unit="millicpu", resource_class="cpu")
    if _CORES_RE.fullmatch(text):
        return ResourceQuantity(magnitude=Decimal(text), unit="core", resource_class="cpu")
    raise ParseError(field, value, "CPU must be millicores like '500m' or cores like '0.5'.")


def parse_memory(value: str, field: str = "resources.memory") -> ResourceQuantity:
    """Parse a memory limit. Only ``<int>Mi`` and ``<int>Gi`` are accepted.

    Raises:
        ParseError: If the suffix is missing or not Mi/Gi, or the prefix is not an integer.
    """
    match = _MEMORY_RE.fullmatch(str(value))
    if not match:
        raise ParseError(field, value, "Memory must use Mi or Gi units, e.g. '512Mi' or '1Gi'.")
    return ResourceQuantity(magnitude=Decimal(match.group(1)), unit=match.group(2), resource_class="memory")


def parse_quantity(value: str, resource_class: str, field: str | None = None) -> ResourceQuantity:
    """Dispatch to the CPU or memory parser by resource class."""
    if resource_class == "cpu":
        return parse_cpu(value, field or "resources.cpu")
    if resource_class == "memory":
        return parse_memory(value, field or "resources.memory")
    msg = f"Unknown resource class: {resource_class!r}. Must be one of: cpu, memory"
    raise ValueError(msg)


def cpu_request(limit: ResourceQuantity) -> ResourceQuantity:
    """Half the CPU limit, floored to whole millicores, in the limit's own unit.

    ``1000m`` becomes ``500m``; ``2`` becomes ``1`` and ``0.5`` becomes ``0.25``.
    """
    half = math.floor(limit.normalized / 2)
    if limit.unit == "core":
        return ResourceQuantity(magnitude=Decimal(half) / 1000, unit="core", resource_class="cpu")
    return ResourceQuantity(magnitude=Decimal(half), unit="millicpu", resource_class="cpu")


def memory_request(limit: ResourceQuantity) -> ResourceQuantity:
    """Half the memory limit, floored to whole mebibytes. Always rendered in Mi (``1Gi`` -> ``512Mi``)."""
    half = math.floor(limit.normalized / 2)
    return ResourceQuantity(magnitude=Decimal(half), unit="Mi", resource_class="memory")


def calculate_requests(limits: ResourceLimits) -> ResourceRequests:
    return ResourceRequests(cpu=cpu_request(limits.cpu), memory=memory_request(limits.memory))
