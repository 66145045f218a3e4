"""MCP server entry point and tool registration."""

# Note 1: The tools here are thin async wrappers around the synchronous
# guardrail pipeline. All validation logic lives in assembler/validation/quantity;
# this module only parses tool arguments, serializes results, and logs.

from __future__ import annotations

import json
import sys
import time
from pathlib import Path

import structlog
from mcp.server.fastmcp import FastMCP

from platform_guardrails.assembler import validate
from platform_guardrails.config import load_default_values_file, load_values_file, parse_values
from platform_guardrails.models import DeploymentConfig, ResourceLimits
from platform_guardrails.quantity import calculate_requests, parse_cpu, parse_memory
from platform_guardrails.validation import validate_cpu_limit, validate_image, validate_memory_limit

# Configure structlog for JSON output to stderr
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        # Note 2: stdout carries the MCP stdio transport, so logs must go to stderr.
        structlog.dev.ConsoleRenderer() if sys.stderr.isatty() else structlog.processors.JSONRenderer(),
    ],
    logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
)

log = structlog.get_logger()

mcp = FastMCP("Platform Guardrails")


@mcp.tool()
async def validate_deployment_config(values_yaml: str, release_name: str = "release") -> str:
    """Validate generic-app chart values against the platform guardrails.

    Returns the normalized deployment configuration: parsed limits, requests
    auto-calculated at 50% of limits, autoscaling with fixed 75% CPU/memory targets,
    derived object names, service and ingress settings.
    The "values" key holds the same result as chart values (resources.requests,
    autoscaling.targetCPUUtilization). Fails with the first guardrail violation
    (CPU 100m-4000m, memory 128Mi-8192Mi, no 'latest' images, replica bounds).

    Args:
        values_yaml: The chart values as YAML text (same shape as values.yaml).
        release_name: Helm release name used to derive object names.
    """
    start = time.monotonic()
    try:
        config = validate(parse_values(values_yaml), release_name=release_name)
        output = _config_json(config)
        log.info(
            "tool_completed", tool="validate_deployment_config", release=release_name, latency_ms=_elapsed_ms(start)
        )
        return output
    except Exception as e:
        log.error("tool_failed", tool="validate_deployment_config", release=release_name, error=str(e))
        raise RuntimeError(str(e)) from None


@mcp.tool()
async def validate_values_file(path: str | None = None, release_name: str = "release") -> str:
    """Validate a generic-app values file on disk against the platform guardrails.

    Returns the same normalized configuration as validate_deployment_config.
    Use this when the values live in a file next to the chart.

    Args:
        path: Path to the values file. Omit to use PLATFORM_GUARDRAILS_VALUES (default values.yaml).
        release_name: Helm release name used to derive object names.
    """
    start = time.monotonic()
    try:
        raw = load_values_file(Path(path)) if path else load_default_values_file()
        config = validate(raw, release_name=release_name)
        output = _config_json(config)
        log.info("tool_completed", tool="validate_values_file", release=release_name, latency_ms=_elapsed_ms(start))
        return output
    except Exception as e:
        log.error("tool_failed", tool="validate_values_file", release=release_name, error=str(e))
        raise RuntimeError(str(e)) from None


@mcp.tool()
async def calculate_resource_requests(cpu: str, memory: str) -> str:
    """Validate CPU and memory limits and return the auto-calculated requests.

    Requests are 50% of the limits, floored. CPU keeps the limit's unit
    ('1000m' -> '500m', '2' -> '1'); memory is always returned in Mi ('1Gi' -> '512Mi').

    Args:
        cpu: CPU limit, e.g. '500m' or '0.5'.
        memory: Memory limit, e.g. '512Mi' or '1Gi'.
    """
    start = time.monotonic()
    try:
        cpu_limit = parse_cpu(cpu)
        validate_cpu_limit(cpu_limit)
        memory_limit = parse_memory(memory)
        validate_memory_limit(memory_limit)
        requests = calculate_requests(ResourceLimits(cpu=cpu_limit, memory=memory_limit))
        output = json.dumps(
            {
                "limits": {"cpu": cpu_limit.render(), "memory": memory_limit.render()},
                "requests": {"cpu": requests.cpu.render(), "memory": requests.memory.render()},
            },
            indent=2,
        )
        log.info("tool_completed", tool="calculate_resource_requests", latency_ms=_elapsed_ms(start))
        return output
    except Exception as e:
        log.error("tool_failed", tool="calculate_resource_requests", cpu=cpu, memory=memory, error=str(e))
        raise RuntimeError(str(e)) from None


@mcp.tool()
async def check_image_reference(repository: str, tag: str) -> str:
    """Check that an image repository and tag are set and do not contain 'latest'.

    The check is a plain substring match over the repository, the tag, and
    'repository:tag', so 'my-latest-app' is rejected as well.

    Args:
        repository: Image repository, e.g. 'nginx' or 'my-registry/my-api'.
        tag: Image tag, e.g. '1.25.3'.
    """
    start = time.monotonic()
    try:
        image = validate_image(repository, tag)
        output = json.dumps({"image": image.full_reference, "valid": True}, indent=2)
        log.info("tool_completed", tool="check_image_reference", latency_ms=_elapsed_ms(start))
        return output
    except Exception as e:
        log.error("tool_failed", tool="check_image_reference", repository=repository, tag=tag, error=str(e))
        raise RuntimeError(str(e)) from None


def _config_json(config: DeploymentConfig) -> str:
    # The model dump plus the chart-shaped values with requests and targets filled in.
    result = config.model_dump(mode="json")
    result["values"] = config.to_values()
    return json.dumps(result, indent=2)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


if __name__ == "__main__":
    mcp.run(transport="stdio")
