"""Tests for quantity.py: CPU/memory parsing and request derivation."""

from __future__ import annotations

import math
from decimal import Decimal

import pytest

from platform_guardrails.errors import ParseError
from platform_guardrails.models import ResourceLimits
from platform_guardrails.quantity import (
    calculate_requests,
    cpu_request,
    memory_request,
    parse_cpu,
    parse_memory,
    parse_quantity,
)


class TestParseCpu:
    """Tests for parse_cpu."""

    def test_millicores(self) -> None:
        q = parse_cpu("500m")
        assert q.unit == "millicpu"
        assert q.resource_class == "cpu"
        assert q.normalized == 500

    def test_whole_cores(self) -> None:
        q = parse_cpu("2")
        assert q.unit == "core"
        assert q.normalized == 2000

    def test_fractional_cores(self) -> None:
        assert parse_cpu("0.5").normalized == 500

    def test_leading_dot_cores(self) -> None:
        assert parse_cpu(".25").normalized == 250

    # Note 1: YAML hands `cpu: 2` to the loader as an int; the parser reads its
    # string form so numeric scalars behave exactly like quoted ones.
    def test_numeric_scalar(self) -> None:
        assert parse_cpu(2).normalized == 2000  # type: ignore[arg-type]

    @pytest.mark.parametrize("value", ["", "m", "abc", "100mi", "1.5m", "-1", "100 m", "1e3", "2cores"])
    def test_malformed(self, value: str) -> None:
        with pytest.raises(ParseError, match="Invalid resources.cpu") as exc_info:
            parse_cpu(value)
        assert exc_info.value.field == "resources.cpu"
        assert exc_info.value.value == value

    @pytest.mark.parametrize("value", ["500m\n", "0.5\n", "\uff15\uff10\uff10m", "\u0665"])
    def test_trailing_newline_and_non_ascii_digits_rejected(self, value: str) -> None:
        with pytest.raises(ParseError):
            parse_cpu(value)

    def test_custom_field_name_in_error(self) -> None:
        with pytest.raises(ParseError, match="Invalid limits.cpu"):
            parse_cpu("fast", field="limits.cpu")


class TestParseMemory:
    """Tests for parse_memory."""

    def test_mebibytes(self) -> None:
        q = parse_memory("512Mi")
        assert q.unit == "Mi"
        assert q.resource_class == "memory"
        assert q.normalized == 512

    def test_gibibytes_convert_to_mebibytes(self) -> None:
        q = parse_memory("2Gi")
        assert q.unit == "Gi"
        assert q.magnitude == 2
        assert q.normalized == 2048

    # Note 2: Only binary Mi/Gi suffixes are accepted. Decimal SI suffixes, other
    # binary suffixes, bare byte counts and fractional prefixes are all rejected.
    @pytest.mark.parametrize("value", ["512", "512M", "512Ki", "1Ti", "1.5Gi", "Mi", "512mi", "-1Gi", ""])
    def test_rejects_unsupported_forms(self, value: str) -> None:
        with pytest.raises(ParseError, match="Mi or Gi"):
            parse_memory(value)

    @pytest.mark.parametrize("value", ["512Mi\n", "\uff15\uff11\uff12Mi", "\u0661Gi"])
    def test_trailing_newline_and_non_ascii_digits_rejected(self, value: str) -> None:
        with pytest.raises(ParseError, match="Mi or Gi"):
            parse_memory(value)


class TestParseQuantity:
    def test_dispatches_by_class(self) -> None:
        assert parse_quantity("250m", "cpu").normalized == 250
        assert parse_quantity("1Gi", "memory").normalized == 1024

    def test_unknown_class(self) -> None:
        with pytest.raises(ValueError, match="Unknown resource class"):
            parse_quantity("1", "gpu")


class TestCpuRequest:
    """Tests for cpu_request: halved, floored, echoing the limit's unit."""

    @pytest.mark.parametrize(
        "limit,expected",
        [
            ("1000m", "500m"),
            ("100m", "50m"),
            ("101m", "50m"),
            ("4000m", "2000m"),
            ("2", "1"),
            ("4", "2"),
            ("0.5", "0.25"),
            ("1.5", "0.75"),
            ("0.1", "0.05"),
            ("0.101", "0.05"),
        ],
    )
    def test_request_rendering(self, limit: str, expected: str) -> None:
        assert cpu_request(parse_cpu(limit)).render() == expected

    def test_millicore_limit_keeps_millicore_unit(self) -> None:
        assert cpu_request(parse_cpu("1000m")).unit == "millicpu"

    def test_core_limit_keeps_core_unit(self) -> None:
        assert cpu_request(parse_cpu("2")).unit == "core"

    @pytest.mark.parametrize("millicores", [100, 101, 333, 999, 1000, 2501, 3999, 4000])
    def test_request_is_floor_of_half(self, millicores: int) -> None:
        request = cpu_request(parse_cpu(f"{millicores}m"))
        assert request.normalized == math.floor(millicores / 2)


class TestMemoryRequest:
    """Tests for memory_request: halved, floored, always in Mi."""

    @pytest.mark.parametrize(
        "limit,expected",
        [
            ("128Mi", "64Mi"),
            ("129Mi", "64Mi"),
            ("2048Mi", "1024Mi"),
            ("1Gi", "512Mi"),
            ("8Gi", "4096Mi"),
            ("8192Mi", "4096Mi"),
        ],
    )
    def test_request_rendering(self, limit: str, expected: str) -> None:
        assert memory_request(parse_memory(limit)).render() == expected

    def test_gi_limit_request_is_in_mi(self) -> None:
        assert memory_request(parse_memory("3Gi")).unit == "Mi"


class TestCalculateRequests:
    def test_both_requests(self) -> None:
        limits = ResourceLimits(cpu=parse_cpu("500m"), memory=parse_memory("512Mi"))
        requests = calculate_requests(limits)
        assert requests.cpu.render() == "250m"
        assert requests.memory.render() == "256Mi"
        assert requests.cpu.magnitude == Decimal(250)
