from __future__ import annotations

from decimal import Decimal
import re

from kubernetes import client
from kubernetes.utils import parse_quantity

from .errors import ConfigValidationError

# Matches strconv.ParseBool so existing configuration records keep their meaning.
_TRUE_VALUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_VALUES = frozenset({"0", "f", "F", "FALSE", "false", "False"})
_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")
# Kubernetes quantity grammar: signed decimal number with an optional exponent or unit suffix.
_QUANTITY_PATTERN = re.compile(
    r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+|Ki|Mi|Gi|Ti|Pi|Ei|[numkMGTPE])?"
)
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

# A quantity of 0 is treated as unbounded.
UNBOUNDED = Decimal(0)


def parse_resource_requirements(
    cpu_request: str,
    mem_request: str,
    cpu_limit: str,
    mem_limit: str,
) -> client.V1ResourceRequirements:
    parsed_cpu_request = _parse_quantity(field="CPU request", value=cpu_request)
    parsed_mem_request = _parse_quantity(field="memory request", value=mem_request)
    parsed_cpu_limit = _parse_quantity(field="CPU limit", value=cpu_limit)
    parsed_mem_limit = _parse_quantity(field="memory limit", value=mem_limit)

    if parsed_cpu_limit != UNBOUNDED and parsed_cpu_request > parsed_cpu_limit:
        raise ConfigValidationError(
            field="CPU request",
            value=cpu_request,
            reason=f'must be less than or equal to CPU limit "{cpu_limit}"',
        )
    if parsed_mem_limit != UNBOUNDED and parsed_mem_request > parsed_mem_limit:
        raise ConfigValidationError(
            field="memory request",
            value=mem_request,
            reason=f'must be less than or equal to memory limit "{mem_limit}"',
        )

    requests: dict[str, str] = {}
    limits: dict[str, str] = {}
    if parsed_cpu_request != UNBOUNDED:
        requests["cpu"] = cpu_request.strip()
    if parsed_mem_request != UNBOUNDED:
        requests["memory"] = mem_request.strip()
    if parsed_cpu_limit != UNBOUNDED:
        limits["cpu"] = cpu_limit.strip()
    if parsed_mem_limit != UNBOUNDED:
        limits["memory"] = mem_limit.strip()

    return client.V1ResourceRequirements(requests=requests or None, limits=limits or None)


def parse_security_context(
    run_as_user: str,
    run_as_group: str,
    allow_privilege_escalation: str,
) -> client.V1SecurityContext:
    """Build a container security context from raw configuration strings.

    Empty strings leave the matching field unset. The first malformed value
    raises before any context is returned.
    """
    parsed_user = None
    parsed_group = None
    parsed_escalation = None

    if run_as_user != "":
        parsed_user = parse_int64(field="Security context runAsUser", value=run_as_user)
    if run_as_group != "":
        parsed_group = parse_int64(field="Security context runAsGroup", value=run_as_group)
    if allow_privilege_escalation != "":
        parsed_escalation = parse_bool_flag(
            field="Security context allowPrivilegeEscalation",
            value=allow_privilege_escalation,
        )

    return client.V1SecurityContext(
        run_as_user=parsed_user,
        run_as_group=parsed_group,
        allow_privilege_escalation=parsed_escalation,
    )


def parse_int64(*, field: str, value: str) -> int:
    if not isinstance(value, str) or not _INTEGER_PATTERN.fullmatch(value):
        raise ConfigValidationError(field=field, value=str(value), reason="is not a number")
    parsed = int(value, 10)
    if parsed < _INT64_MIN or parsed > _INT64_MAX:
        raise ConfigValidationError(field=field, value=value, reason="is out of range for a 64-bit integer")
    return parsed


def parse_bool_flag(*, field: str, value: str) -> bool:
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigValidationError(field=field, value=value, reason="is not a boolean")


def _parse_quantity(*, field: str, value: str) -> Decimal:
    if not isinstance(value, str) or not _QUANTITY_PATTERN.fullmatch(value.strip()):
        raise ConfigValidationError(field=field, value=str(value), reason="is not a valid quantity")
    try:
        return parse_quantity(value.strip())
    except ValueError as error:
        raise ConfigValidationError(
            field=field,
            value=value,
            reason=f"couldn't be parsed as a quantity: {error}",
        ) from error
