"""Utility functions for quantity parsing and comparison."""

import re
from decimal import Decimal
from typing import Dict, Optional

from kubernetes.utils import parse_quantity

from .errors import FormatError, UnsupportedUnitError, ValidationError

_MEMORY_PATTERN = re.compile(r"(\d+)([^\s\d]\S*)")

# Factor from a binary Kubernetes suffix to PHP megabytes, applied as (multiply, divide)
_PHP_MEMORY_FACTORS = {
    "Ki": (1, 1024),
    "Mi": (1, 1),
    "Gi": (1024, 1),
}


def k8s_memory_to_php_memory(quantity: str) -> str:
    """
    Convert a Kubernetes memory quantity to PHP's memory_limit notation.

    Fractions of a megabyte are dropped.

    Examples:
        "65536Ki" -> "64M"
        "128Mi" -> "128M"
        "2Gi" -> "2048M"
    """
    match = _MEMORY_PATTERN.fullmatch(str(quantity).strip())
    if not match:
        raise FormatError(f"invalid memory format: {quantity!r}")

    value = int(match.group(1))
    unit = match.group(2)

    if unit not in _PHP_MEMORY_FACTORS:
        raise UnsupportedUnitError(f"unsupported unit: {unit}")

    multiply, divide = _PHP_MEMORY_FACTORS[unit]
    return f"{value * multiply // divide}M"


def to_quantity(value) -> Decimal:
    """Parse a Kubernetes quantity, raising ValidationError if it is malformed."""
    try:
        return parse_quantity(value)
    except ValueError as e:
        raise ValidationError(f"invalid quantity {value!r}: {e}") from e


def quantities_equal(actual, desired) -> bool:
    """Compare two quantities numerically, so "0.5" equals "500m"."""
    if actual is None or desired is None:
        return actual is None and desired is None
    return to_quantity(actual) == to_quantity(desired)


def resource_lists_equal(actual: Optional[Dict[str, str]], desired: Optional[Dict[str, str]]) -> bool:
    """
    Compare two resource lists such as ``{"cpu": "500m", "memory": "256Mi"}``.

    A name present on one side only, or a numeric difference, makes them unequal.
    """
    actual = actual or {}
    desired = desired or {}

    if set(actual) != set(desired):
        return False

    for name, quantity in desired.items():
        if not quantities_equal(actual[name], quantity):
            return False

    return True


def resources_equal(actual: Optional[Dict], desired: Optional[Dict]) -> bool:
    """Compare two container ``resources`` blocks (requests and limits)."""
    actual = actual or {}
    desired = desired or {}
    return (
        resource_lists_equal(actual.get("requests"), desired.get("requests"))
        and resource_lists_equal(actual.get("limits"), desired.get("limits"))
    )


def validate_resources(resources: Dict[str, Dict[str, str]]) -> None:
    """Raise ValidationError if any quantity in a ``resources`` block is malformed."""
    for resource_list in resources.values():
        for quantity in resource_list.values():
            to_quantity(quantity)


def set_owner_reference(obj: Dict, owner_reference: Dict) -> bool:
    """
    Make ``owner_reference`` the controller reference of ``obj``.

    Returns True if the object was modified.
    """
    metadata = obj.setdefault("metadata", {})
    owners = metadata.get("ownerReferences") or []

    for owner in owners:
        if owner.get("uid") == owner_reference["uid"]:
            if owner == owner_reference:
                return False
            owner.clear()
            owner.update(owner_reference)
            metadata["ownerReferences"] = owners
            return True

    metadata["ownerReferences"] = owners + [dict(owner_reference)]
    return True
