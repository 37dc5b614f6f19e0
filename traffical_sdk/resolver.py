"""
Resolver - compute effective parameter values from a bundle

Everything here is pure and synchronous: no network, no shared state. The
client hands in whatever bundle it currently trusts (or None) and gets back
values plus the layer placement that produced them.

Resolution order for each requested key:
    1. the caller's default
    2. the bundle's default for the key
    3. the override from the first running, matching policy whose allocation
       contains the unit's bucket in the parameter's layer

A value from steps 2 or 3 is only taken when it type-matches the caller's
default, so callers always get back the type they passed in.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from .bucketing import bucket_in_range, compute_bucket
from .models import Condition, ConfigBundle, LayerAssignment, Policy

logger = logging.getLogger(__name__)

_MISSING = object()


def matches_default(value: Any, default: Any) -> bool:
    """True when `value` can stand in for `default` without changing its type"""
    if default is None:
        return True
    if isinstance(default, bool):
        return isinstance(value, bool)
    if isinstance(default, (int, float)):
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if isinstance(default, str):
        return isinstance(value, str)
    if isinstance(default, dict):
        return isinstance(value, dict)
    if isinstance(default, list):
        return isinstance(value, list)
    return type(value) is type(default)


def _compare(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def check(actual: Any, expected: Any) -> bool:
        try:
            return op(actual, expected)
        except TypeError:
            return False

    return check


def _contains(actual: Any, expected: Any) -> bool:
    if isinstance(actual, str):
        return isinstance(expected, str) and expected in actual
    if isinstance(actual, (list, tuple, set)):
        return expected in actual
    return False


def _in(actual: Any, expected: Any) -> bool:
    return isinstance(expected, (list, tuple)) and actual in expected


_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "eq": lambda actual, expected: actual == expected,
    "neq": lambda actual, expected: actual != expected,
    "in": _in,
    "nin": lambda actual, expected: isinstance(expected, (list, tuple)) and actual not in expected,
    "gt": _compare(lambda a, b: a > b),
    "gte": _compare(lambda a, b: a >= b),
    "lt": _compare(lambda a, b: a < b),
    "lte": _compare(lambda a, b: a <= b),
    "contains": _contains,
    "startsWith": lambda actual, expected: (
        isinstance(actual, str) and isinstance(expected, str) and actual.startswith(expected)
    ),
}


def evaluate_condition(condition: Condition, context: Mapping[str, Any]) -> bool:
    actual = context.get(condition.field, _MISSING)

    if condition.op == "exists":
        want_present = True if condition.value is None else bool(condition.value)
        return (actual is not _MISSING) == want_present

    if actual is _MISSING:
        return False

    operator = _OPERATORS.get(condition.op)
    if operator is None:
        logger.warning(f"Unknown condition operator '{condition.op}' on field '{condition.field}'")
        return False
    return operator(actual, condition.value)


def policy_matches(policy: Policy, context: Mapping[str, Any]) -> bool:
    if policy.state != "running":
        return False
    return all(evaluate_condition(condition, context) for condition in policy.conditions)


@dataclass
class Resolution:
    values: Dict[str, Any]
    unit_key: Optional[str] = None
    layers: List[LayerAssignment] = field(default_factory=list)
    from_bundle: bool = False


def resolve(
    bundle: Optional[ConfigBundle],
    context: Mapping[str, Any],
    defaults: Mapping[str, Any],
) -> Resolution:
    """
    Resolve `defaults.keys()` for one unit

    Args:
        bundle: the trusted bundle, or None when nothing usable is cached
        context: attributes for this call; the unit key is read from the
            attribute named by bundle.hashing.unit_key
        defaults: requested keys mapped to the caller's fallback values

    Returns:
        Resolution whose `values` has exactly the keys of `defaults`
    """
    values: Dict[str, Any] = dict(defaults)
    if bundle is None:
        return Resolution(values=values)

    raw_unit_key = context.get(bundle.hashing.unit_key)
    unit_key = None if raw_unit_key is None else str(raw_unit_key)
    params = bundle.parameter_index()

    requested_layers = set()
    for key, default in defaults.items():
        param = params.get(key)
        if param is None:
            continue
        if matches_default(param.default, default):
            values[key] = copy.deepcopy(param.default)
        else:
            logger.warning(
                f"Bundle default for '{key}' ({param.type}) does not match the "
                f"caller's default type; keeping caller default"
            )
        if param.layer_id:
            requested_layers.add(param.layer_id)

    resolution = Resolution(values=values, unit_key=unit_key, from_bundle=True)
    if unit_key is None:
        logger.debug(
            f"No unit key '{bundle.hashing.unit_key}' in context; using bundle defaults only"
        )
        return resolution

    for layer in bundle.layers:
        if layer.id not in requested_layers:
            continue
        bucket = compute_bucket(unit_key, layer.id, bundle.hashing.bucket_count)
        assignment = LayerAssignment(layer_id=layer.id, bucket=bucket)

        for policy in layer.policies:
            if not policy_matches(policy, context):
                continue
            allocation = next(
                (a for a in policy.allocations if bucket_in_range(bucket, a.bucket_range)),
                None,
            )
            if allocation is None:
                continue

            assignment.policy_id = policy.id
            assignment.allocation = allocation.name
            for key, value in allocation.overrides.items():
                if key not in defaults:
                    continue
                param = params.get(key)
                if param is None or param.layer_id != layer.id:
                    continue
                if matches_default(value, defaults[key]):
                    values[key] = copy.deepcopy(value)
                else:
                    logger.warning(
                        f"Override for '{key}' in policy '{policy.id}' does not match "
                        f"the caller's default type; ignoring it"
                    )
            break

        resolution.layers.append(assignment)

    return resolution
