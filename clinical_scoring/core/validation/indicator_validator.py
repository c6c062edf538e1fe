"""
Indicator Validation Module

Enforces the declared range, type and optionality of every clinical
indicator before anything is scored. Validation is atomic: either a
complete, frozen IndicatorSet is returned or a ValidationError naming the
offending field, the value received and the valid range is raised.

Rules come from the profile's FieldRule / CrossFieldRule tables, so the
same code validates every profile.
"""
from __future__ import annotations

import numbers
from collections.abc import Mapping
from typing import Any, Dict, List, Tuple

import numpy as np

from clinical_scoring.core.clinical.base import ClinicalProfile, FieldRule, IndicatorSet
from clinical_scoring.utils import ValidationError


def _format_range(rule: FieldRule) -> str:
    unit = f" {rule.unit}" if rule.unit else ""
    return f"{rule.minimum:g}-{rule.maximum:g}{unit}"


def _check_boolean(rule: FieldRule, value: Any) -> bool:
    if not isinstance(value, (bool, np.bool_)):
        raise ValidationError(
            f"{rule.description} must be true or false, got: {value!r}",
            field=rule.name, value=value, unit=rule.unit or None,
        )
    return bool(value)


def _check_number(rule: FieldRule, value: Any):
    # bool is an int subclass; reject it explicitly
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, numbers.Real):
        raise ValidationError(
            f"{rule.description} must be a number, got: {value!r}",
            field=rule.name, value=value, valid_range=rule.valid_range, unit=rule.unit or None,
        )

    try:
        number = float(value)
    except OverflowError:
        number = float("inf") if value > 0 else float("-inf")

    if not np.isfinite(number):
        raise ValidationError(
            f"{rule.description} must be a finite number, got: {value!r}",
            field=rule.name, value=value, valid_range=rule.valid_range, unit=rule.unit or None,
        )

    if rule.integer and not number.is_integer():
        raise ValidationError(
            f"{rule.description} must be an integer between {_format_range(rule)}, got: {value!r}",
            field=rule.name, value=value, valid_range=rule.valid_range, unit=rule.unit or None,
        )

    if number < rule.minimum or number > rule.maximum:
        raise ValidationError(
            f"{rule.description} must be between {_format_range(rule)}, got: {value!r}",
            field=rule.name, value=value, valid_range=rule.valid_range, unit=rule.unit or None,
        )

    return int(number) if rule.integer else number


def normalize_keys(profile: ClinicalProfile, raw: Mapping) -> Dict[str, Any]:
    """
    Map snake_case names and camelCase aliases onto field names.

    Raises ValidationError for unknown keys and for a field supplied
    under both spellings.
    """
    normalized: Dict[str, Any] = {}
    for key, value in raw.items():
        name = profile.canonical_key(key) if isinstance(key, str) else None
        if name is None:
            raise ValidationError(
                f"Unknown {profile.name} indicator: {key!r}",
                field=str(key), value=value,
            )
        if name in normalized:
            raise ValidationError(
                f"Indicator '{name}' supplied more than once",
                field=name, value=value,
            )
        normalized[name] = value
    return normalized


def validate_indicators(profile: ClinicalProfile, raw: Any) -> IndicatorSet:
    """
    Validate raw input against the profile's field rules.

    Args:
        profile: Scoring profile providing the rule tables.
        raw:     Mapping of indicator name (or alias) to value.

    Returns:
        A frozen IndicatorSet in profile field order.

    Raises:
        ValidationError: first violated constraint, field-attributed.
    """
    if raw is None or not isinstance(raw, Mapping):
        raise ValidationError(
            f"{profile.title} indicators must be a mapping, got: {type(raw).__name__}",
            field="indicators", value=None if raw is None else type(raw).__name__,
        )

    values = normalize_keys(profile, raw)
    entries: List[Tuple[str, Any]] = []

    for rule in profile.fields:
        value = values.get(rule.name)

        if value is None:
            if rule.boolean:
                entries.append((rule.name, False))
                continue
            if rule.required:
                raise ValidationError(
                    f"{rule.description} is required",
                    field=rule.name, value=None, valid_range=rule.valid_range, unit=rule.unit or None,
                )
            continue

        if rule.boolean:
            entries.append((rule.name, _check_boolean(rule, value)))
        else:
            entries.append((rule.name, _check_number(rule, value)))

    checked = dict(entries)
    for cross in profile.cross_field_rules:
        lower, upper = checked.get(cross.lower), checked.get(cross.upper)
        if lower is None or upper is None:
            continue
        if lower > upper:
            lower_rule = profile.field_rule(cross.lower)
            raise ValidationError(
                f"{cross.description or cross.lower} ({lower:g}) must not exceed "
                f"{cross.upper} ({upper:g})",
                field=cross.lower,
                value=lower,
                valid_range=(lower_rule.minimum, upper) if lower_rule else None,
                unit=lower_rule.unit if lower_rule and lower_rule.unit else None,
                details={"constraint": f"{cross.lower} <= {cross.upper}"},
            )

    return IndicatorSet(profile=profile.name, entries=tuple(entries))


def check_field(profile: ClinicalProfile, name: str, value: Any):
    """Validate a single value against one field rule."""
    rule = profile.field_rule(name)
    if rule is None:
        raise ValidationError(f"Unknown {profile.name} indicator: {name!r}", field=name, value=value)
    if value is None:
        raise ValidationError(
            f"{rule.description} is required",
            field=rule.name, value=None, valid_range=rule.valid_range, unit=rule.unit or None,
        )
    return _check_boolean(rule, value) if rule.boolean else _check_number(rule, value)
