# File: crudgen/capabilities.py
"""
crudgen - Capability & Special-Field Analyzer
==============================================
Inspects the scalar fields of one model to decide which generated features
make sense for it: search, filters, sorting, pagination, timestamps and
soft delete, plus a handful of domain markers (``slug``, ``published`` …)
that unlock dedicated endpoints.

Field names are compared in normalised form (lowercase, ``_`` and ``-``
removed) so ``is_published``, ``isPublished`` and ``is-published`` are the
same marker.  Every marker also has a type check.

Sensitive names never become search fields.  The four base terms are
fixed; ``AnalyzerConfig.extra_sensitive_terms`` can only add to them.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from crudgen.models import (
    AnalyzerConfig,
    FieldInfo,
    FieldKind,
    FilterField,
    FilterKind,
    ForeignKeyInfo,
    ModelInfo,
    SpecialMarker,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.capabilities")

_DEFAULT_CONFIG: AnalyzerConfig = AnalyzerConfig()

SENSITIVE_TERMS: Tuple[str, ...] = ("password", "hash", "secret", "token")

_INT_TYPES = frozenset({"int", "integer", "bigint", "smallint"})
_FILTERABLE_CATEGORIES = frozenset({"string", "number", "date", "boolean"})


def _is_int_or_string(f: FieldInfo) -> bool:
    return f.category == "string" or f.type.lower() in _INT_TYPES


# Marker → (normalised-name pattern, type check).  Order is detection order.
SPECIAL_FIELD_MATCHERS: Dict[SpecialMarker, Tuple[re.Pattern[str], Callable[[FieldInfo], bool]]] = {
    SpecialMarker.SLUG: (re.compile(r"^slug$"), lambda f: f.category == "string"),
    SpecialMarker.PUBLISHED: (re.compile(r"^(is)?published$"), lambda f: f.category == "boolean"),
    SpecialMarker.VIEWS: (re.compile(r"^(view|views)(count)?$"), lambda f: f.category == "number"),
    SpecialMarker.LIKES: (re.compile(r"^(like|likes)(count)?$"), lambda f: f.category == "number"),
    SpecialMarker.APPROVED: (re.compile(r"^(is)?approved$"), lambda f: f.category == "boolean"),
    SpecialMarker.DELETED_AT: (re.compile(r"^deleted(at)?$"), lambda f: f.category == "date"),
    SpecialMarker.PARENT_ID: (re.compile(r"^parent(id)?$"), _is_int_or_string),
}


@dataclass(slots=True)
class CapabilityAnalysis:
    """Field-level findings for one model."""

    special_fields: Dict[str, str] = field(default_factory=dict)
    search_fields: Tuple[str, ...] = ()
    filter_fields: Tuple[FilterField, ...] = ()
    foreign_keys: Tuple[ForeignKeyInfo, ...] = ()

    can_filter: bool = False
    can_search: bool = False
    can_sort: bool = False
    can_paginate: bool = False
    has_timestamps: bool = False
    has_soft_delete: bool = False
    has_parent_child: bool = False
    has_featured: bool = False
    has_active: bool = False


# ---------------------------------------------------------------------------
# Field-level helpers
# ---------------------------------------------------------------------------


def normalize_field_name(name: str) -> str:
    """``is_published`` / ``isPublished`` / ``is-published`` → ``ispublished``."""
    return name.replace("_", "").replace("-", "").lower()


def is_sensitive_field(name: str, extra_terms: Tuple[str, ...] = ()) -> bool:
    lowered: str = normalize_field_name(name)
    return any(term.lower() in lowered for term in SENSITIVE_TERMS + tuple(extra_terms))


def detect_special_fields(model: ModelInfo) -> Dict[str, str]:
    """
    Map each recognised marker to the first matching field.

    Relation fields are never markers.
    """
    found: Dict[str, str] = {}
    for f in model.scalar_fields:
        normalized: str = f.normalized_name
        for marker, (pattern, check) in SPECIAL_FIELD_MATCHERS.items():
            if marker.value in found:
                continue
            if pattern.match(normalized) and check(f):
                found[marker.value] = f.name
    return found


def filter_kind(f: FieldInfo) -> FilterKind:
    if f.is_list:
        return FilterKind.ARRAY
    if f.kind == FieldKind.ENUM:
        return FilterKind.ENUM
    category: str = f.category
    if category == "boolean":
        return FilterKind.BOOLEAN
    if category in ("number", "date"):
        return FilterKind.RANGE
    return FilterKind.EXACT


def _is_filterable(f: FieldInfo) -> bool:
    if f.read_only:
        return False
    if f.kind == FieldKind.ENUM:
        return True
    if f.kind != FieldKind.SCALAR or f.category not in _FILTERABLE_CATEGORIES:
        return False
    return f.is_list or not f.is_id


def _has_normalized_field(model: ModelInfo, name: str) -> bool:
    wanted: str = normalize_field_name(name)
    return any(f.normalized_name == wanted for f in model.fields)


def _foreign_keys(model: ModelInfo) -> Tuple[ForeignKeyInfo, ...]:
    return tuple(
        ForeignKeyInfo(
            field_names=model.resolved_fk_fields(f),
            relation_alias=f.name,
            relation_name=f.relation_name,
            related_model=f.relation_target or f.type,
        )
        for f in model.relation_fields
        if model.resolved_fk_fields(f)
    )


def _has_parent_child(
    model: ModelInfo,
    special_fields: Dict[str, str],
    config: AnalyzerConfig,
) -> bool:
    self_relations: List[FieldInfo] = [
        f for f in model.relation_fields if f.relation_target == model.name and f.relation_from_fields
    ]
    parent_field: Optional[str] = special_fields.get(SpecialMarker.PARENT_ID.value)
    if parent_field is not None:
        return any(parent_field in f.relation_from_fields for f in self_relations)

    pattern: re.Pattern[str] = re.compile(config.parent_field_pattern, re.IGNORECASE)
    return any(
        pattern.search(normalize_field_name(fk))
        for f in self_relations
        for fk in f.relation_from_fields
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def analyze_capabilities(
    model: ModelInfo,
    config: Optional[AnalyzerConfig] = None,
) -> CapabilityAnalysis:
    """Derive special markers, search/filter fields and capability flags for *model*."""
    cfg: AnalyzerConfig = config or _DEFAULT_CONFIG
    scalars: Tuple[FieldInfo, ...] = model.scalar_fields
    special: Dict[str, str] = detect_special_fields(model)

    search_fields: List[str] = [
        f.name
        for f in scalars
        if f.kind == FieldKind.SCALAR
        and f.category == "string"
        and not f.is_id
        and not is_sensitive_field(f.name, cfg.extra_sensitive_terms)
    ]
    filter_fields: List[FilterField] = [
        FilterField(name=f.name, kind=filter_kind(f), field_type=f.type, required=f.required)
        for f in scalars
        if _is_filterable(f)
    ]

    normalized_names = {f.normalized_name for f in scalars}
    has_created: bool = "createdat" in normalized_names
    has_updated: bool = "updatedat" in normalized_names or any(f.is_updated_at for f in scalars)

    analysis = CapabilityAnalysis(
        special_fields=special,
        search_fields=tuple(search_fields),
        filter_fields=tuple(filter_fields),
        foreign_keys=_foreign_keys(model),
        can_filter=any(f.category in _FILTERABLE_CATEGORIES for f in scalars),
        can_search=bool(search_fields),
        can_sort=bool(scalars),
        can_paginate=model.id_field is not None,
        has_timestamps=has_created and has_updated,
        has_soft_delete=SpecialMarker.DELETED_AT.value in special,
        has_parent_child=_has_parent_child(model, special, cfg),
        has_featured=_has_normalized_field(model, "isFeatured"),
        has_active=_has_normalized_field(model, "isActive"),
    )
    logger.debug(
        "Capabilities of %s: markers=%s search=%s filters=%d.",
        model.name,
        sorted(special),
        list(search_fields),
        len(filter_fields),
    )
    return analysis


__all__: List[str] = [
    "SENSITIVE_TERMS",
    "SPECIAL_FIELD_MATCHERS",
    "CapabilityAnalysis",
    "normalize_field_name",
    "is_sensitive_field",
    "detect_special_fields",
    "filter_kind",
    "analyze_capabilities",
]
