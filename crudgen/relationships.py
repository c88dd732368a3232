# File: crudgen/relationships.py
"""
crudgen - Relationship Classifier
==================================
Assigns a cardinality to every relation field of a model, as seen from
that model.

With a back-reference on the target (a relation field pointing back at the
source, paired by ``relation_name`` when one is given)::

    list here,   single there  →  one-to-many
    single here, list there    →  many-to-one
    single here, single there  →  one-to-one
    list here,   list there    →  many-to-many

Without a back-reference the foreign key decides: unique FK fields mean
one-to-one, non-unique ones many-to-one.  A list pointing at a junction
model is many-to-many.  Everything else (including a target that is not in
the graph) is ``unknown`` and only logged, never raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from crudgen.junction import is_junction_table
from crudgen.models import (
    AnalyzerConfig,
    Cardinality,
    FieldInfo,
    ModelInfo,
    RelationshipInfo,
    SchemaDefinition,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.relationships")

_DEFAULT_CONFIG: AnalyzerConfig = AnalyzerConfig()


@dataclass(slots=True)
class RelationshipAnalysis:
    """Classified relations of one model."""

    relationships: Tuple[RelationshipInfo, ...] = ()
    auto_include: Tuple[RelationshipInfo, ...] = ()
    is_junction_table: bool = False
    unresolved: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Back-reference lookup
# ---------------------------------------------------------------------------


def find_back_reference(
    field: FieldInfo,
    source: ModelInfo,
    target: ModelInfo,
) -> Optional[FieldInfo]:
    """
    Find the relation field on *target* that points back at *source*.

    Named relations only pair with the same name.  For self-relations the
    field itself is never its own back-reference.
    """
    candidates: List[FieldInfo] = [
        f
        for f in target.relation_fields
        if f.relation_target == source.name
        and not (target.name == source.name and f.name == field.name)
    ]
    if field.relation_name:
        return next((f for f in candidates if f.relation_name == field.relation_name), None)
    unnamed: List[FieldInfo] = [f for f in candidates if not f.relation_name]
    return unnamed[0] if unnamed else None


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def _is_required(field: FieldInfo, source: ModelInfo) -> bool:
    """A to-one relation whose field and every FK field are required."""
    if field.is_list or not field.required:
        return False
    for name in field.relation_from_fields:
        fk: Optional[FieldInfo] = source.get_field(name)
        if fk is None or not fk.required:
            return False
    return True


def _cardinality_with_back_reference(field: FieldInfo, back_ref: FieldInfo) -> Cardinality:
    if field.is_list and back_ref.is_list:
        return Cardinality.MANY_TO_MANY
    if field.is_list:
        return Cardinality.ONE_TO_MANY
    if back_ref.is_list:
        return Cardinality.MANY_TO_ONE
    return Cardinality.ONE_TO_ONE


def _cardinality_without_back_reference(
    field: FieldInfo,
    source: ModelInfo,
    target: ModelInfo,
    config: AnalyzerConfig,
) -> Cardinality:
    # FK names the model does not declare count as no foreign key.
    fk_fields: Tuple[str, ...] = source.resolved_fk_fields(field)
    if fk_fields:
        if source.fields_are_unique(fk_fields):
            return Cardinality.ONE_TO_ONE
        return Cardinality.MANY_TO_ONE
    if field.is_list and is_junction_table(target, config):
        return Cardinality.MANY_TO_MANY
    return Cardinality.UNKNOWN


def classify_relationship(
    field: FieldInfo,
    source: ModelInfo,
    schema: SchemaDefinition,
    config: Optional[AnalyzerConfig] = None,
) -> RelationshipInfo:
    """
    Classify one relation field of *source*.

    ``auto_include`` is left ``False``; ``analyze_relationships`` decides it
    because it needs the junction status of the source.
    """
    cfg: AnalyzerConfig = config or _DEFAULT_CONFIG
    target_name: str = field.relation_target or field.type
    target: Optional[ModelInfo] = schema.get_model(target_name)

    if target is None:
        logger.warning(
            "Relation %s.%s points to unknown model '%s'; classified as unknown.",
            source.name,
            field.name,
            target_name,
        )
        return RelationshipInfo(
            source=source.name,
            field=field.name,
            target=target_name,
            cardinality=Cardinality.UNKNOWN,
            foreign_key_fields=source.resolved_fk_fields(field),
            required=_is_required(field, source),
        )

    fk_fields: Tuple[str, ...] = source.resolved_fk_fields(field)
    back_ref: Optional[FieldInfo] = find_back_reference(field, source, target)

    if back_ref is not None:
        cardinality: Cardinality = _cardinality_with_back_reference(field, back_ref)
    else:
        cardinality = _cardinality_without_back_reference(field, source, target, cfg)

    owning_side: Optional[str] = None
    if fk_fields:
        owning_side = source.name
    elif back_ref is not None and target.resolved_fk_fields(back_ref):
        owning_side = target.name

    if cardinality == Cardinality.UNKNOWN:
        logger.warning(
            "Relation %s.%s → %s has no foreign key and no back-reference; "
            "classified as unknown.",
            source.name,
            field.name,
            target.name,
        )

    return RelationshipInfo(
        source=source.name,
        field=field.name,
        target=target.name,
        cardinality=cardinality,
        owning_side=owning_side,
        back_reference=back_ref.name if back_ref is not None else None,
        foreign_key_fields=fk_fields,
        required=_is_required(field, source),
    )


def should_auto_include(
    relationship: RelationshipInfo,
    source: ModelInfo,
    config: Optional[AnalyzerConfig] = None,
    source_is_junction: bool = False,
) -> bool:
    """
    Default-read include policy.

    A custom ``auto_include_predicate`` replaces the built-in rule, which
    includes required to-one relations (many-to-one, or one-to-one owned by
    the source) of non-junction models.
    """
    cfg: AnalyzerConfig = config or _DEFAULT_CONFIG
    if cfg.auto_include_predicate is not None:
        return bool(cfg.auto_include_predicate(relationship, source))

    if not cfg.auto_include_to_one or source_is_junction:
        return False

    to_one_owned: bool = relationship.cardinality == Cardinality.MANY_TO_ONE or (
        relationship.cardinality == Cardinality.ONE_TO_ONE
        and relationship.owning_side == source.name
    )
    if not to_one_owned:
        return False
    return relationship.required if cfg.auto_include_required_only else True


def analyze_relationships(
    model: ModelInfo,
    schema: SchemaDefinition,
    config: Optional[AnalyzerConfig] = None,
) -> RelationshipAnalysis:
    """Classify every relation field of *model* in declaration order."""
    cfg: AnalyzerConfig = config or _DEFAULT_CONFIG
    junction: bool = is_junction_table(model, cfg)

    relationships: List[RelationshipInfo] = []
    unresolved: List[str] = []
    for field in model.relation_fields:
        rel: RelationshipInfo = classify_relationship(field, model, schema, cfg)
        include: bool = should_auto_include(rel, model, cfg, junction)
        if include:
            rel = rel.model_copy(update={"auto_include": True})
        if rel.cardinality == Cardinality.UNKNOWN:
            unresolved.append(field.name)
        relationships.append(rel)

    logger.debug(
        "Relationships of %s: %d classified, %d unresolved, junction=%s.",
        model.name,
        len(relationships),
        len(unresolved),
        junction,
    )
    return RelationshipAnalysis(
        relationships=tuple(relationships),
        auto_include=tuple(r for r in relationships if r.auto_include),
        is_junction_table=junction,
        unresolved=unresolved,
    )


__all__: List[str] = [
    "RelationshipAnalysis",
    "find_back_reference",
    "classify_relationship",
    "should_auto_include",
    "analyze_relationships",
]

logger.debug("crudgen.relationships loaded.")
