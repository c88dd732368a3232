# File: crudgen/models.py
"""
crudgen - Core Data Models
===========================
Pydantic V2 models representing the normalised model graph, its analyses,
service annotations, renderer outputs and generator configuration.  These
models are the single source of truth for the whole pipeline:

    Raw Schema → Graph Build → Analysis → Registry Generation → Merge

Graph records (``FieldInfo``, ``ModelInfo``, ``RelationshipInfo``,
``ModelAnalysis`` …) are frozen: they are built once per run and never
mutated afterwards.  Configuration models stay mutable with
``validate_assignment`` so callers can tweak them between runs.

Raw input accepts both snake_case names and the camelCase keys commonly
produced by schema parsers (``isId``, ``isList``, ``relationFromFields`` …).
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError

from crudgen.errors import ConfigurationError

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.models")

# ---------------------------------------------------------------------------
# Enums: fixed sets used across the entire project
# ---------------------------------------------------------------------------


class FieldKind(str, Enum):
    """Kind of a model field."""

    SCALAR = "scalar"
    RELATION = "relation"
    ENUM = "enum"


class Cardinality(str, Enum):
    """Relationship cardinality as seen from the source model."""

    ONE_TO_ONE = "one-to-one"
    MANY_TO_ONE = "many-to-one"
    ONE_TO_MANY = "one-to-many"
    MANY_TO_MANY = "many-to-many"
    UNKNOWN = "unknown"


class HttpVerb(str, Enum):
    """HTTP verbs inferred for service methods."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


class FilterKind(str, Enum):
    """How a filterable field is queried by generated list endpoints."""

    EXACT = "exact"
    RANGE = "range"
    BOOLEAN = "boolean"
    ENUM = "enum"
    ARRAY = "array"


class SpecialMarker(str, Enum):
    """Recognised domain field markers."""

    SLUG = "slug"
    PUBLISHED = "published"
    VIEWS = "views"
    LIKES = "likes"
    APPROVED = "approved"
    DELETED_AT = "deletedAt"
    PARENT_ID = "parentId"


# ---------------------------------------------------------------------------
# Declared type categories
# ---------------------------------------------------------------------------

_STRING_TYPES = frozenset({"string", "text", "varchar", "char"})
_NUMBER_TYPES = frozenset(
    {"int", "integer", "bigint", "smallint", "float", "double", "decimal", "numeric", "number"}
)
_DATE_TYPES = frozenset({"datetime", "date", "timestamp", "time"})
_BOOLEAN_TYPES = frozenset({"boolean", "bool"})


def type_category(declared_type: str) -> str:
    """
    Map a declared field type onto a coarse category.

    Returns one of ``"string"``, ``"number"``, ``"date"``, ``"boolean"`` or
    ``"other"``.  Matching is case-insensitive so ``String`` (Prisma) and
    ``string`` (JSON/YAML schemas) behave the same.
    """
    lowered: str = declared_type.lower()
    if lowered in _STRING_TYPES:
        return "string"
    if lowered in _NUMBER_TYPES:
        return "number"
    if lowered in _DATE_TYPES:
        return "date"
    if lowered in _BOOLEAN_TYPES:
        return "boolean"
    return "other"


# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_RECORD_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    use_enum_values=True,
    frozen=True,
    extra="forbid",
)

_SETTINGS_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    use_enum_values=True,
    frozen=False,
    extra="forbid",
    arbitrary_types_allowed=True,
)


# ---------------------------------------------------------------------------
# Model graph primitives
# ---------------------------------------------------------------------------


class FieldInfo(BaseModel):
    """
    One field of one model.

    Relation fields point at another model (``relation_target``) and may
    carry the names of the scalar foreign-key fields that back them
    (``relation_from_fields``).  The side that lists FK fields owns the
    relation.
    """

    model_config = _RECORD_CONFIG

    name: str = Field(..., min_length=1, description="Field name.")
    type: str = Field(..., min_length=1, description="Declared type or related model name.")
    kind: FieldKind = Field(default=FieldKind.SCALAR, description="scalar | relation | enum.")
    required: bool = Field(default=True, alias="isRequired")
    is_list: bool = Field(default=False, alias="isList")
    unique: bool = Field(default=False, alias="isUnique")
    is_id: bool = Field(default=False, alias="isId")
    read_only: bool = Field(default=False, alias="isReadOnly")
    is_updated_at: bool = Field(default=False, alias="isUpdatedAt")
    has_default: bool = Field(default=False, alias="hasDefaultValue")
    relation_target: Optional[str] = Field(default=None, alias="relationTarget")
    relation_name: Optional[str] = Field(default=None, alias="relationName")
    relation_from_fields: Tuple[str, ...] = Field(default=(), alias="relationFromFields")
    relation_to_fields: Tuple[str, ...] = Field(default=(), alias="relationToFields")
    documentation: Optional[str] = Field(default=None)

    @model_validator(mode="before")
    @classmethod
    def _normalise_relation_kind(cls, data: Any) -> Any:
        # Schema parsers call relation fields "object"; their type is the target.
        if not isinstance(data, dict):
            return data
        if data.get("kind") == "object":
            data = {**data, "kind": FieldKind.RELATION.value}
        if data.get("kind") == FieldKind.RELATION.value:
            if not data.get("relation_target") and not data.get("relationTarget"):
                data = {**data, "relation_target": data.get("type")}
        return data

    @model_validator(mode="after")
    def _validate_relation_linkage(self) -> "FieldInfo":
        if self.kind == FieldKind.RELATION:
            if self.is_id:
                raise ValueError(f"Relation field '{self.name}' cannot be an id field.")
            return self
        if self.relation_target or self.relation_from_fields or self.relation_to_fields:
            raise ValueError(
                f"Field '{self.name}' is of kind '{self.kind}' but carries relation linkage."
            )
        return self

    # -- Derived helpers ----------------------------------------------------

    @property
    def is_relation(self) -> bool:
        return self.kind == FieldKind.RELATION

    @property
    def category(self) -> str:
        """Coarse type category (``other`` for relation and enum fields)."""
        if self.kind != FieldKind.SCALAR:
            return "other"
        return type_category(self.type)

    @property
    def normalized_name(self) -> str:
        """Lowercase name with ``_`` and ``-`` removed (``is_published`` → ``ispublished``)."""
        return self.name.replace("_", "").replace("-", "").lower()

    def __repr__(self) -> str:
        list_flag: str = "[]" if self.is_list else ""
        id_flag: str = " ID" if self.is_id else ""
        return f"<Field {self.name}: {self.type}{list_flag} ({self.kind}){id_flag}>"


class EnumDefinition(BaseModel):
    """A schema-level enum declaration."""

    model_config = _RECORD_CONFIG

    name: str = Field(..., min_length=1)
    values: Tuple[str, ...] = Field(default=())

    @field_validator("values")
    @classmethod
    def _unique_values(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        if len(v) != len(set(v)):
            dupes: List[str] = sorted({x for x in v if v.count(x) > 1})
            raise ValueError(f"Duplicate enum values detected: {dupes}")
        return v


class ModelInfo(BaseModel):
    """
    A normalised model (entity) with its ordered fields.

    ``scalar_fields`` and ``relation_fields`` are pure partitions of
    ``fields``; ``id_field`` is the first field flagged ``is_id``.  A model
    without an id field can be constructed — the graph builder is the
    component that rejects it, so that the rejection is reported per model
    instead of aborting schema construction.
    """

    model_config = _RECORD_CONFIG

    name: str = Field(..., min_length=1, description="Model name (PascalCase).")
    fields: Tuple[FieldInfo, ...] = Field(..., min_length=1)
    documentation: Optional[str] = Field(default=None)
    unique_groups: Tuple[Tuple[str, ...], ...] = Field(default=(), alias="uniqueFields")
    junction: Optional[bool] = Field(
        default=None,
        alias="isJunction",
        description="Explicit join-model declaration; overrides the heuristic.",
    )

    @model_validator(mode="after")
    def _validate_field_names(self) -> "ModelInfo":
        names: List[str] = [f.name for f in self.fields]
        if len(names) != len(set(names)):
            dupes: List[str] = sorted({n for n in names if names.count(n) > 1})
            raise ValueError(f"Duplicate field names in model '{self.name}': {dupes}")
        return self

    @model_validator(mode="after")
    def _validate_unique_groups(self) -> "ModelInfo":
        for group in self.unique_groups:
            missing: List[str] = [n for n in group if n not in {f.name for f in self.fields}]
            if missing:
                raise ValueError(
                    f"Unique constraint on '{self.name}' references non-existent fields: {missing}"
                )
        return self

    # -- Derived partitions -------------------------------------------------

    @property
    def id_field(self) -> Optional[FieldInfo]:
        return next((f for f in self.fields if f.is_id), None)

    @property
    def scalar_fields(self) -> Tuple[FieldInfo, ...]:
        return tuple(f for f in self.fields if f.kind != FieldKind.RELATION)

    @property
    def relation_fields(self) -> Tuple[FieldInfo, ...]:
        return tuple(f for f in self.fields if f.kind == FieldKind.RELATION)

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    def get_field(self, name: str) -> Optional[FieldInfo]:
        return next((f for f in self.fields if f.name == name), None)

    def resolved_fk_fields(self, field: FieldInfo) -> Tuple[str, ...]:
        """The names in ``field.relation_from_fields`` declared as scalars here."""
        scalars = {f.name for f in self.fields if not f.is_relation}
        return tuple(n for n in field.relation_from_fields if n in scalars)

    def fields_are_unique(self, names: Tuple[str, ...]) -> bool:
        """True when *names* are covered by a single-field or composite unique constraint."""
        if not names:
            return False
        if len(names) == 1:
            field: Optional[FieldInfo] = self.get_field(names[0])
            if field is not None and (field.unique or field.is_id):
                return True
        wanted = set(names)
        return any(set(group) == wanted for group in self.unique_groups)

    def __repr__(self) -> str:
        return (
            f"<Model {self.name} ({len(self.scalar_fields)} scalars, "
            f"{len(self.relation_fields)} relations)>"
        )


class SchemaDefinition(BaseModel):
    """
    The whole normalised model graph.

    Invariant: ``get_model`` is an O(1) lookup built once from ``models``.
    """

    model_config = _RECORD_CONFIG

    models: Tuple[ModelInfo, ...] = Field(default=())
    enums: Tuple[EnumDefinition, ...] = Field(default=())

    _model_map: Dict[str, ModelInfo] = PrivateAttr(default_factory=dict)

    @model_validator(mode="after")
    def _validate_unique_model_names(self) -> "SchemaDefinition":
        names: List[str] = [m.name for m in self.models]
        if len(names) != len(set(names)):
            dupes: List[str] = sorted({n for n in names if names.count(n) > 1})
            raise ValueError(f"Duplicate model names: {dupes}")
        return self

    def model_post_init(self, __context: Any) -> None:
        self._model_map = {m.name: m for m in self.models}

    def get_model(self, name: str) -> Optional[ModelInfo]:
        return self._model_map.get(name)

    @property
    def names(self) -> List[str]:
        return [m.name for m in self.models]

    def __repr__(self) -> str:
        return f"<SchemaDefinition {len(self.models)} models, {len(self.enums)} enums>"


# ---------------------------------------------------------------------------
# Analysis records
# ---------------------------------------------------------------------------


class RelationshipInfo(BaseModel):
    """One classified relation field of a source model."""

    model_config = _RECORD_CONFIG

    source: str = Field(..., min_length=1, description="Source model name.")
    field: str = Field(..., min_length=1, description="Relation field on the source.")
    target: str = Field(..., min_length=1, description="Target model name.")
    cardinality: Cardinality = Field(default=Cardinality.UNKNOWN)
    owning_side: Optional[str] = Field(
        default=None, description="Model holding the foreign key, if any."
    )
    back_reference: Optional[str] = Field(
        default=None, description="Paired relation field on the target."
    )
    foreign_key_fields: Tuple[str, ...] = Field(default=())
    required: bool = Field(default=False)
    auto_include: bool = Field(default=False)

    @property
    def is_to_one(self) -> bool:
        return self.cardinality in (Cardinality.ONE_TO_ONE, Cardinality.MANY_TO_ONE)

    def __repr__(self) -> str:
        return f"<Relationship {self.source}.{self.field} ({self.cardinality}) → {self.target}>"


class FilterField(BaseModel):
    """A field usable in generated list filters."""

    model_config = _RECORD_CONFIG

    name: str
    kind: FilterKind
    field_type: str
    required: bool = False


class ForeignKeyInfo(BaseModel):
    """Foreign-key columns behind one relation field (composite keys included)."""

    model_config = _RECORD_CONFIG

    field_names: Tuple[str, ...]
    relation_alias: str
    relation_name: Optional[str] = None
    related_model: str


class ModelAnalysis(BaseModel):
    """Everything the generators need to know about one model."""

    model_config = _RECORD_CONFIG

    model: ModelInfo
    relationships: Tuple[RelationshipInfo, ...] = Field(default=())
    auto_include: Tuple[RelationshipInfo, ...] = Field(default=())
    is_junction_table: bool = False
    special_fields: Dict[str, str] = Field(
        default_factory=dict, description="Marker → field name."
    )

    can_filter: bool = False
    can_search: bool = False
    can_sort: bool = False
    can_paginate: bool = False
    has_timestamps: bool = False
    has_soft_delete: bool = False

    search_fields: Tuple[str, ...] = Field(default=())
    filter_fields: Tuple[FilterField, ...] = Field(default=())
    has_parent_child: bool = False
    has_featured: bool = False
    has_active: bool = False
    foreign_keys: Tuple[ForeignKeyInfo, ...] = Field(default=())

    def has_marker(self, marker: SpecialMarker) -> bool:
        key: str = marker.value if isinstance(marker, SpecialMarker) else str(marker)
        return key in self.special_fields

    def __repr__(self) -> str:
        return (
            f"<ModelAnalysis {self.model.name} "
            f"({len(self.relationships)} rels, junction={self.is_junction_table})>"
        )


# ---------------------------------------------------------------------------
# Service annotations
# ---------------------------------------------------------------------------


class ServiceMethod(BaseModel):
    """One callable method exposed by a service annotation."""

    model_config = _RECORD_CONFIG

    name: str = Field(..., min_length=1)


class ServiceAnnotation(BaseModel):
    """
    Externally declared integration metadata.

    ``methods`` may be given as plain strings; they are normalised into
    ``ServiceMethod`` records.
    """

    model_config = _RECORD_CONFIG

    name: str = Field(..., min_length=1, description="Service name, e.g. 'ai-agent'.")
    methods: Tuple[ServiceMethod, ...] = Field(default=())
    model: Optional[str] = Field(default=None, description="Associated model, if any.")
    provider: Optional[str] = Field(default=None)
    rate_limit: Optional[str] = Field(default=None, alias="rateLimit")
    auth: bool = Field(default=True)
    description: Optional[str] = Field(default=None)

    @field_validator("methods", mode="before")
    @classmethod
    def _coerce_method_names(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return tuple({"name": m} if isinstance(m, str) else m for m in v)
        return v

    @field_validator("methods")
    @classmethod
    def _unique_methods(cls, v: Tuple[ServiceMethod, ...]) -> Tuple[ServiceMethod, ...]:
        names: List[str] = [m.name for m in v]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate service methods: {sorted(set(names))}")
        return v

    @property
    def method_names(self) -> List[str]:
        return [m.name for m in self.methods]


class ServiceRoute(BaseModel):
    """Resolved HTTP binding of one service method."""

    model_config = _RECORD_CONFIG

    method: str
    verb: HttpVerb
    path: str


class RateLimit(BaseModel):
    """Parsed ``@rateLimit`` value."""

    model_config = _RECORD_CONFIG

    max_requests: int = Field(..., ge=1)
    window_ms: int = Field(..., ge=1)


# ---------------------------------------------------------------------------
# Renderer output records
# ---------------------------------------------------------------------------


class ContractSet(BaseModel):
    """Request/response contract sources for one model."""

    model_config = _RECORD_CONFIG

    create: str
    update: str
    read: str
    query: str

    def items(self) -> List[Tuple[str, str]]:
        return [
            ("create", self.create),
            ("update", self.update),
            ("read", self.read),
            ("query", self.query),
        ]


class ValidatorSet(BaseModel):
    """Input validator sources for one model."""

    model_config = _RECORD_CONFIG

    create: str
    update: str
    query: str

    def items(self) -> List[Tuple[str, str]]:
        return [
            ("create", self.create),
            ("update", self.update),
            ("query", self.query),
        ]


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def _wrap_config_errors(model_cls: type, data: Mapping[str, Any]) -> Any:
    try:
        return model_cls.model_validate(dict(data))
    except PydanticValidationError as exc:
        raise ConfigurationError(f"{model_cls.__name__} validation failed: {exc}") from exc


class AnalyzerConfig(BaseModel):
    """
    Tunable policy for the model analyzers.

    Junction detection and auto-include are heuristics; their thresholds
    live here instead of being hard-coded.
    """

    model_config = _SETTINGS_CONFIG

    junction_max_data_fields: int = Field(
        default=2, ge=0, description="Max non-system scalar fields in a join model."
    )
    junction_system_fields: Tuple[str, ...] = Field(
        default=("createdAt", "updatedAt"),
        description="Timestamp fields ignored when counting join-model data fields.",
    )
    auto_include_to_one: bool = Field(
        default=True, description="Include to-one relations in default reads."
    )
    auto_include_required_only: bool = Field(
        default=True, description="Only auto-include to-one relations that are required."
    )
    auto_include_predicate: Optional[Callable[[RelationshipInfo, ModelInfo], bool]] = Field(
        default=None, description="Custom auto-include policy; overrides the flags above."
    )
    extra_sensitive_terms: Tuple[str, ...] = Field(
        default=(), description="Added to the fixed sensitive search terms."
    )
    parent_field_pattern: str = Field(
        default=r"^(parent|ancestor|root)",
        description="Regex for self-relation FK names when no parentId marker exists.",
    )

    @field_validator("parent_field_pattern")
    @classmethod
    def _compile_pattern(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as exc:
            raise ValueError(f"Invalid parent_field_pattern {v!r}: {exc}") from exc
        return v

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AnalyzerConfig":
        """Build from a raw mapping, raising ``ConfigurationError`` on bad input."""
        return _wrap_config_errors(cls, data)


class GenerationOptions(BaseModel):
    """Switches for the registry-mode orchestrator."""

    model_config = _SETTINGS_CONFIG

    validate_code: bool = Field(default=True, alias="validateCode")
    skip_junction_tables: bool = Field(default=True, alias="skipJunctionTables")
    include_service_integrations: bool = Field(
        default=True, alias="includeServiceIntegrations"
    )
    continue_on_error: bool = Field(default=True, alias="continueOnError")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "GenerationOptions":
        """Build from a raw mapping, raising ``ConfigurationError`` on bad input."""
        return _wrap_config_errors(cls, data)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "FieldKind",
    "Cardinality",
    "HttpVerb",
    "FilterKind",
    "SpecialMarker",
    "type_category",
    "FieldInfo",
    "EnumDefinition",
    "ModelInfo",
    "SchemaDefinition",
    "RelationshipInfo",
    "FilterField",
    "ForeignKeyInfo",
    "ModelAnalysis",
    "ServiceMethod",
    "ServiceAnnotation",
    "ServiceRoute",
    "RateLimit",
    "ContractSet",
    "ValidatorSet",
    "AnalyzerConfig",
    "GenerationOptions",
]

logger.debug("crudgen.models loaded — %d public symbols.", len(__all__))
