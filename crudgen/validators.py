# File: crudgen/validators.py
"""
crudgen - Model Graph & Annotation Validators
==============================================
Pure-function semantic checks over a built ``SchemaDefinition`` and its
service annotations.

Pydantic handles per-field and per-model structural correctness while the
graph is built (a rejected model never reaches this module).  The checks
here look *across* models: relation targets that do not resolve, foreign-key
linkage whose from/to arity disagrees, enum references, service annotations
pointing at unknown models, and so on.

Nothing in this module raises.  Every finding is recorded on a
``ValidationResult`` which the pipeline attaches to its report.

Usage:
    from crudgen.validators import validate_full
    result = validate_full(schema, annotations)
    print(result.format_report())
"""

from __future__ import annotations

import keyword
import logging
import re
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Set

from crudgen.errors import ConfigurationError
from crudgen.models import FieldKind, SchemaDefinition, ServiceAnnotation
from crudgen.services import parse_rate_limit

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationIssue:
    """Lightweight issue descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning" | "info"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ValidationResult:
    """Accumulates ``ValidationIssue`` instances produced by the checks."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationIssue] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationIssue("error", code, message, context))

    def add_warning(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationIssue("warning", code, message, context))

    def add_info(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationIssue("info", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_warning]

    @property
    def all_items(self) -> List[ValidationIssue]:
        return list(self._items)

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._items if e.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self._items if e.is_warning)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def codes(self) -> Set[str]:
        return {e.code for e in self._items}

    def summary(self) -> str:
        return (
            f"Validation: {self.error_count} error(s), "
            f"{self.warning_count} warning(s), "
            f"{len(self._items)} total item(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self, include_info: bool = False) -> str:
        """Human-readable multi-line report."""
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            if not include_info and item.level == "info":
                continue
            prefix: str = {
                "error": "❌",
                "warning": "⚠️",
                "info": "ℹ️",
            }.get(item.level, "•")
            lines.append(f"  {prefix} [{item.code}] {item.message}")
            if item.context:
                for k, v in item.context.items():
                    lines.append(f"       {k}: {v}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Regex patterns
# ---------------------------------------------------------------------------

_PASCAL_CASE_RE: re.Pattern[str] = re.compile(r"^[A-Z][a-zA-Z0-9]*$")
_IDENTIFIER_RE: re.Pattern[str] = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

_PYTHON_KEYWORDS: FrozenSet[str] = frozenset(keyword.kwlist)


# ---------------------------------------------------------------------------
# Individual checks
# ---------------------------------------------------------------------------


def validate_model_names(schema: SchemaDefinition) -> ValidationResult:
    """
    Model and field names must be usable as Python identifiers in generated
    code.  PascalCase model names are expected but not required.
    """
    result: ValidationResult = ValidationResult()

    for model in schema.models:
        ctx: Dict[str, Any] = {"model": model.name}
        if not _IDENTIFIER_RE.match(model.name):
            result.add_error(
                "INVALID_MODEL_NAME",
                f"Model name '{model.name}' is not a valid identifier.",
                ctx,
            )
            continue
        if not _PASCAL_CASE_RE.match(model.name):
            result.add_warning(
                "MODEL_NAME_NOT_PASCAL_CASE",
                f"Model name '{model.name}' is not PascalCase.",
                ctx,
            )
        for field in model.fields:
            if not _IDENTIFIER_RE.match(field.name):
                result.add_error(
                    "INVALID_FIELD_NAME",
                    f"Field '{model.name}.{field.name}' is not a valid identifier.",
                    {"model": model.name, "field": field.name},
                )
            elif field.name in _PYTHON_KEYWORDS:
                result.add_warning(
                    "FIELD_NAME_PYTHON_KEYWORD",
                    f"Field '{model.name}.{field.name}' is a Python keyword; "
                    f"generated attributes will be suffixed with '_'.",
                    {"model": model.name, "field": field.name},
                )

    logger.debug("validate_model_names: %d model(s), %d issue(s).", len(schema.models), len(result))
    return result


def validate_relation_targets(schema: SchemaDefinition) -> ValidationResult:
    """Relation fields whose target model is not in the schema."""
    result: ValidationResult = ValidationResult()
    known: Set[str] = set(schema.names)

    for model in schema.models:
        for field in model.relation_fields:
            if field.relation_target not in known:
                result.add_warning(
                    "UNKNOWN_RELATION_TARGET",
                    f"Relation '{model.name}.{field.name}' targets unknown model "
                    f"'{field.relation_target}'; it will be classified as unknown.",
                    {"model": model.name, "field": field.name, "target": field.relation_target},
                )
    return result


def validate_relation_linkage(schema: SchemaDefinition) -> ValidationResult:
    """
    Foreign-key linkage arity and to-field resolution.

    ``relation_from_fields`` and ``relation_to_fields`` must be the same
    length when both are given, and every to-field must exist on the target.
    From-fields the model does not declare are only a warning; the
    relationship classifier treats them as absent.
    """
    result: ValidationResult = ValidationResult()

    for model in schema.models:
        for field in model.relation_fields:
            ctx: Dict[str, Any] = {"model": model.name, "field": field.name}
            from_fields = field.relation_from_fields
            to_fields = field.relation_to_fields

            if from_fields and to_fields and len(from_fields) != len(to_fields):
                result.add_error(
                    "RELATION_ARITY_MISMATCH",
                    f"Relation '{model.name}.{field.name}' links {len(from_fields)} "
                    f"field(s) to {len(to_fields)} field(s).",
                    ctx,
                )

            resolved = model.resolved_fk_fields(field)
            undeclared: List[str] = [n for n in from_fields if n not in resolved]
            if undeclared:
                result.add_warning(
                    "RELATION_FROM_FIELD_MISSING",
                    f"Relation '{model.name}.{field.name}' names foreign-key fields "
                    f"{undeclared} that '{model.name}' does not declare; they are ignored.",
                    ctx,
                )

            target = schema.get_model(field.relation_target or "")
            if target is None:
                continue
            missing: List[str] = [n for n in to_fields if target.get_field(n) is None]
            if missing:
                result.add_error(
                    "RELATION_TO_FIELD_MISSING",
                    f"Relation '{model.name}.{field.name}' references fields {missing} "
                    f"that do not exist on '{target.name}'.",
                    ctx,
                )

            if field.is_list and from_fields:
                result.add_warning(
                    "LIST_RELATION_WITH_FOREIGN_KEY",
                    f"List relation '{model.name}.{field.name}' declares foreign-key "
                    f"fields; the foreign key normally lives on the single side.",
                    ctx,
                )
    return result


def validate_enum_definitions(schema: SchemaDefinition) -> ValidationResult:
    """Enums must declare values, and enum-kind fields must reference one."""
    result: ValidationResult = ValidationResult()
    enum_names: Set[str] = set()

    for enum in schema.enums:
        enum_names.add(enum.name)
        if not enum.values:
            result.add_error(
                "ENUM_NO_VALUES",
                f"Enum '{enum.name}' declares no values.",
                {"enum": enum.name},
            )

    for model in schema.models:
        for field in model.fields:
            if field.kind == FieldKind.ENUM and field.type not in enum_names:
                result.add_warning(
                    "UNKNOWN_ENUM_TYPE",
                    f"Field '{model.name}.{field.name}' references undeclared enum "
                    f"'{field.type}'.",
                    {"model": model.name, "field": field.name},
                )
    return result


def validate_junction_declarations(schema: SchemaDefinition) -> ValidationResult:
    """An explicit junction declaration on a model with fewer than two relations."""
    result: ValidationResult = ValidationResult()
    for model in schema.models:
        if model.junction and len(model.relation_fields) < 2:
            result.add_warning(
                "JUNCTION_DECLARATION_SUSPICIOUS",
                f"Model '{model.name}' is declared a junction but has "
                f"{len(model.relation_fields)} relation field(s).",
                {"model": model.name},
            )
    return result


def validate_service_annotations(
    annotations: Mapping[str, ServiceAnnotation],
    schema: Optional[SchemaDefinition] = None,
) -> ValidationResult:
    """Annotation sanity: methods present, rate limit parseable, model known."""
    result: ValidationResult = ValidationResult()

    for key, annotation in annotations.items():
        ctx: Dict[str, Any] = {"service": annotation.name}
        if key != annotation.name:
            result.add_warning(
                "SERVICE_KEY_MISMATCH",
                f"Annotation registered under '{key}' is named '{annotation.name}'.",
                ctx,
            )
        if not annotation.methods:
            result.add_warning(
                "SERVICE_NO_METHODS",
                f"Service '{annotation.name}' declares no methods; "
                f"only a scaffold will be generated.",
                ctx,
            )
        if annotation.rate_limit:
            try:
                parse_rate_limit(annotation.rate_limit)
            except ConfigurationError as exc:
                result.add_error("SERVICE_RATE_LIMIT_INVALID", str(exc), ctx)
        if schema is not None and annotation.model and schema.get_model(annotation.model) is None:
            result.add_warning(
                "SERVICE_UNKNOWN_MODEL",
                f"Service '{annotation.name}' is attached to unknown model "
                f"'{annotation.model}'.",
                ctx,
            )
    return result


# ---------------------------------------------------------------------------
# Aggregate entry points
# ---------------------------------------------------------------------------


def validate_schema(schema: SchemaDefinition) -> ValidationResult:
    """Run every schema-level check."""
    result: ValidationResult = ValidationResult()
    result.merge(validate_model_names(schema))
    result.merge(validate_relation_targets(schema))
    result.merge(validate_relation_linkage(schema))
    result.merge(validate_enum_definitions(schema))
    result.merge(validate_junction_declarations(schema))
    return result


def validate_full(
    schema: SchemaDefinition,
    annotations: Optional[Mapping[str, ServiceAnnotation]] = None,
) -> ValidationResult:
    """
    Run schema checks plus annotation checks.

    This is the single function the pipeline calls between graph
    construction and analysis.
    """
    logger.info("Starting validation — %d model(s).", len(schema.models))

    result: ValidationResult = ValidationResult()
    result.merge(validate_schema(schema))
    if annotations:
        result.merge(validate_service_annotations(annotations, schema))

    if result.has_errors:
        logger.warning("Validation found %d error(s). %s", result.error_count, result.summary())
    else:
        logger.info("Validation PASSED. %s", result.summary())
    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ValidationIssue",
    "ValidationResult",
    "validate_model_names",
    "validate_relation_targets",
    "validate_relation_linkage",
    "validate_enum_definitions",
    "validate_junction_declarations",
    "validate_service_annotations",
    "validate_schema",
    "validate_full",
]

logger.debug("crudgen.validators loaded — %d public symbols.", len(__all__))
