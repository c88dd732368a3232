# File: crudgen/graph.py
"""
crudgen - Model Graph Builder
==============================
Turns a flat, parser-produced list of raw model mappings into a validated
``SchemaDefinition``.

Rejection is per model: a raw model that fails structural validation, or
that has no id field, is reported as a ``crudgen.errors.ValidationError``
and left out of the graph while every other model still builds.  A model
whose name was already taken by an earlier definition is rejected the same
way.

Relation fields pointing at a rejected model stay in the graph; the
relationship classifier later reports them as ``unknown``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from crudgen.errors import ConfigurationError, ValidationError
from crudgen.models import EnumDefinition, ModelInfo, SchemaDefinition

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.graph")

RawModel = Union[Mapping[str, Any], ModelInfo]
RawEnum = Union[Mapping[str, Any], EnumDefinition]


@dataclass(slots=True)
class GraphBuildResult:
    """The built schema plus every model that was rejected on the way."""

    schema: SchemaDefinition
    errors: List[ValidationError] = field(default_factory=list)

    @property
    def rejected_models(self) -> List[str]:
        return [e.model for e in self.errors]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _first_error_message(exc: PydanticValidationError) -> str:
    """Condense a pydantic error into one line naming the failing location."""
    details = exc.errors()
    if not details:
        return str(exc)
    first = details[0]
    loc: str = ".".join(str(part) for part in first.get("loc", ()))
    msg: str = first.get("msg", "invalid value")
    suffix: str = f" (+{len(details) - 1} more)" if len(details) > 1 else ""
    return f"{loc}: {msg}{suffix}" if loc else f"{msg}{suffix}"


def _raw_name(raw: RawModel) -> str:
    if isinstance(raw, ModelInfo):
        return raw.name
    name = raw.get("name") if isinstance(raw, Mapping) else None
    return str(name) if name else "<unnamed>"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build_model(raw: RawModel) -> ModelInfo:
    """
    Normalise one raw model mapping into a ``ModelInfo``.

    Raises:
        ValidationError: The mapping is structurally invalid or the model
            has no id field.
    """
    name: str = _raw_name(raw)
    if isinstance(raw, ModelInfo):
        model = raw
    else:
        if not isinstance(raw, Mapping):
            raise ValidationError(name, f"expected a mapping, got {type(raw).__name__}")
        try:
            model = ModelInfo.model_validate(dict(raw))
        except PydanticValidationError as exc:
            raise ValidationError(name, _first_error_message(exc)) from exc

    if model.id_field is None:
        raise ValidationError(model.name, "no field is marked as id")
    return model


def build_enum(raw: RawEnum) -> EnumDefinition:
    """Normalise one raw enum mapping, raising ``ValidationError`` when invalid."""
    if isinstance(raw, EnumDefinition):
        return raw
    name: str = str(raw.get("name") or "<unnamed>") if isinstance(raw, Mapping) else "<unnamed>"
    try:
        return EnumDefinition.model_validate(dict(raw))
    except (PydanticValidationError, TypeError) as exc:
        message: str = (
            _first_error_message(exc) if isinstance(exc, PydanticValidationError) else str(exc)
        )
        raise ValidationError(name, f"invalid enum: {message}") from exc


def build_schema(
    raw_models: Iterable[RawModel],
    raw_enums: Iterable[RawEnum] = (),
) -> GraphBuildResult:
    """
    Build the model graph, rejecting broken models individually.

    Model order in the resulting schema follows input order.
    """
    models: List[ModelInfo] = []
    seen: Dict[str, int] = {}
    errors: List[ValidationError] = []

    for index, raw in enumerate(raw_models):
        try:
            model: ModelInfo = build_model(raw)
        except ValidationError as exc:
            logger.warning("Rejected model %s", exc)
            errors.append(exc)
            continue

        if model.name in seen:
            exc = ValidationError(
                model.name,
                f"duplicate definition at position {index}; "
                f"first defined at position {seen[model.name]}",
            )
            logger.warning("Rejected model %s", exc)
            errors.append(exc)
            continue

        seen[model.name] = index
        models.append(model)

    enums: List[EnumDefinition] = []
    enum_names: set = set()
    for raw_enum in raw_enums:
        try:
            enum: EnumDefinition = build_enum(raw_enum)
        except ValidationError as exc:
            logger.warning("Rejected enum %s", exc)
            errors.append(exc)
            continue
        if enum.name in enum_names:
            exc = ValidationError(enum.name, "duplicate enum definition")
            logger.warning("Rejected enum %s", exc)
            errors.append(exc)
            continue
        enum_names.add(enum.name)
        enums.append(enum)

    schema: SchemaDefinition = SchemaDefinition(models=tuple(models), enums=tuple(enums))
    logger.info(
        "Model graph built: %d model(s), %d enum(s), %d rejected.",
        len(models),
        len(enums),
        len(errors),
    )
    return GraphBuildResult(schema=schema, errors=errors)


def split_schema_document(
    raw: Mapping[str, Any],
) -> Tuple[List[Any], List[Any], Dict[str, Any]]:
    """
    Pull models, enums and service annotations out of a parsed schema document.

    Expected top-level keys: ``models`` (required), ``enums`` and ``services``
    (optional).  ``services`` may be a list of annotation mappings or a
    mapping of service name → annotation.

    Raises:
        ConfigurationError: The document has no model list.
    """
    models: Optional[Any] = raw.get("models")
    if not isinstance(models, list):
        raise ConfigurationError(
            "Cannot find model definitions in input. Expected a top-level 'models' list."
        )

    enums: Any = raw.get("enums") or []
    if not isinstance(enums, list):
        raise ConfigurationError("'enums' must be a list when present.")

    services_raw: Any = raw.get("services") or {}
    services: Dict[str, Any] = {}
    if isinstance(services_raw, list):
        for entry in services_raw:
            if not isinstance(entry, Mapping) or "name" not in entry:
                raise ConfigurationError("Each service entry must be a mapping with a 'name'.")
            services[str(entry["name"])] = entry
    elif isinstance(services_raw, Mapping):
        for name, entry in services_raw.items():
            services[str(name)] = {"name": name, **dict(entry)}
    else:
        raise ConfigurationError("'services' must be a list or a mapping when present.")

    return list(models), list(enums), services


__all__: List[str] = [
    "GraphBuildResult",
    "build_model",
    "build_enum",
    "build_schema",
    "split_schema_document",
]

logger.debug("crudgen.graph loaded.")
