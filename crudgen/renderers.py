# File: crudgen/renderers.py
"""
crudgen - Default Renderers
============================
Pure-Python code renderers turning a ``ModelInfo`` / ``ModelAnalysis`` or a
``ServiceAnnotation`` into source strings:

    1. Pydantic V2 contracts   (Create / Update / Read / Query)
    2. Input validators        (Create / Update / Query)
    3. Service controllers, FastAPI routes and service scaffolds
    4. A model registry module describing every analysed model

``RendererRegistry`` is the explicit collaborator bundle handed to the
orchestrator.  Callers may swap any renderer for their own callable; there
is no module-level singleton.

**Performance contract:**
    - All string assembly uses ``List[str]`` + ``"\\n".join()``.
    - Renderers are stateless, so one instance is safe to share between
      concurrent runs.
"""

from __future__ import annotations

import keyword
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Set, Tuple

from crudgen.models import (
    ContractSet,
    FieldInfo,
    FieldKind,
    FilterKind,
    ModelAnalysis,
    ModelInfo,
    SchemaDefinition,
    ServiceAnnotation,
    SpecialMarker,
    ValidatorSet,
)
from crudgen.services import LinkedService, link_service
from crudgen.utils import build_import_block, to_kebab_case, to_pascal_case, to_snake_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.renderers")

# ---------------------------------------------------------------------------
# Renderer signatures
# ---------------------------------------------------------------------------

ContractRenderer = Callable[[ModelInfo, ModelAnalysis], ContractSet]
ValidatorRenderer = Callable[[ModelInfo, ModelAnalysis], ValidatorSet]
ServiceRenderer = Callable[[ServiceAnnotation], str]
RegistryRenderer = Callable[[SchemaDefinition, Dict[str, ModelAnalysis]], Dict[str, str]]

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_INDENT: str = "    "
_DOUBLE_INDENT: str = "        "

_HEADER_FOOTER: str = "Auto-generated by crudgen."

# Declared type (lowercase) → (annotation, import module or None)
_PY_TYPE_MAP: Dict[str, Tuple[str, Optional[str]]] = {
    "string": ("str", None),
    "text": ("str", None),
    "varchar": ("str", None),
    "char": ("str", None),
    "int": ("int", None),
    "integer": ("int", None),
    "bigint": ("int", None),
    "smallint": ("int", None),
    "float": ("float", None),
    "double": ("float", None),
    "number": ("float", None),
    "decimal": ("Decimal", "decimal"),
    "numeric": ("Decimal", "decimal"),
    "boolean": ("bool", None),
    "bool": ("bool", None),
    "datetime": ("datetime", "datetime"),
    "timestamp": ("datetime", "datetime"),
    "date": ("date", "datetime"),
    "time": ("time", "datetime"),
    "json": ("Dict[str, Any]", None),
    "bytes": ("bytes", None),
    "uuid": ("UUID", "uuid"),
}

_PAGE_SIZE_DEFAULT: int = 20
_PAGE_SIZE_MAX: int = 100


# ---------------------------------------------------------------------------
# Naming helpers
# ---------------------------------------------------------------------------


def attr_name(name: str) -> str:
    """Python attribute for a schema field (``isPublished`` → ``is_published``)."""
    attr: str = to_snake_case(name) or "field"
    if attr[0].isdigit():
        attr = f"f_{attr}"
    if keyword.iskeyword(attr):
        attr = f"{attr}_"
    return attr


def class_name(name: str) -> str:
    return to_pascal_case(name) or "Model"


def _describe(name: str) -> str:
    words: str = to_snake_case(name).replace("_", " ")
    return words.capitalize() if words else name


def _doc_text(text: str) -> str:
    """Make free text safe inside a triple-quoted docstring."""
    return text.replace("\\", "\\\\").replace('"""', '\\"\\"\\"')


def _base_annotation(f: FieldInfo, imports: Dict[str, Set[str]]) -> str:
    if f.kind == FieldKind.ENUM:
        return "str"
    annotation, module = _PY_TYPE_MAP.get(f.type.lower(), ("Any", None))
    if module is not None:
        imports.setdefault(module, set()).add(annotation)
    return annotation


def _annotation(f: FieldInfo, imports: Dict[str, Set[str]]) -> str:
    base: str = _base_annotation(f, imports)
    return f"List[{base}]" if f.is_list else base


def _field_line(
    f: FieldInfo,
    imports: Dict[str, Set[str]],
    *,
    optional: bool,
    annotation: Optional[str] = None,
    attr: Optional[str] = None,
) -> str:
    attr = attr or attr_name(f.name)
    type_str: str = annotation or _annotation(f, imports)
    args: List[str] = []
    if optional:
        type_str = f"Optional[{type_str}]"
        args.append("default=None")
    else:
        args.append("...")
    if attr != f.name:
        args.append(f"alias={f.name!r}")
    args.append(f"description={_describe(f.name)!r}")
    return f"{_INDENT}{attr}: {type_str} = Field({', '.join(args)})"


def _file_header(title: str) -> List[str]:
    return ['"""', title, _HEADER_FOOTER, '"""', "", "from __future__ import annotations", ""]


def _is_writable(f: FieldInfo) -> bool:
    """Fields a client may set on create/update."""
    if f.read_only or f.is_updated_at:
        return False
    if f.is_id and f.has_default:
        return False
    if f.normalized_name in ("createdat", "updatedat") and f.has_default:
        return False
    return True


# ---------------------------------------------------------------------------
# DefaultRenderers
# ---------------------------------------------------------------------------


class DefaultRenderers:
    """
    Stateless renderers emitting Pydantic V2 / FastAPI source.

    Args:
        package: Import root of the generated project (``app`` by default).
            Contracts live in ``<package>.contracts``, validators in
            ``<package>.validators``, controllers in ``<package>.controllers``
            and service scaffolds in ``<package>.services``.
    """

    def __init__(self, package: str = "app") -> None:
        self._package: str = package

    # ===================================================================
    # 1. Contracts
    # ===================================================================

    def render_contracts(self, model: ModelInfo, analysis: ModelAnalysis) -> ContractSet:
        """Create / Update / Read / Query contracts for one model."""
        contracts = ContractSet(
            create=self._render_write_contract(model, "Create"),
            update=self._render_write_contract(model, "Update"),
            read=self._render_read_contract(model, analysis),
            query=self._render_query_contract(model, analysis),
        )
        logger.debug("Rendered contracts for '%s'.", model.name)
        return contracts

    def _render_write_contract(self, model: ModelInfo, kind: str) -> str:
        cls: str = class_name(model.name)
        imports: Dict[str, Set[str]] = {
            "pydantic": {"BaseModel", "ConfigDict", "Field"},
            "typing": {"Any", "Dict", "List", "Optional"},
        }
        body: List[str] = []
        for f in model.scalar_fields:
            if not _is_writable(f):
                continue
            optional: bool = kind == "Update" or not f.required or f.has_default
            body.append(_field_line(f, imports, optional=optional))

        verb: str = "creating" if kind == "Create" else "updating"
        lines: List[str] = _file_header(f"{kind} contract for {model.name}.")
        lines.append(build_import_block(imports))
        lines.append("")
        lines.append("")
        lines.append(f"class {cls}{kind}(BaseModel):")
        lines.append(f'{_INDENT}"""Request body for {verb} a {cls}."""')
        lines.append("")
        lines.append(
            f"{_INDENT}model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)"
        )
        if body:
            lines.append("")
            lines.extend(body)
        lines.append("")
        return "\n".join(lines)

    def _render_read_contract(self, model: ModelInfo, analysis: ModelAnalysis) -> str:
        cls: str = class_name(model.name)
        imports: Dict[str, Set[str]] = {
            "pydantic": {"BaseModel", "ConfigDict", "Field"},
            "typing": {"Any", "Dict", "List", "Optional"},
        }
        body: List[str] = [
            _field_line(f, imports, optional=not f.required) for f in model.scalar_fields
        ]
        for rel in analysis.auto_include:
            rel_field: Optional[FieldInfo] = model.get_field(rel.field)
            if rel_field is None:
                continue
            body.append(
                _field_line(rel_field, imports, optional=True, annotation="Dict[str, Any]")
            )

        lines: List[str] = _file_header(f"Read contract for {model.name}.")
        lines.append(build_import_block(imports))
        lines.append("")
        lines.append("")
        lines.append(f"class {cls}Read(BaseModel):")
        lines.append(f'{_INDENT}"""Response body for a single {cls}."""')
        lines.append("")
        lines.append(
            f"{_INDENT}model_config = ConfigDict(from_attributes=True, populate_by_name=True)"
        )
        lines.append("")
        lines.extend(body)
        lines.append("")
        return "\n".join(lines)

    def _render_query_contract(self, model: ModelInfo, analysis: ModelAnalysis) -> str:
        cls: str = class_name(model.name)
        imports: Dict[str, Set[str]] = {
            "pydantic": {"BaseModel", "ConfigDict", "Field", "field_validator"},
            "typing": {"Any", "Dict", "List", "Optional", "Tuple"},
        }
        orderable: Tuple[str, ...] = tuple(
            f.name for f in model.scalar_fields if not f.is_list
        ) if analysis.can_sort else ()

        body: List[str] = []
        if analysis.can_paginate:
            body.append(
                f'{_INDENT}skip: int = Field(default=0, ge=0, description="Records to skip")'
            )
            body.append(
                f"{_INDENT}take: int = Field(default={_PAGE_SIZE_DEFAULT}, ge=1, "
                f'le={_PAGE_SIZE_MAX}, description="Page size")'
            )
        if analysis.can_sort:
            body.append(
                f'{_INDENT}order_by: Optional[str] = Field(default=None, alias="orderBy", '
                f'description="Field to order by")'
            )
            body.append(
                f'{_INDENT}order_dir: str = Field(default="asc", alias="orderDir", '
                f'pattern="^(asc|desc)$", description="Sort direction")'
            )
        if analysis.can_search:
            searched: str = ", ".join(analysis.search_fields)
            body.append(
                f"{_INDENT}q: Optional[str] = Field(default=None, "
                f"description={('Search across: ' + searched)!r})"
            )

        for ff in analysis.filter_fields:
            f: Optional[FieldInfo] = model.get_field(ff.name)
            if f is None:
                continue
            attr: str = attr_name(f.name)
            if ff.kind == FilterKind.RANGE:
                base: str = _base_annotation(f, imports)
                for bound in ("min", "max"):
                    body.append(
                        f"{_INDENT}{attr}_{bound}: Optional[{base}] = Field(default=None, "
                        f"alias={(f.name + bound.capitalize())!r}, "
                        f"description={(_describe(f.name) + ' ' + bound + 'imum')!r})"
                    )
            else:
                body.append(_field_line(f, imports, optional=True))

        if analysis.has_soft_delete:
            body.append(
                f'{_INDENT}include_deleted: bool = Field(default=False, alias="includeDeleted", '
                f'description="Include soft-deleted records")'
            )

        lines: List[str] = _file_header(f"Query contract for {model.name}.")
        lines.append(build_import_block(imports))
        lines.append("")
        lines.append(f"ORDERABLE_FIELDS: Tuple[str, ...] = {orderable!r}")
        lines.append("")
        lines.append("")
        lines.append(f"class {cls}Query(BaseModel):")
        lines.append(f'{_INDENT}"""List query parameters for {cls}."""')
        lines.append("")
        lines.append(f"{_INDENT}model_config = ConfigDict(populate_by_name=True)")
        if body:
            lines.append("")
            lines.extend(body)
        if analysis.can_sort:
            lines.append("")
            lines.append(f'{_INDENT}@field_validator("order_by")')
            lines.append(f"{_INDENT}@classmethod")
            lines.append(
                f"{_INDENT}def _check_order_by(cls, v: Optional[str]) -> Optional[str]:"
            )
            lines.append(f"{_DOUBLE_INDENT}if v is not None and v not in ORDERABLE_FIELDS:")
            lines.append(f'{_DOUBLE_INDENT}{_INDENT}raise ValueError(f"Cannot order by {{v!r}}.")')
            lines.append(f"{_DOUBLE_INDENT}return v")
        lines.append("")
        return "\n".join(lines)

    # ===================================================================
    # 2. Validators
    # ===================================================================

    def render_validators(self, model: ModelInfo, analysis: ModelAnalysis) -> ValidatorSet:
        """Create / Update / Query input validators for one model."""
        validators = ValidatorSet(
            create=self._render_validator(model, analysis, "create"),
            update=self._render_validator(model, analysis, "update"),
            query=self._render_validator(model, analysis, "query"),
        )
        logger.debug("Rendered validators for '%s'.", model.name)
        return validators

    def _render_validator(self, model: ModelInfo, analysis: ModelAnalysis, kind: str) -> str:
        cls: str = class_name(model.name)
        snake: str = to_snake_case(model.name)
        contract_cls: str = f"{cls}{kind.capitalize()}"
        contract_module: str = f"{self._package}.contracts.{snake}_{kind}_contract"

        imports: Dict[str, Set[str]] = {
            "typing": {"Any", "Mapping"},
            contract_module: {contract_cls},
        }

        checks: List[str] = []
        slug_field: Optional[str] = analysis.special_fields.get(SpecialMarker.SLUG.value)
        uses_slug: bool = False
        if kind in ("create", "update") and slug_field is not None:
            slug_info: Optional[FieldInfo] = model.get_field(slug_field)
            if slug_info is not None and _is_writable(slug_info):
                uses_slug = True
                slug_attr: str = attr_name(slug_field)
                checks.append(
                    f"{_INDENT}if payload.{slug_attr} is not None "
                    f"and not SLUG_RE.match(payload.{slug_attr}):"
                )
                checks.append(
                    f"{_DOUBLE_INDENT}raise ValueError("
                    f"{(slug_field + ' must be lowercase words separated by hyphens.')!r})"
                )
        if kind == "query" and analysis.can_search:
            checks.append(f"{_INDENT}if payload.q is not None and len(payload.q.strip()) < 2:")
            checks.append(
                f'{_DOUBLE_INDENT}raise ValueError("Search term must be at least 2 characters.")'
            )

        lines: List[str] = _file_header(f"{kind.capitalize()} validator for {model.name}.")
        if uses_slug:
            lines.append("import re")
        lines.append(build_import_block(imports))
        lines.append("")
        if uses_slug:
            lines.append('SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")')
            lines.append("")
        lines.append("")
        lines.append(f"def validate_{snake}_{kind}(data: Mapping[str, Any]) -> {contract_cls}:")
        lines.append(f'{_INDENT}"""Validate a {kind} payload for {cls}."""')
        lines.append(f"{_INDENT}payload = {contract_cls}.model_validate(dict(data))")
        lines.extend(checks)
        lines.append(f"{_INDENT}return payload")
        lines.append("")
        return "\n".join(lines)

    # ===================================================================
    # 3. Service integrations
    # ===================================================================

    def _service_names(self, annotation: ServiceAnnotation) -> Tuple[str, str, str]:
        snake: str = to_snake_case(annotation.name) or "service"
        pascal: str = class_name(annotation.name)
        return snake, f"{pascal}Service", f"{pascal}Controller"

    def render_service_controller(self, annotation: ServiceAnnotation) -> str:
        linked: LinkedService = link_service(annotation)
        snake, service_cls, controller_cls = self._service_names(annotation)
        imports: Dict[str, Set[str]] = {
            "typing": {"Any", "Dict", "Optional"},
            f"{self._package}.services.{snake}_service_scaffold": {service_cls},
        }

        lines: List[str] = _file_header(f"Controller for the {annotation.name} service.")
        lines.append(build_import_block(imports))
        lines.append("")
        lines.append("")
        lines.append(f"class {controller_cls}:")
        lines.append(f'{_INDENT}"""HTTP-facing wrapper around {service_cls}."""')
        lines.append("")
        lines.append(f"{_INDENT}def __init__(self, service: {service_cls}) -> None:")
        lines.append(f"{_DOUBLE_INDENT}self._service = service")
        for route in linked.routes:
            method: str = attr_name(route.method)
            lines.append("")
            lines.append(
                f"{_INDENT}async def {method}(self, payload: Dict[str, Any], "
                f"user_id: Optional[str] = None) -> Any:"
            )
            lines.append(f'{_DOUBLE_INDENT}"""{route.verb} {route.path}"""')
            lines.append(
                f"{_DOUBLE_INDENT}return await self._service.{method}(payload, user_id=user_id)"
            )
        lines.append("")
        return "\n".join(lines)

    def render_service_routes(self, annotation: ServiceAnnotation) -> str:
        linked: LinkedService = link_service(annotation)
        snake, service_cls, controller_cls = self._service_names(annotation)
        imports: Dict[str, Set[str]] = {
            "fastapi": {"APIRouter", "Depends", "Request"},
            "typing": {"Any", "Dict"},
            f"{self._package}.controllers.{snake}_controller": {controller_cls},
            f"{self._package}.services.{snake}_service_scaffold": {service_cls},
        }

        lines: List[str] = _file_header(f"FastAPI routes for the {annotation.name} service.")
        lines.append(build_import_block(imports))
        lines.append("")
        if linked.rate_limit is not None:
            lines.append(
                f"RATE_LIMIT: Dict[str, int] = {{"
                f'"max_requests": {linked.rate_limit.max_requests}, '
                f'"window_ms": {linked.rate_limit.window_ms}}}'
            )
        lines.append(f"REQUIRES_AUTH: bool = {annotation.auth!r}")
        lines.append("")
        lines.append(f"router = APIRouter(tags=[{annotation.name!r}])")
        lines.append("")
        lines.append("")
        lines.append(f"def provide_controller() -> {controller_cls}:")
        lines.append(f"{_INDENT}return {controller_cls}({service_cls}())")

        for route in linked.routes:
            method: str = attr_name(route.method)
            verb: str = str(route.verb).lower()
            lines.append("")
            lines.append("")
            lines.append(f"@router.{verb}({route.path!r})")
            lines.append(f"async def {method}(")
            lines.append(f"{_INDENT}request: Request,")
            lines.append(f"{_INDENT}controller: {controller_cls} = Depends(provide_controller),")
            lines.append(") -> Any:")
            if verb in ("get", "delete"):
                lines.append(f"{_INDENT}payload: Dict[str, Any] = dict(request.query_params)")
            else:
                lines.append(f"{_INDENT}payload: Dict[str, Any] = await request.json()")
            lines.append(f"{_INDENT}return await controller.{method}(payload)")
        lines.append("")
        return "\n".join(lines)

    def render_service_scaffold(self, annotation: ServiceAnnotation) -> str:
        linked: LinkedService = link_service(annotation)
        _, service_cls, _ = self._service_names(annotation)

        doc: List[str] = [_doc_text(annotation.description or f"{annotation.name} service.")]
        if annotation.provider:
            doc.append("")
            doc.append(f"Provider: {_doc_text(annotation.provider)}")
        if annotation.rate_limit:
            doc.append(f"Rate limit: {_doc_text(annotation.rate_limit)}")
        if annotation.model:
            doc.append(f"Model: {_doc_text(annotation.model)}")

        lines: List[str] = _file_header(f"Service scaffold for {annotation.name}.")
        lines.append(build_import_block({"typing": {"Any", "Dict", "Optional"}}))
        lines.append("")
        lines.append("")
        lines.append(f"class {service_cls}:")
        lines.append(f'{_INDENT}"""')
        lines.extend(f"{_INDENT}{line}" if line else "" for line in doc)
        lines.append(f'{_INDENT}"""')
        for route in linked.routes:
            method: str = attr_name(route.method)
            lines.append("")
            lines.append(
                f"{_INDENT}async def {method}(self, payload: Dict[str, Any], "
                f"user_id: Optional[str] = None) -> Any:"
            )
            message: str = f"{service_cls}.{method} is not implemented yet."
            lines.append(f"{_DOUBLE_INDENT}raise NotImplementedError({message!r})")
        lines.append("")
        return "\n".join(lines)

    # ===================================================================
    # 4. Registry
    # ===================================================================

    def render_registry(
        self,
        schema: SchemaDefinition,
        analysis: Dict[str, ModelAnalysis],
    ) -> Dict[str, str]:
        """One ``model_registry.py`` describing every analysed model."""
        lines: List[str] = _file_header("Model registry.")
        lines.append("from typing import Any, Dict")
        lines.append("")
        lines.append("MODEL_REGISTRY: Dict[str, Dict[str, Any]] = {")
        for model in schema.models:
            a: Optional[ModelAnalysis] = analysis.get(model.name)
            if a is None:
                continue
            entry: Dict[str, object] = {
                "route_prefix": f"/{to_kebab_case(model.name)}",
                "junction": a.is_junction_table,
                "search_fields": list(a.search_fields),
                "auto_include": [r.field for r in a.auto_include],
                "special_fields": dict(sorted(a.special_fields.items())),
                "capabilities": {
                    "filter": a.can_filter,
                    "search": a.can_search,
                    "sort": a.can_sort,
                    "paginate": a.can_paginate,
                    "timestamps": a.has_timestamps,
                    "soft_delete": a.has_soft_delete,
                },
            }
            lines.append(f"{_INDENT}{model.name!r}: {entry!r},")
        lines.append("}")
        lines.append("")
        return {"model_registry.py": "\n".join(lines)}


# ---------------------------------------------------------------------------
# RendererRegistry
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class RendererRegistry:
    """
    The renderer collaborators the orchestrator calls.

    ``contracts`` and ``validators`` are always required;  the three service
    renderers are required only when service integrations are generated.
    ``registry`` is optional.
    """

    contracts: Optional[ContractRenderer] = None
    validators: Optional[ValidatorRenderer] = None
    service_controller: Optional[ServiceRenderer] = None
    service_routes: Optional[ServiceRenderer] = None
    service_scaffold: Optional[ServiceRenderer] = None
    registry: Optional[RegistryRenderer] = None

    @classmethod
    def default(cls, package: str = "app", *, include_registry: bool = True) -> "RendererRegistry":
        renderers: DefaultRenderers = DefaultRenderers(package)
        return cls(
            contracts=renderers.render_contracts,
            validators=renderers.render_validators,
            service_controller=renderers.render_service_controller,
            service_routes=renderers.render_service_routes,
            service_scaffold=renderers.render_service_scaffold,
            registry=renderers.render_registry if include_registry else None,
        )

    def missing(self, *, include_services: bool) -> List[str]:
        """Names of required renderers that are not configured."""
        required: List[str] = ["contracts", "validators"]
        if include_services:
            required.extend(["service_controller", "service_routes", "service_scaffold"])
        return [name for name in required if getattr(self, name) is None]


__all__: List[str] = [
    "ContractRenderer",
    "ValidatorRenderer",
    "ServiceRenderer",
    "RegistryRenderer",
    "DefaultRenderers",
    "RendererRegistry",
    "attr_name",
    "class_name",
]

logger.debug("crudgen.renderers loaded — %d public symbols.", len(__all__))
