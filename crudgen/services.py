# File: crudgen/services.py
"""
crudgen - Service Annotation Linker
====================================
Service annotations describe integrations that are not plain CRUD: an AI
agent, an upload handler, a payment webhook.  They are declared either
directly (a mapping per service) or through documentation tags on a model::

    /// @service ai-agent
    /// @provider openai
    /// @methods sendMessage, getHistory
    /// @rateLimit 20/minute
    /// @description AI conversation orchestration
    model Conversation { ... }

Each declared method is bound to an HTTP verb and a route path by naming
convention.  Everything here is total and deterministic: the same
annotation always links to the same routes.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from crudgen.errors import ConfigurationError
from crudgen.models import HttpVerb, ModelInfo, RateLimit, ServiceAnnotation, ServiceRoute
from crudgen.utils import to_camel_case, to_kebab_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.services")

# ---------------------------------------------------------------------------
# Naming conventions
# ---------------------------------------------------------------------------

# Checked in order; the first matching prefix wins.
VERB_PREFIXES: Tuple[Tuple[str, HttpVerb], ...] = (
    ("send", HttpVerb.POST),
    ("create", HttpVerb.POST),
    ("get", HttpVerb.GET),
    ("list", HttpVerb.GET),
    ("update", HttpVerb.PUT),
    ("set", HttpVerb.PUT),
    ("delete", HttpVerb.DELETE),
    ("remove", HttpVerb.DELETE),
)

_RATE_LIMIT_RE: re.Pattern[str] = re.compile(r"^\s*(\d+)\s*/\s*([A-Za-z]+)\s*$")

_RATE_WINDOWS_MS: Dict[str, int] = {
    "second": 1_000,
    "minute": 60 * 1_000,
    "hour": 60 * 60 * 1_000,
    "day": 24 * 60 * 60 * 1_000,
}

_TAG_PATTERNS: Dict[str, re.Pattern[str]] = {
    "service": re.compile(r"@service\s+(\S+)"),
    "methods": re.compile(r"@methods\s+([^\n]+)"),
    "provider": re.compile(r"@provider\s+(\S+)"),
    "rate_limit": re.compile(r"@rateLimit\s+([^\n]+)"),
    "description": re.compile(r"@description\s+([^\n]+)"),
}


@dataclass(frozen=True, slots=True)
class LinkedService:
    """An annotation together with its resolved routes."""

    annotation: ServiceAnnotation
    routes: Tuple[ServiceRoute, ...]
    export_name: str
    rate_limit: Optional[RateLimit] = None

    @property
    def name(self) -> str:
        return self.annotation.name


# ---------------------------------------------------------------------------
# Verb and path inference
# ---------------------------------------------------------------------------


def _match_prefix(method: str) -> Optional[Tuple[str, HttpVerb]]:
    """The verb prefix *method* starts with, compared case-insensitively."""
    lowered: str = method.lower()
    for prefix, verb in VERB_PREFIXES:
        if lowered.startswith(prefix):
            return prefix, verb
    return None


def infer_http_verb(method: str) -> HttpVerb:
    """
    HTTP verb for a service method name.

    Examples:
        >>> infer_http_verb("sendMessage")
        <HttpVerb.POST: 'POST'>
        >>> infer_http_verb("deleteall")
        <HttpVerb.DELETE: 'DELETE'>
        >>> infer_http_verb("history")
        <HttpVerb.GET: 'GET'>
    """
    match = _match_prefix(method)
    return match[1] if match else HttpVerb.GET


def infer_route_path(service: str, method: str) -> str:
    """
    Route path ``/<service>/<segment>`` for a service method.

    The verb prefix is dropped and the rest is kebab-cased; a method that is
    nothing but a prefix keeps its full name.

    Examples:
        >>> infer_route_path("ai-agent", "getHistory")
        '/ai-agent/history'
        >>> infer_route_path("ai-agent", "regenerateResponse")
        '/ai-agent/regenerate-response'
    """
    match = _match_prefix(method)
    remainder: str = method[len(match[0]):] if match else method
    segment: str = to_kebab_case(remainder) or to_kebab_case(method) or method
    return f"/{to_kebab_case(service) or service}/{segment}"


def is_modifying_method(method: str) -> bool:
    """True when the method name maps onto a write verb."""
    return infer_http_verb(method) != HttpVerb.GET


def service_export_name(annotation: ServiceAnnotation) -> str:
    """``ai-agent`` → ``aiAgentService``."""
    return f"{to_camel_case(annotation.name)}Service"


def parse_rate_limit(value: str) -> RateLimit:
    """
    Parse ``"<count>/<unit>"`` into a ``RateLimit``.

    Units are ``second``, ``minute``, ``hour`` and ``day`` (plural allowed).

    Raises:
        ConfigurationError: Malformed value, unknown unit or a zero count.
    """
    match = _RATE_LIMIT_RE.match(value or "")
    if not match:
        raise ConfigurationError(f"Invalid rate limit {value!r}. Expected e.g. '10/minute'.")

    unit: str = match.group(2).lower()
    if unit.endswith("s"):
        unit = unit[:-1]
    window: Optional[int] = _RATE_WINDOWS_MS.get(unit)
    if window is None:
        raise ConfigurationError(
            f"Unknown rate limit unit {match.group(2)!r}. Use: second, minute, hour or day."
        )
    try:
        return RateLimit(max_requests=int(match.group(1)), window_ms=window)
    except PydanticValidationError as exc:
        raise ConfigurationError(f"Invalid rate limit {value!r}: {exc}") from exc


def link_service(annotation: ServiceAnnotation) -> LinkedService:
    """Resolve every method of *annotation* into a ``ServiceRoute``, in order."""
    routes: Tuple[ServiceRoute, ...] = tuple(
        ServiceRoute(
            method=m.name,
            verb=infer_http_verb(m.name),
            path=infer_route_path(annotation.name, m.name),
        )
        for m in annotation.methods
    )
    rate_limit: Optional[RateLimit] = (
        parse_rate_limit(annotation.rate_limit) if annotation.rate_limit else None
    )
    return LinkedService(
        annotation=annotation,
        routes=routes,
        export_name=service_export_name(annotation),
        rate_limit=rate_limit,
    )


# ---------------------------------------------------------------------------
# Documentation tag parsing
# ---------------------------------------------------------------------------


def parse_service_annotation(model: ModelInfo) -> Optional[ServiceAnnotation]:
    """
    Read ``@service`` tags from a model's documentation.

    Returns ``None`` when the model is not a service model.
    """
    doc: str = model.documentation or ""
    service_match = _TAG_PATTERNS["service"].search(doc)
    if not service_match:
        return None

    def _tag(key: str) -> Optional[str]:
        found = _TAG_PATTERNS[key].search(doc)
        return found.group(1).strip() if found else None

    methods_raw: Optional[str] = _tag("methods")
    methods: List[str] = (
        [m.strip() for m in methods_raw.split(",") if m.strip()] if methods_raw else []
    )
    return ServiceAnnotation(
        name=service_match.group(1),
        methods=methods,
        model=model.name,
        provider=_tag("provider"),
        rate_limit=_tag("rate_limit"),
        description=_tag("description"),
    )


def parse_all_service_annotations(models: Iterable[ModelInfo]) -> Dict[str, ServiceAnnotation]:
    """
    Service annotations of every model, keyed by service name in model order.

    A service name declared twice keeps its first declaration.
    """
    annotations: Dict[str, ServiceAnnotation] = {}
    for model in models:
        annotation: Optional[ServiceAnnotation] = parse_service_annotation(model)
        if annotation is None:
            continue
        if annotation.name in annotations:
            logger.warning(
                "Service '%s' declared again on model %s; keeping the declaration on %s.",
                annotation.name,
                model.name,
                annotations[annotation.name].model,
            )
            continue
        annotations[annotation.name] = annotation
    logger.debug("Parsed %d service annotation(s).", len(annotations))
    return annotations


def build_service_annotations(raw: Mapping[str, object]) -> Dict[str, ServiceAnnotation]:
    """
    Validate a mapping of service name → raw annotation.

    Raises:
        ConfigurationError: An annotation fails validation.
    """
    annotations: Dict[str, ServiceAnnotation] = {}
    for key, value in raw.items():
        if isinstance(value, ServiceAnnotation):
            annotations[key] = value
            continue
        try:
            annotations[key] = ServiceAnnotation.model_validate(value)
        except PydanticValidationError as exc:
            raise ConfigurationError(f"Service annotation '{key}' is invalid: {exc}") from exc
    return annotations


__all__: List[str] = [
    "VERB_PREFIXES",
    "LinkedService",
    "infer_http_verb",
    "infer_route_path",
    "is_modifying_method",
    "service_export_name",
    "parse_rate_limit",
    "link_service",
    "parse_service_annotation",
    "parse_all_service_annotations",
    "build_service_annotations",
]

logger.debug("crudgen.services loaded.")
