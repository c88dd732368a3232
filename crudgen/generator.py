# File: crudgen/generator.py
"""
crudgen - Registry-Mode Generation Orchestrator
================================================

Drives the renderer collaborators over every model and service annotation
and folds their output into one ``GenerationResult``::

    1. Registry files         (optional registry renderer, once per run)
    2. Per model, in order    → contracts + validators
                                (junction models skipped when configured)
    3. Per service annotation → controller + routes + scaffold

Error handling strategy:
    - Contradictory configuration raises ``ConfigurationError`` before any
      unit runs.
    - Each unit (registry, model or annotation) is atomic: its files are
      committed only if every renderer call for it succeeded.
    - A failing unit is recorded as a ``UnitError`` wrapping a
      ``GenerationError`` (the renderer exception is its ``__cause__``) and
      the fold moves on.  With ``continue_on_error=False`` that
      ``GenerationError`` is raised instead.
    - Generated files rejected by the code validator are dropped silently.

The orchestrator is synchronous, does no I/O and shares no mutable state
between instances.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from crudgen.errors import ConfigurationError, GenerationError
from crudgen.models import (
    ContractSet,
    GenerationOptions,
    ModelAnalysis,
    ModelInfo,
    SchemaDefinition,
    ServiceAnnotation,
    ValidatorSet,
)
from crudgen.renderers import RendererRegistry
from crudgen.utils import count_lines, to_snake_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.generator")

CodeValidator = Callable[[str, str], bool]

REGISTRY_UNIT: str = "<registry>"


# ---------------------------------------------------------------------------
# Code validators
# ---------------------------------------------------------------------------


def default_code_validator(code: str, filename: str) -> bool:
    """Accept any file that is not blank."""
    return bool(code and code.strip())


def python_syntax_validator(code: str, filename: str) -> bool:
    """Accept non-blank files that compile as Python source."""
    if not default_code_validator(code, filename):
        return False
    try:
        compile(code, filename, "exec")
    except SyntaxError as exc:
        logger.warning("Dropping %s: syntax error at line %s: %s", filename, exc.lineno, exc.msg)
        return False
    return True


# ---------------------------------------------------------------------------
# Result containers
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class UnitError:
    """One failed generation unit."""

    model: str
    message: str
    error: Optional[BaseException] = None

    def __str__(self) -> str:
        return f"{self.model}: {self.message}"


@dataclass(slots=True)
class GenerationResult:
    """
    Everything one orchestrator run produced.

    ``contracts`` and ``validators`` map model name → filename → source;
    the service maps are flat filename → source.
    """

    registry: Dict[str, str] = field(default_factory=dict)
    contracts: Dict[str, Dict[str, str]] = field(default_factory=dict)
    validators: Dict[str, Dict[str, str]] = field(default_factory=dict)
    service_controllers: Dict[str, str] = field(default_factory=dict)
    service_routes: Dict[str, str] = field(default_factory=dict)
    service_scaffolds: Dict[str, str] = field(default_factory=dict)
    models_processed: int = 0
    service_integrations: int = 0
    skipped_models: List[str] = field(default_factory=list)
    errors: List[UnitError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def total_files(self) -> int:
        return (
            len(self.registry)
            + sum(len(files) for files in self.contracts.values())
            + sum(len(files) for files in self.validators.values())
            + len(self.service_controllers)
            + len(self.service_routes)
            + len(self.service_scaffolds)
        )

    def iter_files(self) -> List[Tuple[str, str]]:
        """Every (filename, content) pair, registry first."""
        files: List[Tuple[str, str]] = list(self.registry.items())
        for per_model in (self.contracts, self.validators):
            for model_files in per_model.values():
                files.extend(model_files.items())
        for flat in (self.service_controllers, self.service_routes, self.service_scaffolds):
            files.extend(flat.items())
        return files

    def summary(self) -> str:
        """Return a human-readable summary string."""
        total_lines: int = sum(count_lines(content) for _, content in self.iter_files())
        status: str = "✅ SUCCESS" if self.success else "❌ COMPLETED WITH ERRORS"
        lines: List[str] = [
            f"{'=' * 60}",
            "  crudgen — Registry-Mode Generation",
            f"{'=' * 60}",
            f"  Status:               {status}",
            f"  Models processed:     {self.models_processed}",
            f"  Service integrations: {self.service_integrations}",
            f"  Files generated:      {self.total_files}",
            f"  Total lines:          {total_lines:,}",
        ]
        if self.skipped_models:
            lines.append(f"{'─' * 60}")
            lines.append(f"  Skipped Models ({len(self.skipped_models)}):")
            for name in self.skipped_models:
                lines.append(f"    ⊘ {name}")
        if self.errors:
            lines.append(f"{'─' * 60}")
            lines.append(f"  Errors ({len(self.errors)}):")
            for err in self.errors:
                lines.append(f"    ✗ {err}")
        lines.append(f"{'=' * 60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# RegistryModeGenerator
# ---------------------------------------------------------------------------


class RegistryModeGenerator:
    """
    Orchestrates the renderers for one schema.

    Usage::

        generator = RegistryModeGenerator(schema, analysis, annotations)
        result = generator.generate()
        print(result.summary())

    Raises:
        ConfigurationError: At construction, when a ``code_validator`` is
            given while ``validate_code`` is off, when the analysis map lacks
            a model of the schema, when a required renderer is missing, or when two
            service names map onto the same file names.
    """

    def __init__(
        self,
        schema: SchemaDefinition,
        analysis: Mapping[str, ModelAnalysis],
        service_annotations: Optional[Mapping[str, ServiceAnnotation]] = None,
        renderers: Optional[RendererRegistry] = None,
        options: Optional[GenerationOptions] = None,
        code_validator: Optional[CodeValidator] = None,
    ) -> None:
        self._schema: SchemaDefinition = schema
        self._analysis: Mapping[str, ModelAnalysis] = analysis
        self._annotations: Mapping[str, ServiceAnnotation] = service_annotations or {}
        self._renderers: RendererRegistry = renderers or RendererRegistry.default()
        self._options: GenerationOptions = options or GenerationOptions()

        if code_validator is not None and not self._options.validate_code:
            raise ConfigurationError(
                "A code_validator was supplied but validate_code is disabled."
            )
        self._code_validator: CodeValidator = code_validator or default_code_validator

        self._check_configuration()

        logger.debug(
            "RegistryModeGenerator initialised: %d model(s), %d annotation(s), options=%s.",
            len(schema.models),
            len(self._annotations),
            self._options.model_dump(),
        )

    def _check_configuration(self) -> None:
        missing_analysis: List[str] = [
            m.name for m in self._schema.models if m.name not in self._analysis
        ]
        if missing_analysis:
            raise ConfigurationError(
                f"Analysis map is missing entries for model(s): {missing_analysis}"
            )

        needs_services: bool = self._options.include_service_integrations and bool(
            self._annotations
        )
        missing_renderers: List[str] = self._renderers.missing(include_services=needs_services)
        if missing_renderers:
            raise ConfigurationError(f"Renderer registry lacks: {missing_renderers}")

        if needs_services:
            # Service files are named after the snake-cased service name.
            seen: Dict[str, str] = {}
            for annotation in self._annotations.values():
                stem: str = to_snake_case(annotation.name) or annotation.name
                if stem in seen:
                    raise ConfigurationError(
                        f"Services '{seen[stem]}' and '{annotation.name}' would both "
                        f"write '{stem}_*.py' files."
                    )
                seen[stem] = annotation.name

    # -----------------------------------------------------------------
    # Public
    # -----------------------------------------------------------------

    def generate(self) -> GenerationResult:
        """Run the full fold and return its result."""
        result: GenerationResult = GenerationResult()

        if self._renderers.registry is not None:
            self._step_registry(result)

        self._step_models(result)

        if self._options.include_service_integrations:
            self._step_services(result)

        log = logger.warning if result.errors else logger.info
        log(
            "Registry-mode generation finished: %d model(s), %d service(s), "
            "%d skipped, %d error(s).",
            result.models_processed,
            result.service_integrations,
            len(result.skipped_models),
            len(result.errors),
        )
        return result

    # -----------------------------------------------------------------
    # Steps
    # -----------------------------------------------------------------

    def _step_registry(self, result: GenerationResult) -> None:
        try:
            files: Dict[str, str] = self._renderers.registry(self._schema, dict(self._analysis))
            if not isinstance(files, Mapping):
                raise TypeError(
                    f"registry renderer returned {type(files).__name__}, expected a mapping"
                )
            accepted: Dict[str, str] = self._filter_files(files.items())
        except Exception as exc:
            self._record_failure(result, REGISTRY_UNIT, "registry", exc)
            return
        result.registry.update(accepted)

    def _step_models(self, result: GenerationResult) -> None:
        for model in self._schema.models:
            model_analysis: ModelAnalysis = self._analysis[model.name]

            if model_analysis.is_junction_table and self._options.skip_junction_tables:
                logger.info("Skipping junction model '%s'.", model.name)
                result.skipped_models.append(model.name)
                continue

            try:
                contracts, validators = self._render_model(model, model_analysis)
            except Exception as exc:
                self._record_failure(result, model.name, "model", exc)
                continue

            if contracts:
                result.contracts[model.name] = contracts
            if validators:
                result.validators[model.name] = validators
            result.models_processed += 1
            logger.debug(
                "Model '%s': %d contract(s), %d validator(s).",
                model.name,
                len(contracts),
                len(validators),
            )

    def _step_services(self, result: GenerationResult) -> None:
        for name, annotation in self._annotations.items():
            try:
                controller, routes, scaffold = self._render_service(annotation)
            except Exception as exc:
                self._record_failure(result, name, "service", exc)
                continue

            result.service_controllers.update(controller)
            result.service_routes.update(routes)
            result.service_scaffolds.update(scaffold)
            result.service_integrations += 1
            logger.debug("Service '%s' integrated.", name)

    # -----------------------------------------------------------------
    # Unit rendering (no side effects on the result)
    # -----------------------------------------------------------------

    def _render_model(
        self,
        model: ModelInfo,
        model_analysis: ModelAnalysis,
    ) -> Tuple[Dict[str, str], Dict[str, str]]:
        snake: str = to_snake_case(model.name)

        contracts = self._renderers.contracts(model, model_analysis)
        if not isinstance(contracts, ContractSet):
            raise TypeError(
                f"contracts renderer returned {type(contracts).__name__}, expected ContractSet"
            )
        validators = self._renderers.validators(model, model_analysis)
        if not isinstance(validators, ValidatorSet):
            raise TypeError(
                f"validators renderer returned {type(validators).__name__}, expected ValidatorSet"
            )

        contract_files: Dict[str, str] = self._filter_files(
            (f"{snake}_{kind}_contract.py", code) for kind, code in contracts.items()
        )
        validator_files: Dict[str, str] = self._filter_files(
            (f"{snake}_{kind}_validator.py", code) for kind, code in validators.items()
        )
        return contract_files, validator_files

    def _render_service(
        self,
        annotation: ServiceAnnotation,
    ) -> Tuple[Dict[str, str], Dict[str, str], Dict[str, str]]:
        snake: str = to_snake_case(annotation.name) or annotation.name

        rendered: List[Dict[str, str]] = []
        for renderer, filename in (
            (self._renderers.service_controller, f"{snake}_controller.py"),
            (self._renderers.service_routes, f"{snake}_routes.py"),
            (self._renderers.service_scaffold, f"{snake}_service_scaffold.py"),
        ):
            code = renderer(annotation)
            if not isinstance(code, str):
                raise TypeError(
                    f"service renderer returned {type(code).__name__} for {filename}, expected str"
                )
            rendered.append(self._filter_files([(filename, code)]))
        return rendered[0], rendered[1], rendered[2]

    def _filter_files(self, files: Iterable[Tuple[str, str]]) -> Dict[str, str]:
        """Keep files the code validator accepts; drop the rest silently."""
        accepted: Dict[str, str] = {}
        for filename, code in files:
            if not self._options.validate_code or self._code_validator(code, filename):
                accepted[filename] = code
            else:
                logger.debug("Code validator rejected %s.", filename)
        return accepted

    # -----------------------------------------------------------------
    # Failure handling
    # -----------------------------------------------------------------

    def _record_failure(
        self,
        result: GenerationResult,
        unit: str,
        unit_kind: str,
        exc: Exception,
    ) -> None:
        message: str = f"{unit_kind} '{unit}' failed: {type(exc).__name__}: {exc}"
        error: GenerationError = GenerationError(unit, message)
        error.__cause__ = exc

        if not self._options.continue_on_error:
            logger.error("Aborting generation: %s", message)
            raise error from exc

        logger.error("Generation error recorded: %s", message)
        result.errors.append(UnitError(model=unit, message=message, error=error))


# ---------------------------------------------------------------------------
# Convenience entry point
# ---------------------------------------------------------------------------


def generate_registry_mode(
    schema: SchemaDefinition,
    analysis: Mapping[str, ModelAnalysis],
    service_annotations: Optional[Mapping[str, ServiceAnnotation]] = None,
    renderers: Optional[RendererRegistry] = None,
    options: Optional[GenerationOptions] = None,
    code_validator: Optional[CodeValidator] = None,
) -> GenerationResult:
    """One-shot ``RegistryModeGenerator(...).generate()``."""
    generator = RegistryModeGenerator(
        schema,
        analysis,
        service_annotations,
        renderers=renderers,
        options=options,
        code_validator=code_validator,
    )
    return generator.generate()


__all__: List[str] = [
    "CodeValidator",
    "REGISTRY_UNIT",
    "default_code_validator",
    "python_syntax_validator",
    "UnitError",
    "GenerationResult",
    "RegistryModeGenerator",
    "generate_registry_mode",
]

logger.debug("crudgen.generator loaded.")
