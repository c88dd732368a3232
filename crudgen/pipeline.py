# File: crudgen/pipeline.py
"""
crudgen - End-to-End Scaffold Pipeline
=======================================

Connects every phase for one project::

    Raw Models → Graph Build → Validation → Analysis → Generation → Merge

and returns a ``PipelineReport`` with per-step timing, validation issues
and the ``GenerationResult``.

Error handling strategy:
    - Models rejected by the graph builder are reported as the first
      entries of the result's error list; the rest of the run continues.
    - Semantic validation findings are reported, never fatal.
    - ``ConfigurationError`` (bad options, invalid service annotations,
      missing renderers) propagates: the run cannot start.

``run_bulk`` runs independent projects on a thread pool.  Each run gets its
own graph, analysis and result; only the final merge touches the shared
aggregate, and it happens on the calling thread.
"""

from __future__ import annotations

import logging
import os
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from crudgen.analyzer import analyze_schema
from crudgen.errors import ValidationError
from crudgen.generator import (
    CodeValidator,
    GenerationResult,
    RegistryModeGenerator,
    UnitError,
)
from crudgen.graph import GraphBuildResult, build_schema, split_schema_document
from crudgen.merger import GeneratedFiles, merge_into_generated_files
from crudgen.models import (
    AnalyzerConfig,
    GenerationOptions,
    ModelAnalysis,
    SchemaDefinition,
    ServiceAnnotation,
)
from crudgen.renderers import RendererRegistry
from crudgen.services import build_service_annotations, parse_all_service_annotations
from crudgen.utils import Timer
from crudgen.validators import ValidationResult, validate_full

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.pipeline")

DEFAULT_MAX_WORKERS: int = 4


# ---------------------------------------------------------------------------
# Report containers
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class StepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class PipelineReport:
    """Outcome of one ``ScaffoldPipeline.run``."""

    project_name: str = ""
    success: bool = False
    total_elapsed_seconds: float = 0.0

    step_metrics: List[StepMetric] = field(default_factory=list)
    graph_errors: List[ValidationError] = field(default_factory=list)
    validation: ValidationResult = field(default_factory=ValidationResult)
    analysis: Dict[str, ModelAnalysis] = field(default_factory=dict)
    service_annotations: Dict[str, ServiceAnnotation] = field(default_factory=dict)
    result: GenerationResult = field(default_factory=GenerationResult)

    @property
    def errors(self) -> List[UnitError]:
        return self.result.errors

    def summary(self) -> str:
        """Return a human-readable summary string."""
        status: str = "✅ SUCCESS" if self.success else "❌ COMPLETED WITH ERRORS"
        lines: List[str] = [
            f"{'=' * 60}",
            "  crudgen — Scaffold Pipeline Report",
            f"{'=' * 60}",
            f"  Status:           {status}",
            f"  Project:          {self.project_name}",
            f"  Models processed: {self.result.models_processed}",
            f"  Services:         {self.result.service_integrations}",
            f"  Files generated:  {self.result.total_files}",
            f"  Total time:       {self.total_elapsed_seconds:.3f}s",
            f"{'─' * 60}",
        ]
        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<20s} "
                    f"{step.elapsed_seconds:>7.3f}s  "
                    f"{step.detail}"
                )
        if self.validation.warning_count or self.validation.error_count:
            lines.append(f"{'─' * 60}")
            lines.append(f"  {self.validation.summary()}")
            for issue in self.validation.all_items:
                lines.append(f"    ⚠ {issue}")
        if self.result.errors:
            lines.append(f"{'─' * 60}")
            lines.append(f"  Errors ({len(self.result.errors)}):")
            for err in self.result.errors:
                lines.append(f"    ✗ {err}")
        lines.append(f"{'=' * 60}")
        return "\n".join(lines)


@dataclass(slots=True)
class BulkReport:
    """Per-project reports plus the merged aggregate of every run."""

    reports: Dict[str, PipelineReport] = field(default_factory=dict)
    files: GeneratedFiles = field(default_factory=GeneratedFiles)

    @property
    def success(self) -> bool:
        return all(r.success for r in self.reports.values())


# ---------------------------------------------------------------------------
# ScaffoldPipeline
# ---------------------------------------------------------------------------


class ScaffoldPipeline:
    """
    Reusable pipeline: create once, ``run`` many times.

    Usage::

        pipeline = ScaffoldPipeline()
        report = pipeline.run_document(schema_dict, project_name="blog")
        print(report.summary())
    """

    def __init__(
        self,
        analyzer_config: Optional[AnalyzerConfig] = None,
        options: Optional[GenerationOptions] = None,
        renderers: Optional[RendererRegistry] = None,
        code_validator: Optional[CodeValidator] = None,
    ) -> None:
        self._analyzer_config: AnalyzerConfig = analyzer_config or AnalyzerConfig()
        self._options: GenerationOptions = options or GenerationOptions()
        self._renderers: RendererRegistry = renderers or RendererRegistry.default()
        self._code_validator: Optional[CodeValidator] = code_validator

    # -----------------------------------------------------------------
    # Public: single project
    # -----------------------------------------------------------------

    def run_document(
        self,
        document: Mapping[str, Any],
        *,
        project_name: str = "project",
        files: Optional[GeneratedFiles] = None,
    ) -> PipelineReport:
        """Run on a parsed schema document (``models`` / ``enums`` / ``services``)."""
        raw_models, raw_enums, raw_services = split_schema_document(document)
        return self.run(
            raw_models,
            raw_enums,
            raw_services,
            project_name=project_name,
            files=files,
        )

    def run(
        self,
        raw_models: Iterable[Any],
        raw_enums: Iterable[Any] = (),
        service_annotations: Optional[Mapping[str, Any]] = None,
        *,
        project_name: str = "project",
        files: Optional[GeneratedFiles] = None,
    ) -> PipelineReport:
        """
        Build → validate → analyze → generate, then merge into *files* if given.

        Raises:
            ConfigurationError: Invalid annotations or a misconfigured
                generator.
        """
        report: PipelineReport = PipelineReport(project_name=project_name)
        pipeline_start: float = time.perf_counter()

        schema: SchemaDefinition = self._step_build(raw_models, raw_enums, report)
        annotations: Dict[str, ServiceAnnotation] = self._step_annotations(
            schema, service_annotations, report
        )
        self._step_validate(schema, annotations, report)
        self._step_analyze(schema, report)
        self._step_generate(schema, annotations, report)
        if files is not None:
            self._step_merge(files, report)

        report.total_elapsed_seconds = time.perf_counter() - pipeline_start
        report.success = not report.result.errors
        logger.info(
            "Pipeline '%s' finished in %.3fs: %d model(s), %d error(s).",
            project_name,
            report.total_elapsed_seconds,
            report.result.models_processed,
            len(report.result.errors),
        )
        return report

    # -----------------------------------------------------------------
    # Public: many projects
    # -----------------------------------------------------------------

    def run_bulk(
        self,
        projects: Mapping[str, Mapping[str, Any]],
        *,
        max_workers: Optional[int] = None,
        files: Optional[GeneratedFiles] = None,
    ) -> BulkReport:
        """
        Run independent projects concurrently and merge them in input order.

        Each value of *projects* is a schema document as accepted by
        ``run_document``.  The first ``ConfigurationError`` raised by any
        project propagates after all submitted runs have finished, and
        *files* is left untouched: nothing is merged until every project
        has produced its report.
        """
        workers: int = max_workers or min(DEFAULT_MAX_WORKERS, max(1, os.cpu_count() or 1))
        bulk: BulkReport = BulkReport(files=files if files is not None else GeneratedFiles())

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures: Dict[str, Future[PipelineReport]] = {
                name: executor.submit(self.run_document, document, project_name=name)
                for name, document in projects.items()
            }

        reports: Dict[str, PipelineReport] = {
            name: future.result() for name, future in futures.items()
        }

        for name, report in reports.items():
            with Timer(f"merge:{name}") as t:
                merge_into_generated_files(report.result, bulk.files)
            report.step_metrics.append(StepMetric(
                step_name="Merge",
                success=True,
                elapsed_seconds=t.elapsed,
                detail=f"{report.result.total_files} file(s)",
            ))
            bulk.reports[name] = report

        logger.info(
            "Bulk run finished: %d project(s) on %d worker(s), %d file(s) aggregated.",
            len(bulk.reports),
            workers,
            bulk.files.file_count,
        )
        return bulk

    # -----------------------------------------------------------------
    # Steps
    # -----------------------------------------------------------------

    def _step_build(
        self,
        raw_models: Iterable[Any],
        raw_enums: Iterable[Any],
        report: PipelineReport,
    ) -> SchemaDefinition:
        with Timer("build_graph") as t:
            built: GraphBuildResult = build_schema(raw_models, raw_enums)
        report.graph_errors = list(built.errors)
        report.step_metrics.append(StepMetric(
            step_name="Build Graph",
            success=not built.errors,
            elapsed_seconds=t.elapsed,
            detail=f"{len(built.schema.models)} model(s), {len(built.errors)} rejected",
        ))
        return built.schema

    def _step_annotations(
        self,
        schema: SchemaDefinition,
        explicit: Optional[Mapping[str, Any]],
        report: PipelineReport,
    ) -> Dict[str, ServiceAnnotation]:
        with Timer("annotations") as t:
            annotations: Dict[str, ServiceAnnotation] = parse_all_service_annotations(schema.models)
            if explicit:
                annotations.update(build_service_annotations(explicit))
        report.service_annotations = annotations
        report.step_metrics.append(StepMetric(
            step_name="Service Annotations",
            success=True,
            elapsed_seconds=t.elapsed,
            detail=f"{len(annotations)} service(s)",
        ))
        return annotations

    def _step_validate(
        self,
        schema: SchemaDefinition,
        annotations: Mapping[str, ServiceAnnotation],
        report: PipelineReport,
    ) -> None:
        with Timer("validation") as t:
            result: ValidationResult = validate_full(schema, annotations)
        report.validation = result

        if result.has_errors:
            detail: str = f"{result.error_count} error(s)"
        elif result.warning_count:
            detail = f"{result.warning_count} warning(s)"
        else:
            detail = "all checks passed"
        report.step_metrics.append(StepMetric(
            step_name="Validate",
            success=result.is_valid,
            elapsed_seconds=t.elapsed,
            detail=detail,
        ))
        for issue in result.all_items:
            logger.warning("  ⚠ %s", issue)

    def _step_analyze(self, schema: SchemaDefinition, report: PipelineReport) -> None:
        with Timer("analysis") as t:
            report.analysis = analyze_schema(schema, self._analyzer_config)
        junctions: int = sum(1 for a in report.analysis.values() if a.is_junction_table)
        report.step_metrics.append(StepMetric(
            step_name="Analyze",
            success=True,
            elapsed_seconds=t.elapsed,
            detail=f"{len(report.analysis)} model(s), {junctions} junction(s)",
        ))

    def _step_generate(
        self,
        schema: SchemaDefinition,
        annotations: Mapping[str, ServiceAnnotation],
        report: PipelineReport,
    ) -> None:
        generator = RegistryModeGenerator(
            schema,
            report.analysis,
            annotations,
            renderers=self._renderers,
            options=self._options,
            code_validator=self._code_validator,
        )
        with Timer("generation") as t:
            result: GenerationResult = generator.generate()

        graph_failures: List[UnitError] = [
            UnitError(model=err.model, message=err.message, error=err)
            for err in report.graph_errors
        ]
        result.errors[:0] = graph_failures
        report.result = result

        report.step_metrics.append(StepMetric(
            step_name="Generate",
            success=result.success,
            elapsed_seconds=t.elapsed,
            detail=f"{result.total_files} file(s), {result.models_processed} model(s)",
        ))

    def _step_merge(self, files: GeneratedFiles, report: PipelineReport) -> None:
        with Timer("merge") as t:
            merge_into_generated_files(report.result, files)
        report.step_metrics.append(StepMetric(
            step_name="Merge",
            success=True,
            elapsed_seconds=t.elapsed,
            detail=f"{files.file_count} file(s) in aggregate",
        ))


__all__: List[str] = [
    "StepMetric",
    "PipelineReport",
    "BulkReport",
    "ScaffoldPipeline",
]

logger.debug("crudgen.pipeline loaded.")
