# File: crudgen/__init__.py
"""
crudgen — CRUD Scaffold Generator
==================================

Turns a flat list of data-model definitions into an annotated model graph
(relationship cardinality, join-model detection, capability inference) and
drives independent renderers over it to produce CRUD contracts, input
validators and service-integration scaffolds.

Architecture overview::

    ┌──────────┐   ┌────────────┐   ┌────────────────────┐   ┌──────────┐
    │  graph   │──▶│  analyzer  │──▶│ RegistryModeGen.   │──▶│  merger  │
    │ (.py)    │   │  (.py)     │   │  (generator.py)    │   │  (.py)   │
    └──────────┘   └─────┬──────┘   └─────────┬──────────┘   └──────────┘
                         │                    │
           ┌─────────────┼──────────┐         ▼
           ▼             ▼          ▼    ┌───────────┐
    relationships    junction  capabilities  renderers │
                                         └───────────┘

Usage::

    from crudgen import ScaffoldPipeline, GeneratedFiles

    files = GeneratedFiles()
    report = ScaffoldPipeline().run_document(document, files=files)
    print(report.summary())

Public API:
    - ScaffoldPipeline        — End-to-end pipeline
    - RegistryModeGenerator   — Generation orchestrator
    - build_schema            — Model graph builder
    - analyze_schema          — Analysis map builder
    - link_service            — Service annotation linker
    - merge_into_generated_files — Result merger
"""

from __future__ import annotations

__version__: str = "0.1.0"
__license__: str = "MIT"

from crudgen.analyzer import analyze_model, analyze_schema
from crudgen.capabilities import SENSITIVE_TERMS, analyze_capabilities, detect_special_fields
from crudgen.errors import ConfigurationError, CrudgenError, GenerationError, ValidationError
from crudgen.generator import (
    GenerationResult,
    RegistryModeGenerator,
    UnitError,
    default_code_validator,
    generate_registry_mode,
    python_syntax_validator,
)
from crudgen.graph import GraphBuildResult, build_model, build_schema, split_schema_document
from crudgen.junction import is_junction_table
from crudgen.merger import GeneratedFiles, merge_into_generated_files
from crudgen.models import (
    AnalyzerConfig,
    Cardinality,
    ContractSet,
    EnumDefinition,
    FieldInfo,
    FieldKind,
    GenerationOptions,
    HttpVerb,
    ModelAnalysis,
    ModelInfo,
    RateLimit,
    RelationshipInfo,
    SchemaDefinition,
    ServiceAnnotation,
    ServiceRoute,
    SpecialMarker,
    ValidatorSet,
)
from crudgen.pipeline import BulkReport, PipelineReport, ScaffoldPipeline
from crudgen.relationships import analyze_relationships, classify_relationship, find_back_reference
from crudgen.renderers import DefaultRenderers, RendererRegistry
from crudgen.services import (
    LinkedService,
    infer_http_verb,
    infer_route_path,
    link_service,
    parse_all_service_annotations,
    parse_rate_limit,
    parse_service_annotation,
    service_export_name,
)
from crudgen.utils import Timer, setup_logging
from crudgen.validators import ValidationResult, validate_full

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__license__",
    # Pipeline & orchestration
    "ScaffoldPipeline",
    "PipelineReport",
    "BulkReport",
    "RegistryModeGenerator",
    "GenerationResult",
    "UnitError",
    "generate_registry_mode",
    "default_code_validator",
    "python_syntax_validator",
    # Graph & analysis
    "GraphBuildResult",
    "build_model",
    "build_schema",
    "split_schema_document",
    "analyze_model",
    "analyze_schema",
    "analyze_relationships",
    "classify_relationship",
    "find_back_reference",
    "is_junction_table",
    "analyze_capabilities",
    "detect_special_fields",
    "SENSITIVE_TERMS",
    # Services
    "LinkedService",
    "infer_http_verb",
    "infer_route_path",
    "link_service",
    "parse_service_annotation",
    "parse_all_service_annotations",
    "parse_rate_limit",
    "service_export_name",
    # Renderers & merge
    "DefaultRenderers",
    "RendererRegistry",
    "GeneratedFiles",
    "merge_into_generated_files",
    # Models
    "AnalyzerConfig",
    "Cardinality",
    "ContractSet",
    "EnumDefinition",
    "FieldInfo",
    "FieldKind",
    "GenerationOptions",
    "HttpVerb",
    "ModelAnalysis",
    "ModelInfo",
    "RateLimit",
    "RelationshipInfo",
    "SchemaDefinition",
    "ServiceAnnotation",
    "ServiceRoute",
    "SpecialMarker",
    "ValidatorSet",
    # Errors
    "CrudgenError",
    "ValidationError",
    "GenerationError",
    "ConfigurationError",
    # Validation & utilities
    "ValidationResult",
    "validate_full",
    "Timer",
    "setup_logging",
]
