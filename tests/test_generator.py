"""
tests/test_generator.py
Unit tests for crudgen.generator (the registry-mode orchestrator).

Tests cover:
- Junction skipping and the models_processed counter
- Per-unit error isolation and fail-fast mode
- Code-validator filtering
- Configuration errors raised before any unit runs
- Service integrations
- Determinism across runs
"""

from __future__ import annotations

from typing import Any, Dict, List

import pytest

from crudgen.analyzer import analyze_schema
from crudgen.errors import ConfigurationError, GenerationError
from crudgen.generator import (
    REGISTRY_UNIT,
    GenerationResult,
    RegistryModeGenerator,
    default_code_validator,
    generate_registry_mode,
    python_syntax_validator,
)
from crudgen.graph import build_schema
from crudgen.models import (
    ContractSet,
    GenerationOptions,
    ModelAnalysis,
    ModelInfo,
    SchemaDefinition,
    ServiceAnnotation,
    ValidatorSet,
)
from crudgen.renderers import DefaultRenderers, RendererRegistry


# ===========================================================================
# Helpers
# ===========================================================================


def _schema_and_analysis(raws: List[Dict[str, Any]]):
    built = build_schema(raws)
    assert not built.errors
    return built.schema, analyze_schema(built.schema)


def _failing_for(name: str, exc: Exception = RuntimeError("renderer exploded")) -> RendererRegistry:
    """Default renderers whose contract renderer raises for one model."""
    defaults = DefaultRenderers()

    def contracts(model: ModelInfo, analysis: ModelAnalysis) -> ContractSet:
        if model.name == name:
            raise exc
        return defaults.render_contracts(model, analysis)

    registry = RendererRegistry.default(include_registry=False)
    registry.contracts = contracts
    return registry


def _stub_renderers() -> RendererRegistry:
    def contracts(model: ModelInfo, analysis: ModelAnalysis) -> ContractSet:
        return ContractSet(create="c = 1", update="u = 1", read="r = 1", query="q = 1")

    def validators(model: ModelInfo, analysis: ModelAnalysis) -> ValidatorSet:
        return ValidatorSet(create="c = 1", update="", query="q = (")

    return RendererRegistry(contracts=contracts, validators=validators)


AI_AGENT = ServiceAnnotation(name="ai-agent", methods=["sendMessage", "getHistory"], rateLimit="20/minute")


# ===========================================================================
# Model step
# ===========================================================================


class TestModelGeneration:
    def test_junction_is_skipped(self, abc_models: List[Dict[str, Any]]) -> None:
        schema, analysis = _schema_and_analysis(abc_models)
        result = generate_registry_mode(schema, analysis)

        assert result.models_processed == 2
        assert "B" not in result.contracts
        assert "B" not in result.validators
        assert result.skipped_models == ["B"]
        assert set(result.contracts) == {"A", "C"}
        assert result.success

    def test_junction_generated_when_not_skipped(self, abc_models: List[Dict[str, Any]]) -> None:
        schema, analysis = _schema_and_analysis(abc_models)
        result = generate_registry_mode(
            schema, analysis, options=GenerationOptions(skip_junction_tables=False)
        )
        assert result.models_processed == 3
        assert "B" in result.contracts
        assert result.skipped_models == []

    def test_file_names(self, xy_models: List[Dict[str, Any]]) -> None:
        schema, analysis = _schema_and_analysis(xy_models)
        result = generate_registry_mode(schema, analysis)
        assert sorted(result.contracts["X"]) == [
            "x_create_contract.py",
            "x_query_contract.py",
            "x_read_contract.py",
            "x_update_contract.py",
        ]
        assert sorted(result.validators["X"]) == [
            "x_create_validator.py",
            "x_query_validator.py",
            "x_update_validator.py",
        ]
        assert list(result.registry) == ["model_registry.py"]

    def test_reference_schema(
        self,
        blog_schema: SchemaDefinition,
        blog_analysis: Dict[str, ModelAnalysis],
    ) -> None:
        result = generate_registry_mode(
            blog_schema, blog_analysis, code_validator=python_syntax_validator
        )
        assert result.success, result.summary()
        assert result.models_processed == 6
        assert result.skipped_models == ["PostTag"]
        assert result.total_files == 1 + 6 * 4 + 6 * 3


# ===========================================================================
# Error isolation
# ===========================================================================


class TestErrorIsolation:
    def test_failing_model_is_recorded_and_rest_continues(self, xy_models: List[Dict[str, Any]]) -> None:
        schema, analysis = _schema_and_analysis(xy_models)
        result = generate_registry_mode(schema, analysis, renderers=_failing_for("X"))

        assert len(result.errors) == 1
        assert result.errors[0].model == "X"
        assert "renderer exploded" in result.errors[0].message
        assert isinstance(result.errors[0].error, GenerationError)
        assert "Y" in result.contracts
        assert "X" not in result.contracts
        assert "X" not in result.validators
        assert result.models_processed == 1
        assert not result.success

    def test_fail_fast_raises_generation_error(self, xy_models: List[Dict[str, Any]]) -> None:
        schema, analysis = _schema_and_analysis(xy_models)
        boom = ValueError("bad template")
        generator = RegistryModeGenerator(
            schema,
            analysis,
            renderers=_failing_for("X", boom),
            options=GenerationOptions(continue_on_error=False),
        )
        with pytest.raises(GenerationError) as exc_info:
            generator.generate()
        assert exc_info.value.unit == "X"
        assert exc_info.value.__cause__ is boom

    def test_wrong_return_type_is_a_unit_error(self, xy_models: List[Dict[str, Any]]) -> None:
        schema, analysis = _schema_and_analysis(xy_models)
        registry = RendererRegistry.default(include_registry=False)
        registry.validators = lambda model, analysis: "not a validator set"
        result = generate_registry_mode(schema, analysis, renderers=registry)
        assert [e.model for e in result.errors] == ["X", "Y"]
        assert result.contracts == {}

    def test_failing_registry_renderer(self, xy_models: List[Dict[str, Any]]) -> None:
        schema, analysis = _schema_and_analysis(xy_models)
        registry = RendererRegistry.default()

        def broken_registry(schema: SchemaDefinition, analysis: Dict[str, ModelAnalysis]) -> Dict[str, str]:
            raise KeyError("registry")

        registry.registry = broken_registry
        result = generate_registry_mode(schema, analysis, renderers=registry)
        assert [e.model for e in result.errors] == [REGISTRY_UNIT]
        assert result.registry == {}
        assert result.models_processed == 2


# ===========================================================================
# Code validation
# ===========================================================================


class TestCodeValidation:
    def test_rejected_files_are_dropped(self, xy_models: List[Dict[str, Any]]) -> None:
        schema, analysis = _schema_and_analysis(xy_models)
        result = generate_registry_mode(
            schema, analysis, renderers=_stub_renderers(), code_validator=python_syntax_validator
        )
        assert result.success
        assert sorted(result.validators["X"]) == ["x_create_validator.py"]
        assert len(result.contracts["X"]) == 4

    def test_default_validator_drops_blank_files(self, xy_models: List[Dict[str, Any]]) -> None:
        schema, analysis = _schema_and_analysis(xy_models)
        result = generate_registry_mode(schema, analysis, renderers=_stub_renderers())
        assert sorted(result.validators["X"]) == ["x_create_validator.py", "x_query_validator.py"]

    def test_validation_disabled_keeps_everything(self, xy_models: List[Dict[str, Any]]) -> None:
        schema, analysis = _schema_and_analysis(xy_models)
        result = generate_registry_mode(
            schema,
            analysis,
            renderers=_stub_renderers(),
            options=GenerationOptions(validate_code=False),
        )
        assert len(result.validators["X"]) == 3

    def test_model_with_every_file_rejected_still_counts(self, xy_models: List[Dict[str, Any]]) -> None:
        schema, analysis = _schema_and_analysis(xy_models)
        result = generate_registry_mode(
            schema,
            analysis,
            renderers=RendererRegistry.default(include_registry=False),
            code_validator=lambda code, filename: False,
        )
        assert result.contracts == {}
        assert result.validators == {}
        assert result.models_processed == 2
        assert result.success

    def test_builtin_validators(self) -> None:
        assert default_code_validator("x = 1", "a.py")
        assert not default_code_validator("   \n", "a.py")
        assert python_syntax_validator("x = 1\n", "a.py")
        assert not python_syntax_validator("def broken(:\n", "a.py")


# ===========================================================================
# Configuration errors
# ===========================================================================


class TestConfiguration:
    def test_validator_with_validation_disabled(self, xy_models: List[Dict[str, Any]]) -> None:
        schema, analysis = _schema_and_analysis(xy_models)
        with pytest.raises(ConfigurationError):
            RegistryModeGenerator(
                schema,
                analysis,
                options=GenerationOptions(validate_code=False),
                code_validator=default_code_validator,
            )

    def test_missing_analysis_entry(self, xy_models: List[Dict[str, Any]]) -> None:
        schema, analysis = _schema_and_analysis(xy_models)
        del analysis["Y"]
        with pytest.raises(ConfigurationError, match="Y"):
            RegistryModeGenerator(schema, analysis)

    def test_missing_model_renderer(self, xy_models: List[Dict[str, Any]]) -> None:
        schema, analysis = _schema_and_analysis(xy_models)
        with pytest.raises(ConfigurationError, match="validators"):
            RegistryModeGenerator(schema, analysis, renderers=RendererRegistry(contracts=lambda m, a: None))

    def test_service_renderers_required_only_with_annotations(self, xy_models: List[Dict[str, Any]]) -> None:
        schema, analysis = _schema_and_analysis(xy_models)
        RegistryModeGenerator(schema, analysis, renderers=_stub_renderers())
        with pytest.raises(ConfigurationError, match="service_controller"):
            RegistryModeGenerator(schema, analysis, {"ai-agent": AI_AGENT}, renderers=_stub_renderers())
        RegistryModeGenerator(
            schema,
            analysis,
            {"ai-agent": AI_AGENT},
            renderers=_stub_renderers(),
            options=GenerationOptions(include_service_integrations=False),
        )

    def test_service_names_colliding_on_file_names(self, xy_models: List[Dict[str, Any]]) -> None:
        schema, analysis = _schema_and_analysis(xy_models)
        twin = ServiceAnnotation(name="ai_agent", methods=["getHistory"])
        annotations = {"ai-agent": AI_AGENT, "ai_agent": twin}
        with pytest.raises(ConfigurationError, match="ai_agent"):
            RegistryModeGenerator(schema, analysis, annotations)
        RegistryModeGenerator(
            schema,
            analysis,
            annotations,
            options=GenerationOptions(include_service_integrations=False),
        )

    def test_options_from_mapping(self) -> None:
        options = GenerationOptions.from_mapping({"skipJunctionTables": False, "continueOnError": False})
        assert not options.skip_junction_tables
        assert not options.continue_on_error
        with pytest.raises(ConfigurationError):
            GenerationOptions.from_mapping({"skipJunctions": True})


# ===========================================================================
# Services
# ===========================================================================


class TestServiceGeneration:
    def test_service_files(self, xy_models: List[Dict[str, Any]]) -> None:
        schema, analysis = _schema_and_analysis(xy_models)
        result = generate_registry_mode(
            schema, analysis, {"ai-agent": AI_AGENT}, code_validator=python_syntax_validator
        )
        assert result.service_integrations == 1
        assert list(result.service_controllers) == ["ai_agent_controller.py"]
        assert list(result.service_routes) == ["ai_agent_routes.py"]
        assert list(result.service_scaffolds) == ["ai_agent_service_scaffold.py"]
        assert "/ai-agent/message" in result.service_routes["ai_agent_routes.py"]

    def test_services_disabled(self, xy_models: List[Dict[str, Any]]) -> None:
        schema, analysis = _schema_and_analysis(xy_models)
        result = generate_registry_mode(
            schema,
            analysis,
            {"ai-agent": AI_AGENT},
            options=GenerationOptions(include_service_integrations=False),
        )
        assert result.service_integrations == 0
        assert result.service_routes == {}

    def test_failing_service_renderer(self, xy_models: List[Dict[str, Any]]) -> None:
        schema, analysis = _schema_and_analysis(xy_models)
        registry = RendererRegistry.default()

        def routes(annotation: ServiceAnnotation) -> str:
            raise RuntimeError("no routes")

        registry.service_routes = routes
        result = generate_registry_mode(schema, analysis, {"ai-agent": AI_AGENT}, renderers=registry)
        assert [e.model for e in result.errors] == ["ai-agent"]
        assert result.service_controllers == {}
        assert result.service_integrations == 0
        assert result.models_processed == 2


# ===========================================================================
# Result container
# ===========================================================================


class TestGenerationResult:
    def test_deterministic(
        self,
        blog_schema: SchemaDefinition,
        blog_analysis: Dict[str, ModelAnalysis],
    ) -> None:
        first = generate_registry_mode(blog_schema, blog_analysis, {"ai-agent": AI_AGENT})
        second = generate_registry_mode(blog_schema, blog_analysis, {"ai-agent": AI_AGENT})
        assert first.iter_files() == second.iter_files()
        assert first.models_processed == second.models_processed

    def test_summary(self, xy_models: List[Dict[str, Any]]) -> None:
        schema, analysis = _schema_and_analysis(xy_models)
        summary = generate_registry_mode(schema, analysis, renderers=_failing_for("X")).summary()
        assert "COMPLETED WITH ERRORS" in summary
        assert "Models processed:     1" in summary
        assert "✗ X:" in summary

    def test_empty_result(self) -> None:
        result = GenerationResult()
        assert result.success
        assert result.total_files == 0
        assert result.iter_files() == []
