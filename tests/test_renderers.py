"""
tests/test_renderers.py
Unit tests for crudgen.renderers.

Every rendered file is compiled with python_syntax_validator; content
checks look for the pieces each analysis flag is supposed to unlock.
"""

from __future__ import annotations

from typing import Dict

import pytest

from crudgen.generator import python_syntax_validator
from crudgen.models import ModelAnalysis, SchemaDefinition, ServiceAnnotation
from crudgen.renderers import DefaultRenderers, RendererRegistry, attr_name, class_name


@pytest.fixture()
def renderers() -> DefaultRenderers:
    return DefaultRenderers(package="blog")


@pytest.fixture()
def ai_agent() -> ServiceAnnotation:
    return ServiceAnnotation(
        name="ai-agent",
        methods=["sendMessage", "getHistory"],
        provider="openai",
        rateLimit="20/minute",
        description='Talks to the "assistant"',
    )


# ===========================================================================
# Naming helpers
# ===========================================================================


class TestNaming:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("isPublished", "is_published"),
            ("class", "class_"),
            ("from", "from_"),
            ("2fa", "f_2fa"),
            ("id", "id"),
        ],
    )
    def test_attr_name(self, name: str, expected: str) -> None:
        assert attr_name(name) == expected

    def test_class_name(self) -> None:
        assert class_name("post_tag") == "PostTag"
        assert class_name("ai-agent") == "AiAgent"


# ===========================================================================
# Contracts and validators
# ===========================================================================


class TestContracts:
    def test_every_model_compiles(
        self,
        renderers: DefaultRenderers,
        blog_schema: SchemaDefinition,
        blog_analysis: Dict[str, ModelAnalysis],
    ) -> None:
        for model in blog_schema.models:
            contracts = renderers.render_contracts(model, blog_analysis[model.name])
            for kind, code in contracts.items():
                assert python_syntax_validator(code, f"{model.name}_{kind}.py"), (model.name, kind)

    def test_post_contracts(
        self,
        renderers: DefaultRenderers,
        blog_schema: SchemaDefinition,
        blog_analysis: Dict[str, ModelAnalysis],
    ) -> None:
        post = blog_schema.get_model("Post")
        assert post is not None
        contracts = renderers.render_contracts(post, blog_analysis["Post"])

        assert "class PostCreate(BaseModel):" in contracts.create
        assert "updated_at" not in contracts.create
        assert "    id:" not in contracts.create
        assert "view_count: Optional[int]" in contracts.create
        assert "alias='viewCount'" in contracts.create

        assert "class PostUpdate(BaseModel):" in contracts.update
        assert "title: Optional[str] = Field(default=None" in contracts.update

        assert "class PostRead(BaseModel):" in contracts.read
        assert "from_attributes=True" in contracts.read
        assert "author: Optional[Dict[str, Any]]" in contracts.read

        assert "class PostQuery(BaseModel):" in contracts.query
        assert "skip: int" in contracts.query
        assert "order_by: Optional[str]" in contracts.query
        assert "q: Optional[str]" in contracts.query
        assert "view_count_min" in contracts.query and "view_count_max" in contracts.query
        assert "include_deleted: bool" in contracts.query
        assert "ORDERABLE_FIELDS" in contracts.query

    def test_sensitive_fields_not_in_search_description(
        self,
        renderers: DefaultRenderers,
        blog_schema: SchemaDefinition,
        blog_analysis: Dict[str, ModelAnalysis],
    ) -> None:
        user = blog_schema.get_model("User")
        assert user is not None
        query = renderers.render_contracts(user, blog_analysis["User"]).query
        assert "Search across: email, name" in query

    def test_soft_delete_only_when_detected(
        self,
        renderers: DefaultRenderers,
        blog_schema: SchemaDefinition,
        blog_analysis: Dict[str, ModelAnalysis],
    ) -> None:
        tag = blog_schema.get_model("Tag")
        assert tag is not None
        assert "include_deleted" not in renderers.render_contracts(tag, blog_analysis["Tag"]).query


class TestValidators:
    def test_every_model_compiles(
        self,
        renderers: DefaultRenderers,
        blog_schema: SchemaDefinition,
        blog_analysis: Dict[str, ModelAnalysis],
    ) -> None:
        for model in blog_schema.models:
            validators = renderers.render_validators(model, blog_analysis[model.name])
            for kind, code in validators.items():
                assert python_syntax_validator(code, f"{model.name}_{kind}.py"), (model.name, kind)

    def test_post_validators(
        self,
        renderers: DefaultRenderers,
        blog_schema: SchemaDefinition,
        blog_analysis: Dict[str, ModelAnalysis],
    ) -> None:
        post = blog_schema.get_model("Post")
        assert post is not None
        validators = renderers.render_validators(post, blog_analysis["Post"])
        assert "def validate_post_create(data: Mapping[str, Any]) -> PostCreate:" in validators.create
        assert "from blog.contracts.post_create_contract import PostCreate" in validators.create
        assert "SLUG_RE" in validators.create
        assert "SLUG_RE" not in validators.query
        assert "at least 2 characters" in validators.query


# ===========================================================================
# Services and registry
# ===========================================================================


class TestServiceRenderers:
    def test_all_compile(self, renderers: DefaultRenderers, ai_agent: ServiceAnnotation) -> None:
        for render in (
            renderers.render_service_controller,
            renderers.render_service_routes,
            renderers.render_service_scaffold,
        ):
            assert python_syntax_validator(render(ai_agent), "ai_agent.py")

    def test_routes(self, renderers: DefaultRenderers, ai_agent: ServiceAnnotation) -> None:
        code = renderers.render_service_routes(ai_agent)
        assert "@router.post('/ai-agent/message')" in code
        assert "@router.get('/ai-agent/history')" in code
        assert '"max_requests": 20' in code
        assert '"window_ms": 60000' in code
        assert "REQUIRES_AUTH: bool = True" in code
        assert "from blog.controllers.ai_agent_controller import AiAgentController" in code

    def test_controller(self, renderers: DefaultRenderers, ai_agent: ServiceAnnotation) -> None:
        code = renderers.render_service_controller(ai_agent)
        assert "class AiAgentController:" in code
        assert "async def send_message(" in code
        assert "async def get_history(" in code

    def test_scaffold(self, renderers: DefaultRenderers, ai_agent: ServiceAnnotation) -> None:
        code = renderers.render_service_scaffold(ai_agent)
        assert "class AiAgentService:" in code
        assert "Provider: openai" in code
        assert "NotImplementedError" in code

    def test_service_without_methods(self, renderers: DefaultRenderers) -> None:
        bare = ServiceAnnotation(name="webhook")
        for render in (
            renderers.render_service_controller,
            renderers.render_service_routes,
            renderers.render_service_scaffold,
        ):
            assert python_syntax_validator(render(bare), "webhook.py")


class TestRegistryRenderer:
    def test_registry(
        self,
        renderers: DefaultRenderers,
        blog_schema: SchemaDefinition,
        blog_analysis: Dict[str, ModelAnalysis],
    ) -> None:
        files = renderers.render_registry(blog_schema, blog_analysis)
        assert list(files) == ["model_registry.py"]
        code = files["model_registry.py"]
        assert python_syntax_validator(code, "model_registry.py")
        namespace: Dict[str, object] = {}
        exec(compile(code, "model_registry.py", "exec"), namespace)
        registry = namespace["MODEL_REGISTRY"]
        assert list(registry) == blog_schema.names
        assert registry["PostTag"]["junction"] is True
        assert registry["Post"]["auto_include"] == ["author"]
        assert registry["Post"]["route_prefix"] == "/post"


class TestRendererRegistry:
    def test_default_is_complete(self) -> None:
        registry = RendererRegistry.default()
        assert registry.missing(include_services=True) == []
        assert registry.registry is not None

    def test_without_registry(self) -> None:
        assert RendererRegistry.default(include_registry=False).registry is None

    def test_missing(self) -> None:
        registry = RendererRegistry(contracts=lambda m, a: None)
        assert registry.missing(include_services=False) == ["validators"]
        assert registry.missing(include_services=True) == [
            "validators",
            "service_controller",
            "service_routes",
            "service_scaffold",
        ]
