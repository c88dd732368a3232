"""
tests/conftest.py
Shared fixtures for the crudgen test suite.

The reference schema lives in tests/blog_schema.yaml and is loaded once
per session; function-scoped fixtures hand out deep copies so each test
can mutate freely.  Raw model builders live in tests/builders.py.
"""

from __future__ import annotations

import copy
import pathlib
from typing import Any, Dict, List

import pytest
import yaml

from crudgen.analyzer import analyze_schema
from crudgen.graph import build_schema, split_schema_document
from crudgen.models import AnalyzerConfig, ModelAnalysis, SchemaDefinition

from builders import raw_model, relation, scalar


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

TESTS_DIR: pathlib.Path = pathlib.Path(__file__).resolve().parent
BLOG_SCHEMA_PATH: pathlib.Path = TESTS_DIR / "blog_schema.yaml"


# ---------------------------------------------------------------------------
# Reference schema fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def raw_blog_document() -> Dict[str, Any]:
    """Load tests/blog_schema.yaml once per session."""
    assert BLOG_SCHEMA_PATH.exists(), f"Reference schema not found at {BLOG_SCHEMA_PATH}."
    with open(BLOG_SCHEMA_PATH, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    assert isinstance(data, dict), "Top-level YAML must be a mapping."
    return data


@pytest.fixture()
def blog_document(raw_blog_document: Dict[str, Any]) -> Dict[str, Any]:
    """Return a deep copy so each test can mutate freely."""
    return copy.deepcopy(raw_blog_document)


@pytest.fixture()
def blog_schema(blog_document: Dict[str, Any]) -> SchemaDefinition:
    models, enums, _ = split_schema_document(blog_document)
    built = build_schema(models, enums)
    assert not built.errors, f"Reference schema must build cleanly: {built.errors}"
    return built.schema


@pytest.fixture()
def blog_analysis(blog_schema: SchemaDefinition) -> Dict[str, ModelAnalysis]:
    return analyze_schema(blog_schema, AnalyzerConfig())


# ---------------------------------------------------------------------------
# Small schema fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def abc_models() -> List[Dict[str, Any]]:
    """A and C linked through the junction B."""
    return [
        raw_model("A", scalar("title"), relation("links", "B", is_list=True)),
        raw_model(
            "B",
            scalar("aId", "Int"),
            scalar("cId", "Int"),
            relation("a", "A", from_fields=["aId"]),
            relation("c", "C", from_fields=["cId"]),
        ),
        raw_model("C", scalar("label"), relation("links", "B", is_list=True)),
    ]


@pytest.fixture()
def xy_models() -> List[Dict[str, Any]]:
    return [
        raw_model("X", scalar("name")),
        raw_model("Y", scalar("name")),
    ]
