"""
tests/test_capabilities.py
Unit tests for crudgen.capabilities and crudgen.analyzer.

Tests cover:
- Sensitive-name exclusion from search fields
- Special field markers (normalised names plus type checks)
- Filter kinds and capability flags
- Parent/child detection on self-relations
- The combined ModelAnalysis map
"""

from __future__ import annotations

from typing import Dict

import pytest

from crudgen.analyzer import analyze_model, analyze_schema
from crudgen.capabilities import (
    analyze_capabilities,
    detect_special_fields,
    filter_kind,
    is_sensitive_field,
    normalize_field_name,
)
from crudgen.models import (
    AnalyzerConfig,
    FieldInfo,
    FilterKind,
    ModelAnalysis,
    SchemaDefinition,
    SpecialMarker,
)

from builders import model, relation, scalar


# ===========================================================================
# Sensitive fields
# ===========================================================================


class TestSensitiveFields:
    @pytest.mark.parametrize(
        "name",
        ["password", "passwordHash", "apiSecret", "authToken", "refresh_token", "SALT_HASH"],
    )
    def test_sensitive_names(self, name: str) -> None:
        assert is_sensitive_field(name)

    @pytest.mark.parametrize("name", ["email", "title", "username", "description"])
    def test_plain_names(self, name: str) -> None:
        assert not is_sensitive_field(name)

    def test_sensitive_strings_never_searchable(self) -> None:
        m = model(
            "Account",
            scalar("email"),
            scalar("passwordHash"),
            scalar("apiSecret"),
            scalar("authToken"),
        )
        caps = analyze_capabilities(m)
        assert caps.search_fields == ("email",)

    def test_extra_terms_only_add(self) -> None:
        m = model("Citizen", scalar("ssnNumber"), scalar("authToken"), scalar("name"))
        caps = analyze_capabilities(m, AnalyzerConfig(extra_sensitive_terms=("ssn",)))
        assert caps.search_fields == ("name",)

    def test_reference_user(self, blog_analysis: Dict[str, ModelAnalysis]) -> None:
        user = blog_analysis["User"]
        assert user.search_fields == ("email", "name")
        assert user.can_search


# ===========================================================================
# Special fields
# ===========================================================================


class TestSpecialFields:
    def test_normalised_names(self) -> None:
        assert normalize_field_name("is_published") == "ispublished"
        assert normalize_field_name("isPublished") == "ispublished"
        assert normalize_field_name("is-published") == "ispublished"

    def test_reference_post_markers(self, blog_analysis: Dict[str, ModelAnalysis]) -> None:
        post = blog_analysis["Post"]
        assert post.special_fields == {
            "slug": "slug",
            "published": "published",
            "views": "viewCount",
            "deletedAt": "deletedAt",
        }
        assert post.has_marker(SpecialMarker.SLUG)
        assert not post.has_marker(SpecialMarker.LIKES)

    def test_name_variants(self) -> None:
        m = model(
            "Review",
            scalar("is_published", "Boolean"),
            scalar("likesCount", "Int"),
            scalar("isApproved", "Boolean"),
            scalar("deleted_at", "DateTime", isRequired=False),
        )
        assert detect_special_fields(m) == {
            "published": "is_published",
            "likes": "likesCount",
            "approved": "isApproved",
            "deletedAt": "deleted_at",
        }

    def test_type_check_applies(self) -> None:
        m = model(
            "Article",
            scalar("published", "String"),
            scalar("views", "String"),
            scalar("deletedAt", "Boolean"),
            scalar("slug", "Int"),
        )
        assert detect_special_fields(m) == {}

    def test_first_match_wins(self) -> None:
        m = model("Video", scalar("views", "Int"), scalar("viewCount", "Int"))
        assert detect_special_fields(m) == {"views": "views"}

    def test_relations_are_never_markers(self) -> None:
        m = model("Node", relation("parent", "Node", is_list=True))
        assert SpecialMarker.PARENT_ID.value not in detect_special_fields(m)


# ===========================================================================
# Filters and capability flags
# ===========================================================================


class TestFiltersAndFlags:
    @pytest.mark.parametrize(
        "field, expected",
        [
            (FieldInfo(name="tags", type="String", is_list=True), FilterKind.ARRAY),
            (FieldInfo(name="status", type="Status", kind="enum"), FilterKind.ENUM),
            (FieldInfo(name="active", type="Boolean"), FilterKind.BOOLEAN),
            (FieldInfo(name="price", type="Decimal"), FilterKind.RANGE),
            (FieldInfo(name="createdAt", type="DateTime"), FilterKind.RANGE),
            (FieldInfo(name="title", type="String"), FilterKind.EXACT),
        ],
    )
    def test_filter_kind(self, field: FieldInfo, expected: FilterKind) -> None:
        assert filter_kind(field) == expected

    def test_reference_post_filters(self, blog_analysis: Dict[str, ModelAnalysis]) -> None:
        post = blog_analysis["Post"]
        kinds = {f.name: f.kind for f in post.filter_fields}
        assert "id" not in kinds
        assert kinds["status"] == FilterKind.ENUM
        assert kinds["published"] == FilterKind.BOOLEAN
        assert kinds["viewCount"] == FilterKind.RANGE
        assert kinds["title"] == FilterKind.EXACT

    def test_read_only_fields_not_filterable(self) -> None:
        m = model("Doc", scalar("title"), scalar("checksum", isReadOnly=True))
        names = [f.name for f in analyze_capabilities(m).filter_fields]
        assert names == ["title"]

    def test_reference_post_flags(self, blog_analysis: Dict[str, ModelAnalysis]) -> None:
        post = blog_analysis["Post"]
        assert post.can_filter and post.can_search and post.can_sort and post.can_paginate
        assert post.has_timestamps
        assert post.has_soft_delete
        assert post.has_featured
        assert not post.has_active
        assert not post.is_junction_table

    def test_timestamps_need_both_fields(self) -> None:
        only_created = model("Log", scalar("createdAt", "DateTime"))
        assert not analyze_capabilities(only_created).has_timestamps

        updated_flag = model(
            "Log",
            scalar("created_at", "DateTime"),
            scalar("modified", "DateTime", isUpdatedAt=True),
        )
        assert analyze_capabilities(updated_flag).has_timestamps

    def test_id_only_model(self) -> None:
        caps = analyze_capabilities(model("Token"))
        assert caps.can_paginate
        assert caps.can_sort
        assert not caps.can_search

    def test_foreign_keys(self, blog_analysis: Dict[str, ModelAnalysis]) -> None:
        fks = blog_analysis["Post"].foreign_keys
        assert len(fks) == 1
        assert fks[0].field_names == ("authorId",)
        assert fks[0].relation_alias == "author"
        assert fks[0].related_model == "User"


# ===========================================================================
# Parent / child
# ===========================================================================


class TestParentChild:
    def test_reference_category(self, blog_analysis: Dict[str, ModelAnalysis]) -> None:
        category = blog_analysis["Category"]
        assert category.has_parent_child
        assert category.special_fields["parentId"] == "parentId"

    def test_pattern_fallback(self) -> None:
        m = model(
            "Folder",
            scalar("ancestorId", "Int", isRequired=False),
            relation("ancestor", "Folder", from_fields=["ancestorId"], isRequired=False),
        )
        assert analyze_capabilities(m).has_parent_child

    def test_parent_id_pointing_elsewhere(self) -> None:
        m = model(
            "Comment",
            scalar("parentId", "Int"),
            relation("post", "Post", from_fields=["parentId"]),
        )
        assert not analyze_capabilities(m).has_parent_child


# ===========================================================================
# analyze_schema
# ===========================================================================


class TestAnalyzeSchema:
    def test_keys_follow_schema_order(
        self,
        blog_schema: SchemaDefinition,
        blog_analysis: Dict[str, ModelAnalysis],
    ) -> None:
        assert list(blog_analysis) == blog_schema.names

    def test_junction_flag(self, blog_analysis: Dict[str, ModelAnalysis]) -> None:
        junctions = [name for name, a in blog_analysis.items() if a.is_junction_table]
        assert junctions == ["PostTag"]

    def test_auto_include_subset(self, blog_analysis: Dict[str, ModelAnalysis]) -> None:
        for analysis in blog_analysis.values():
            for rel in analysis.auto_include:
                assert rel in analysis.relationships
                assert rel.auto_include
                assert rel.is_to_one

    def test_deterministic(self, blog_schema: SchemaDefinition) -> None:
        first = analyze_schema(blog_schema)
        second = analyze_schema(blog_schema)
        assert first == second

    def test_analyze_model_matches_map(
        self,
        blog_schema: SchemaDefinition,
        blog_analysis: Dict[str, ModelAnalysis],
    ) -> None:
        post = blog_schema.get_model("Post")
        assert post is not None
        assert analyze_model(post, blog_schema) == blog_analysis["Post"]
