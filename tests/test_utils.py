"""
tests/test_utils.py
Unit tests for crudgen.utils.
"""

from __future__ import annotations

import logging

import pytest

from crudgen.utils import (
    Timer,
    build_import_block,
    count_lines,
    setup_logging,
    to_camel_case,
    to_kebab_case,
    to_pascal_case,
    to_snake_case,
)


class TestNamingConversions:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("UserProfile", "user_profile"),
            ("HTTPResponse", "http_response"),
            ("ai-agent", "ai_agent"),
            ("already_snake", "already_snake"),
            ("", ""),
        ],
    )
    def test_to_snake_case(self, value: str, expected: str) -> None:
        assert to_snake_case(value) == expected

    @pytest.mark.parametrize(
        "value, expected",
        [("user_profile", "UserProfile"), ("ai-agent", "AiAgent"), ("simple", "Simple"), ("", "")],
    )
    def test_to_pascal_case(self, value: str, expected: str) -> None:
        assert to_pascal_case(value) == expected

    @pytest.mark.parametrize(
        "value, expected",
        [("ai-agent", "aiAgent"), ("HTTPResponse", "httpResponse"), ("user_profile", "userProfile")],
    )
    def test_to_camel_case(self, value: str, expected: str) -> None:
        assert to_camel_case(value) == expected

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("RegenerateResponse", "regenerate-response"),
            ("SignedUploadUrl", "signed-upload-url"),
            ("ai_agent", "ai-agent"),
            ("History", "history"),
            ("", ""),
        ],
    )
    def test_to_kebab_case(self, value: str, expected: str) -> None:
        assert to_kebab_case(value) == expected


class TestCodeHelpers:
    def test_build_import_block(self) -> None:
        block = build_import_block({"typing": {"Optional", "List"}, "datetime": {"datetime"}, "re": set()})
        assert block.splitlines() == [
            "from datetime import datetime",
            "import re",
            "from typing import List, Optional",
        ]

    @pytest.mark.parametrize("content, expected", [("", 0), ("a", 1), ("a\n", 1), ("a\nb", 2), ("a\nb\n", 2)])
    def test_count_lines(self, content: str, expected: int) -> None:
        assert count_lines(content) == expected


class TestTimer:
    def test_elapsed(self) -> None:
        with Timer("noop") as t:
            pass
        assert t.elapsed >= 0.0
        assert t.end_time >= t.start_time
        assert "noop" in repr(t)


class TestSetupLogging:
    @pytest.mark.parametrize(
        "verbosity, level",
        [(0, logging.WARNING), (1, logging.INFO), (2, logging.DEBUG), (5, logging.DEBUG)],
    )
    def test_levels(self, verbosity: int, level: int) -> None:
        logger = setup_logging(verbosity)
        assert logger.name == "crudgen"
        assert logger.level == level
        assert len(logger.handlers) == 1
        assert not logger.propagate

    def test_repeated_setup_does_not_duplicate_handlers(self) -> None:
        setup_logging(1)
        logger = setup_logging(1)
        assert len(logger.handlers) == 1
