# File: crudgen/errors.py
"""
crudgen - Exception Taxonomy
=============================
Three failure classes, each with its own blast radius:

    ValidationError     — one model is structurally broken (e.g. no id field).
                          That model is excluded; the run continues.
    GenerationError     — a renderer raised while producing one unit (model
                          or service annotation).  Recorded per unit unless
                          fail-fast is configured.
    ConfigurationError  — the run itself is misconfigured.  Raised before any
                          unit is processed.

None of these subclass ``ValueError`` so that pydantic validators never
swallow them into its own ``ValidationError``.
"""

from __future__ import annotations

from typing import List, Optional


class CrudgenError(Exception):
    """Base class for every error raised by crudgen."""


class ValidationError(CrudgenError):
    """Structural defect in a single model definition."""

    def __init__(self, model: str, message: str) -> None:
        super().__init__(f"Model '{model}': {message}")
        self.model: str = model
        self.message: str = message


class GenerationError(CrudgenError):
    """A renderer collaborator failed for one generation unit."""

    def __init__(self, unit: Optional[str], message: str) -> None:
        super().__init__(message)
        self.unit: Optional[str] = unit
        self.message: str = message


class ConfigurationError(CrudgenError):
    """Invalid or contradictory generator / analyzer options."""


__all__: List[str] = [
    "CrudgenError",
    "ValidationError",
    "GenerationError",
    "ConfigurationError",
]
