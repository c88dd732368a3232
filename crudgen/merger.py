# File: crudgen/merger.py
"""
crudgen - Result Merger
========================
Folds a ``GenerationResult`` into a long-lived ``GeneratedFiles``
aggregate.

Merge semantics are a plain union:
    - keys present only in the aggregate are never touched;
    - for a model present on both sides the per-model file maps are
      union-merged, and the incoming result wins for the same filename;
    - service artifacts land in the flat ``controllers`` / ``routes`` /
      ``services`` maps the same way.

The aggregate is not thread-safe.  Merge from one thread only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Tuple

from crudgen.generator import GenerationResult

logger: logging.Logger = logging.getLogger("crudgen.merger")


@dataclass(slots=True)
class GeneratedFiles:
    """
    Aggregate of generated artifacts across one or more runs.

    ``extra`` holds categories produced outside the orchestrator (project
    files, documentation …) so that callers can keep everything in one
    place; the merger leaves it alone.
    """

    registry: Dict[str, str] = field(default_factory=dict)
    contracts: Dict[str, Dict[str, str]] = field(default_factory=dict)
    validators: Dict[str, Dict[str, str]] = field(default_factory=dict)
    controllers: Dict[str, str] = field(default_factory=dict)
    routes: Dict[str, str] = field(default_factory=dict)
    services: Dict[str, str] = field(default_factory=dict)
    extra: Dict[str, Dict[str, str]] = field(default_factory=dict)

    @property
    def file_count(self) -> int:
        return (
            len(self.registry)
            + sum(len(f) for f in self.contracts.values())
            + sum(len(f) for f in self.validators.values())
            + len(self.controllers)
            + len(self.routes)
            + len(self.services)
            + sum(len(f) for f in self.extra.values())
        )

    def flatten(self) -> Dict[str, str]:
        """Relative path → content, grouped by category directory."""
        out: Dict[str, str] = {}
        for name, content in self.registry.items():
            out[name] = content
        for category, per_model in (("contracts", self.contracts), ("validators", self.validators)):
            for files in per_model.values():
                for name, content in files.items():
                    out[f"{category}/{name}"] = content
        for category, flat in (
            ("controllers", self.controllers),
            ("routes", self.routes),
            ("services", self.services),
        ):
            for name, content in flat.items():
                out[f"{category}/{name}"] = content
        for category, files in self.extra.items():
            for name, content in files.items():
                out[f"{category}/{name}"] = content
        return out


def _merge_nested(
    target: Dict[str, Dict[str, str]],
    incoming: Mapping[str, Mapping[str, str]],
) -> int:
    written: int = 0
    for key, files in incoming.items():
        bucket: Dict[str, str] = target.setdefault(key, {})
        bucket.update(files)
        written += len(files)
    return written


def merge_into_generated_files(
    result: GenerationResult,
    files: GeneratedFiles,
) -> GeneratedFiles:
    """
    Union-merge *result* into *files* in place and return *files*.

    Never removes a key; the incoming result wins on filename collisions.
    """
    written: int = 0
    files.registry.update(result.registry)
    written += len(result.registry)
    written += _merge_nested(files.contracts, result.contracts)
    written += _merge_nested(files.validators, result.validators)

    flat_pairs: Tuple[Tuple[Dict[str, str], Dict[str, str]], ...] = (
        (files.controllers, result.service_controllers),
        (files.routes, result.service_routes),
        (files.services, result.service_scaffolds),
    )
    for target, incoming in flat_pairs:
        target.update(incoming)
        written += len(incoming)

    logger.debug("Merged %d file(s); aggregate now holds %d.", written, files.file_count)
    return files


__all__: List[str] = ["GeneratedFiles", "merge_into_generated_files"]
