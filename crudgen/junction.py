# File: crudgen/junction.py
"""
crudgen - Junction Model Detection
===================================
A junction (join) model exists only to link two or more other models: it
has at least two relation fields and almost no data of its own.

The heuristic is pure and order-independent.  An explicit
``ModelInfo.junction`` declaration always wins over it.
"""

from __future__ import annotations

import logging
from typing import FrozenSet, List, Optional

from crudgen.models import AnalyzerConfig, FieldInfo, ModelInfo

logger: logging.Logger = logging.getLogger("crudgen.junction")

_DEFAULT_CONFIG: AnalyzerConfig = AnalyzerConfig()


def data_fields(model: ModelInfo, config: Optional[AnalyzerConfig] = None) -> List[FieldInfo]:
    """
    Scalar fields that carry data of their own.

    The id field, ``is_updated_at`` fields and the configured system
    timestamp fields (case-insensitive) are not counted.
    """
    cfg: AnalyzerConfig = config or _DEFAULT_CONFIG
    system: FrozenSet[str] = frozenset(n.lower() for n in cfg.junction_system_fields)
    return [
        f
        for f in model.scalar_fields
        if not f.is_id and not f.is_updated_at and f.name.lower() not in system
    ]


def is_junction_table(model: ModelInfo, config: Optional[AnalyzerConfig] = None) -> bool:
    """True when *model* is a join model between two or more others."""
    if model.junction is not None:
        return model.junction

    if len(model.relation_fields) < 2:
        return False

    cfg: AnalyzerConfig = config or _DEFAULT_CONFIG
    return len(data_fields(model, cfg)) <= cfg.junction_max_data_fields


__all__: List[str] = ["data_fields", "is_junction_table"]
