# File: crudgen/analyzer.py
"""
crudgen - Model Analyzer
=========================
Combines the relationship classifier, the junction detector and the
capability analyzer into one ``ModelAnalysis`` per model, and builds the
analysis map the generation orchestrator consumes.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from crudgen.capabilities import CapabilityAnalysis, analyze_capabilities
from crudgen.models import AnalyzerConfig, ModelAnalysis, ModelInfo, SchemaDefinition
from crudgen.relationships import RelationshipAnalysis, analyze_relationships

logger: logging.Logger = logging.getLogger("crudgen.analyzer")


def analyze_model(
    model: ModelInfo,
    schema: SchemaDefinition,
    config: Optional[AnalyzerConfig] = None,
) -> ModelAnalysis:
    """Full analysis of one model against the schema it belongs to."""
    cfg: AnalyzerConfig = config or AnalyzerConfig()
    rels: RelationshipAnalysis = analyze_relationships(model, schema, cfg)
    caps: CapabilityAnalysis = analyze_capabilities(model, cfg)

    return ModelAnalysis(
        model=model,
        relationships=rels.relationships,
        auto_include=rels.auto_include,
        is_junction_table=rels.is_junction_table,
        special_fields=dict(caps.special_fields),
        can_filter=caps.can_filter,
        can_search=caps.can_search,
        can_sort=caps.can_sort,
        can_paginate=caps.can_paginate,
        has_timestamps=caps.has_timestamps,
        has_soft_delete=caps.has_soft_delete,
        search_fields=caps.search_fields,
        filter_fields=caps.filter_fields,
        has_parent_child=caps.has_parent_child,
        has_featured=caps.has_featured,
        has_active=caps.has_active,
        foreign_keys=caps.foreign_keys,
    )


def analyze_schema(
    schema: SchemaDefinition,
    config: Optional[AnalyzerConfig] = None,
) -> Dict[str, ModelAnalysis]:
    """Analysis map keyed by model name, in schema order."""
    cfg: AnalyzerConfig = config or AnalyzerConfig()
    analysis: Dict[str, ModelAnalysis] = {}
    for model in schema.models:
        analysis[model.name] = analyze_model(model, schema, cfg)

    junctions: List[str] = [name for name, a in analysis.items() if a.is_junction_table]
    logger.info(
        "Analyzed %d model(s); junction models: %s.",
        len(analysis),
        ", ".join(junctions) or "none",
    )
    return analysis


__all__: List[str] = ["analyze_model", "analyze_schema"]
