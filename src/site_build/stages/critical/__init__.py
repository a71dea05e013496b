from .critical_set import CriticalSet, truncate_css
from .extractor import (
    ExtractionMode,
    ExtractionResult,
    ExtractionState,
    RenderAttempt,
    extract_critical,
    select_rules,
)
from .heuristic import heuristic_rules, is_foundational_rule
from .media import evaluate_media_query
from .rules import MediaBlock, ParsedStylesheet, StyleRule, parse_stylesheet, selector_key
from .stage import stage_critical

__all__ = [
    "CriticalSet",
    "truncate_css",
    "ExtractionMode",
    "ExtractionResult",
    "ExtractionState",
    "RenderAttempt",
    "extract_critical",
    "select_rules",
    "heuristic_rules",
    "is_foundational_rule",
    "evaluate_media_query",
    "MediaBlock",
    "ParsedStylesheet",
    "StyleRule",
    "parse_stylesheet",
    "selector_key",
    "stage_critical",
]
