"""Static rule registry: applicability tables and the dependency graph."""

from .graph import RuleDependencyGraph
from .load import build_registry, load_default_registry, load_registry, load_rule_documents
from .schema import KeywordMatch, ManifestMatch, RuleDef, RuleRegistry, SuffixMatch

__all__ = [
    "RuleDependencyGraph",
    "RuleRegistry",
    "RuleDef",
    "SuffixMatch",
    "ManifestMatch",
    "KeywordMatch",
    "build_registry",
    "load_registry",
    "load_default_registry",
    "load_rule_documents",
]
