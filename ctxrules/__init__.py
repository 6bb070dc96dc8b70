"""ctxrules - context-driven rule discovery for coding sessions.

Scan open files, declaration files and request text; rank the matching rules;
close them over the dependency graph; cut to the task's load limit.
"""

__version__ = "0.1.0"

from .cache import SessionCache, SessionCacheEntry
from .config import EngineConfig
from .context import context_from_project
from .engine import DiscoveryEngine
from .errors import (
    DependencyGraphCycleError,
    LimitExceededWarning,
    RegistryError,
    RuleDiscoveryError,
    SourceScanError,
)
from .models import (
    Candidate,
    DiscoveryContext,
    ManifestFile,
    Provenance,
    ResolvedEntry,
    ResolvedRuleList,
    Scope,
    Source,
)
from .registry import RuleRegistry, load_default_registry, load_registry, load_rule_documents

__all__ = [
    "__version__",
    "DiscoveryEngine",
    "SessionCache",
    "SessionCacheEntry",
    "EngineConfig",
    "context_from_project",
    "RuleDiscoveryError",
    "RegistryError",
    "SourceScanError",
    "DependencyGraphCycleError",
    "LimitExceededWarning",
    "Candidate",
    "DiscoveryContext",
    "ManifestFile",
    "Provenance",
    "ResolvedEntry",
    "ResolvedRuleList",
    "Scope",
    "Source",
    "RuleRegistry",
    "load_registry",
    "load_default_registry",
    "load_rule_documents",
]
