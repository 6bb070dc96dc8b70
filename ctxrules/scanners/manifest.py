"""Manifest scanner.

Each declaration file is scanned on its own; one that cannot be parsed is
logged and skipped while the others still contribute.
"""

from __future__ import annotations

import logging
from typing import Iterable

from ..errors import SourceScanError
from ..models import DiscoveryContext, ManifestFile, PartialCandidates, Source
from ..registry.schema import RuleRegistry
from .manifest_parsers import parse_dependencies

logger = logging.getLogger(__name__)


def scan_manifests(manifests: Iterable[ManifestFile], registry: RuleRegistry) -> PartialCandidates:
    """Propose rules from declaration files present at the project root.

    A file that cannot be read or parsed is skipped on its own; the error is
    recorded on the partial result and the other files still count.
    """
    partial = PartialCandidates(source=Source.MANIFEST)

    for manifest in manifests:
        try:
            dependencies = parse_dependencies(manifest)
        except SourceScanError as exc:
            logger.warning("%s", exc)
            partial.errors.append(str(exc))
            continue

        for rule in registry.rules.values():
            for match in rule.manifests:
                if not match.matches_file(manifest.path):
                    continue
                if match.dependency is None:
                    partial.propose(rule.id, match.score)
                elif dependencies and any(match.matches_dependency(d) for d in dependencies):
                    partial.propose(rule.id, match.score)

    return partial


def scan_context(context: DiscoveryContext, registry: RuleRegistry) -> PartialCandidates:
    return scan_manifests(context.manifests, registry)
