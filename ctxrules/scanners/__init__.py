"""Signal scanners: each maps part of the context to scored candidates."""

from typing import Callable

from ..models import DiscoveryContext, PartialCandidates, Source
from ..registry.schema import RuleRegistry
from . import filetype, keyword, manifest
from .filetype import scan_file_types
from .keyword import scan_keywords
from .manifest import scan_manifests

Scanner = Callable[[DiscoveryContext, RuleRegistry], PartialCandidates]

SCANNERS: dict[Source, Scanner] = {
    Source.FILE_TYPE: filetype.scan_context,
    Source.MANIFEST: manifest.scan_context,
    Source.KEYWORD: keyword.scan_context,
}

__all__ = ["SCANNERS", "Scanner", "scan_file_types", "scan_manifests", "scan_keywords"]
