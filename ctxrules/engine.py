"""Discovery pipeline: scan -> merge -> resolve -> limit, behind the session cache."""

from __future__ import annotations

import logging
from concurrent.futures import ALL_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import replace
from typing import Mapping

from .cache import ProjectSignature, SessionCache
from .limits import select_within_limit
from .merge import merge_candidates, rank_candidates
from .models import Candidate, DiscoveryContext, PartialCandidates, ResolvedRuleList, Scope, Source
from .registry.schema import RuleRegistry
from .resolver import resolve_dependencies
from .scanners import SCANNERS, Scanner

logger = logging.getLogger(__name__)


class DiscoveryEngine:
    """Selects the rules to load for a session.

    The registry is validated when it is built, so an engine never exists
    over a cyclic graph. The cache is owned by whoever constructs the engine.
    """

    def __init__(
        self,
        registry: RuleRegistry,
        *,
        cache: SessionCache | None = None,
        scanners: Mapping[Source, Scanner] | None = None,
    ):
        self.registry = registry
        self.config = registry.config
        self.cache = cache if cache is not None else SessionCache()
        self.scanners = dict(scanners if scanners is not None else SCANNERS)

    def discover(
        self,
        context: DiscoveryContext,
        scope: Scope | str,
        *,
        rescan: bool = False,
    ) -> ResolvedRuleList:
        """Return the rules for this context, from cache when still valid."""
        scope = Scope(scope)
        key = context.session_key
        signature = ProjectSignature.of(context, scope)

        with self.cache.writer(key):
            previous = self.cache.entry(key)
            seen = context.file_types | (previous.file_types if previous is not None else frozenset())
            reason = "rescan requested" if rescan else self.cache.stale_reason(key, signature, context.file_types)
            if reason is not None:
                self.cache.invalidate(key, reason=reason)

            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("cache hit for session %s", key)
                return replace(cached, from_cache=True)

            logger.debug("cache miss for session %s", key)
            resolved, ranked = self.run_pipeline(context, scope)
            self.cache.put(key, resolved, signature, candidates=ranked, file_types=seen)
            return resolved

    def invalidate(self, session_key: str) -> bool:
        return self.cache.invalidate(session_key, reason="requested by caller")

    def run_pipeline(
        self, context: DiscoveryContext, scope: Scope | str
    ) -> tuple[ResolvedRuleList, list[Candidate]]:
        """One uncached discovery run. Returns the result and the ranked candidates."""
        scope = Scope(scope)
        partials = self.scan(context)
        ranked = rank_candidates(merge_candidates(partials))
        expanded = resolve_dependencies(ranked, self.registry.graph, self.config)
        kept, warning = select_within_limit(expanded, scope, self.config)
        logger.debug(
            "session %s: %d candidates, %d after resolution, %d kept",
            context.session_key,
            len(ranked),
            len(expanded),
            len(kept),
        )
        return ResolvedRuleList(entries=tuple(kept), scope=scope, warning=warning), ranked

    def scan(self, context: DiscoveryContext) -> list[PartialCandidates]:
        """Run every scanner in parallel and wait for all of them."""
        if not self.scanners:
            return []
        with ThreadPoolExecutor(max_workers=len(self.scanners), thread_name_prefix="ctxrules-scan") as pool:
            futures = {pool.submit(fn, context, self.registry): source for source, fn in self.scanners.items()}
            wait(futures, return_when=ALL_COMPLETED)
        ordered = sorted(futures, key=lambda f: futures[f].priority)
        return [f.result() for f in ordered]
