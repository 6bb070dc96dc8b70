"""Scope-based truncation of resolved rule lists."""

from __future__ import annotations

import logging
from collections import deque
from typing import Sequence

from .config import EngineConfig
from .errors import LimitExceededWarning
from .models import Provenance, ResolvedEntry, RuleID, Scope

logger = logging.getLogger(__name__)


def required_chain(root: RuleID, needs: dict[RuleID, list[RuleID]]) -> list[RuleID]:
    """`root` followed by everything it transitively requires, breadth-first."""
    chain = [root]
    seen = {root}
    queue = deque([root])
    while queue:
        for dep in needs.get(queue.popleft(), ()):
            if dep not in seen:
                seen.add(dep)
                chain.append(dep)
                queue.append(dep)
    return chain


def select_within_limit(
    entries: Sequence[ResolvedEntry],
    scope: Scope | str,
    config: EngineConfig | None = None,
) -> tuple[list[ResolvedEntry], LimitExceededWarning | None]:
    """Keep at most the scope's limit of entries.

    Selection works on chains: a matched rule together with the rules it
    transitively requires. Chains are taken highest root score first (ties
    by resolver order) and a chain is kept whole or not at all, so a
    required entry stays exactly when some kept rule needs it. Entries only
    present as requirements never start a chain.

    If the first chain alone does not fit, it is cut to the limit root first
    and a warning reports how many entries were dropped. Kept entries retain
    resolver order.
    """
    config = config or EngineConfig()
    limit = config.limit_for(scope)
    if len(entries) <= limit:
        return list(entries), None

    position = {e.rule_id: i for i, e in enumerate(entries)}
    needs: dict[RuleID, list[RuleID]] = {}
    for e in entries:
        for requirer in e.required_by:
            needs.setdefault(requirer, []).append(e.rule_id)

    roots = sorted(
        (e for e in entries if e.provenance != Provenance.REQUIRED),
        key=lambda e: (-e.score, position[e.rule_id]),
    )

    kept: set[RuleID] = set()
    warning = None
    for root in roots:
        if root.rule_id in kept:
            continue
        chain = [r for r in required_chain(root.rule_id, needs) if r not in kept and r in position]
        if len(kept) + len(chain) <= limit:
            kept.update(chain)
        elif not kept:
            kept.update(chain[:limit])
            warning = LimitExceededWarning(
                limit=limit,
                required_count=len(chain),
                dropped=len(entries) - limit,
            )
            logger.warning("%s", warning)
            break
        else:
            logger.debug("chain of %s (%d rules) does not fit", root.rule_id, len(chain))
        if len(kept) == limit:
            break

    dropped = [e.rule_id for e in entries if e.rule_id not in kept]
    logger.debug("limit %d for %s dropped %s", limit, Scope(scope).value, dropped)
    return [e for e in entries if e.rule_id in kept], warning
