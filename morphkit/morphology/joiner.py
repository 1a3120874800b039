"""
morphology/joiner.py
--------------------

Tiered join-decision engine.

`decide(prev, next, lang)` is pure: the same inputs always give the same
JoinDecision. Tiers, first hit wins:

  1. punctuation        next is . , ! ? ; : …      -> fused, "punctuation"
  2. feature-informed   both tokens carry real analyses (see features.py)
  3. surface rules      per-language JoinRule lists (romance, germanic, …)
  4. feature spacing    spaced, naming both tag sets, when analyses exist
  5. default            spaced, "default"
                        or "no join model loaded for <lang>" when the
                        language has no rule table at all

Every decision carries a non-empty reason naming the rule that fired.
"""

from __future__ import annotations

from typing import FrozenSet, Optional, Sequence

import structlog

from morphkit.core.domain.models import Analyse, JoinDecision
from morphkit.core.ports import JoinAdapter
from morphkit.morphology import agglutinative, celtic, germanic, romance  # noqa: F401  (register rule tables)
from morphkit.morphology.base import rules_for
from morphkit.morphology.features import feature_join, feature_space_join

logger = structlog.get_logger()

PUNCTUATION: FrozenSet[str] = frozenset({".", ",", "!", "?", ";", ":", "…"})

DEFAULT_REASON = "default"


def no_model_reason(lang: str) -> str:
    return f"no join model loaded for {lang}"


def decide(
    prev: str,
    next: str,
    lang: str,
    prev_analyses: Optional[Sequence[Analyse]] = None,
    next_analyses: Optional[Sequence[Analyse]] = None,
) -> JoinDecision:
    """
    Decide how `prev` and `next` are written next to each other in `lang`.

    Args:
        prev, next: Surface tokens.
        lang: Language code such as "fr-FR".
        prev_analyses, next_analyses: Optional engine analyses; enable the
            feature-informed tier when both contain a recognised POS tag.
    """
    prev = str(prev)
    next = str(next)

    # 1. Punctuation always wins.
    if next in PUNCTUATION:
        return JoinDecision.fused(prev, next, "punctuation")

    # 2. Feature-informed tier.
    if prev_analyses and next_analyses:
        decision = feature_join(prev, next, lang, prev_analyses, next_analyses)
        if decision is not None:
            return decision

    # 3. Surface heuristics.
    rules = rules_for(lang)
    for rule in rules or ():
        decision = rule.apply(prev, next)
        if decision is not None:
            return decision

    # 4. Analyses without a fusion still explain the space.
    if prev_analyses and next_analyses:
        decision = feature_space_join(prev, next, lang, prev_analyses, next_analyses)
        if decision is not None:
            return decision

    # 5. Default.
    if rules is None:
        return JoinDecision.spaced(prev, next, no_model_reason(lang))
    return JoinDecision.spaced(prev, next, DEFAULT_REASON)


async def decide_join(
    prev: str,
    next: str,
    lang: str,
    adapter: Optional[JoinAdapter] = None,
) -> JoinDecision:
    """
    Ask a model-backed join adapter; never guess.

    Punctuation is still handled locally. If the adapter is missing, returns
    nothing or raises, the result is the explicit "no join model loaded"
    decision rather than a heuristic one.
    """
    if next in PUNCTUATION:
        return JoinDecision.fused(prev, next, "punctuation")

    if adapter is not None:
        try:
            decision = await adapter.apply_join(prev, next, lang)
        except Exception as e:
            logger.warning("join_adapter_failed", lang=lang, error=str(e))
            decision = None
        if decision is not None:
            return decision

    return JoinDecision.spaced(prev, next, no_model_reason(lang))


def join_tokens(prev: str, next: str) -> str:
    """Language-agnostic join: punctuation attaches, everything else is spaced."""
    if next in PUNCTUATION:
        return prev + next
    return f"{prev} {next}"


__all__ = [
    "PUNCTUATION",
    "DEFAULT_REASON",
    "no_model_reason",
    "decide",
    "decide_join",
    "join_tokens",
]
