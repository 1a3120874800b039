"""
Feature-informed join tier.

Used when the engine produced real morphological analyses for both tokens
(Apertium-style tags such as det, prn, vblex). The rules here trust the
analysis instead of the spelling: French elision, for instance, applies to
any token the analyser marks as a function-word category.

A rule returns None when the features do not license a fusion; the caller
then continues with the surface tier. When no surface rule fires either,
`feature_space_join` gives the spaced decision naming both tag sets.
"""

from __future__ import annotations

from typing import Callable, Dict, FrozenSet, Optional, Sequence

from morphkit.core.domain.models import Analyse, JoinDecision
from morphkit.morphology.base import match_case, starts_with_vowel
from morphkit.morphology.romance import ES_CONTRACTIONS, FR_ELISION, IT_ELISION, fr_vowel_onset

# Part-of-speech tags that count as a real analysis.
RECOGNIZED_POS: FrozenSet[str] = frozenset({
    "prn", "det", "vblex", "vbser", "vbhaver", "vaux", "vbmod",
    "n", "np", "adj", "adv", "pr", "prep", "cnjcoo", "cnjsub", "conj",
})

# Categories that may elide in French.
FUNCTION_WORD_POS: FrozenSet[str] = frozenset({"det", "prn", "pr", "prep", "cnjcoo", "cnjsub", "conj", "adv"})

FeatureRule = Callable[[str, str, Sequence[str], Sequence[str]], Optional[JoinDecision]]


def _lower(tags: Sequence[str]) -> FrozenSet[str]:
    return frozenset(t.lower() for t in tags)


def is_real_analysis(analysis: Analyse) -> bool:
    if not analysis.tags or analysis.failed:
        return False
    return bool(_lower(analysis.tags) & RECOGNIZED_POS)


def best_tags(analyses: Optional[Sequence[Analyse]]) -> Optional[Sequence[str]]:
    """Tags of the first real analysis, or None when there is none."""
    for analysis in analyses or ():
        if is_real_analysis(analysis):
            return analysis.tags
    return None


def _describe(token: str, tags: Sequence[str]) -> str:
    return f"{token}[{','.join(tags)}]"


def _french(prev: str, next: str, prev_tags: Sequence[str], next_tags: Sequence[str]) -> Optional[JoinDecision]:
    elided = FR_ELISION.get(prev.lower())
    if not elided or not (_lower(prev_tags) & FUNCTION_WORD_POS):
        return None
    if prev.lower() == "si" and next.lower() not in ("il", "ils"):
        return None
    if not fr_vowel_onset(next):
        return None
    return JoinDecision.fused(
        match_case(prev, elided),
        next,
        f"French elision (morphological features): {_describe(prev, prev_tags)} + {_describe(next, next_tags)}",
    )


def _italian(prev: str, next: str, prev_tags: Sequence[str], next_tags: Sequence[str]) -> Optional[JoinDecision]:
    elided = IT_ELISION.get(prev.lower())
    if not elided or "det" not in _lower(prev_tags) or not starts_with_vowel(next):
        return None
    return JoinDecision.fused(
        match_case(prev, elided),
        next,
        f"Italian elision (morphological features): {_describe(prev, prev_tags)} + {_describe(next, next_tags)}",
    )


def _spanish(prev: str, next: str, prev_tags: Sequence[str], next_tags: Sequence[str]) -> Optional[JoinDecision]:
    fused = ES_CONTRACTIONS.get((prev.lower(), next.lower()))
    if not fused or not (_lower(prev_tags) & {"pr", "prep"}) or "det" not in _lower(next_tags):
        return None
    return JoinDecision.fused(
        match_case(prev, fused),
        "",
        f"Spanish contraction (morphological features): {_describe(prev, prev_tags)} + {_describe(next, next_tags)}",
    )


FEATURE_RULES: Dict[str, FeatureRule] = {
    "fr-fr": _french,
    "it-it": _italian,
    "es-es": _spanish,
    "es-mx": _spanish,
}


def feature_join(
    prev: str,
    next: str,
    lang: str,
    prev_analyses: Optional[Sequence[Analyse]],
    next_analyses: Optional[Sequence[Analyse]],
) -> Optional[JoinDecision]:
    """Run the feature tier; None if it is not applicable or does not fire."""
    prev_tags = best_tags(prev_analyses)
    next_tags = best_tags(next_analyses)
    if prev_tags is None or next_tags is None:
        return None
    rule = FEATURE_RULES.get((lang or "").strip().lower())
    if rule is None:
        return None
    return rule(prev, next, prev_tags, next_tags)


def feature_space_join(
    prev: str,
    next: str,
    lang: str,
    prev_analyses: Optional[Sequence[Analyse]],
    next_analyses: Optional[Sequence[Analyse]],
) -> Optional[JoinDecision]:
    """Spaced join justified by the analyses; None unless both tokens have real ones."""
    prev_tags = best_tags(prev_analyses)
    next_tags = best_tags(next_analyses)
    if prev_tags is None or next_tags is None:
        return None
    return JoinDecision.spaced(
        prev,
        next,
        f"Morphological join for {lang}: {_describe(prev, prev_tags)} + {_describe(next, next_tags)}",
    )


__all__ = [
    "RECOGNIZED_POS",
    "FUNCTION_WORD_POS",
    "is_real_analysis",
    "best_tags",
    "feature_join",
    "feature_space_join",
]
