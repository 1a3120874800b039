"""
morphology/base.py

Shared abstractions for the surface-heuristic join tier.

This module defines:
- The `JoinRule` record: {predicate, transform, reason}.
- Small rule builders (elision, contraction, article alternation, …) that
  the per-family modules (romance, germanic, celtic, agglutinative) feed with
  plain data tables.
- A registry mapping language codes to their ordered rule lists.

Rules are evaluated first-match-wins. A transform only returns the two
surface forms and the joiner; `no_space` is derived from the joiner when the
JoinDecision is built, so a rule cannot produce an inconsistent decision.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Mapping, Optional, Tuple

from morphkit.core.domain.models import FUSING_JOINERS, Joiner, JoinDecision

Predicate = Callable[[str, str], bool]
Transform = Callable[[str, str], Tuple[str, str, Joiner]]

_VOWEL_ONSET = re.compile(r"^[aeiouàáâäæéèêëîïìíôöòóœùúûüỳýÿ]", re.IGNORECASE)


@dataclass(frozen=True)
class JoinRule:
    """
    One surface rule.

    Attributes:
        predicate: (prev, next) -> bool; decides whether the rule fires.
        transform: (prev, next) -> (surface_prev, surface_next, joiner).
        reason: Format string; may use {prev}, {next}, {prev_out}, {next_out}.
        kind: Rule family (elision, contraction, …), for logging.
    """

    predicate: Predicate
    transform: Transform
    reason: str
    kind: str = "rule"

    def apply(self, prev: str, next: str) -> Optional[JoinDecision]:
        if not self.predicate(prev, next):
            return None
        prev_out, next_out, joiner = self.transform(prev, next)
        reason = self.reason.format(prev=prev, next=next, prev_out=prev_out, next_out=next_out)
        return JoinDecision(
            surface_prev=prev_out,
            surface_next=next_out,
            joiner=joiner,
            no_space=joiner in FUSING_JOINERS,
            reason=reason,
        )


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


def starts_with_vowel(word: str) -> bool:
    return bool(_VOWEL_ONSET.match(word or ""))


def match_case(original: str, replacement: str) -> str:
    """
    Carry leading capitalisation over from the original token.

    Example:
        original='Je', replacement='j’' -> 'J’'
    """
    if original and replacement and original[0].isupper():
        return replacement[0].upper() + replacement[1:]
    return replacement


def is_capitalized(word: str) -> bool:
    return len(word) > 1 and word[0].isupper() and not word.isupper()


def _pair_key(prev: str, next: str) -> Tuple[str, str]:
    return (prev.lower(), next.lower())


# ---------------------------------------------------------------------------
# Rule builders
# ---------------------------------------------------------------------------


def elision(
    table: Mapping[str, str],
    onset: Predicate,
    reason: str,
) -> JoinRule:
    """
    Function word + vowel-ish onset -> elided form fused with the next token.

    `onset(prev, next)` decides whether `next` opens with a vowel sound for
    this particular `prev` (silent-h handling and per-word restrictions live
    there).
    """

    def predicate(prev: str, next: str) -> bool:
        return prev.lower() in table and onset(prev, next)

    def transform(prev: str, next: str) -> Tuple[str, str, Joiner]:
        return match_case(prev, table[prev.lower()]), next, ""

    return JoinRule(predicate, transform, reason, kind="elision")


def contraction(table: Mapping[Tuple[str, str], str], reason: str) -> JoinRule:
    """Exact (prev, next) pair -> one fused form; next is consumed."""

    def predicate(prev: str, next: str) -> bool:
        return _pair_key(prev, next) in table

    def transform(prev: str, next: str) -> Tuple[str, str, Joiner]:
        return match_case(prev, table[_pair_key(prev, next)]), "", ""

    return JoinRule(predicate, transform, reason, kind="contraction")


def article_alternation(
    forms: Mapping[str, str],
    condition: Predicate,
    reason: str,
) -> JoinRule:
    """Article swaps its form before a triggering onset but keeps the space."""

    def predicate(prev: str, next: str) -> bool:
        return prev.lower() in forms and condition(prev, next)

    def transform(prev: str, next: str) -> Tuple[str, str, Joiner]:
        return match_case(prev, forms[prev.lower()]), next, " "

    return JoinRule(predicate, transform, reason, kind="article_alternation")


def irregular_fusion(table: Mapping[Tuple[str, str], str], reason: str) -> JoinRule:
    """Fixed (stem, suffix) pair -> irregular joined form."""

    def predicate(prev: str, next: str) -> bool:
        return (prev, next) in table or _pair_key(prev, next) in table

    def transform(prev: str, next: str) -> Tuple[str, str, Joiner]:
        joined = table.get((prev, next)) or table[_pair_key(prev, next)]
        return joined, "", ""

    return JoinRule(predicate, transform, reason, kind="irregular_fusion")


def bound_suffix(suffixes: Iterable[str], reason: str, joiner: Joiner = "") -> JoinRule:
    """Next token is a bound suffix: concatenate."""
    members = frozenset(s.lower() for s in suffixes)

    def predicate(prev: str, next: str) -> bool:
        return next.lower() in members

    def transform(prev: str, next: str) -> Tuple[str, str, Joiner]:
        return prev, next, joiner

    return JoinRule(predicate, transform, reason, kind="derivation")


def bound_prefix(prefixes: Iterable[str], reason: str) -> JoinRule:
    """Previous token is a bound prefix: concatenate."""
    members = frozenset(p.lower() for p in prefixes)

    def predicate(prev: str, next: str) -> bool:
        return prev.lower() in members and bool(next)

    def transform(prev: str, next: str) -> Tuple[str, str, Joiner]:
        return prev, next, ""

    return JoinRule(predicate, transform, reason, kind="derivation")


def clitic_attachment(
    host: Predicate,
    clitics: Iterable[str],
    reason: str,
    joiner: Joiner = "",
) -> JoinRule:
    """Enclitic pronoun attaches to a verbal host."""
    members = frozenset(c.lower() for c in clitics)

    def predicate(prev: str, next: str) -> bool:
        return next.lower() in members and host(prev, next)

    def transform(prev: str, next: str) -> Tuple[str, str, Joiner]:
        return prev, next.lower(), joiner

    return JoinRule(predicate, transform, reason, kind="clitic")


def capitalized_compound(blockers: Iterable[str], reason: str) -> JoinRule:
    """
    Two capitalised noun-like tokens fuse into a compound; the head loses its
    capital. Tokens in `blockers` (articles, pronouns, …) never start one.
    """
    blocked = frozenset(b.lower() for b in blockers)

    def predicate(prev: str, next: str) -> bool:
        return (
            is_capitalized(prev)
            and is_capitalized(next)
            and prev.lower() not in blocked
            and next.lower() not in blocked
        )

    def transform(prev: str, next: str) -> Tuple[str, str, Joiner]:
        return prev, next[0].lower() + next[1:], ""

    return JoinRule(predicate, transform, reason, kind="compound")


def mutation_context(
    triggers: Mapping[str, str],
    onset: re.Pattern,
    reason: str,
) -> Tuple[JoinRule, ...]:
    """
    Trigger word before a mutable consonant: the space stays, the reason
    names the mutation so downstream tooling can apply it.

    Returns one rule per trigger; `reason` may use {mutation}.
    """

    def _rule(trigger: str, mutation: str) -> JoinRule:
        def predicate(prev: str, next: str) -> bool:
            return prev.lower() == trigger and bool(onset.match(next))

        def transform(prev: str, next: str) -> Tuple[str, str, Joiner]:
            return prev, next, " "

        text = reason.replace("{mutation}", mutation)
        return JoinRule(predicate, transform, text, kind="mutation")

    return tuple(_rule(t.lower(), m) for t, m in triggers.items())


def always_spaced(reason: str) -> JoinRule:
    """Catch-all for languages whose tokens practically never fuse."""
    return JoinRule(lambda prev, next: True, lambda prev, next: (prev, next, " "), reason, kind="spacing")


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_LANGUAGE_RULES: Dict[str, Tuple[JoinRule, ...]] = {}


def _norm_lang(lang: str) -> str:
    return (lang or "").strip().lower()


def register_language(lang: str, rules: Iterable[JoinRule]) -> None:
    """Register (or replace) the ordered rule list for a language code."""
    _LANGUAGE_RULES[_norm_lang(lang)] = tuple(rules)


def rules_for(lang: str) -> Optional[Tuple[JoinRule, ...]]:
    """Ordered rules for `lang`, or None when the language has no join model."""
    return _LANGUAGE_RULES.get(_norm_lang(lang))


def registered_languages() -> Tuple[str, ...]:
    return tuple(sorted(_LANGUAGE_RULES))


__all__ = [
    "JoinRule",
    "starts_with_vowel",
    "match_case",
    "is_capitalized",
    "elision",
    "contraction",
    "article_alternation",
    "irregular_fusion",
    "bound_suffix",
    "bound_prefix",
    "clitic_attachment",
    "capitalized_compound",
    "mutation_context",
    "always_spaced",
    "register_language",
    "rules_for",
    "registered_languages",
]
