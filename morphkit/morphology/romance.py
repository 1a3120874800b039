"""
ROMANCE JOIN RULES
------------------

Surface join rules for Romance languages (fr, it, es, pt, ca).

This module is data-driven: each language is a handful of tables (elision
forms, contraction pairs, clitic sets) fed into the generic rule builders of
`morphology.base`. Order inside each list matters (first match wins).

Handled phenomena:
  * Elision:     je + aime   -> j’aime      (fr),  lo + amico -> l’amico (it)
  * Contraction: de + el     -> del         (es),  em + a     -> na      (pt)
  * Clitics:     dar + me    -> darme       (es),  dar + me   -> dar-me  (pt)
  * Derivation:  bella + mente -> bellamente (it)
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Tuple

from morphkit.morphology.base import (
    JoinRule,
    bound_suffix,
    clitic_attachment,
    contraction,
    elision,
    register_language,
    starts_with_vowel,
)

# ---------------------------------------------------------------------------
# French
# ---------------------------------------------------------------------------

FR_ELISION: Dict[str, str] = {
    "je": "j’",
    "le": "l’",
    "la": "l’",
    "de": "d’",
    "ne": "n’",
    "me": "m’",
    "te": "t’",
    "se": "s’",
    "ce": "c’",
    "que": "qu’",
    "jusque": "jusqu’",
    "lorsque": "lorsqu’",
    "puisque": "puisqu’",
    "si": "s’",
}

# "si" only elides before il / ils.
FR_SI_HOSTS: FrozenSet[str] = frozenset({"il", "ils"})

# h aspiré: these block elision even though they start with a silent letter.
FR_H_ASPIRE: FrozenSet[str] = frozenset({
    "hache", "haie", "haine", "hall", "halte", "hamac", "hameau", "hanche",
    "handicap", "hangar", "hanter", "harceler", "haricot", "harpe", "hasard",
    "hausse", "haut", "hauteur", "hérisson", "héros", "hêtre", "hibou",
    "hockey", "homard", "hongrois", "honte", "hors", "hublot", "huit",
    "hurler", "hutte",
})


def is_h_aspire(word: str) -> bool:
    w = word.lower()
    return w in FR_H_ASPIRE or (w.endswith("s") and w[:-1] in FR_H_ASPIRE)


def fr_vowel_onset(word: str) -> bool:
    """Vowel or silent-h onset (h muet), as far as elision is concerned."""
    if starts_with_vowel(word):
        return True
    w = word.lower()
    if not w.startswith("h") or is_h_aspire(w):
        return False
    return starts_with_vowel(w[1:]) or w[1:2] == "y"


def _fr_onset(prev: str, next: str) -> bool:
    if prev.lower() == "si":
        return next.lower() in FR_SI_HOSTS
    return fr_vowel_onset(next)


FRENCH_RULES: Tuple[JoinRule, ...] = (
    elision(FR_ELISION, _fr_onset, "French elision: {prev} + {next} → {prev_out}{next_out}"),
)

# ---------------------------------------------------------------------------
# Italian
# ---------------------------------------------------------------------------

IT_ELISION: Dict[str, str] = {
    "lo": "l’",
    "la": "l’",
    "una": "un’",
    "dello": "dell’",
    "della": "dell’",
    "questo": "quest’",
    "questa": "quest’",
}

IT_RULES: Tuple[JoinRule, ...] = (
    elision(IT_ELISION, lambda p, n: starts_with_vowel(n), "Italian elision: {prev} + {next} → {prev_out}{next_out}"),
    bound_suffix(["mente"], "Italian derivation -mente: {prev} + {next}"),
)

# ---------------------------------------------------------------------------
# Spanish
# ---------------------------------------------------------------------------

ES_CONTRACTIONS: Dict[Tuple[str, str], str] = {
    ("de", "el"): "del",
    ("a", "el"): "al",
}

ES_CLITICS = ("me", "te", "se", "le", "la", "lo", "nos", "os", "les", "las", "los")


def _infinitive(prev: str, next: str) -> bool:
    p = prev.lower()
    return len(p) > 2 and p.endswith(("ar", "er", "ir", "ír"))


ES_RULES: Tuple[JoinRule, ...] = (
    contraction(ES_CONTRACTIONS, "Spanish contraction: {prev} + {next} → {prev_out}"),
    clitic_attachment(_infinitive, ES_CLITICS, "Spanish clitic attachment: {prev} + {next}"),
)

# ---------------------------------------------------------------------------
# Portuguese
# ---------------------------------------------------------------------------

PT_CONTRACTIONS: Dict[Tuple[str, str], str] = {
    ("de", "o"): "do",
    ("de", "a"): "da",
    ("de", "os"): "dos",
    ("de", "as"): "das",
    ("em", "o"): "no",
    ("em", "a"): "na",
    ("em", "os"): "nos",
    ("em", "as"): "nas",
    ("a", "o"): "ao",
    ("a", "a"): "à",
    ("a", "os"): "aos",
    ("a", "as"): "às",
    ("por", "o"): "pelo",
    ("por", "a"): "pela",
    ("por", "os"): "pelos",
    ("por", "as"): "pelas",
}

PT_CLITICS = ("me", "te", "se", "lhe", "nos", "vos", "lhes")

PT_RULES: Tuple[JoinRule, ...] = (
    contraction(PT_CONTRACTIONS, "Portuguese contraction: {prev} + {next} → {prev_out}"),
    clitic_attachment(_infinitive, PT_CLITICS, "Portuguese enclisis: {prev}-{next}", joiner="-"),
)

# ---------------------------------------------------------------------------
# Catalan
# ---------------------------------------------------------------------------

CA_ELISION: Dict[str, str] = {
    "el": "l’",
    "la": "l’",
    "de": "d’",
    "me": "m’",
    "te": "t’",
    "se": "s’",
    "ne": "n’",
}

CA_CONTRACTIONS: Dict[Tuple[str, str], str] = {
    ("a", "el"): "al",
    ("a", "els"): "als",
    ("de", "el"): "del",
    ("de", "els"): "dels",
    ("per", "el"): "pel",
    ("per", "els"): "pels",
}


def _ca_onset(prev: str, next: str) -> bool:
    w = next.lower()
    return starts_with_vowel(w) or (w.startswith("h") and starts_with_vowel(w[1:]))


CA_RULES: Tuple[JoinRule, ...] = (
    contraction(CA_CONTRACTIONS, "Catalan contraction: {prev} + {next} → {prev_out}"),
    elision(CA_ELISION, _ca_onset, "Catalan elision: {prev} + {next} → {prev_out}{next_out}"),
)


register_language("fr-FR", FRENCH_RULES)
register_language("it-IT", IT_RULES)
register_language("es-ES", ES_RULES)
register_language("es-MX", ES_RULES)
register_language("pt-PT", PT_RULES)
register_language("ca-ES", CA_RULES)
