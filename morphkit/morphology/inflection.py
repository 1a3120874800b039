"""
Rule-tier inflection helpers.

- Snowball stemmers (via `snowballstemmer`), cached per language.
- Suffix-based pluralisation per language, used by the rule runtime's
  generate() when the PL tag is requested.

Nothing here talks to the transducer engine.
"""

from __future__ import annotations

import re
import threading
from typing import Callable, Dict, Optional

import snowballstemmer
import structlog

logger = structlog.get_logger()

# Language code -> snowball algorithm name.
SNOWBALL_ALGORITHMS: Dict[str, str] = {
    "fr-fr": "french",
    "es-es": "spanish",
    "es-mx": "spanish",
    "pt-pt": "portuguese",
    "ca-es": "catalan",
    "it-it": "italian",
    "en-us": "english",
    "de-de": "german",
    "nl-nl": "dutch",
    "fi-fi": "finnish",
    "eu-es": "basque",
    "cy-gb": "welsh",
}


class IdentityStemmer:
    """Stand-in for languages that have no snowball algorithm."""

    def stemWord(self, word: str) -> str:
        return word


_STEMMERS: Dict[str, object] = {}
_STEMMER_LOCK = threading.RLock()


def _norm_lang(lang: str) -> str:
    return (lang or "").strip().lower()


def get_stemmer(lang: str):
    """Return the cached stemmer for `lang`, building it on first use."""
    nlang = _norm_lang(lang)
    existing = _STEMMERS.get(nlang)
    if existing is not None:
        return existing

    with _STEMMER_LOCK:
        existing = _STEMMERS.get(nlang)
        if existing is not None:
            return existing

        algorithm = SNOWBALL_ALGORITHMS.get(nlang)
        if algorithm and algorithm in snowballstemmer.algorithms():
            stemmer = snowballstemmer.stemmer(algorithm)
        else:
            logger.warning("stemmer_unavailable", lang=lang, algorithm=algorithm)
            stemmer = IdentityStemmer()

        _STEMMERS[nlang] = stemmer
        return stemmer


def stem(word: str, lang: str) -> str:
    return get_stemmer(lang).stemWord(word)


# ---------------------------------------------------------------------------
# Pluralisation
# ---------------------------------------------------------------------------


def _en(lemma: str) -> str:
    if re.search(r"[^aeiou]y$", lemma):
        return lemma[:-1] + "ies"
    if re.search(r"(s|x|z|ch|sh)$", lemma):
        return lemma + "es"
    return lemma + "s"


def _es(lemma: str) -> str:
    if lemma.endswith("z"):
        return lemma[:-1] + "ces"
    return lemma + "s" if re.search(r"[aeiouáéó]$", lemma) else lemma + "es"


def _fr(lemma: str) -> str:
    if lemma.endswith("al"):
        return lemma[:-2] + "aux"
    if lemma.endswith(("s", "x", "z")):
        return lemma
    if lemma.endswith(("eau", "au", "eu")):
        return lemma + "x"
    return lemma + "s"


def _it(lemma: str) -> str:
    if lemma.endswith("o"):
        return lemma[:-1] + "i"
    if lemma.endswith("a"):
        return lemma[:-1] + "e"
    if lemma.endswith("e"):
        return lemma[:-1] + "i"
    return lemma


def _pt(lemma: str) -> str:
    if lemma.endswith("ão"):
        return lemma[:-2] + "ões"
    if lemma.endswith("m"):
        return lemma[:-1] + "ns"
    if lemma.endswith("l"):
        return lemma[:-1] + "is"
    if re.search(r"[rzs]$", lemma):
        return lemma + "es"
    return lemma + "s"


def _ca(lemma: str) -> str:
    if lemma.endswith("a"):
        return lemma[:-1] + "es"
    return lemma + "s"


def _nl(lemma: str) -> str:
    if lemma.endswith(("el", "er", "em", "en", "je")):
        return lemma + "s"
    return lemma + "en"


PLURAL_RULES: Dict[str, Callable[[str], str]] = {
    "en-us": _en,
    "es-es": _es,
    "es-mx": _es,
    "fr-fr": _fr,
    "de-de": lambda lemma: lemma + "e",
    "it-it": _it,
    "fi-fi": lambda lemma: lemma + "t",
    "pt-pt": _pt,
    "ca-es": _ca,
    "nl-nl": _nl,
    "eu-es": lambda lemma: lemma + "ak" if not lemma.endswith("a") else lemma + "k",
}


def pluralize(lemma: str, lang: str) -> str:
    """Regular plural of `lemma`; unchanged for languages without a rule."""
    rule: Optional[Callable[[str], str]] = PLURAL_RULES.get(_norm_lang(lang))
    if rule is None or not lemma:
        return lemma
    return rule(lemma)


__all__ = ["get_stemmer", "stem", "pluralize", "SNOWBALL_ALGORITHMS", "IdentityStemmer"]
