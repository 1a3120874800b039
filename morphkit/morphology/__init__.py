"""
Morphology package: join-decision engine, per-family join rule tables and
rule-tier inflection (stemming, pluralisation).
"""

from .joiner import PUNCTUATION, decide, decide_join, join_tokens
from .inflection import pluralize, stem

__all__ = [
    "PUNCTUATION",
    "decide",
    "decide_join",
    "join_tokens",
    "pluralize",
    "stem",
]
