"""
Celtic join rules (Welsh).

Welsh tokens are always space-separated, but two things happen at the
boundary:

- The definite article alternates: y before consonants, yr before vowels
  and h.
- Some words put the following consonant in a mutation context (soft,
  nasal, aspirate). The join keeps the space and the reason names the
  mutation; the mutation itself is applied by inflection, not here.
"""

import re
from typing import Dict, Tuple

from morphkit.morphology.base import (
    JoinRule,
    article_alternation,
    mutation_context,
    register_language,
    starts_with_vowel,
)


def _cy_vowel_or_h(word: str) -> bool:
    return starts_with_vowel(word) or word.lower().startswith(("h", "w", "y"))


# Mutable initial consonants (radical forms).
CY_MUTABLE_ONSET = re.compile(r"^(?:ll|rh|[nlrmbcdgptf])", re.IGNORECASE)

CY_MUTATION_TRIGGERS: Dict[str, str] = {
    "yn": "soft/nasal",
    "dy": "soft",
    "ei": "soft/aspirate",
    "fy": "nasal",
    "ac": "aspirate",
    "a": "aspirate",
    "tri": "aspirate",
    "dau": "soft",
    "dwy": "soft",
}

CY_RULES: Tuple[JoinRule, ...] = (
    article_alternation(
        {"y": "yr", "yr": "yr"},
        lambda p, n: _cy_vowel_or_h(n),
        "Welsh article before vowel: {prev_out} {next}",
    ),
    article_alternation(
        {"yr": "y"},
        lambda p, n: bool(n) and not _cy_vowel_or_h(n),
        "Welsh article before consonant: {prev_out} {next}",
    ),
    *mutation_context(CY_MUTATION_TRIGGERS, CY_MUTABLE_ONSET, "Welsh mutation context ({mutation}): {prev} {next}"),
)


register_language("cy-GB", CY_RULES)
