"""
Germanic join rules (en, de, nl).

English:
  - a/an alternation before vowel sounds (a apple -> an apple, space kept)
  - irregular plural fusion (child + ren -> children)
  - bound affixes (sing + ing -> singing, un + happy -> unhappy)

German:
  - preposition + article contractions (in + dem -> im)
  - lexicalised compounds, with linking elements (Liebe + Lied -> Liebeslied)
  - generic capitalised noun compounding (Haus + Tür -> Haustür)

Dutch:
  - diminutive suffixes (huis + je -> huisje)
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Tuple

from morphkit.morphology.base import (
    JoinRule,
    article_alternation,
    bound_prefix,
    bound_suffix,
    capitalized_compound,
    contraction,
    irregular_fusion,
    register_language,
    starts_with_vowel,
)

# ---------------------------------------------------------------------------
# English
# ---------------------------------------------------------------------------

# Vowel letters pronounced with a consonant onset ("a university").
EN_CONSONANT_SOUND_PREFIXES: Tuple[str, ...] = ("uni", "use", "usu", "uti", "ure", "eu", "ewe", "one", "once")

# Silent h ("an hour").
EN_SILENT_H_PREFIXES: Tuple[str, ...] = ("hour", "honest", "honor", "honour", "heir", "herb")


def en_vowel_sound(word: str) -> bool:
    w = word.lower()
    if w.startswith(EN_SILENT_H_PREFIXES):
        return True
    return starts_with_vowel(w) and not w.startswith(EN_CONSONANT_SOUND_PREFIXES)


EN_IRREGULAR: Dict[Tuple[str, str], str] = {
    ("child", "ren"): "children",
    ("ox", "en"): "oxen",
    ("brother", "ren"): "brethren",
}

EN_RULES: Tuple[JoinRule, ...] = (
    article_alternation({"a": "an"}, lambda p, n: en_vowel_sound(n), "English article alternation: a → an before {next}"),
    article_alternation(
        {"an": "a"},
        lambda p, n: bool(n) and not en_vowel_sound(n),
        "English article alternation: an → a before {next}",
    ),
    irregular_fusion(EN_IRREGULAR, "English irregular plural: {prev} + {next} → {prev_out}"),
    bound_suffix(["ing", "s", "es", "ed", "ly", "ness"], "English affix concatenation: {prev} + -{next}"),
    bound_prefix(["un", "non"], "English affix concatenation: {prev}- + {next}"),
)

# ---------------------------------------------------------------------------
# German
# ---------------------------------------------------------------------------

DE_CONTRACTIONS: Dict[Tuple[str, str], str] = {
    ("an", "dem"): "am",
    ("an", "das"): "ans",
    ("bei", "dem"): "beim",
    ("in", "dem"): "im",
    ("in", "das"): "ins",
    ("von", "dem"): "vom",
    ("zu", "dem"): "zum",
    ("zu", "der"): "zur",
}

DE_COMPOUNDS: Dict[Tuple[str, str], str] = {
    ("Haus", "Tür"): "Haustür",
    ("Auto", "Bahn"): "Autobahn",
    ("Bahn", "Hof"): "Bahnhof",
    ("Wasser", "Fall"): "Wasserfall",
    # linking elements (Fugenelemente)
    ("Liebe", "Lied"): "Liebeslied",
    ("Hund", "Hütte"): "Hundehütte",
    ("Arbeit", "Zimmer"): "Arbeitszimmer",
    ("Geburt", "Tag"): "Geburtstag",
}

# Function words that can be capitalised at sentence start but never head a compound.
DE_COMPOUND_BLOCKERS: FrozenSet[str] = frozenset({
    "der", "die", "das", "den", "dem", "des",
    "ein", "eine", "einen", "einem", "einer", "eines",
    "kein", "keine", "mein", "meine", "dein", "sein", "ihr", "unser", "euer",
    "ich", "du", "er", "sie", "es", "wir",
    "und", "oder", "aber", "mit", "von", "zu", "in", "im", "am", "auf", "an",
    "für", "bei", "nach", "aus", "über", "unter", "dieser", "diese", "dieses",
})

DE_RULES: Tuple[JoinRule, ...] = (
    contraction(DE_CONTRACTIONS, "German contraction: {prev} + {next} → {prev_out}"),
    irregular_fusion(DE_COMPOUNDS, "German compound: {prev} + {next} → {prev_out}"),
    capitalized_compound(DE_COMPOUND_BLOCKERS, "German compound formation: {prev} + {next}"),
)

# ---------------------------------------------------------------------------
# Dutch
# ---------------------------------------------------------------------------

NL_RULES: Tuple[JoinRule, ...] = (
    bound_suffix(["je", "tje", "pje", "etje"], "Dutch diminutive: {prev} + -{next}"),
)


register_language("en-US", EN_RULES)
register_language("de-DE", DE_RULES)
register_language("nl-NL", NL_RULES)
