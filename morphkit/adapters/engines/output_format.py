# morphkit/adapters/engines/output_format.py
"""
Parsing of transducer output lines into Analyse records.

Two line shapes come out of the engines we load:

  HFST / Giella style     cat+N+Pl            (optionally followed by a weight)
  Apertium style          cats\tcat<n><pl>ε\t0.000

Lines starting with one of the host's failure sentinels are not analyses.
"""
from __future__ import annotations

import re
from typing import Iterable, List

from morphkit.core.domain.models import Analyse

SENTINEL_PREFIXES = (
    "HFST_ENGINE_NOT_LOADED:",
    "HFST_TRANSDUCER_NOT_LOADED:",
    "HFST_ENGINE_ERROR:",
)

_APERTIUM_TAG = re.compile(r"<([^>]+)>")
_APERTIUM_ANALYSIS = re.compile(r"^([^<]+)(.*)$")
_WEIGHT = re.compile(r"^-?\d+(?:\.\d+)?$")


def is_sentinel(line: str) -> bool:
    return line.startswith(SENTINEL_PREFIXES)


def _analysis_field(line: str) -> str:
    """
    Pick the analysis out of a tab-separated line:
    surface<TAB>analysis<TAB>weight, analysis<TAB>weight or a bare analysis.
    """
    parts = [p.strip() for p in line.split("\t")]
    if len(parts) >= 3:
        return parts[1]
    if len(parts) == 2:
        return parts[0] if _WEIGHT.match(parts[1]) else parts[1]
    return parts[0]


def parse_analysis_line(line: str, surface: str) -> Analyse:
    line = _analysis_field((line or "").strip())

    if "<" in line:
        analysis = re.sub(r"ε.*$", "", line).strip()
        match = _APERTIUM_ANALYSIS.match(analysis)
        if not match:
            return Analyse(lemma=analysis or surface, surface=surface, tags=[])
        return Analyse(
            lemma=match.group(1),
            surface=surface,
            tags=_APERTIUM_TAG.findall(match.group(2)),
        )

    first = line.split()[0] if line.split() else ""
    parts = [p for p in first.split("+") if p]
    lemma = parts.pop(0) if parts else surface
    return Analyse(lemma=lemma, surface=surface, tags=parts)


def parse_analyses(lines: Iterable[str], surface: str) -> List[Analyse]:
    """Parse every non-sentinel, non-empty line."""
    return [
        parse_analysis_line(line, surface)
        for line in lines
        if line and line.strip() and not is_sentinel(line)
    ]


__all__ = ["SENTINEL_PREFIXES", "is_sentinel", "parse_analysis_line", "parse_analyses"]
