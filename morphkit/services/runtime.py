# morphkit/services/runtime.py
"""
Morphology runtimes.

- RuleRuntime: stemming, rule pluralisation and the surface join engine.
  Pure Python, no worker.
- EngineRuntime: analysis and generation through the worker's transducers;
  joins ask the worker (feature tier) and fall back to the local engine.
- MorphRuntime: the selector callers use. Dispatches on RuntimeConfig.mode
  and guarantees that analyse/generate/join never raise.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence

import structlog

from morphkit.adapters.engines.output_format import is_sentinel, parse_analyses
from morphkit.adapters.transport import create_transport
from morphkit.core.domain.models import ANALYSIS_FAILED_TAG, Analyse, GenerateInput, JoinDecision
from morphkit.core.ports import MorphRuntimePort
from morphkit.morphology.inflection import get_stemmer, pluralize, stem
from morphkit.morphology.joiner import PUNCTUATION, decide
from morphkit.services.channel import WorkerChannel
from morphkit.shared.config import (
    AnalysisFailurePolicy,
    RuntimeConfig,
    RuntimeMode,
    TagOrdering,
)

logger = structlog.get_logger()

STEM_TAG = "STEM"
PLURAL_TAG = "PL"

GENERATION_FAILED = "HFST_GENERATION_FAILED"


# =========================================================
# TAG ORDERING
# =========================================================

_TAG_GROUPS = (
    # Part of speech
    ("N", "NOUN", "V", "VERB", "VBLEX", "A", "ADJ", "ADV", "PRON", "PRN", "DET",
     "PREP", "PR", "CONJ", "CNJCOO", "CNJSUB", "NUM", "INTJ", "PROPN", "NP"),
    # Gender
    ("M", "MASC", "F", "FEM", "NT", "NEUT", "MF", "COM"),
    # Tense / aspect / mood
    ("PRES", "PRS", "PRI", "PAST", "PST", "PRET", "IFI", "FUT", "FTS", "IMPF", "PII",
     "PERF", "PP", "PRF", "INF", "GER", "IND", "SUBJ", "SBJV", "COND", "CNI", "IMP", "IMPV"),
    # Number / person
    ("SG", "PL", "DU", "SP", "1", "2", "3", "P1", "P2", "P3", "1SG", "2SG", "3SG",
     "1PL", "2PL", "3PL"),
    # Case
    ("NOM", "ACC", "GEN", "DAT", "LOC", "INS", "ABL", "ELA", "ILL", "INE", "ADE",
     "ALL", "ESS", "TRA", "PAR", "ERG", "ABS", "VOC"),
    # Comparison
    ("POS", "CMP", "COMP", "SUP", "SUPL"),
)

TAG_RANKS: Dict[str, int] = {
    tag: (group + 1) * 10 for group, tags in enumerate(_TAG_GROUPS) for tag in tags
}

_UNRANKED = 1000


def tag_rank(tag: str) -> int:
    return TAG_RANKS.get(tag.upper(), _UNRANKED)


def order_tags(tags: Sequence[str], policy: TagOrdering = TagOrdering.FLEXIBLE) -> List[str]:
    """
    Order tags for an engine generation request.

    `strict` keeps the caller's order; `flexible` sorts by category
    (POS < gender < tense/aspect < number/person < case < comparison) and
    lexicographically inside a category. Unknown tags go last.
    """
    if policy == TagOrdering.STRICT:
        return list(tags)
    return sorted(tags, key=lambda t: (tag_rank(t), t))


# =========================================================
# RULE RUNTIME
# =========================================================


class RuleRuntime(MorphRuntimePort):
    async def load(self, lang: str) -> None:
        get_stemmer(lang)

    async def analyse(self, surface: str, lang: str) -> List[Analyse]:
        return [Analyse(lemma=stem(surface, lang), surface=surface, tags=[STEM_TAG])]

    async def generate(self, data: GenerateInput, lang: str) -> List[str]:
        if any(tag.upper() == PLURAL_TAG for tag in data.tags):
            return [pluralize(data.lemma, lang)]
        return [data.lemma]

    async def join(self, prev: str, next: str, lang: str) -> JoinDecision:
        return decide(prev, next, lang)


# =========================================================
# ENGINE RUNTIME
# =========================================================


class EngineRuntime(MorphRuntimePort):
    """
    Transducer-backed runtime.

    `last_up_raw` / `last_down_raw` keep the raw worker output of the most
    recent analysis and generation calls for debugging.
    """

    def __init__(self, config: RuntimeConfig, channel: WorkerChannel, rules: Optional[RuleRuntime] = None):
        self.config = config
        self.channel = channel
        self.rules = rules or RuleRuntime()
        self.last_up_raw: List[str] = []
        self.last_down_raw: List[str] = []

    async def load(self, lang: str) -> None:
        await self.channel.init(self.config.engine_url, None)
        if self.config.pack_url:
            await self.channel.load_pack(self.config.pack_url)
        await self.rules.load(lang)
        logger.info("engine_runtime_loaded", lang=lang, worker=self.channel.available)

    def _diagnostic(self, lines: Sequence[str]) -> str:
        if lines and is_sentinel(lines[0]):
            return lines[0]
        if not self.channel.available:
            return "no transport"
        return "no analysis"

    async def analyse(self, surface: str, lang: str) -> List[Analyse]:
        lines = await self.channel.apply_up(surface)
        self.last_up_raw = list(lines)

        analyses = parse_analyses(lines, surface)
        if analyses:
            return analyses

        diagnostic = self._diagnostic(lines)
        logger.warning("engine_analysis_failed", surface=surface, lang=lang, diagnostic=diagnostic)
        if self.config.analysis_failure_policy == AnalysisFailurePolicy.FALLBACK_RULES:
            return await self.rules.analyse(surface, lang)
        return [
            Analyse(
                lemma=surface,
                surface=surface,
                tags=[ANALYSIS_FAILED_TAG],
                error=f"HFST analysis failed for '{surface}' ({lang}): {diagnostic}",
            )
        ]

    async def generate(self, data: GenerateInput, lang: str) -> List[str]:
        tags = order_tags(data.tags, self.config.tag_ordering)
        request = "+".join([data.lemma, *tags])

        lines = await self.channel.apply_down(request)
        self.last_down_raw = list(lines)

        outputs = [line for line in lines if not is_sentinel(line)]
        if outputs:
            return outputs

        logger.warning("engine_generation_failed", request=request, lang=lang, diagnostic=self._diagnostic(lines))
        if self.config.analysis_failure_policy == AnalysisFailurePolicy.FALLBACK_RULES:
            return await self.rules.generate(GenerateInput(lemma=data.lemma, tags=tags), lang)
        return [f"{GENERATION_FAILED}:{request}@{lang}"]

    async def join(self, prev: str, next: str, lang: str) -> JoinDecision:
        if next in PUNCTUATION:
            return decide(prev, next, lang)
        decision = await self.channel.apply_join(prev, next, lang)
        if decision is not None:
            return decision
        return decide(prev, next, lang)


# =========================================================
# SELECTOR
# =========================================================


class MorphRuntime(MorphRuntimePort):
    """
    Mode-switching runtime.

    Holds the RuntimeConfig by reference; the configure_* methods are its only
    writers. A worker channel is created lazily by `load()` in engine mode.
    """

    def __init__(
        self,
        config: Optional[RuntimeConfig] = None,
        channel: Optional[WorkerChannel] = None,
        rules: Optional[RuleRuntime] = None,
    ):
        self.config = config or RuntimeConfig()
        self.rules = rules or RuleRuntime()
        self.channel = channel or WorkerChannel(lambda: create_transport(self.config.transport))
        self.engine = EngineRuntime(self.config, self.channel, self.rules)

    @property
    def active(self) -> MorphRuntimePort:
        return self.engine if self.config.mode == RuntimeMode.ENGINE else self.rules

    @property
    def last_up_raw(self) -> List[str]:
        return self.engine.last_up_raw

    @property
    def last_down_raw(self) -> List[str]:
        return self.engine.last_down_raw

    # --- Configuration ---

    def configure_runtime_mode(self, mode) -> None:
        self.config.mode = RuntimeMode(mode)
        logger.info("runtime_mode_configured", mode=self.config.mode.value)

    def configure_engine_urls(self, engine_url: Optional[str] = None, pack_url: Optional[str] = None) -> None:
        if engine_url is not None:
            self.config.engine_url = engine_url
        if pack_url is not None:
            self.config.pack_url = pack_url
        logger.info("runtime_urls_configured", engine_url=self.config.engine_url, pack_url=self.config.pack_url)

    def configure_tag_ordering(self, policy) -> None:
        self.config.tag_ordering = TagOrdering(policy)

    def configure_analysis_failure_policy(self, policy) -> None:
        self.config.analysis_failure_policy = AnalysisFailurePolicy(policy)

    # --- Operations ---

    async def load(self, lang: str) -> None:
        try:
            await self.active.load(lang)
        except Exception as e:
            logger.error("runtime_load_failed", lang=lang, mode=self.config.mode.value, error=str(e))

    async def analyse(self, surface: str, lang: str) -> List[Analyse]:
        try:
            return await self.active.analyse(surface, lang)
        except Exception as e:
            logger.error("runtime_analyse_failed", surface=surface, lang=lang, error=str(e), exc_info=True)
            return [
                Analyse(
                    lemma=surface,
                    surface=surface,
                    tags=[ANALYSIS_FAILED_TAG],
                    error=f"analysis raised {e.__class__.__name__}: {e}",
                )
            ]

    async def generate(self, data: GenerateInput, lang: str) -> List[str]:
        try:
            return await self.active.generate(data, lang)
        except Exception as e:
            logger.error("runtime_generate_failed", lemma=data.lemma, lang=lang, error=str(e), exc_info=True)
            request = "+".join([data.lemma, *data.tags])
            return [f"{GENERATION_FAILED}:{request}@{lang}"]

    async def join(self, prev: str, next: str, lang: str) -> JoinDecision:
        try:
            return await self.active.join(prev, next, lang)
        except Exception as e:
            logger.error("runtime_join_failed", prev=prev, next=next, lang=lang, error=str(e), exc_info=True)
            return decide(prev, next, lang)

    def terminate(self) -> None:
        self.channel.terminate()

    cleanup = terminate


__all__ = [
    "TAG_RANKS",
    "order_tags",
    "tag_rank",
    "RuleRuntime",
    "EngineRuntime",
    "MorphRuntime",
]
