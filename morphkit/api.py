# morphkit/api.py
"""
Module-level morphology API.

One default MorphRuntime, built from the DI container (and therefore from
MORPH_* settings), backs the functions below. Tests and embedders that need
isolation construct their own `MorphRuntime(RuntimeConfig(...))` instead.

    from morphkit import api

    api.configure_runtime_mode("engine")
    api.configure_engine_urls(pack_url="file:///packs/fr.hfstol.gz?sha256=...")
    await api.load("fr-FR")
    await api.analyse("chats", "fr-FR")
    await api.join("le", "arbre", "fr-FR")   # l’arbre
"""
from typing import List, Optional

from morphkit.core.domain.models import Analyse, GenerateInput, JoinDecision
from morphkit.services.runtime import MorphRuntime
from morphkit.shared.container import container

morph: MorphRuntime = container.morph_runtime()


# --- Configuration ---

def configure_runtime_mode(mode) -> None:
    morph.configure_runtime_mode(mode)


def configure_engine_urls(engine_url: Optional[str] = None, pack_url: Optional[str] = None) -> None:
    morph.configure_engine_urls(engine_url=engine_url, pack_url=pack_url)


def configure_tag_ordering(policy) -> None:
    morph.configure_tag_ordering(policy)


def configure_analysis_failure_policy(policy) -> None:
    morph.configure_analysis_failure_policy(policy)


# --- Operations ---

async def load(lang: str) -> None:
    await morph.load(lang)


async def analyse(surface: str, lang: str) -> List[Analyse]:
    return await morph.analyse(surface, lang)


async def generate(data: GenerateInput, lang: str) -> List[str]:
    return await morph.generate(data, lang)


async def join(prev: str, next: str, lang: str) -> JoinDecision:
    return await morph.join(prev, next, lang)


def cleanup() -> None:
    morph.cleanup()


def terminate() -> None:
    morph.terminate()


__all__ = [
    "morph",
    "configure_runtime_mode",
    "configure_engine_urls",
    "configure_tag_ordering",
    "configure_analysis_failure_policy",
    "load",
    "analyse",
    "generate",
    "join",
    "cleanup",
    "terminate",
]
