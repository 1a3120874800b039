"""
morphkit: morphological analysis, generation and token joining backed by
finite-state transducers running in a worker process, with a pure-Python
rule tier.
"""

from morphkit.core.domain.models import Analyse, GenerateInput, JoinDecision
from morphkit.services.runtime import MorphRuntime
from morphkit.shared.config import (
    AnalysisFailurePolicy,
    RuntimeConfig,
    RuntimeMode,
    TagOrdering,
    TransportKind,
)

__all__ = [
    "Analyse",
    "GenerateInput",
    "JoinDecision",
    "MorphRuntime",
    "RuntimeConfig",
    "RuntimeMode",
    "TagOrdering",
    "AnalysisFailurePolicy",
    "TransportKind",
]
