from .channel import WorkerChannel
from .runtime import EngineRuntime, MorphRuntime, RuleRuntime, order_tags

__all__ = ["WorkerChannel", "EngineRuntime", "MorphRuntime", "RuleRuntime", "order_tags"]
