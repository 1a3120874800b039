# morphkit/core/ports/__init__.py
"""
Core Ports (Interfaces).

Abstract base classes that the adapters implement. The services only talk to
these, so tests can swap in fakes for the worker transport, the native engine
and the engine-backed join adapter.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional

from morphkit.core.domain.models import Analyse, GenerateInput, JoinDecision

# =========================================================
# 1. EXECUTION CONTEXT PORTS
# =========================================================


class Transport(ABC):
    """
    Message channel to an execution context.

    Replies carry no correlation id; the transport only promises to hand every
    reply dict to the callback registered with `on_message`, from any thread.
    """

    @abstractmethod
    def on_message(self, callback: Callable[[dict], None]) -> None:
        """Register the reply callback."""
        pass

    @abstractmethod
    def post(self, message: dict) -> None:
        """Send one request dict."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Destroy the execution context. Must be idempotent."""
        pass


class TransducerEngine(ABC):
    """
    Capability wrapper around the foreign transducer library.

    The native calls follow a probe-then-fill convention: `size_of` returns the
    number of bytes the result needs (<= 0 means no result), `fill` writes it
    into a caller-owned buffer of that capacity.
    """

    @abstractmethod
    def size_of(self, direction: str, text: str) -> int:
        pass

    @abstractmethod
    def fill(self, direction: str, text: str, buffer: Any, capacity: int) -> int:
        pass

    @abstractmethod
    def allocate(self, size: int) -> Any:
        pass

    @abstractmethod
    def release(self, buffer: Any) -> None:
        pass

    @abstractmethod
    def decode(self, buffer: Any) -> str:
        pass

    @abstractmethod
    def call_loader(self, entrypoint: str, path: str) -> int:
        """Invoke a load entrypoint by name; 0 means success."""
        pass


# =========================================================
# 2. MORPHOLOGY PORTS
# =========================================================


class JoinAdapter(ABC):
    """A model-backed join source (e.g. the worker's apply_join)."""

    @abstractmethod
    async def apply_join(self, prev: str, next: str, lang: str) -> Optional[JoinDecision]:
        pass


class MorphRuntimePort(ABC):
    """The public morphological API implemented by each runtime."""

    @abstractmethod
    async def load(self, lang: str) -> None:
        pass

    @abstractmethod
    async def analyse(self, surface: str, lang: str) -> List[Analyse]:
        pass

    @abstractmethod
    async def generate(self, data: GenerateInput, lang: str) -> List[str]:
        pass

    @abstractmethod
    async def join(self, prev: str, next: str, lang: str) -> JoinDecision:
        pass


# =========================================================
# EXPORTS
# =========================================================
__all__ = [
    "Transport",
    "TransducerEngine",
    "JoinAdapter",
    "MorphRuntimePort",
]
