# morphkit/core/domain/models.py
from __future__ import annotations

from typing import List, Literal, Optional
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field, model_validator

APOSTROPHE = "’"

Joiner = Literal["", " ", "-", "’"]

# Joiners that fuse two tokens without whitespace.
FUSING_JOINERS = frozenset({"", APOSTROPHE, "-"})

# Sentinel tag carried by an Analyse when the engine produced nothing.
ANALYSIS_FAILED_TAG = "HFST_ANALYSIS_FAILED"


class Analyse(BaseModel):
    """One morphological reading of a surface form."""
    lemma: str
    surface: str
    tags: List[str] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return ANALYSIS_FAILED_TAG in self.tags


class GenerateInput(BaseModel):
    """Lemma plus the tags to realise."""
    lemma: str
    tags: List[str] = Field(default_factory=list)


class JoinDecision(BaseModel):
    """
    How two adjacent tokens are concatenated.

    `no_space` is redundant with `joiner` but kept explicit for consumers;
    the validator rejects any combination where the two disagree. The wire
    form uses camelCase keys (surfacePrev, surfaceNext, noSpace).
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    surface_prev: str = Field(alias="surfacePrev")
    surface_next: str = Field(alias="surfaceNext")
    joiner: Joiner
    no_space: bool = Field(alias="noSpace")
    reason: str = Field(min_length=1)

    @model_validator(mode="after")
    def _check_spacing(self) -> "JoinDecision":
        if self.no_space != (self.joiner in FUSING_JOINERS):
            raise ValueError(
                f"no_space={self.no_space} is inconsistent with joiner {self.joiner!r}"
            )
        return self

    @classmethod
    def spaced(cls, prev: str, next: str, reason: str) -> "JoinDecision":
        return cls(surface_prev=prev, surface_next=next, joiner=" ", no_space=False, reason=reason)

    @classmethod
    def fused(cls, prev: str, next: str, reason: str, joiner: Joiner = "") -> "JoinDecision":
        return cls(surface_prev=prev, surface_next=next, joiner=joiner, no_space=True, reason=reason)

    def render(self) -> str:
        return f"{self.surface_prev}{self.joiner}{self.surface_next}"

    def to_wire(self) -> dict:
        """Plain-primitive dict, safe to send across the process boundary."""
        return {
            "surfacePrev": str(self.surface_prev),
            "surfaceNext": str(self.surface_next),
            "joiner": str(self.joiner),
            "noSpace": bool(self.no_space),
            "reason": str(self.reason),
        }


class PackManifestEntry(BaseModel):
    """
    One language entry of a pack manifest.

    Example manifest shape:

        {
          "fr-FR": {
            "version": "2024.1",
            "analysis": "fr/analyser.hfstol.gz",
            "sha256": "…",
            "generation": "fr/generator.hfstol.gz",
            "generation_sha256": "…"
          }
        }
    """

    version: str
    analysis: str
    sha256: Optional[str] = None
    generation: Optional[str] = None
    generation_sha256: Optional[str] = None
    join: Optional[str] = None
    join_sha256: Optional[str] = None

    def to_pack_url(self, base_url: str = "") -> str:
        """Render the load_pack URL (sha256 / gen / gensha256 query params)."""
        base = base_url.rstrip("/")

        def _abs(path: str) -> str:
            if "://" in path or not base:
                return path
            return f"{base}/{path.lstrip('/')}"

        params = {}
        if self.sha256:
            params["sha256"] = self.sha256
        if self.generation:
            params["gen"] = _abs(self.generation)
            if self.generation_sha256:
                params["gensha256"] = self.generation_sha256

        url = _abs(self.analysis)
        if params:
            url = f"{url}?{urlencode(params)}"
        return url


__all__ = [
    "APOSTROPHE",
    "ANALYSIS_FAILED_TAG",
    "FUSING_JOINERS",
    "Joiner",
    "Analyse",
    "GenerateInput",
    "JoinDecision",
    "PackManifestEntry",
]
