# morphkit/core/domain/messages.py
"""
Worker protocol messages.

Requests travel caller → worker, responses worker → caller. Both sides send
plain dicts (`model_dump()`) through the pipe and validate them back into the
tagged unions below with `parse_request` / `parse_response`.
"""
from __future__ import annotations

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from morphkit.core.domain.models import JoinDecision


# --- Requests ---

class InitRequest(BaseModel):
    type: Literal["init"] = "init"
    engine_url: str = ""
    pack_url: Optional[str] = None


class LoadPackRequest(BaseModel):
    type: Literal["load_pack"] = "load_pack"
    pack_url: str


class ApplyUpRequest(BaseModel):
    type: Literal["apply_up"] = "apply_up"
    input: str


class ApplyDownRequest(BaseModel):
    type: Literal["apply_down"] = "apply_down"
    input: str


class ApplyJoinRequest(BaseModel):
    type: Literal["apply_join"] = "apply_join"
    prev: str
    next: str
    lang: str


Request = Annotated[
    Union[InitRequest, LoadPackRequest, ApplyUpRequest, ApplyDownRequest, ApplyJoinRequest],
    Field(discriminator="type"),
]


# --- Responses ---

class ReadyResponse(BaseModel):
    type: Literal["ready"] = "ready"


class UpResponse(BaseModel):
    type: Literal["up"] = "up"
    outputs: List[str] = Field(default_factory=list)


class DownResponse(BaseModel):
    type: Literal["down"] = "down"
    outputs: List[str] = Field(default_factory=list)


class JoinResponse(BaseModel):
    type: Literal["join"] = "join"
    decision: JoinDecision

    def to_wire(self) -> dict:
        return {"type": self.type, "decision": self.decision.to_wire()}


class ErrorResponse(BaseModel):
    type: Literal["error"] = "error"
    message: str


Response = Annotated[
    Union[ReadyResponse, UpResponse, DownResponse, JoinResponse, ErrorResponse],
    Field(discriminator="type"),
]

_REQUEST_ADAPTER: TypeAdapter = TypeAdapter(Request)
_RESPONSE_ADAPTER: TypeAdapter = TypeAdapter(Response)


def parse_request(payload: dict) -> Request:
    return _REQUEST_ADAPTER.validate_python(payload)


def parse_response(payload: dict) -> Response:
    return _RESPONSE_ADAPTER.validate_python(payload)


def to_wire(message: BaseModel) -> dict:
    """Serialize a request or response into the dict sent over the pipe."""
    if isinstance(message, JoinResponse):
        return message.to_wire()
    return message.model_dump()


__all__ = [
    "InitRequest",
    "LoadPackRequest",
    "ApplyUpRequest",
    "ApplyDownRequest",
    "ApplyJoinRequest",
    "Request",
    "ReadyResponse",
    "UpResponse",
    "DownResponse",
    "JoinResponse",
    "ErrorResponse",
    "Response",
    "parse_request",
    "parse_response",
    "to_wire",
]
