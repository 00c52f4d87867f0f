"""Wire messages exchanged over the request and response sockets.

Every frame is one JSON object on its own line, tagged by a ``type`` field.
"""

from typing import Annotated, Literal

import pydantic
from pydantic import BaseModel, Field, TypeAdapter

from quickfile.errors import ProtocolError


class SearchRequest(BaseModel):
    type: Literal["Search"] = "Search"
    query: str
    limit: int | None = Field(default=None, ge=0)


class RefreshRequest(BaseModel):
    type: Literal["Refresh"] = "Refresh"


class StatusRequest(BaseModel):
    type: Literal["Status"] = "Status"


DaemonRequest = Annotated[
    SearchRequest | RefreshRequest | StatusRequest,
    Field(discriminator="type"),
]


class SearchMatch(BaseModel):
    char_index: int  # offset into display_path


class SearchResult(BaseModel):
    path: str
    display_path: str
    matches: list[SearchMatch] = Field(default_factory=list)
    score: int = 0


class SearchResultsResponse(BaseModel):
    type: Literal["SearchResults"] = "SearchResults"
    results: list[SearchResult]
    results_count: int
    total_files: int


class RefreshCompleteResponse(BaseModel):
    type: Literal["RefreshComplete"] = "RefreshComplete"
    files_count: int


class StatusResponse(BaseModel):
    type: Literal["Status"] = "Status"
    files_count: int
    last_updated: int


class ErrorResponse(BaseModel):
    type: Literal["Error"] = "Error"
    message: str


DaemonResponse = Annotated[
    SearchResultsResponse | RefreshCompleteResponse | StatusResponse | ErrorResponse,
    Field(discriminator="type"),
]

_request_adapter = TypeAdapter(DaemonRequest)
_response_adapter = TypeAdapter(DaemonResponse)


def _describe(error: pydantic.ValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(item) for item in detail["loc"])
        parts.append(f"{location}: {detail['msg']}" if location else detail["msg"])
    return "; ".join(parts)


def parse_request(frame: str | bytes) -> DaemonRequest:
    """
    Parse one request frame.

    Raises:
        ProtocolError: If the frame is not a well-formed request.
    """
    try:
        return _request_adapter.validate_json(frame, strict=True)
    except pydantic.ValidationError as e:
        raise ProtocolError(_describe(e)) from e


def parse_response(frame: str | bytes) -> DaemonResponse:
    try:
        return _response_adapter.validate_json(frame)
    except pydantic.ValidationError as e:
        raise ProtocolError(_describe(e)) from e


def encode_request(request: DaemonRequest) -> str:
    return request.model_dump_json()


def encode_response(response: DaemonResponse) -> str:
    """Serialize a response as a single JSON line, without the trailing newline."""
    return response.model_dump_json()
