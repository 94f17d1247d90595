"""Core type definitions for reqwire.

Settings and results are Pydantic models; the request configuration holds
streams, clients and callables, so it allows arbitrary types.
"""

from collections.abc import Callable, Iterable
from enum import Enum
from typing import IO, Any, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Enums
# ============================================================================


class HttpMethod(str, Enum):
    """Supported HTTP methods."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"
    CONNECT = "CONNECT"


# ============================================================================
# Transport Settings
# ============================================================================


class HTTPTimeout(BaseModel):
    """Per-phase connection timeouts in seconds. Zero disables a phase."""

    model_config = ConfigDict(extra="forbid")

    connect_timeout: float = Field(default=3.0, ge=0)
    read_timeout: float = Field(default=5.0, ge=0)
    write_timeout: float = Field(default=5.0, ge=0)
    header_timeout: float = Field(default=5.0, ge=0)
    max_timeout: float = Field(default=300.0, ge=0)


class Config(BaseModel):
    """Transport settings used to build the default client."""

    model_config = ConfigDict(extra="forbid")

    http_timeout: HTTPTimeout = Field(default_factory=HTTPTimeout)
    use_proxy: bool = False
    proxy_host: str = ""
    is_auth_proxy: bool = False
    proxy_user: str = ""
    proxy_password: str = ""
    reuse_tcp: bool = Field(
        default=False,
        description="Keep connections alive for repeated requests to one host",
    )
    insecure_skip_verify: bool = Field(
        default=True,
        description="Skip TLS certificate verification",
    )


def new_config() -> Config:
    """Return a fresh Config holding the default settings."""
    return Config()


class File(BaseModel):
    """A file to upload as one part of a multipart body."""

    field_name: str
    path: str


# ============================================================================
# Request / Result Types
# ============================================================================

# A body factory is called once per attempt and must return fresh content.
BodyContent = Union[bytes, str, Iterable[bytes], IO[bytes]]
BodyFactory = Callable[[], BodyContent]


class RequestOptions(BaseModel):
    """Everything needed to execute one request, assembled by options."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    method: HttpMethod = HttpMethod.GET
    raw_url: str
    config: Config = Field(default_factory=new_config)
    client: httpx.Client | None = None
    query: dict[str, str] = Field(default_factory=dict)
    headers: httpx.Headers = Field(default_factory=httpx.Headers)
    body_factory: BodyFactory | None = None
    retry_times: int = 0
    response_unwrap_target: Any = None
    response_copy_target: Any = None
    error_on_non_success: bool = True
    errors: list[str] = Field(default_factory=list)


class Result(BaseModel):
    """Outcome of one execution call.

    ``status_code`` is only meaningful once a response was obtained.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    status_code: int = 0
    request: httpx.Request | None = None
    response: httpx.Response | None = None
    attempts: int = 0
    elapsed_ms: float = 0.0
    error: Exception | None = None
