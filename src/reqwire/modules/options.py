"""Request options.

An option is a small callable applied to a RequestOptions in caller order.
Options that can fail (JSON encoding, reading upload files) append a message
to ``RequestOptions.errors`` instead of raising, and leave the configuration
unchanged; execution later refuses to start while any error is recorded.
"""

import base64
import json
import logging
import os
from collections.abc import Callable, Sequence
from contextlib import ExitStack
from typing import Any
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel

from reqwire.types import BodyContent, BodyFactory, Config, File, HttpMethod, RequestOptions


logger = logging.getLogger("reqwire.options")

Option = Callable[[RequestOptions], None]

# Only used to give the multipart encoder an absolute URL.
_MULTIPART_ENCODER_URL = "http://localhost/"


def key_pairs(values: Sequence[str]) -> list[tuple[str, str]]:
    """Turn ``k1, v1, k2, v2, ...`` into pairs.

    An odd-length sequence gets a trailing empty value; pairs with an empty
    key are dropped.
    """
    items = list(values)
    if len(items) % 2 == 1:
        items.append("")
    return [(items[i], items[i + 1]) for i in range(0, len(items), 2) if items[i] != ""]


def _fail(request: RequestOptions, message: str) -> None:
    logger.warning(f"Option failed: {message}")
    request.errors.append(message)


def _fixed_body(content: bytes) -> BodyFactory:
    return lambda: content


# ============================================================================
# Execution Settings
# ============================================================================


def with_config(config: Config) -> Option:
    def apply(request: RequestOptions) -> None:
        request.config = config

    return apply


def with_retry_times(retry_times: int) -> Option:
    """Retry failed attempts up to ``retry_times`` more times."""

    def apply(request: RequestOptions) -> None:
        if retry_times < 0:
            _fail(request, f"retry times must be non-negative, got {retry_times}")
            return
        request.retry_times = retry_times

    return apply


def with_method(method: HttpMethod | str) -> Option:
    def apply(request: RequestOptions) -> None:
        try:
            request.method = HttpMethod(method.upper() if isinstance(method, str) else method)
        except ValueError:
            _fail(request, f"unsupported HTTP method: {method}")

    return apply


def with_client(client: httpx.Client) -> Option:
    """Send through ``client`` instead of building one from the Config.

    The client is left open after the call.
    """

    def apply(request: RequestOptions) -> None:
        request.client = client

    return apply


def with_status_errors(enabled: bool = True) -> Option:
    """Treat a final status code >= 300 as an error (enabled by default)."""

    def apply(request: RequestOptions) -> None:
        request.error_on_non_success = enabled

    return apply


# ============================================================================
# Response Targets
# ============================================================================


def with_response_body_to_json(unwrap_target: Any) -> Option:
    """Decode the response body as JSON into ``unwrap_target``.

    The target may be a dict (merged with the decoded object), a list
    (replaced by the decoded array) or a Pydantic model instance (fields
    replaced by the validated value).
    """

    def apply(request: RequestOptions) -> None:
        if not isinstance(unwrap_target, (dict, list, BaseModel)):
            _fail(request, f"unsupported unwrap target type: {type(unwrap_target).__name__}")
            return
        if isinstance(unwrap_target, BaseModel) and unwrap_target.model_config.get("frozen"):
            _fail(request, f"unwrap target is a frozen model: {type(unwrap_target).__name__}")
            return
        request.response_unwrap_target = unwrap_target

    return apply


def with_response_body_write_to(copy_target: Any) -> Option:
    """Copy the raw response body into a writable binary file-like object."""

    def apply(request: RequestOptions) -> None:
        if not callable(getattr(copy_target, "write", None)):
            _fail(request, f"copy target has no write method: {type(copy_target).__name__}")
            return
        request.response_copy_target = copy_target

    return apply


# ============================================================================
# Query, Headers and Auth
# ============================================================================


def with_query(*pairs: str) -> Option:
    def apply(request: RequestOptions) -> None:
        for key, value in key_pairs(pairs):
            request.query[key] = value

    return apply


def with_header(*pairs: str) -> Option:
    def apply(request: RequestOptions) -> None:
        for key, value in key_pairs(pairs):
            request.headers[key] = value

    return apply


def with_basic_auth(username: str, password: str) -> Option:
    def apply(request: RequestOptions) -> None:
        token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
        request.headers["Authorization"] = f"Basic {token}"

    return apply


# ============================================================================
# Request Bodies
# ============================================================================


def with_body_form(*pairs: str) -> Option:
    """Send ``application/x-www-form-urlencoded`` fields."""

    def apply(request: RequestOptions) -> None:
        fields = dict(key_pairs(pairs))
        encoded = urlencode(sorted(fields.items())).encode("ascii")
        request.headers["Content-Type"] = "application/x-www-form-urlencoded"
        request.body_factory = _fixed_body(encoded)

    return apply


def encode_json(body: Any, escape_html: bool = False) -> bytes:
    """Encode ``body`` as UTF-8 JSON.

    The output is compact and ends with a newline. Pydantic models are
    dumped in JSON mode first. With ``escape_html`` the
    characters ``<``, ``>`` and ``&`` are written as unicode escapes.
    """
    if isinstance(body, BaseModel):
        body = body.model_dump(mode="json")
    text = json.dumps(body, ensure_ascii=False, allow_nan=False, separators=(",", ":"))
    if escape_html:
        # These characters can only occur inside JSON strings.
        text = text.replace("&", "\\u0026").replace("<", "\\u003c").replace(">", "\\u003e")
    return (text + "\n").encode("utf-8")


def with_body_json(body: Any, escape_html: bool = False) -> Option:
    def apply(request: RequestOptions) -> None:
        try:
            encoded = encode_json(body, escape_html=escape_html)
        except (TypeError, ValueError) as e:
            _fail(request, f"json encode failed: {e}")
            return
        request.headers["Content-Type"] = "application/json; charset=utf-8"
        request.body_factory = _fixed_body(encoded)

    return apply


def with_body_files(files: Sequence[File], *field_pairs: str) -> Option:
    """Send a ``multipart/form-data`` body with files and extra form fields.

    Files are read and closed while the option is applied.
    """

    def apply(request: RequestOptions) -> None:
        if not files:
            _fail(request, "no file found")
            return

        fields: dict[str, list[str]] = {}
        for key, value in key_pairs(field_pairs):
            fields.setdefault(key, []).append(value)

        try:
            with ExitStack() as stack:
                uploads = [
                    (f.field_name, (os.path.basename(f.path), stack.enter_context(open(f.path, "rb"))))
                    for f in files
                ]
                encoder = httpx.Request(
                    "POST", _MULTIPART_ENCODER_URL, data=fields, files=uploads
                )
                encoded = encoder.read()
        except OSError as e:
            _fail(request, f"multipart upload failed: {e}")
            return

        request.headers["Content-Type"] = encoder.headers["Content-Type"]
        request.body_factory = _fixed_body(encoded)

    return apply


def with_body(content: bytes | str, content_type: str | None = None) -> Option:
    """Send a raw body."""

    def apply(request: RequestOptions) -> None:
        encoded = content.encode("utf-8") if isinstance(content, str) else bytes(content)
        if content_type:
            request.headers["Content-Type"] = content_type
        request.body_factory = _fixed_body(encoded)

    return apply


def with_body_stream(
    factory: Callable[[], BodyContent], content_type: str | None = None
) -> Option:
    """Send a body produced by ``factory``.

    The factory is called once per attempt, so every retry gets a fresh
    stream instead of the remains of a partially sent one.
    """

    def apply(request: RequestOptions) -> None:
        if not callable(factory):
            _fail(request, "body stream factory is not callable")
            return
        if content_type:
            request.headers["Content-Type"] = content_type
        request.body_factory = factory

    return apply
