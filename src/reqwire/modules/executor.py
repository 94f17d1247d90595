"""Retry-Executing Core.

Owns the request lifecycle: applies options, refuses to run with
configuration errors, parses the URL, runs the attempt loop and hands the
final response to the disposition policy.
"""

import logging
import time

import httpx
from tenacity import Retrying, before_sleep_log, retry_if_exception_type, stop_after_attempt

from reqwire.errors import (
    ConfigurationError,
    InvalidURLError,
    ReqwireError,
    RequestBuildError,
    TransportError,
)
from reqwire.types import HttpMethod, RequestOptions, Result

from .disposition import dispose_response
from .options import Option, with_method
from .transport import build_client


# Set up logging
logger = logging.getLogger("reqwire.executor")


def build_options(raw_url: str, *options: Option) -> RequestOptions:
    """Apply ``options`` in order to a fresh RequestOptions for ``raw_url``."""
    request = RequestOptions(raw_url=raw_url)
    for option in options:
        option(request)
    return request


def parse_url(raw_url: str, query: dict[str, str]) -> httpx.URL:
    """Parse ``raw_url`` and merge the query parameters into it.

    Raises:
        InvalidURLError: The URL is malformed or lacks a scheme or host.
    """
    try:
        url = httpx.URL(raw_url)
    except (httpx.InvalidURL, TypeError) as e:
        raise InvalidURLError(f"invalid URL {raw_url!r}: {e}") from e

    if not url.scheme or not url.host:
        raise InvalidURLError(f"invalid URL {raw_url!r}: missing scheme or host")

    if query:
        url = url.copy_merge_params(sorted(query.items()))
    return url


def execute(request: RequestOptions) -> Result:
    """Execute a configured request.

    Runs up to ``retry_times + 1`` attempts. An attempt that gets any
    response, whatever its status code, is final.

    Args:
        request: The applied request configuration.

    Returns:
        Result of the winning attempt.

    Raises:
        ConfigurationError: An option failed; no network I/O happened.
        InvalidURLError: The URL could not be parsed; not retried.
        RequestBuildError: The wire request could not be built on the last attempt.
        TransportError: The last attempt failed at the network level.
        StatusError: Final status >= 300 with status errors enabled.
        DecodeError: The response body could not be decoded.
    """
    result = Result()
    try:
        _execute(request, result)
    except ReqwireError as e:
        e.result = result
        result.error = e
        raise
    return result


def _execute(request: RequestOptions, result: Result) -> None:
    if request.errors:
        raise ConfigurationError(request.errors)

    url = parse_url(request.raw_url, request.query)

    owns_client = request.client is None
    client = build_client(request.config) if owns_client else request.client
    try:
        response = _send_with_retries(client, request, url, result)
        dispose_response(
            response,
            unwrap_target=request.response_unwrap_target,
            copy_target=request.response_copy_target,
            error_on_non_success=request.error_on_non_success,
        )
    finally:
        if owns_client:
            client.close()


def _send_with_retries(
    client: httpx.Client,
    request: RequestOptions,
    url: httpx.URL,
    result: Result,
) -> httpx.Response:
    """Run up to ``retry_times + 1`` attempts and return the first response.

    Build and transport failures are retried immediately; once attempts run
    out the last failure is re-raised.
    """
    retrying = Retrying(
        stop=stop_after_attempt(request.retry_times + 1),
        retry=retry_if_exception_type((RequestBuildError, TransportError)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    start_time = time.perf_counter()
    try:
        for attempt in retrying:
            with attempt:
                result.attempts = attempt.retry_state.attempt_number
                response = _attempt(client, request, url, result)
    finally:
        result.elapsed_ms = (time.perf_counter() - start_time) * 1000

    logger.info(
        f"{request.method.value} {url} -> {response.status_code} "
        f"(attempt {result.attempts}, {result.elapsed_ms:.0f}ms)"
    )
    return response


def _attempt(
    client: httpx.Client,
    request: RequestOptions,
    url: httpx.URL,
    result: Result,
) -> httpx.Response:
    """Build a fresh wire request and send it once."""
    logger.debug(f"Attempt {result.attempts}: {request.method.value} {url}")
    try:
        content = request.body_factory() if request.body_factory is not None else None
        wire_request = client.build_request(
            request.method.value,
            url,
            headers=request.headers,
            content=content,
        )
    except (OSError, TypeError, ValueError, httpx.HTTPError) as e:
        raise RequestBuildError(f"could not build request: {e}") from e
    result.request = wire_request

    try:
        response = client.send(wire_request, stream=True)
    except httpx.RequestError as e:
        raise TransportError(str(e) or type(e).__name__) from e

    result.response = response
    result.status_code = response.status_code
    return response


# ============================================================================
# Entry Points
# ============================================================================


def do(raw_url: str, *options: Option) -> Result:
    """Build a request from ``options`` and execute it (GET unless overridden)."""
    return execute(build_options(raw_url, *options))


def request(method: HttpMethod | str, raw_url: str, *options: Option) -> Result:
    """Execute a request with an explicit method."""
    return do(raw_url, *options, with_method(method))


def get(raw_url: str, *options: Option) -> Result:
    return request(HttpMethod.GET, raw_url, *options)


def post(raw_url: str, *options: Option) -> Result:
    return request(HttpMethod.POST, raw_url, *options)


def put(raw_url: str, *options: Option) -> Result:
    return request(HttpMethod.PUT, raw_url, *options)


def patch(raw_url: str, *options: Option) -> Result:
    return request(HttpMethod.PATCH, raw_url, *options)


def delete(raw_url: str, *options: Option) -> Result:
    return request(HttpMethod.DELETE, raw_url, *options)


def head(raw_url: str, *options: Option) -> Result:
    return request(HttpMethod.HEAD, raw_url, *options)


def options(raw_url: str, *opts: Option) -> Result:
    return request(HttpMethod.OPTIONS, raw_url, *opts)


def trace(raw_url: str, *options: Option) -> Result:
    return request(HttpMethod.TRACE, raw_url, *options)


def connect(raw_url: str, *options: Option) -> Result:
    return request(HttpMethod.CONNECT, raw_url, *options)
