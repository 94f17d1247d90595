"""Transport construction.

Builds the default ``httpx.Client`` for a Config: every connection is dialed
through a TimeoutBackend, TLS verification follows ``insecure_skip_verify``
and an optional HTTP proxy (with credentials) is honoured.
"""

import logging
import ssl

import certifi
import httpcore
import httpx

from reqwire.types import Config, HTTPTimeout

from .timeout_conn import TimeoutBackend


logger = logging.getLogger("reqwire.transport")


def create_ssl_context(insecure_skip_verify: bool) -> ssl.SSLContext:
    """Create the client TLS context, optionally without certificate checks."""
    context = ssl.create_default_context(cafile=certifi.where())
    if insecure_skip_verify:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def resolve_proxy(config: Config) -> tuple[str, tuple[str, str] | None] | None:
    """Return ``(proxy_url, proxy_auth)`` for the config, or None.

    An unparsable or unsupported proxy URL is ignored with a warning.
    """
    if not config.use_proxy or not config.proxy_host:
        return None

    try:
        proxy_url = httpx.URL(config.proxy_host)
    except httpx.InvalidURL as e:
        logger.warning(f"Ignoring invalid proxy URL {config.proxy_host!r}: {e}")
        return None

    if proxy_url.scheme not in ("http", "https") or not proxy_url.host:
        logger.warning(f"Ignoring unsupported proxy URL {config.proxy_host!r}")
        return None

    auth = None
    if config.is_auth_proxy:
        auth = (config.proxy_user, config.proxy_password)
    return str(proxy_url), auth


class TimeoutTransport(httpx.HTTPTransport):
    """HTTP transport whose connection pool dials through a TimeoutBackend.

    Request and response mapping, including translation of httpcore
    exceptions into httpx ones, is inherited from ``httpx.HTTPTransport``;
    only the pool is replaced.

    The per-request read timeout bounds the wait for the response head only.
    Once the head has arrived it is cleared, so body reads are bounded by the
    timeout stream's own read and max deadlines.
    """

    def __init__(
        self,
        timeout: HTTPTimeout,
        *,
        ssl_context: ssl.SSLContext | None = None,
        proxy_url: str | None = None,
        proxy_auth: tuple[str, str] | None = None,
        keepalive: bool = True,
        network_backend: httpcore.NetworkBackend | None = None,
    ) -> None:
        if ssl_context is None:
            ssl_context = create_ssl_context(insecure_skip_verify=False)
        # The parent builds a default pool that is never opened; it is
        # replaced below and no connection is made through it.
        super().__init__(verify=ssl_context)

        backend = TimeoutBackend(timeout, backend=network_backend)
        max_keepalive = None if keepalive else 0

        if proxy_url is not None:
            self._pool = httpcore.HTTPProxy(
                proxy_url=httpcore.URL(proxy_url),
                proxy_auth=proxy_auth,
                ssl_context=ssl_context,
                max_keepalive_connections=max_keepalive,
                network_backend=backend,
            )
        else:
            self._pool = httpcore.ConnectionPool(
                ssl_context=ssl_context,
                max_keepalive_connections=max_keepalive,
                network_backend=backend,
            )

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        response = super().handle_request(request)
        # httpcore reads this dict again when the body is streamed.
        timeouts = request.extensions.get("timeout")
        if isinstance(timeouts, dict):
            timeouts["read"] = None
        return response


def client_timeout(timeout: HTTPTimeout) -> httpx.Timeout:
    """Per-request httpx timeouts for a client built from ``timeout``.

    Connect, read and write deadlines are enforced by the timeout stream;
    httpx's read timeout carries the response header timeout until the
    transport clears it for the body.
    """
    return httpx.Timeout(
        connect=timeout.connect_timeout or None,
        read=timeout.header_timeout or None,
        write=None,
        pool=None,
    )


def build_client(config: Config) -> httpx.Client:
    """Build the default client for a single execution call.

    Args:
        config: Transport settings.

    Returns:
        An ``httpx.Client`` that follows redirects. The caller closes it.
    """
    proxy = resolve_proxy(config)
    proxy_url, proxy_auth = proxy if proxy is not None else (None, None)
    if proxy_url:
        logger.debug(f"Using proxy {proxy_url} (auth={'yes' if proxy_auth else 'no'})")

    transport = TimeoutTransport(
        config.http_timeout,
        ssl_context=create_ssl_context(config.insecure_skip_verify),
        proxy_url=proxy_url,
        proxy_auth=proxy_auth,
        keepalive=config.reuse_tcp,
    )
    return httpx.Client(
        transport=transport,
        timeout=client_timeout(config.http_timeout),
        follow_redirects=True,
        trust_env=False,
    )
