"""reqwire - HTTP requests assembled from options.

Example:
    >>> import reqwire
    >>> target = {}
    >>> result = reqwire.get(
    ...     "https://api.example.com/items",
    ...     reqwire.with_query("page", "1"),
    ...     reqwire.with_retry_times(2),
    ...     reqwire.with_response_body_to_json(target),
    ... )
"""

from reqwire.errors import (
    ConfigurationError,
    DecodeError,
    InvalidURLError,
    ReqwireError,
    RequestBuildError,
    ResponseWriteError,
    StatusError,
    TransportError,
)
from reqwire.modules.config_loader import load_config, parse_config
from reqwire.modules.executor import (
    build_options,
    connect,
    delete,
    do,
    execute,
    get,
    head,
    options,
    patch,
    post,
    put,
    request,
    trace,
)
from reqwire.modules.options import (
    Option,
    with_basic_auth,
    with_body,
    with_body_files,
    with_body_form,
    with_body_json,
    with_body_stream,
    with_client,
    with_config,
    with_header,
    with_method,
    with_query,
    with_response_body_to_json,
    with_response_body_write_to,
    with_retry_times,
    with_status_errors,
)
from reqwire.types import Config, File, HttpMethod, HTTPTimeout, RequestOptions, Result, new_config

__version__ = "0.1.0"

__all__ = [
    "Config",
    "ConfigurationError",
    "DecodeError",
    "File",
    "HTTPTimeout",
    "HttpMethod",
    "InvalidURLError",
    "Option",
    "ReqwireError",
    "RequestBuildError",
    "RequestOptions",
    "ResponseWriteError",
    "Result",
    "StatusError",
    "TransportError",
    "build_options",
    "connect",
    "delete",
    "do",
    "execute",
    "get",
    "head",
    "load_config",
    "new_config",
    "options",
    "parse_config",
    "patch",
    "post",
    "put",
    "request",
    "trace",
    "with_basic_auth",
    "with_body",
    "with_body_files",
    "with_body_form",
    "with_body_json",
    "with_body_stream",
    "with_client",
    "with_config",
    "with_header",
    "with_method",
    "with_query",
    "with_response_body_to_json",
    "with_response_body_write_to",
    "with_retry_times",
    "with_status_errors",
]
