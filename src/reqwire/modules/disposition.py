"""Response Disposition Policy.

Decides how a final response body is consumed. The body goes to zero, one
or two targets; it is only buffered in full when both a JSON unwrap target
and a copy target are set, so the copy always receives exactly the bytes
that were decoded.
"""

import json
import logging
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from reqwire.errors import DecodeError, ResponseWriteError, StatusError, TransportError


logger = logging.getLogger("reqwire.disposition")

NO_CONTENT = 204


def dispose_response(
    response: httpx.Response,
    unwrap_target: Any = None,
    copy_target: Any = None,
    error_on_non_success: bool = True,
) -> None:
    """Consume ``response`` according to the configured targets.

    The response is closed on every exit path.

    Args:
        response: A streamed response whose body has not been read yet.
        unwrap_target: Optional dict, list or Pydantic model to decode into.
        copy_target: Optional binary sink with a ``write`` method.
        error_on_non_success: Raise StatusError for status codes >= 300.

    Raises:
        StatusError: Status >= 300 with the policy enabled; the message is
            the response body text and no target is touched.
        DecodeError: The body is not valid JSON for the unwrap target.
        TransportError: The connection failed while the body was read.
        ResponseWriteError: The copy target failed to accept the body.
    """
    try:
        _dispose(response, unwrap_target, copy_target, error_on_non_success)
    except httpx.HTTPError as e:
        raise TransportError(f"reading response body failed: {str(e) or type(e).__name__}") from e
    finally:
        response.close()


def _dispose(
    response: httpx.Response,
    unwrap_target: Any,
    copy_target: Any,
    error_on_non_success: bool,
) -> None:
    status_code = response.status_code

    if error_on_non_success and status_code >= 300:
        response.read()
        logger.debug(f"Status {status_code} treated as an error")
        raise StatusError(status_code, response.text)

    if status_code == NO_CONTENT:
        return

    if unwrap_target is None and copy_target is None:
        return

    if unwrap_target is None:
        for chunk in response.iter_bytes():
            _write(copy_target, chunk)
        return

    if copy_target is None:
        unwrap_json(response.read(), unwrap_target)
        return

    body = response.read()
    unwrap_json(body, unwrap_target)
    _write(copy_target, body)


def _write(copy_target: Any, data: bytes) -> None:
    try:
        copy_target.write(data)
    except (OSError, TypeError, ValueError) as e:
        raise ResponseWriteError(f"writing response body failed: {e}") from e


def unwrap_json(body: bytes, target: Any) -> None:
    """Decode ``body`` and store the value in ``target``.

    A dict target is updated with the decoded object, a list target has its
    contents replaced by the decoded array, and a Pydantic model instance has
    its fields replaced by the validated value. The target is left unchanged
    when decoding or validation fails.

    Raises:
        DecodeError: Invalid JSON, or a value that does not fit the target.
    """
    try:
        value = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodeError(f"invalid JSON response body: {e}") from e

    if isinstance(target, dict):
        if not isinstance(value, dict):
            raise DecodeError(f"cannot decode JSON {_json_kind(value)} into a dict")
        target.update(value)
    elif isinstance(target, list):
        if not isinstance(value, list):
            raise DecodeError(f"cannot decode JSON {_json_kind(value)} into a list")
        target[:] = value
    elif isinstance(target, BaseModel):
        _replace_model(target, value)
    else:
        raise DecodeError(f"unsupported unwrap target type: {type(target).__name__}")


def _replace_model(target: BaseModel, value: Any) -> None:
    model = type(target)
    if model.model_config.get("frozen"):
        raise DecodeError(f"cannot decode into frozen model {model.__name__}")
    try:
        validated = model.model_validate(value)
    except ValidationError as e:
        raise DecodeError(f"response body does not match {model.__name__}: {e}") from e

    # Copied in one step; assignment validators must not run per field.
    target.__dict__.update(validated.__dict__)
    object.__setattr__(target, "__pydantic_fields_set__", set(validated.model_fields_set))
    if validated.__pydantic_extra__ is not None:
        object.__setattr__(target, "__pydantic_extra__", dict(validated.__pydantic_extra__))


def _json_kind(value: Any) -> str:
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    if isinstance(value, str):
        return "string"
    if isinstance(value, bool):
        return "boolean"
    if value is None:
        return "null"
    return "number"
