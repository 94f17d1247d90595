"""Unit tests for request options."""

import base64
import json

import httpx
import pytest
from hypothesis import given, settings, strategies as st
from pydantic import BaseModel, ConfigDict

from reqwire.modules.executor import build_options
from reqwire.modules.options import (
    encode_json,
    key_pairs,
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
from reqwire.types import Config, File, HttpMethod, HTTPTimeout


class Widget(BaseModel):
    name: str
    count: int


class FrozenWidget(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""


class TestKeyPairs:
    """Tests for variadic key/value handling."""

    def test_even_length(self):
        assert key_pairs(["a", "1", "b", "2"]) == [("a", "1"), ("b", "2")]

    def test_odd_length_gets_empty_value(self):
        assert key_pairs(["a", "1", "b"]) == [("a", "1"), ("b", "")]

    def test_empty_key_is_skipped(self):
        assert key_pairs(["", "ignored", "c", "3"]) == [("c", "3")]

    def test_empty_input(self):
        assert key_pairs([]) == []

    @given(values=st.lists(st.text(max_size=8), max_size=9).filter(lambda v: len(v) % 2 == 1))
    @settings(max_examples=100)
    def test_odd_length_behaves_as_padded(self, values: list[str]):
        """Property: an odd sequence behaves as if a trailing "" were appended."""
        assert key_pairs(values) == key_pairs(values + [""])

    @given(values=st.lists(st.text(max_size=8), max_size=10))
    @settings(max_examples=100)
    def test_no_pair_has_empty_key(self, values: list[str]):
        """Property: entries with an empty key never survive."""
        assert all(key != "" for key, _ in key_pairs(values))


class TestQueryAndHeaders:
    """Tests for query, header and auth options."""

    def test_query_odd_arguments(self):
        request = build_options("http://example.com", with_query("a", "1", "b"))
        assert request.query == {"a": "1", "b": ""}

    def test_query_last_write_wins(self):
        request = build_options(
            "http://example.com",
            with_query("a", "1"),
            with_query("a", "2"),
        )
        assert request.query == {"a": "2"}

    def test_header_is_case_insensitive_and_replaced(self):
        request = build_options(
            "http://example.com",
            with_header("X-Trace", "one"),
            with_header("x-trace", "two"),
        )
        assert request.headers.get_list("X-Trace") == ["two"]

    def test_header_empty_key_skipped(self):
        request = build_options("http://example.com", with_header("", "value"))
        assert len(request.headers) == 0

    def test_basic_auth(self):
        request = build_options("http://example.com", with_basic_auth("aladdin", "open sesame"))
        expected = base64.b64encode(b"aladdin:open sesame").decode()
        assert request.headers["Authorization"] == f"Basic {expected}"


class TestExecutionSettings:
    """Tests for method, retries, client, config and status policy options."""

    def test_defaults(self):
        request = build_options("http://example.com")
        assert request.method == HttpMethod.GET
        assert request.retry_times == 0
        assert request.error_on_non_success is True
        assert request.config == Config()
        assert request.errors == []

    def test_with_method_accepts_lowercase(self):
        request = build_options("http://example.com", with_method("patch"))
        assert request.method == HttpMethod.PATCH

    def test_with_method_rejects_unknown(self):
        request = build_options("http://example.com", with_method("BREW"))
        assert request.method == HttpMethod.GET
        assert request.errors == ["unsupported HTTP method: BREW"]

    def test_retry_times(self):
        request = build_options("http://example.com", with_retry_times(3))
        assert request.retry_times == 3

    def test_negative_retry_times_recorded(self):
        request = build_options("http://example.com", with_retry_times(-1))
        assert request.retry_times == 0
        assert len(request.errors) == 1

    def test_with_config(self):
        config = Config(http_timeout=HTTPTimeout(read_timeout=1))
        request = build_options("http://example.com", with_config(config))
        assert request.config is config

    def test_with_client(self):
        client = httpx.Client()
        try:
            request = build_options("http://example.com", with_client(client))
            assert request.client is client
        finally:
            client.close()

    def test_with_status_errors_disabled(self):
        request = build_options("http://example.com", with_status_errors(False))
        assert request.error_on_non_success is False


class TestResponseTargets:
    """Tests for unwrap and copy target options."""

    def test_dict_target_kept_by_identity(self):
        target: dict = {}
        request = build_options("http://example.com", with_response_body_to_json(target))
        assert request.response_unwrap_target is target

    def test_model_target_accepted(self):
        target = Widget(name="", count=0)
        request = build_options("http://example.com", with_response_body_to_json(target))
        assert request.response_unwrap_target is target

    def test_unsupported_target_recorded(self):
        request = build_options("http://example.com", with_response_body_to_json("text"))
        assert request.response_unwrap_target is None
        assert request.errors == ["unsupported unwrap target type: str"]

    def test_frozen_model_target_recorded(self):
        request = build_options("http://example.com", with_response_body_to_json(FrozenWidget()))
        assert request.response_unwrap_target is None
        assert request.errors == ["unwrap target is a frozen model: FrozenWidget"]

    def test_copy_target_needs_write(self):
        request = build_options("http://example.com", with_response_body_write_to(object()))
        assert request.response_copy_target is None
        assert len(request.errors) == 1


class TestBodies:
    """Tests for body options."""

    def test_form_body(self):
        request = build_options("http://example.com", with_body_form("name", "Ann Lee", "city"))
        assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert request.body_factory() == b"city=&name=Ann+Lee"

    def test_json_body(self):
        request = build_options("http://example.com", with_body_json({"a": [1, 2]}))
        assert request.headers["Content-Type"] == "application/json; charset=utf-8"
        assert json.loads(request.body_factory()) == {"a": [1, 2]}

    def test_json_body_keeps_html_by_default(self):
        assert encode_json({"q": "<b>&</b>"}) == '{"q":"<b>&</b>"}\n'.encode()

    def test_json_body_escape_html(self):
        encoded = encode_json({"q": "<b>&</b>"}, escape_html=True)
        assert b"<" not in encoded and b">" not in encoded and b"&" not in encoded
        assert json.loads(encoded) == {"q": "<b>&</b>"}

    def test_json_body_from_model(self):
        assert json.loads(encode_json(Widget(name="w", count=2))) == {"name": "w", "count": 2}

    def test_json_encode_failure_recorded(self):
        request = build_options(
            "http://example.com",
            with_body_form("a", "1"),
            with_body_json({"bad": object()}),
        )
        assert len(request.errors) == 1
        assert request.errors[0].startswith("json encode failed")
        # The earlier form body is left in place.
        assert request.body_factory() == b"a=1"

    def test_json_nan_is_rejected(self):
        request = build_options("http://example.com", with_body_json(float("nan")))
        assert len(request.errors) == 1

    def test_later_body_replaces_earlier(self):
        request = build_options(
            "http://example.com",
            with_body_form("a", "1"),
            with_body_json({"b": 2}),
        )
        assert request.headers["Content-Type"] == "application/json; charset=utf-8"
        assert json.loads(request.body_factory()) == {"b": 2}

    def test_raw_body(self):
        request = build_options("http://example.com", with_body("plain", "text/plain"))
        assert request.headers["Content-Type"] == "text/plain"
        assert request.body_factory() == b"plain"

    def test_stream_factory_called_per_use(self):
        calls = []

        def factory():
            calls.append(1)
            return iter([b"chunk"])

        request = build_options("http://example.com", with_body_stream(factory))
        assert list(request.body_factory()) == [b"chunk"]
        assert list(request.body_factory()) == [b"chunk"]
        assert len(calls) == 2

    def test_files_body(self, tmp_path):
        path = tmp_path / "report.txt"
        path.write_text("file contents")
        request = build_options(
            "http://example.com",
            with_body_files([File(field_name="document", path=str(path))], "note", "hi"),
        )
        assert request.errors == []
        content_type = request.headers["Content-Type"]
        assert content_type.startswith("multipart/form-data; boundary=")
        body = request.body_factory()
        assert b'name="document"; filename="report.txt"' in body
        assert b"file contents" in body
        assert b'name="note"' in body and b"hi" in body

    def test_files_missing_recorded(self, tmp_path):
        request = build_options(
            "http://example.com",
            with_body_files([File(field_name="f", path=str(tmp_path / "absent.txt"))]),
        )
        assert request.body_factory is None
        assert len(request.errors) == 1
        assert "absent.txt" in request.errors[0]

    def test_no_files_recorded(self):
        request = build_options("http://example.com", with_body_files([]))
        assert request.errors == ["no file found"]
