"""
Tests for fm_data.core.client module.
"""

import json
import logging
import threading

import pytest
import requests
from unittest.mock import MagicMock, patch

from fm_data.core.auth import FMIDAuth
from fm_data.core.client import FileMakerClient
from fm_data.core.config import ClientConfig
from fm_data.core.context import OperationContext
from fm_data.core.errors import (
    AuthenticationError,
    FileMakerError,
    NetworkError,
    OperationCancelledError,
    RequestTimeoutError,
    UnknownError,
    ValidationError,
)
from fm_data.core.request import RequestSpec
from fm_data.core.retry import RetryPolicy

LAYOUTS = RequestSpec(method="GET", path="fmi/data/vLatest/databases/Contacts/layouts")


class TestExecute:
    """Tests for FileMakerClient.execute."""

    def test_success(self, client, fake_http, ok_response, request_calls):
        fake_http.request.return_value = ok_response(layouts=[{"name": "Web"}])
        env = client.execute(LAYOUTS.with_bearer("tok"))

        assert env.ok
        assert env.response.layouts[0].name == "Web"
        call = request_calls(fake_http)[0]
        assert call["method"] == "GET"
        assert call["url"] == "https://fms.test/fmi/data/vLatest/databases/Contacts/layouts"
        assert call["headers"]["Authorization"] == "Bearer tok"
        assert call["headers"]["Accept"] == "application/json"
        assert call["headers"]["Content-Type"] == "application/json"
        assert call["headers"]["User-Agent"].startswith("fm-data-sdk/")

    def test_json_body_is_compact(self, client, fake_http, ok_response, request_calls):
        fake_http.request.return_value = ok_response(recordId="1", modId="0")
        client.execute(RequestSpec(method="POST", path="p", body={"fieldData": {"a": 1}}))
        assert request_calls(fake_http)[0]["data"] == '{"fieldData":{"a":1}}'

    def test_string_body_sent_verbatim(self, client, fake_http, ok_response, request_calls):
        fake_http.request.return_value = ok_response()
        client.execute(RequestSpec(method="POST", path="p", body="{}"))
        assert request_calls(fake_http)[0]["data"] == "{}"

    def test_basic_auth_passed_through(self, client, fake_http, ok_response, request_calls):
        fake_http.request.return_value = ok_response()
        client.execute(RequestSpec(method="GET", path="p", auth=("u", "p")))
        assert request_calls(fake_http)[0]["auth"] == ("u", "p")

    def test_multipart_omits_content_type(self, client, fake_http, ok_response, request_calls):
        fake_http.request.return_value = ok_response()
        client.execute(RequestSpec(method="POST", path="p", files={"upload": ("a.txt", b"x")}))
        call = request_calls(fake_http)[0]
        assert "Content-Type" not in call["headers"]
        assert call["files"] == {"upload": ("a.txt", b"x")}

    def test_missing_base_url(self, fake_http):
        c = FileMakerClient(ClientConfig(), http_session=fake_http)
        with pytest.raises(ValidationError) as exc:
            c.execute(LAYOUTS)
        assert exc.value.field == "base_url"
        fake_http.request.assert_not_called()

    def test_missing_method(self, client, fake_http):
        with pytest.raises(ValidationError) as exc:
            client.execute(RequestSpec(method="", path="p"))
        assert exc.value.field == "method"

    def test_filemaker_error_carries_envelope(self, client, fake_http, make_response, envelope):
        fake_http.request.return_value = make_response(500, envelope(code="401", message="No records match the request"))
        with pytest.raises(FileMakerError) as exc:
            client.execute(LAYOUTS)
        assert exc.value.code == "401"
        assert exc.value.http_status == 500
        assert exc.value.response.messages[0].message == "No records match the request"
        assert fake_http.request.call_count == 4

    def test_404_not_retried(self, client, fake_http, make_response):
        fake_http.request.return_value = make_response(404, content=b"")
        with pytest.raises(FileMakerError) as exc:
            client.execute(LAYOUTS)
        assert exc.value.message == "Not Found"
        assert fake_http.request.call_count == 1

    def test_retries_then_succeeds(self, client, fake_http, make_response, ok_response):
        fake_http.request.side_effect = [
            make_response(503, content=b"<html>busy</html>"),
            requests.ConnectionError("reset"),
            ok_response(),
        ]
        env = client.execute(LAYOUTS)
        assert env.ok
        assert fake_http.request.call_count == 3
        snap = client.metrics.snapshot()
        assert snap["retries_total"] == 2
        assert snap["requests_succeeded"] == 1
        assert snap["requests_total"] == 1

    def test_952_retried_even_on_401(self, client, fake_http, make_response, envelope, ok_response):
        fake_http.request.side_effect = [
            make_response(401, envelope(code="952", message="Invalid FileMaker Data API token")),
            ok_response(),
        ]
        assert client.execute(LAYOUTS).ok

    def test_network_error(self, client, fake_http):
        fake_http.request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(NetworkError) as exc:
            client.execute(LAYOUTS, retry_policy=RetryPolicy.disabled())
        assert isinstance(exc.value.__cause__, requests.ConnectionError)
        assert client.metrics.get("requests_failed") == 1

    @pytest.mark.parametrize("exc_class", [
        requests.exceptions.MissingSchema,
        requests.exceptions.InvalidSchema,
        requests.exceptions.InvalidURL,
        requests.exceptions.URLRequired,
    ])
    def test_malformed_url_not_retried(self, client, fake_http, exc_class):
        fake_http.request.side_effect = exc_class("No scheme supplied")
        with pytest.raises(ValidationError) as exc:
            client.execute(LAYOUTS)
        assert exc.value.field == "base_url"
        assert isinstance(exc.value.__cause__, exc_class)
        assert fake_http.request.call_count == 1
        assert client.metrics.get("retries_total") == 0

    def test_invalid_header_not_retried(self, client, fake_http):
        fake_http.request.side_effect = requests.exceptions.InvalidHeader("Invalid leading whitespace in header value")
        with pytest.raises(ValidationError) as exc:
            client.execute(LAYOUTS.with_bearer("\nbad"))
        assert exc.value.field == "headers"
        assert fake_http.request.call_count == 1

    def test_schemeless_base_url_fails_once(self, no_wait_retry):
        with FileMakerClient(ClientConfig(base_url="fms.example.com", retry=no_wait_retry)) as c:
            with pytest.raises(ValidationError) as exc:
                c.execute(LAYOUTS)
        assert exc.value.field == "base_url"
        assert c.metrics.get("retries_total") == 0

    def test_timeout_error(self, client, fake_http):
        fake_http.request.side_effect = requests.ReadTimeout("slow")
        with pytest.raises(RequestTimeoutError):
            client.execute(LAYOUTS, retry_policy=RetryPolicy.disabled())

    def test_bad_json_on_success_status(self, client, fake_http, make_response):
        fake_http.request.return_value = make_response(200, content=b"not json")
        with pytest.raises(UnknownError):
            client.execute(LAYOUTS)
        assert fake_http.request.call_count == 1

    def test_empty_body_success(self, client, fake_http, make_response):
        fake_http.request.return_value = make_response(200, content=b"")
        env = client.execute(LAYOUTS)
        assert env.messages == []

    def test_cancelled_context(self, client, fake_http):
        ctx = OperationContext()
        ctx.cancel()
        with pytest.raises(OperationCancelledError):
            client.execute(LAYOUTS, ctx)
        fake_http.request.assert_not_called()

    def test_deadline_bounds_transport_timeout(self, client, fake_http, ok_response, request_calls):
        fake_http.request.return_value = ok_response()
        client.execute(LAYOUTS, OperationContext(timeout=2.0))
        connect, read = request_calls(fake_http)[0]["timeout"]
        assert 0 < connect <= 2.0
        assert 0 < read <= 2.0

    def test_user_on_retry_still_called(self, client, fake_http, make_response, ok_response):
        seen = []
        policy = RetryPolicy(max_attempts=1, min_delay=0.0, max_delay=0.0,
                             on_retry=lambda n, e: seen.append(n))
        fake_http.request.side_effect = [make_response(502, content=b""), ok_response()]
        client.execute(LAYOUTS, retry_policy=policy)
        assert seen == [1]

    def test_authorization_not_logged(self, client, fake_http, ok_response, caplog):
        fake_http.request.return_value = ok_response()
        with caplog.at_level(logging.DEBUG, logger="fm_data"):
            client.execute(LAYOUTS.with_bearer("super-secret-token"))
        assert "super-secret-token" not in caplog.text
        assert "req_" in caplog.text


class TestSessions:
    """Tests for create_session / disconnect / validate_session."""

    def test_create_session_default_basic(self, client, fake_http, login_response, request_calls):
        fake_http.request.return_value = login_response("abc")
        env = client.create_session("Contacts")
        assert env.token == "abc"
        call = request_calls(fake_http)[0]
        assert call["method"] == "POST"
        assert call["url"].endswith("/fmi/data/vLatest/databases/Contacts/sessions")
        assert call["auth"] == ("admin", "secret")
        assert client.metrics.get("sessions_created") == 1

    def test_create_session_explicit_strategy(self, client, fake_http, login_response, request_calls):
        fake_http.request.return_value = login_response()
        client.create_session("Contacts", FMIDAuth("claris"))
        call = request_calls(fake_http)[0]
        assert call["headers"]["Authorization"] == "FMID claris"
        assert call["auth"] is None

    def test_two_strategies_rejected(self, client, fake_http):
        with pytest.raises(ValidationError):
            client.create_session("Contacts", FMIDAuth("a"), FMIDAuth("b"))
        fake_http.request.assert_not_called()

    def test_missing_token_is_auth_error(self, client, fake_http, ok_response):
        fake_http.request.return_value = ok_response()
        with pytest.raises(AuthenticationError):
            client.create_session("Contacts")

    def test_bad_login(self, client, fake_http, make_response, envelope):
        fake_http.request.return_value = make_response(401, envelope(code="212", message="Invalid user account and/or password"))
        with pytest.raises(FileMakerError) as exc:
            client.create_session("Contacts")
        assert exc.value.code == "212"
        assert fake_http.request.call_count == 1

    def test_disconnect(self, client, fake_http, ok_response, request_calls):
        fake_http.request.return_value = ok_response()
        client.disconnect("Contacts", "tok/1")
        call = request_calls(fake_http)[0]
        assert call["method"] == "DELETE"
        assert call["url"].endswith("/databases/Contacts/sessions/tok%2F1")
        assert client.metrics.get("sessions_closed") == 1

    def test_disconnect_requires_token(self, client):
        with pytest.raises(ValidationError) as exc:
            client.disconnect("Contacts", "")
        assert exc.value.field == "token"

    def test_validate_session(self, client, fake_http, ok_response, request_calls):
        fake_http.request.return_value = ok_response()
        client.validate_session("tok")
        call = request_calls(fake_http)[0]
        assert call["url"].endswith("/fmi/data/vLatest/validateSession")
        assert call["headers"]["Authorization"] == "Bearer tok"


class TestConfiguration:
    """Tests for runtime configuration setters."""

    def test_setters(self, client):
        client.set_base_url("https://other.test/")
        client.set_version("v1")
        client.set_basic_auth("u2", "p2")
        cfg = client.config
        assert cfg.base_url == "https://other.test"
        assert cfg.version == "v1"
        assert cfg.basic_credentials == ("u2", "p2")

    def test_setter_validation(self, client):
        with pytest.raises(ValidationError):
            client.set_base_url("")
        with pytest.raises(ValidationError) as exc:
            client.set_basic_auth("u", "")
        assert exc.value.field == "password"
        with pytest.raises(ValidationError) as exc:
            client.set_basic_auth("", "p")
        assert exc.value.field == "username"

    def test_set_auth_strategy(self, client):
        fmid = FMIDAuth("t")
        client.set_auth_strategy(fmid)
        assert client.config.default_auth is fmid

    def test_set_retry_policy_none_restores_default(self, client):
        client.set_retry_policy(None)
        assert client.config.retry == RetryPolicy()

    def test_request_uses_one_snapshot(self, client, fake_http, ok_response, request_calls):
        def change_url(**kwargs):
            client.set_base_url("https://changed.test")
            return ok_response()

        fake_http.request.side_effect = change_url
        client.execute(LAYOUTS)
        assert request_calls(fake_http)[0]["url"].startswith("https://fms.test/")
        assert client.config.base_url == "https://changed.test"

    def test_concurrent_reads_and_writes(self, client, fake_http, ok_response):
        fake_http.request.side_effect = lambda **kw: ok_response()
        errors = []

        def worker():
            try:
                for _ in range(20):
                    client.execute(LAYOUTS)
            except Exception as e:
                errors.append(e)

        def writer():
            for i in range(20):
                client.set_version(f"v{i}")

        threads = [threading.Thread(target=worker) for _ in range(4)] + [threading.Thread(target=writer)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert errors == []
        assert client.metrics.get("requests_succeeded") == 80


class TestLifecycle:

    @patch("fm_data.core.config.requests.Session")
    def test_context_manager_closes_owned_session(self, mock_session_class):
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session
        with FileMakerClient(ClientConfig(base_url="https://fms.test")) as c:
            assert c.http is mock_session
        mock_session.close.assert_called_once()

    def test_borrowed_session_not_closed(self, fake_http):
        FileMakerClient(ClientConfig(base_url="x"), http_session=fake_http).close()
        fake_http.close.assert_not_called()
