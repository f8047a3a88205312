"""
Tests for fm_data.data_api.containers module.
"""

import pytest
import requests
from unittest.mock import Mock

from fm_data.core.context import OperationContext
from fm_data.core.errors import FileMakerError, NetworkError, OperationCancelledError, RequestTimeoutError, ValidationError
from fm_data.data_api.containers import ContainerService

UPLOAD_URL = (
    "https://fms.test/fmi/data/vLatest/databases/Contacts/layouts/Web"
    "/records/17/containers/Photo/1"
)
STREAM_URL = "https://fms.test/Streaming_SSL/MainDB/6A1F.png?RCType=EmbeddedRCFileProcessor"


@pytest.fixture
def containers(client):
    return ContainerService(client)


class TestUpload:
    """Tests for container uploads."""

    def test_upload_file(self, containers, fake_http, ok_response, request_calls, tmp_path):
        photo = tmp_path / "acme.png"
        photo.write_bytes(b"\x89PNG")
        fake_http.request.return_value = ok_response(modId="3")

        env = containers.upload_file("Contacts", "Web", "17", "Photo", photo, "tok")

        call = request_calls(fake_http)[0]
        assert call["method"] == "POST"
        assert call["url"] == UPLOAD_URL
        assert call["files"] == {"upload": ("acme.png", b"\x89PNG")}
        assert call["data"] is None
        assert "Content-Type" not in call["headers"]
        assert call["headers"]["Authorization"] == "Bearer tok"
        assert env.response.mod_id == "3"

    def test_upload_data_repetition(self, containers, fake_http, ok_response, request_calls):
        fake_http.request.return_value = ok_response()
        containers.upload_data("Contacts", "Web", "17", "Photo", "logo.png", b"data", "tok", repetition=2)
        assert request_calls(fake_http)[0]["url"].endswith("/containers/Photo/2")

    def test_missing_file(self, containers, fake_http, tmp_path):
        with pytest.raises(ValidationError) as exc:
            containers.upload_file("Contacts", "Web", "17", "Photo", tmp_path / "missing.png", "tok")
        assert exc.value.field == "file_path"
        assert "failed to read file" in exc.value.message
        fake_http.request.assert_not_called()

    @pytest.mark.parametrize("kwargs,field", [
        ({"filename": ""}, "filename"),
        ({"data": b""}, "data"),
        ({"repetition": 0}, "repetition"),
        ({"field_name": ""}, "field_name"),
        ({"record_id": ""}, "record_id"),
    ])
    def test_upload_data_validation(self, containers, fake_http, kwargs, field):
        args = dict(
            database="Contacts", layout="Web", record_id="17", field_name="Photo",
            filename="a.png", data=b"x", token="tok",
        )
        args.update(kwargs)
        with pytest.raises(ValidationError) as exc:
            containers.upload_data(**args)
        assert exc.value.field == field
        fake_http.request.assert_not_called()


class TestDownload:
    """Tests for container downloads."""

    def test_stream(self, containers, fake_http):
        resp = Mock(spec=requests.Response)
        resp.status_code = 200
        fake_http.get.return_value = resp

        assert containers.download(STREAM_URL, "tok") is resp

        args, kwargs = fake_http.get.call_args
        assert args[0] == STREAM_URL
        assert kwargs["stream"] is True
        assert kwargs["headers"]["Authorization"] == "Bearer tok"

    def test_without_token(self, containers, fake_http):
        fake_http.get.return_value = Mock(spec=requests.Response, status_code=200)
        containers.download(STREAM_URL)
        assert "Authorization" not in fake_http.get.call_args.kwargs["headers"]

    def test_http_error_closes_response(self, containers, fake_http):
        resp = Mock(spec=requests.Response)
        resp.status_code = 404
        fake_http.get.return_value = resp
        with pytest.raises(FileMakerError) as exc:
            containers.download(STREAM_URL, "tok")
        assert exc.value.http_status == 404
        resp.close.assert_called_once()

    def test_network_error(self, containers, fake_http):
        fake_http.get.side_effect = requests.ConnectionError("refused")
        with pytest.raises(NetworkError, match="failed to download file"):
            containers.download(STREAM_URL)

    def test_timeout(self, containers, fake_http):
        fake_http.get.side_effect = requests.ReadTimeout("slow")
        with pytest.raises(RequestTimeoutError):
            containers.download(STREAM_URL)

    def test_malformed_url(self, containers, fake_http):
        fake_http.get.side_effect = requests.exceptions.MissingSchema("No scheme supplied")
        with pytest.raises(ValidationError) as exc:
            containers.download("Streaming_SSL/MainDB/6A1F.png")
        assert exc.value.field == "url"
        assert fake_http.get.call_count == 1

    def test_url_required(self, containers, fake_http):
        with pytest.raises(ValidationError) as exc:
            containers.download("")
        assert exc.value.field == "url"
        fake_http.get.assert_not_called()

    def test_cancelled(self, containers, fake_http):
        ctx = OperationContext()
        ctx.cancel()
        with pytest.raises(OperationCancelledError):
            containers.download(STREAM_URL, ctx=ctx)
        fake_http.get.assert_not_called()
