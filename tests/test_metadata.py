"""
Tests for fm_data.data_api.metadata module.
"""

import pytest

from fm_data.core.client import FileMakerClient
from fm_data.core.config import ClientConfig
from fm_data.core.errors import ValidationError
from fm_data.data_api.metadata import MetadataService

API = "https://fms.test/fmi/data/vLatest"


@pytest.fixture
def meta(client):
    return MetadataService(client)


class TestServerMetadata:

    def test_product_info(self, meta, fake_http, ok_response, request_calls):
        fake_http.request.return_value = ok_response(
            productInfo={"name": "FileMaker Data API Engine", "version": "21.0.1", "dateFormat": "MM/dd/yyyy"}
        )
        env = meta.get_product_info()
        call = request_calls(fake_http)[0]
        assert call["url"] == API + "/productInfo"
        assert call["auth"] == ("admin", "secret")
        assert env.response.product_info.version == "21.0.1"
        assert env.response.product_info.date_format == "MM/dd/yyyy"

    def test_databases(self, meta, fake_http, ok_response, request_calls):
        fake_http.request.return_value = ok_response(databases=[{"name": "Contacts"}, {"name": "Invoices"}])
        env = meta.get_databases()
        assert request_calls(fake_http)[0]["url"] == API + "/databases"
        assert [db.name for db in env.response.databases] == ["Contacts", "Invoices"]

    def test_no_credentials_sends_no_auth(self, fake_http, ok_response, request_calls):
        c = FileMakerClient(ClientConfig(base_url="https://fms.test"), http_session=fake_http)
        fake_http.request.return_value = ok_response()
        MetadataService(c).get_product_info()
        assert request_calls(fake_http)[0]["auth"] is None


class TestSolutionMetadata:

    def test_layouts(self, meta, fake_http, ok_response, request_calls):
        fake_http.request.return_value = ok_response(
            layouts=[{"name": "Forms", "isFolder": True, "folderLayoutNames": [{"name": "Web"}]}]
        )
        env = meta.get_layouts("Contacts", "tok")
        call = request_calls(fake_http)[0]
        assert call["url"] == API + "/databases/Contacts/layouts"
        assert call["headers"]["Authorization"] == "Bearer tok"
        assert env.response.layouts[0].is_folder is True

    def test_layout_metadata(self, meta, fake_http, ok_response, request_calls):
        fake_http.request.return_value = ok_response(
            fieldMetaData=[{"name": "Name", "type": "normal", "result": "text", "maxRepeat": 1}]
        )
        env = meta.get_layout_metadata("Contacts", "Web", "tok")
        assert request_calls(fake_http)[0]["url"] == API + "/databases/Contacts/layouts/Web"
        assert env.response.field_meta_data[0].max_repeat == 1

    def test_scripts(self, meta, fake_http, ok_response, request_calls):
        fake_http.request.return_value = ok_response(scripts=[{"name": "Recalc", "isFolder": False}])
        env = meta.get_scripts("Contacts", "tok")
        assert request_calls(fake_http)[0]["url"] == API + "/databases/Contacts/scripts"
        assert env.response.scripts[0].name == "Recalc"

    def test_token_required(self, meta, fake_http):
        with pytest.raises(ValidationError) as exc:
            meta.get_layouts("Contacts", "")
        assert exc.value.field == "token"
        fake_http.request.assert_not_called()

    def test_layout_required(self, meta, fake_http):
        with pytest.raises(ValidationError) as exc:
            meta.get_layout_metadata("Contacts", "", "tok")
        assert exc.value.field == "layout"
