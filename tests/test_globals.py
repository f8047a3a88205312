"""
Tests for fm_data.data_api.globals module.
"""

import json

import pytest

from fm_data.core.errors import ValidationError
from fm_data.data_api.globals import GlobalFieldsBuilder, GlobalFieldsService


class TestGlobalFieldsBuilder:

    def test_build(self):
        b = GlobalFieldsBuilder().add("Settings::Region", "EU").add_fields({"Settings::Year(2)": 2024})
        assert b.build() == {"Settings::Region": "EU", "Settings::Year(2)": 2024}
        assert len(b) == 2

    def test_build_returns_copy(self):
        b = GlobalFieldsBuilder().add("Settings::Region", "EU")
        b.build()["Settings::Region"] = "US"
        assert b.build()["Settings::Region"] == "EU"

    def test_clear(self):
        assert len(GlobalFieldsBuilder().add("a::b", 1).clear()) == 0

    def test_empty_name(self):
        with pytest.raises(ValidationError):
            GlobalFieldsBuilder().add("", "x")


class TestGlobalFieldsService:

    def test_set(self, client, fake_http, ok_response, request_calls):
        fake_http.request.return_value = ok_response()
        fields = GlobalFieldsBuilder().add("Settings::Region", "EU").build()
        GlobalFieldsService(client).set_global_fields("Contacts", fields, "tok")
        call = request_calls(fake_http)[0]
        assert call["method"] == "PATCH"
        assert call["url"] == "https://fms.test/fmi/data/vLatest/databases/Contacts/globals"
        assert json.loads(call["data"]) == {"globalFields": {"Settings::Region": "EU"}}
        assert call["headers"]["Authorization"] == "Bearer tok"

    def test_requires_fields(self, client, fake_http):
        with pytest.raises(ValidationError) as exc:
            GlobalFieldsService(client).set_global_fields("Contacts", {}, "tok")
        assert exc.value.field == "global_fields"
        fake_http.request.assert_not_called()

    def test_requires_token(self, client, fake_http):
        with pytest.raises(ValidationError) as exc:
            GlobalFieldsService(client).set_global_fields("Contacts", {"a::b": 1}, "")
        assert exc.value.field == "token"
