"""
Unit tests for diagram payload parsing and request parameters.
"""

import json

import pytest

from diagram_sync.core.errors import ValidationError
from diagram_sync.domains.diagrams.schemas import DiagramPayload
from diagram_sync.domains.diagrams.services import decode_document, parse_version_number


class TestDiagramPayload:
    """Tests for DiagramPayload.from_document."""

    def test_reads_metadata_and_keeps_unknown_fields(self):
        document = json.dumps({
            "id": "d-1",
            "name": "Shop",
            "databaseType": "postgresql",
            "databaseEdition": "supabase",
            "description": "first",
            "tables": [{"id": "t1", "name": "users"}],
        })

        payload = DiagramPayload.from_document(document)
        metadata = payload.to_metadata()

        assert payload.id == "d-1"
        assert metadata.name == "Shop"
        assert metadata.database_type == "postgresql"
        assert metadata.database_edition == "supabase"
        assert metadata.description == "first"
        assert payload.model_extra["tables"] == [{"id": "t1", "name": "users"}]

    def test_optional_fields_default(self):
        metadata = DiagramPayload.from_document('{"id": "d", "name": "n", "databaseEdition": null}').to_metadata()

        assert metadata.database_type == ""
        assert metadata.database_edition is None
        assert metadata.description == ""

    @pytest.mark.parametrize("document", [
        '{"name": "no id"}',
        '{"id": "d-1"}',
        '{"id": "   ", "name": "blank id"}',
        '{"id": "d-1", "name": ""}',
        "not json at all",
        "[1, 2]",
        "",
    ])
    def test_rejects_invalid_documents(self, document):
        with pytest.raises(ValidationError):
            DiagramPayload.from_document(document)


    def test_id_length_limit(self):
        longest = DiagramPayload.from_document(json.dumps({"id": "x" * 255, "name": "n"}))
        assert len(longest.id) == 255

        with pytest.raises(ValidationError):
            DiagramPayload.from_document(json.dumps({"id": "x" * 256, "name": "n"}))

    def test_long_metadata_is_accepted(self):
        document = json.dumps({"id": "d", "name": "n" * 1000, "description": "d" * 5000})

        metadata = DiagramPayload.from_document(document).to_metadata()

        assert len(metadata.name) == 1000
        assert len(metadata.description) == 5000

class TestRequestHelpers:
    """Tests for version number and body decoding helpers."""

    @pytest.mark.parametrize("value, expected", [(None, None), ("", None), ("3", 3), (7, 7)])
    def test_parse_version_number(self, value, expected):
        assert parse_version_number(value) == expected

    @pytest.mark.parametrize("value", ["abc", "0", "-1", "1.5"])
    def test_parse_version_number_rejects(self, value):
        with pytest.raises(ValidationError):
            parse_version_number(value)

    def test_decode_document(self):
        assert decode_document(b'{"id": "x"}') == '{"id": "x"}'
        assert decode_document('{"id": "x"}') == '{"id": "x"}'

    def test_decode_document_rejects_invalid_utf8(self):
        with pytest.raises(ValidationError):
            decode_document(b"\xff\xfe\x00")
