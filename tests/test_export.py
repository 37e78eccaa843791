"""Tests for cdalens.export (CDA-to-JSON view)."""

import json
from datetime import datetime, timezone

from cdalens.export import format_identifier, split_identifier, transform_to_json
from cdalens.models import ClinicalDocument, Identifier


class TestIdentifiers:
    def test_root_and_extension(self):
        assert format_identifier(Identifier(root="2.16.840.1", extension="DOC-1")) == "2.16.840.1^DOC-1"

    def test_root_only(self):
        assert format_identifier(Identifier(root="2.16.840.1")) == "2.16.840.1"

    def test_absent(self):
        assert format_identifier(None) is None

    def test_split_round_trip(self):
        for ident in (Identifier(root="1.2.3", extension="X^Y"), Identifier(root="1.2.3")):
            assert split_identifier(format_identifier(ident)) == ident

    def test_split_without_separator(self):
        assert split_identifier("1.2.3") == Identifier(root="1.2.3")


class TestTransformToJson:
    def test_meta(self, ccd_doc):
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        meta = transform_to_json(ccd_doc, now=now)["meta"]
        assert meta == {
            "transformedAt": "2026-01-01T00:00:00+00:00",
            "version": "1.0",
            "format": "CDA-to-JSON",
        }

    def test_document(self, ccd_doc):
        document = transform_to_json(ccd_doc)["document"]
        assert document["id"] == "2.16.840.1.113883.19.5^DOC-001"
        assert document["title"] == "Resumen de Episodio"
        assert document["type"]["code"] == "34133-9"
        assert document["date"] == "20240115103000"
        assert document["confidentiality"] == "N"
        assert document["language"] == "es-ES"
        assert document["templates"][0] == "2.16.840.1.113883.10.20.1"

    def test_patient(self, ccd_doc):
        patient = transform_to_json(ccd_doc)["patient"]
        assert patient["id"] == "PAT-42"
        assert patient["name"] == {"given": "María José", "family": "García", "full": "María José García"}
        assert patient["gender"] == "Female"
        assert patient["birthDate"] == "19800412"
        assert patient["address"]["city"] == "Madrid"
        assert patient["address"]["street"] == "Calle Mayor 1"

    def test_clinical_sections(self, ccd_doc):
        sections = transform_to_json(ccd_doc)["clinical"]["sections"]
        assert [s["title"] for s in sections] == ["Medicamentos", "Problemas", "Procedimientos"]
        assert [[e["type"] for e in s["entries"]] for s in sections] == [
            ["medication"], ["observation"], ["procedure", "act"],
        ]

    def test_medication_entry(self, ccd_doc):
        entry = transform_to_json(ccd_doc)["clinical"]["sections"][0]["entries"][0]
        assert entry["medication"]["name"] == "Metformina"
        assert entry["dose"] == {"value": 850.0, "unit": "mg"}
        assert entry["route"] == "Oral"

    def test_observation_entry(self, ccd_doc):
        entry = transform_to_json(ccd_doc)["clinical"]["sections"][1]["entries"][0]
        assert entry["value"][0]["display"] == "Diabetes mellitus tipo 2"
        assert entry["status"] == "completed"

    def test_structure(self, ccd_doc):
        structure = transform_to_json(ccd_doc)["structure"]
        assert structure["sectionsCount"] == 3
        assert structure["entriesCount"] == 4
        assert 0 < structure["codedElements"] <= structure["totalElements"]
        assert 0 <= structure["codingRatio"] <= 1
        assert structure["templateCount"] >= 1

    def test_minimal_document(self, minimal_doc):
        result = transform_to_json(minimal_doc)
        assert result["patient"] is None
        assert result["clinical"] is None
        assert result["document"]["id"] is None
        assert result["structure"]["sectionsCount"] == 0
        assert result["structure"]["entriesCount"] == 0

    def test_empty_document(self):
        structure = transform_to_json(ClinicalDocument())["structure"]
        assert structure["totalElements"] == 1
        assert structure["codingRatio"] == 0

    def test_json_serializable(self, ccd_doc):
        json.dumps(transform_to_json(ccd_doc), ensure_ascii=False)
