"""Tests for cdalens.sources.heuristic (simplified batch extraction)."""

from cdalens.core.cda import NS, parse_text
from cdalens.sources.heuristic import (
    extract_author,
    extract_diagnoses,
    extract_document_date,
    extract_medications,
    extract_patient,
    extract_simplified,
    normalize_gender,
    normalize_medication_name,
)

XSI = "http://www.w3.org/2001/XMLSchema-instance"


def _tree(inner: str):
    return parse_text(f'<ClinicalDocument xmlns="{NS}" xmlns:xsi="{XSI}">{inner}</ClinicalDocument>')


def _patient_xml(birth: str = "19800412", gender: str = "F") -> str:
    return (
        "<recordTarget><patientRole><id root='1.2' extension='P-1'/><patient>"
        "<name><given>Ana</given><family>Ruiz</family></name>"
        f"<administrativeGenderCode code='{gender}'/><birthTime value='{birth}'/>"
        "</patient></patientRole></recordTarget>"
    )


def _medication_xml(name: str) -> str:
    return (
        "<substanceAdministration><consumable><manufacturedProduct><manufacturedMaterial>"
        f"<name>{name}</name></manufacturedMaterial></manufacturedProduct></consumable>"
        "</substanceAdministration>"
    )


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


class TestNormalizeGender:
    def test_codes(self):
        assert normalize_gender("M") == "M"
        assert normalize_gender("f") == "F"
        assert normalize_gender("Female") == "F"
        assert normalize_gender(" male ") == "M"

    def test_other_values(self):
        assert normalize_gender("UN") == "Unknown"
        assert normalize_gender("Mujer") == "Unknown"
        assert normalize_gender("") == "Unknown"
        assert normalize_gender(None) == "Unknown"


class TestNormalizeMedicationName:
    def test_known_names_canonical(self):
        assert normalize_medication_name("metformin") == "Metformina"
        assert normalize_medication_name("WARFARINA") == "Warfarina"

    def test_unknown_names_kept(self):
        assert normalize_medication_name("  Omeprazol   20 mg ") == "Omeprazol 20 mg"


# ---------------------------------------------------------------------------
# Patient
# ---------------------------------------------------------------------------


class TestExtractPatient:
    def test_full(self):
        patient = extract_patient(_tree(_patient_xml()), current_year=2026)
        assert patient.id == "P-1"
        assert patient.name == "Ana Ruiz"
        assert patient.gender == "F"
        assert patient.birth_date == "19800412"
        assert patient.age == 46

    def test_implausible_age_is_absent(self):
        patient = extract_patient(_tree(_patient_xml(birth="18501231")), current_year=2026)
        assert patient.birth_date == "18501231"
        assert patient.age is None

    def test_unknown_gender_code(self):
        assert extract_patient(_tree(_patient_xml(gender="UN"))).gender == "Unknown"

    def test_missing_everything(self):
        patient = extract_patient(_tree(""))
        assert patient.id is None
        assert patient.name is None
        assert patient.gender is None
        assert patient.age is None

    def test_multiple_given_names(self, ccd_tree):
        assert extract_patient(ccd_tree).name == "María José García"

    def test_document_id_is_not_patient_id(self):
        tree = _tree("<id root='1.2.3' extension='DOC-999'/>"
                     "<patient><name><given>Ana</given></name></patient>")
        patient = extract_patient(tree)
        assert patient.id is None
        assert patient.name == "Ana"

    def test_patient_role_without_record_target(self):
        tree = _tree("<id extension='DOC-999'/><patientRole><id extension='P-7'/></patientRole>")
        assert extract_patient(tree).id == "P-7"


# ---------------------------------------------------------------------------
# Diagnoses
# ---------------------------------------------------------------------------


class TestExtractDiagnoses:
    def test_structured_code(self):
        tree = _tree("<observation><code code='44054006' codeSystem='2.16.840.1.113883.6.96' "
                     "displayName='Diabetes mellitus tipo 2'/></observation>")
        [dx] = extract_diagnoses(tree, "doc.xml")
        assert dx.name == "Diabetes mellitus tipo 2"
        assert dx.code == "44054006"
        assert dx.code_system == "2.16.840.1.113883.6.96"

    def test_code_without_system_is_structured(self):
        tree = _tree("<act><code displayName='Gripe'/></act>")
        assert extract_diagnoses(tree, "doc.xml")[0].code_system == "structured"

    def test_observation_value(self):
        tree = _tree("<observation><value xsi:type='CD' code='195967001' displayName='Asma'/></observation>")
        [dx] = extract_diagnoses(tree, "doc.xml")
        assert (dx.name, dx.code_system) == ("Asma", "observation_value")

    def test_free_text_keyword(self):
        tree = _tree("<component><section><text>Paciente con ASMA persistente</text></section></component>")
        [dx] = extract_diagnoses(tree, "doc.xml")
        assert (dx.name, dx.code_system) == ("Asma", "text_extracted")

    def test_filename_inference(self):
        [dx] = extract_diagnoses(_tree(""), "paciente_diabetico_01.xml")
        assert (dx.name, dx.code_system) == ("Diabetes mellitus", "filename_inferred")

    def test_case_insensitive_dedup(self):
        tree = _tree("<observation><code displayName='Asma'/></observation>"
                     "<observation><code displayName='ASMA'/></observation>"
                     "<section><text>asma</text></section>")
        result = extract_diagnoses(tree, "doc.xml")
        assert [d.name for d in result] == ["Asma"]
        assert result[0].code_system == "structured"

    def test_medication_inference_only_when_empty(self):
        meds = extract_medications(_tree(_medication_xml("Warfarin")), "doc.xml")
        [dx] = extract_diagnoses(_tree(_medication_xml("Warfarin")), "doc.xml", medications=meds)
        assert (dx.name, dx.code_system) == ("Trastorno de coagulación", "medication_inferred")

    def test_medication_inference_skipped_when_found(self):
        tree = _tree("<observation><code displayName='Gripe'/></observation>" + _medication_xml("Warfarin"))
        meds = extract_medications(tree, "doc.xml")
        assert [d.name for d in extract_diagnoses(tree, "doc.xml", medications=meds)] == ["Gripe"]


# ---------------------------------------------------------------------------
# Medications
# ---------------------------------------------------------------------------


class TestExtractMedications:
    def test_structured_material_name(self):
        [med] = extract_medications(_tree(_medication_xml("metformin")), "doc.xml")
        assert (med.name, med.medication_type) == ("Metformina", "structured")

    def test_material_code_display_fallback(self):
        tree = _tree("<substanceAdministration><consumable><manufacturedProduct><manufacturedMaterial>"
                     "<code displayName='Omeprazol 20 MG'/></manufacturedMaterial></manufacturedProduct>"
                     "</consumable></substanceAdministration>")
        assert extract_medications(tree, "doc.xml")[0].name == "Omeprazol 20 MG"

    def test_free_text(self):
        tree = _tree("<section><text>Inhalador de salbutamol y budesonide</text></section>")
        result = extract_medications(tree, "doc.xml")
        assert [(m.name, m.medication_type) for m in result] == [
            ("Salbutamol", "text_extracted"),
            ("Budesonida", "text_extracted"),
        ]

    def test_filename(self):
        [med] = extract_medications(_tree(""), "control_hipertenso.xml")
        assert (med.name, med.medication_type) == ("Enalapril", "filename_inferred")

    def test_dedup_across_provenance(self, ccd_tree):
        # structured material, manufacturedProduct context and section text all say Metformina
        result = extract_medications(ccd_tree, "ccd_sample.xml")
        assert [(m.name, m.medication_type) for m in result] == [("Metformina", "structured")]


# ---------------------------------------------------------------------------
# Date, author, full projection
# ---------------------------------------------------------------------------


class TestDocumentMetadata:
    def test_document_date_from_header(self, ccd_tree):
        assert extract_document_date(ccd_tree) == "20240115103000"

    def test_document_date_fallback(self):
        tree = _tree("<author><time value='20231201'/><assignedAuthor/></author>")
        assert extract_document_date(tree) == "20231201"

    def test_document_date_missing(self):
        assert extract_document_date(_tree("")) is None

    def test_author(self, ccd_tree):
        assert extract_author(ccd_tree) == "Juan Pérez"

    def test_author_missing(self):
        assert extract_author(_tree("")) is None


class TestExtractSimplified:
    def test_ccd(self, ccd_tree):
        doc = extract_simplified("ccd_sample.xml", ccd_tree, current_year=2026)
        assert doc.file_name == "ccd_sample.xml"
        assert doc.patient.age == 46
        assert doc.patient.gender == "F"
        assert [m.name for m in doc.medications] == ["Metformina"]
        assert "Diabetes mellitus tipo 2" in [d.name for d in doc.diagnoses]
        assert doc.author == "Juan Pérez"

    def test_tolerates_non_cda_xml(self):
        doc = extract_simplified("nota_asma.xml", parse_text("<nota><text>asma</text></nota>"))
        assert [d.name for d in doc.diagnoses] == ["Asma", "Asma bronquial"]
        assert [m.name for m in doc.medications] == ["Salbutamol"]
