"""Shared test fixtures for cdalens tests."""

import pytest

from cdalens.core.cda import parse_text
from cdalens.sources.cda_document import extract_document

CCD_XML = """\
<?xml version="1.0" encoding="UTF-8"?>
<ClinicalDocument xmlns="urn:hl7-org:v3" xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">
  <typeId root="2.16.840.1.113883.1.3" extension="POCD_HD000040"/>
  <templateId root="2.16.840.1.113883.10.20.1"/>
  <id root="2.16.840.1.113883.19.5" extension="DOC-001"/>
  <code code="34133-9" codeSystem="2.16.840.1.113883.6.1" displayName="Summarization of Episode Note"/>
  <title>Resumen de Episodio</title>
  <effectiveTime value="20240115103000"/>
  <confidentialityCode code="N" codeSystem="2.16.840.1.113883.5.25"/>
  <languageCode code="es-ES"/>
  <recordTarget>
    <patientRole>
      <id root="2.16.840.1.113883.19.5" extension="PAT-42"/>
      <addr use="HP">
        <streetAddressLine>Calle Mayor 1</streetAddressLine>
        <city>Madrid</city>
        <state>MD</state>
        <postalCode>28001</postalCode>
        <country>ES</country>
      </addr>
      <telecom use="HP" value="tel:+34-600-000-000"/>
      <patient>
        <name><given>María</given><given>José</given><family>García</family></name>
        <administrativeGenderCode code="F" codeSystem="2.16.840.1.113883.5.1" displayName="Female"/>
        <birthTime value="19800412"/>
      </patient>
    </patientRole>
  </recordTarget>
  <author>
    <time value="20240115"/>
    <assignedAuthor>
      <id root="2.16.840.1.113883.19.5" extension="DR-7"/>
      <assignedPerson><name><given>Juan</given><family>Pérez</family></name></assignedPerson>
      <representedOrganization><name>Hospital Central</name></representedOrganization>
    </assignedAuthor>
  </author>
  <custodian>
    <assignedCustodian>
      <representedCustodianOrganization>
        <id root="2.16.840.1.113883.19.5"/>
        <name>Hospital Central</name>
      </representedCustodianOrganization>
    </assignedCustodian>
  </custodian>
  <component>
    <structuredBody>
      <component>
        <section>
          <templateId root="2.16.840.1.113883.10.20.1.8"/>
          <code code="10160-0" codeSystem="2.16.840.1.113883.6.1" displayName="History of medication use"/>
          <title>Medicamentos</title>
          <text>Metformina 850 mg cada 12 horas</text>
          <entry typeCode="DRIV">
            <substanceAdministration classCode="SBADM" moodCode="EVN">
              <statusCode code="active"/>
              <routeCode code="C38288" displayName="Oral"/>
              <doseQuantity value="850" unit="mg"/>
              <consumable>
                <manufacturedProduct>
                  <manufacturedMaterial>
                    <code code="860975" codeSystem="2.16.840.1.113883.6.88" displayName="Metformin 850 MG"/>
                    <name>Metformina</name>
                  </manufacturedMaterial>
                </manufacturedProduct>
              </consumable>
            </substanceAdministration>
          </entry>
        </section>
      </component>
      <component>
        <section>
          <templateId root="2.16.840.1.113883.10.20.1.11"/>
          <code code="11450-4" codeSystem="2.16.840.1.113883.6.1" displayName="Problem list"/>
          <title>Problemas</title>
          <entry typeCode="DRIV">
            <observation classCode="OBS" moodCode="EVN">
              <code code="64572001" codeSystem="2.16.840.1.113883.6.96" displayName="Condición"/>
              <statusCode code="completed"/>
              <effectiveTime><low value="20200101"/></effectiveTime>
              <value xsi:type="CD" code="44054006" codeSystem="2.16.840.1.113883.6.96"
                     displayName="Diabetes mellitus tipo 2"/>
            </observation>
          </entry>
          <component>
            <section>
              <code code="8716-3" codeSystem="2.16.840.1.113883.6.1" displayName="Vital signs"/>
              <title>Signos vitales</title>
              <entry>
                <observation classCode="OBS" moodCode="EVN">
                  <code code="8480-6" codeSystem="2.16.840.1.113883.6.1" displayName="Presión sistólica"/>
                  <value xsi:type="PQ" value="120" unit="mm[Hg]"/>
                </observation>
              </entry>
            </section>
          </component>
        </section>
      </component>
      <component>
        <section>
          <code code="47519-4" codeSystem="2.16.840.1.113883.6.1" displayName="Procedures"/>
          <title>Procedimientos</title>
          <entry>
            <procedure classCode="PROC" moodCode="EVN">
              <code code="73761001" codeSystem="2.16.840.1.113883.6.96" displayName="Colonoscopia"/>
              <statusCode code="completed"/>
              <effectiveTime value="20230510"/>
            </procedure>
          </entry>
          <entry>
            <act classCode="ACT" moodCode="EVN">
              <code code="X1"/>
            </act>
          </entry>
        </section>
      </component>
    </structuredBody>
  </component>
</ClinicalDocument>
"""

MINIMAL_XML = '<ClinicalDocument><code code="34133-9"/></ClinicalDocument>'


@pytest.fixture
def ccd_tree():
    return parse_text(CCD_XML)


@pytest.fixture
def ccd_doc(ccd_tree):
    """The sample CCD extracted into a ClinicalDocument."""
    return extract_document(ccd_tree)


@pytest.fixture
def minimal_doc():
    return extract_document(parse_text(MINIMAL_XML))


@pytest.fixture
def ccd_file(tmp_path):
    """The sample CCD written to a temporary file."""
    path = tmp_path / "ccd_sample.xml"
    path.write_text(CCD_XML, encoding="utf-8")
    return str(path)


@pytest.fixture
def ccd_xml():
    return CCD_XML
