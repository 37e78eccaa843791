"""Fixed lookup tables used by the semantic analyzer.

All tables are read-only mappings built once at import time.
"""

from __future__ import annotations

from types import MappingProxyType

CDA_TYPE_ID_ROOT = "2.16.840.1.113883.1.3"

UNKNOWN_DOCUMENT_TYPE = "Tipo desconocido"
UNKNOWN_TERMINOLOGY = "Sistema desconocido"
UNKNOWN_TEMPLATE = "Plantilla desconocida"
UNKNOWN_DATA_TYPE = "Tipo desconocido"

# LOINC document type codes -> document type label
DOCUMENT_TYPES = MappingProxyType({
    "34133-9": "Nota de Resumen de Episodio",
    "11488-4": "Nota de Consulta",
    "18842-5": "Carta de Alta",
    "11506-3": "Informe de Progreso",
    "28570-0": "Documento de Instrucciones Previas",
})

# LOINC section codes -> clinical domain
SECTION_DOMAINS = MappingProxyType({
    "10160-0": "Farmacología",
    "48765-2": "Alergias e Intolerancias",
    "11450-4": "Lista de Problemas",
    "47519-4": "Procedimientos",
    "30954-2": "Resultados de Laboratorio",
    "8716-3": "Signos Vitales",
    "46240-8": "Historia de Encuentros",
    "10157-6": "Historia Familiar",
    "10164-2": "Historia Social",
})

# Coding system OID -> friendly name
TERMINOLOGY_SYSTEMS = MappingProxyType({
    "2.16.840.1.113883.6.1": "LOINC",
    "2.16.840.1.113883.6.88": "RxNorm",
    "2.16.840.1.113883.6.96": "SNOMED CT",
    "2.16.840.1.113883.6.12": "CPT",
    "2.16.840.1.113883.6.103": "ICD-9-CM",
    "2.16.840.1.113883.6.90": "ICD-10-CM",
    "2.16.840.1.113883.5.1": "HL7 Administrative Gender",
    "2.16.840.1.113883.5.25": "HL7 Confidentiality",
    "2.16.840.1.113883.5.83": "HL7 Observation Interpretation",
})

# Template OID -> template name
TEMPLATE_NAMES = MappingProxyType({
    "2.16.840.1.113883.10.20.1": "CCD Document",
    "2.16.840.1.113883.10.20.1.11": "Medications Section",
    "2.16.840.1.113883.10.20.1.8": "Allergies Section",
    "2.16.840.1.113883.10.20.1.3": "Problems Section",
    "2.16.840.1.113883.10.20.1.12": "Procedures Section",
    "2.16.840.1.113883.10.20.1.14": "Results Section",
    "2.16.840.1.113883.10.20.1.16": "Vital Signs Section",
})

# Observation value type tag -> description
DATA_TYPE_DESCRIPTIONS = MappingProxyType({
    "CD": "Datos Codificados",
    "PQ": "Cantidad Física",
    "ST": "Cadena de Texto",
    "TS": "Marca de Tiempo",
    "INT": "Número Entero",
    "REAL": "Número Real",
    "ED": "Datos Encapsulados",
})

RELATIONSHIP_OBSERVATION_CODE = "Observación-Código"
RELATIONSHIP_PATIENT_MEDICATION = "Paciente-Medicamento"
