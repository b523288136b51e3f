"""Output document generation"""
from .generator import OutputGenerator, confidence_level
from .type_mapper import SQLTypeMapper
from .documents import (
    AnalysisDocuments,
    SchemaDocument,
    RelationshipsDocument,
    AutomationRulesDocument,
    ConfirmationUIDocument,
    DOCUMENT_FILES,
)

__all__ = [
    'OutputGenerator',
    'confidence_level',
    'SQLTypeMapper',
    'AnalysisDocuments',
    'SchemaDocument',
    'RelationshipsDocument',
    'AutomationRulesDocument',
    'ConfirmationUIDocument',
    'DOCUMENT_FILES',
]
