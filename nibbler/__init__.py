"""
Declarative extraction of structured records from HTML and JSON documents.
"""

from .errors import NibblerError, InvalidRuleDeclaration, InvalidDelegate, SelectorSyntaxError
from .models import Rule, ConversionFunction, NestedSchema, SchemaDefinition, RuleDefinition
from .rules import RuleTable
from .record import Record
from .documents import Document, HtmlDocument, JsonDocument, to_document
from .jsonpath import JsonPath, compile_path
from .schema import Schema, JsonSchema, load_schema

__version__ = "0.4.0"

__all__ = [
    "NibblerError",
    "InvalidRuleDeclaration",
    "InvalidDelegate",
    "SelectorSyntaxError",
    "Rule",
    "ConversionFunction",
    "NestedSchema",
    "SchemaDefinition",
    "RuleDefinition",
    "RuleTable",
    "Record",
    "Document",
    "HtmlDocument",
    "JsonDocument",
    "to_document",
    "JsonPath",
    "compile_path",
    "Schema",
    "JsonSchema",
    "load_schema",
]
