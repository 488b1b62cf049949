"""Relational and document models for the data-sheet codec.

- dictionary: table types, primitive types, macros, fields, tables
- document: namespaces, parameter/command sets, generic sets, data types
- units: controlled vocabulary of physical units
"""

from .dictionary import (
    ArgumentColumnGroup,
    BaseDataType,
    ColumnDefinition,
    FieldApplicability,
    FieldDefinition,
    InputTypeRole,
    MacroDefinition,
    PrimitiveTypeDefinition,
    ReservedIdDefinition,
    TableDefinition,
    TableTypeDefinition,
    VariablePathEntry,
)
from .document import (
    Argument,
    Command,
    DataTypeDeclaration,
    Document,
    EnumeratedDataType,
    FloatDataType,
    GenericEntry,
    GenericSet,
    IntegerDataType,
    Namespace,
    Parameter,
    SetRole,
    StringDataType,
)
from .units import PhysicalUnit

__all__ = [
    # Relational side
    "ArgumentColumnGroup",
    "BaseDataType",
    "ColumnDefinition",
    "FieldApplicability",
    "FieldDefinition",
    "InputTypeRole",
    "MacroDefinition",
    "PrimitiveTypeDefinition",
    "ReservedIdDefinition",
    "TableDefinition",
    "TableTypeDefinition",
    "VariablePathEntry",
    # Document side
    "Argument",
    "Command",
    "DataTypeDeclaration",
    "Document",
    "EnumeratedDataType",
    "FloatDataType",
    "GenericEntry",
    "GenericSet",
    "IntegerDataType",
    "Namespace",
    "Parameter",
    "SetRole",
    "StringDataType",
    # Units
    "PhysicalUnit",
]
