"""
Core Layer - Shared Services for the Data-Sheet Codec

Modules:
- errors: exception hierarchy (fatal vs. recoverable)
- records: wire grammars (field records, column identifiers, enumerations)
- snapshot: read-only dictionary view with the final merge step
- references: reference collector used by the exporter
- error_policy: per-category error continuation policy used by the importer
"""

from .errors import (
    AmbiguousEnumerationError,
    CodecError,
    DocumentIOError,
    ExportError,
    FatalImportError,
    ImportAbortedError,
    MalformedDocumentError,
    MergeConflictError,
    RecordFormatError,
    UnknownTableTypeError,
)
from .error_policy import (
    CategoryState,
    ContinuationChoice,
    ErrorCategory,
    ErrorContinuationPolicy,
    always_abort,
    always_ignore_all,
)
from .references import ReferenceCollector
from .snapshot import SchemaSnapshot

__all__ = [
    # Errors
    'AmbiguousEnumerationError',
    'CodecError',
    'DocumentIOError',
    'ExportError',
    'FatalImportError',
    'ImportAbortedError',
    'MalformedDocumentError',
    'MergeConflictError',
    'RecordFormatError',
    'UnknownTableTypeError',
    # Error policy
    'CategoryState',
    'ContinuationChoice',
    'ErrorCategory',
    'ErrorContinuationPolicy',
    'always_abort',
    'always_ignore_all',
    # Services
    'ReferenceCollector',
    'SchemaSnapshot',
]
