"""Exception hierarchy for the data-sheet codec.

Fatal errors abort a whole export or import run and always reach the caller.
``RecordFormatError`` is the recoverable kind: the importer catches it at
each per-entity site and hands it to the error continuation policy.
"""

from typing import Optional


class CodecError(Exception):
    """Base exception for codec errors."""
    pass


class DocumentIOError(CodecError, IOError):
    """Raised when a document cannot be read from or written to its sink."""
    pass


class ExportError(CodecError):
    """Raised when an export cannot proceed."""
    pass


class RecordFormatError(CodecError, ValueError):
    """Raised when a single archived record is malformed or incomplete."""
    pass


class FatalImportError(CodecError):
    """Base exception for errors that abort a whole import."""
    pass


class MalformedDocumentError(FatalImportError):
    """Raised when the document structure itself is invalid."""
    pass


class UnknownTableTypeError(FatalImportError):
    """Raised when a table namespace references an undeclared table type."""

    def __init__(self, type_name: str, table_name: Optional[str] = None):
        self.type_name = type_name
        self.table_name = table_name
        message = f"Unknown table type '{type_name}'"
        if table_name:
            message += f" referenced by table '{table_name}'"
        super().__init__(message)


class MergeConflictError(FatalImportError):
    """Raised when an imported shared definition differs from a known one."""

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(
            f"Imported {kind} '{name}' doesn't match the existing definition"
        )


class AmbiguousEnumerationError(FatalImportError):
    """Raised when two enumerations claim the same command argument."""

    def __init__(self, command: str, argument_index: int):
        self.command = command
        self.argument_index = argument_index
        super().__init__(
            f"More than one enumeration claims argument {argument_index + 1} "
            f"of command '{command}'"
        )


class ImportAbortedError(FatalImportError):
    """Raised when the error continuation policy stops the import."""

    def __init__(self, category, message: str):
        self.category = category
        self.message = message
        super().__init__(message)
