"""Engineering data-sheet interchange codec.

Translates relational data-dictionary tables to and from a namespaced
data-sheet document.

Usage:
    from pathlib import Path
    from datasheet_codec import SchemaSnapshot, export_to_datasheet_xml

    snapshot = SchemaSnapshot.from_yaml(Path("dictionary.yaml"))
    export_to_datasheet_xml(snapshot, ["Thermo"], Path("thermo.xml"))
"""

from datasheet_codec.core import (
    ErrorCategory,
    ErrorContinuationPolicy,
    SchemaSnapshot,
    always_abort,
    always_ignore_all,
)
from datasheet_codec.exporters import (
    DatasheetExporter,
    DatasheetXMLWriter,
    ExportOptions,
    export_to_datasheet_xml,
)
from datasheet_codec.importers import (
    DatasheetImporter,
    DatasheetXMLReader,
    ImportResult,
    ImportScope,
    import_from_datasheet_xml,
)

__version__ = "0.1.0"

__all__ = [
    "DatasheetExporter",
    "DatasheetImporter",
    "DatasheetXMLReader",
    "DatasheetXMLWriter",
    "ErrorCategory",
    "ErrorContinuationPolicy",
    "ExportOptions",
    "ImportResult",
    "ImportScope",
    "SchemaSnapshot",
    "always_abort",
    "always_ignore_all",
    "export_to_datasheet_xml",
    "import_from_datasheet_xml",
]
