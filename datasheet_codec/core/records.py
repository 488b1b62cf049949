"""Wire grammars shared by the exporter and the importer.

Covers:
    - Field records: comma-separated, optionally double-quoted fields
      (``"a","b,c"`` is two fields; ``""`` inside quotes is a literal quote)
    - Column identifiers: ``"<column name> : Row: <row>"``
    - Bit-length suffixes: ``"<variable name>:<bits>"``
    - Table namespace names: ``"Table: <table> [: <system>]"``
    - Enumeration strings: ``value<sep>label`` pairs joined by a pair
      separator; both separators are inferred from the text
    - Macro references: ``##name##``
"""

import csv
import io
import re
from typing import List, Optional, Sequence, Tuple

from .errors import RecordFormatError

TABLE_TAG = "Table"

COLUMN_ROW_TAG = "Row"

# Macro reference embedded in cell text
MACRO_PATTERN = re.compile(r"##([^#]+?)##")

_TABLE_NAMESPACE_PATTERN = re.compile(r"^[^:]+?:[^:]+?(?::[^:]*)?$")

_LEADING_VALUE_PATTERN = re.compile(r"^\s*[+-]?\d+\s*(.)")


# ============================================================================
# Field records
# ============================================================================

def encode_record(fields: Sequence[object]) -> str:
    """Quote every field and join them with commas.

    Examples:
        >>> encode_record(["uint8", "1", "unsigned integer"])
        '"uint8","1","unsigned integer"'
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="")
    writer.writerow(["" if value is None else value for value in fields])
    return buffer.getvalue()


def decode_record(text: Optional[str]) -> List[str]:
    """Split a field record into its fields.

    Commas inside double quotes are literal and ``""`` is a literal quote.
    Every field is trimmed.

    Raises:
        RecordFormatError: If a quoted field is not terminated or is followed
            by anything but a comma
    """
    if not text:
        return []

    reader = csv.reader([text], skipinitialspace=True, strict=True)
    try:
        row = next(reader, [])
    except csv.Error as e:
        raise RecordFormatError(
            f"Unterminated or malformed quoted field in record '{text}'; {e}"
        ) from e
    return [field.strip() for field in row]


def format_bool(value: bool) -> str:
    return "true" if value else "false"


def parse_bool(text: str) -> bool:
    """Parse ``true``/``false`` (case-insensitive).

    Raises:
        RecordFormatError: For any other text
    """
    lowered = (text or "").strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise RecordFormatError(f"Invalid boolean value '{text}'")


# ============================================================================
# Column identifiers and bit lengths
# ============================================================================

def column_identifier(column_name: str, row: int) -> str:
    """Build the archive key for one cell.

    Examples:
        >>> column_identifier("Units", 3)
        'Units : Row: 3'
    """
    return f"{column_name} : {COLUMN_ROW_TAG}: {row}"


def parse_column_identifier(key: str) -> Tuple[str, int]:
    """Split an archive key into column name and row index.

    Raises:
        RecordFormatError: If the key does not follow the grammar
    """
    parts = key.split(":")
    if len(parts) != 3 or parts[1].strip() != COLUMN_ROW_TAG:
        raise RecordFormatError(f"Invalid column reference '{key}'")

    column_name = parts[0].strip()
    try:
        row = int(parts[2].strip())
    except ValueError:
        raise RecordFormatError(f"Invalid row number in column reference '{key}'")

    if not column_name or row < 0:
        raise RecordFormatError(f"Invalid column reference '{key}'")
    return column_name, row


def split_bit_length(text: str) -> Tuple[str, Optional[str]]:
    """Separate a ``name:bits`` suffix from a variable name.

    Examples:
        >>> split_bit_length("status:2")
        ('status', '2')
        >>> split_bit_length("temp")
        ('temp', None)
    """
    parts = text.split(":")
    if len(parts) == 2:
        return parts[0], parts[1]
    return parts[0], None


# ============================================================================
# Namespace names
# ============================================================================

def table_namespace_name(table_name: str, system_name: Optional[str]) -> str:
    """Build a per-table namespace name.

    Examples:
        >>> table_namespace_name("Thermo", "DefaultSystem")
        'Table: Thermo : DefaultSystem'
    """
    name = f"{TABLE_TAG}: {table_name}"
    if system_name:
        name += f" : {system_name}"
    return name


def parse_table_namespace_name(name: str) -> Optional[Tuple[str, Optional[str]]]:
    """Return (table name, system name) for a per-table namespace name.

    Returns None if the name is not a table namespace name.
    """
    if not name.startswith(TABLE_TAG + ":") or not _TABLE_NAMESPACE_PATTERN.match(name):
        return None

    parts = name.split(":")
    table_name = parts[1].strip()
    system_name = parts[2].strip() if len(parts) > 2 and parts[2].strip() else None
    return table_name, system_name


# ============================================================================
# Enumerations
# ============================================================================

def enumeration_value_separator(enumeration: str) -> Optional[str]:
    """Infer the character separating a value from its label.

    It is the first non-whitespace character after the leading integer and
    must not be a letter or digit.
    """
    match = _LEADING_VALUE_PATTERN.match(enumeration)
    if match is None or match.group(1).isspace() or match.group(1).isalnum():
        return None
    return match.group(1)


def enumeration_pair_separator(enumeration: str, value_separator: str) -> Optional[str]:
    """Infer the character separating one value/label pair from the next.

    It is the last non-whitespace character before the second
    ``<integer><value separator>`` occurrence. Returns None when the string
    holds fewer than two pairs.

    Raises:
        RecordFormatError: If the inferred separator is a letter or digit
    """
    pattern = re.compile(
        r"(\S)\s*[+-]?\d+\s*" + re.escape(value_separator)
    )
    first = enumeration.find(value_separator)
    match = pattern.search(enumeration, first + len(value_separator))
    if match is None:
        return None
    if match.group(1).isalnum():
        raise RecordFormatError(
            f"separator character between enumerated pairs missing in '{enumeration}'"
        )
    return match.group(1)


def parse_enumeration(enumeration: str) -> List[Tuple[int, str]]:
    """Parse an enumeration string into (value, label) pairs.

    Examples:
        >>> parse_enumeration("0|OFF,1|ON")
        [(0, 'OFF'), (1, 'ON')]
        >>> parse_enumeration("0 = SAFE; 1 = RUN")
        [(0, 'SAFE'), (1, 'RUN')]

    Raises:
        RecordFormatError: If a separator cannot be inferred or a value is
            not an integer
    """
    value_separator = enumeration_value_separator(enumeration)
    if value_separator is None:
        raise RecordFormatError(
            "separator character between enumeration value and label missing"
        )

    pair_separator = enumeration_pair_separator(enumeration, value_separator)
    if pair_separator is None:
        pairs = [enumeration]
    else:
        pairs = enumeration.split(pair_separator)

    result: List[Tuple[int, str]] = []
    for pair in pairs:
        if not pair.strip():
            continue
        parts = pair.split(value_separator, 1)
        if len(parts) != 2:
            raise RecordFormatError(
                "separator character between enumerated pairs missing"
            )
        try:
            value = int(parts[0].strip())
        except ValueError:
            raise RecordFormatError(f"Enumeration value '{parts[0].strip()}' is not an integer")
        result.append((value, parts[1].strip()))
    return result


def format_enumeration(pairs: Sequence[Tuple[int, str]]) -> str:
    """Rebuild an enumeration string from (value, label) pairs.

    Examples:
        >>> format_enumeration([(0, "OFF"), (1, "ON")])
        '0 | OFF, 1 | ON'
    """
    return ", ".join(f"{value} | {label}" for value, label in pairs)


# ============================================================================
# Macros
# ============================================================================

def referenced_macros(text: Optional[str]) -> List[str]:
    """Names of the macros referenced in ``text``, in order of appearance."""
    if not text:
        return []
    return MACRO_PATTERN.findall(text)
