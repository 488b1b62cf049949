"""
Schema Snapshot - Read-Only Dictionary View for the Codec

The host hands the codec a snapshot of its data dictionary at construction
time: table types, primitive data types, macros, reserved message IDs and the
tables themselves. The exporter and importer only read from it; the single
mutating entry point is ``merge``, which the importer calls once at the end of
a successful run.

Merging is all-or-nothing: every incoming definition is checked against the
known ones first (identical definitions merge silently, a same-named but
different definition is a MergeConflictError naming it) and only then are the
new definitions added.

Usage:
    from datasheet_codec.core.snapshot import SchemaSnapshot

    snapshot = SchemaSnapshot.from_yaml(Path("dictionary.yaml"))
    table = snapshot.load_table("Thermo")
    text = snapshot.replace_macros("##SIZE##")
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

import yaml

from datasheet_codec.models.dictionary import (
    MacroDefinition,
    PrimitiveTypeDefinition,
    ReservedIdDefinition,
    TableDefinition,
    TableTypeDefinition,
)

from .errors import ExportError, MergeConflictError
from .records import MACRO_PATTERN, referenced_macros

logger = logging.getLogger(__name__)


class SchemaSnapshot:
    """Read-only view of the host's data dictionary."""

    def __init__(
        self,
        table_types: Optional[Iterable[TableTypeDefinition]] = None,
        primitive_types: Optional[Iterable[PrimitiveTypeDefinition]] = None,
        macros: Optional[Iterable[MacroDefinition]] = None,
        reserved_ids: Optional[Iterable[ReservedIdDefinition]] = None,
        tables: Optional[Iterable[TableDefinition]] = None,
        name: str = "",
        description: str = "",
    ):
        self.name = name
        self.description = description
        self._table_types: Dict[str, TableTypeDefinition] = {
            definition.name: definition for definition in (table_types or [])
        }
        self._primitive_types: List[PrimitiveTypeDefinition] = list(primitive_types or [])
        self._macros: Dict[str, MacroDefinition] = {
            macro.name.lower(): macro for macro in (macros or [])
        }
        self._reserved_ids: List[ReservedIdDefinition] = list(reserved_ids or [])
        self._tables: Dict[str, TableDefinition] = {
            table.name: table for table in (tables or [])
        }

    # ------------------------------------------------------------------
    # Loaders
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SchemaSnapshot":
        """Build a snapshot from a plain dictionary (e.g. parsed YAML)."""
        return cls(
            table_types=[
                TableTypeDefinition.model_validate(item)
                for item in data.get("table_types") or []
            ],
            primitive_types=[
                PrimitiveTypeDefinition.model_validate(item)
                for item in data.get("primitive_types") or []
            ],
            macros=[
                MacroDefinition.model_validate(item)
                for item in data.get("macros") or []
            ],
            reserved_ids=[
                ReservedIdDefinition.model_validate(item)
                for item in data.get("reserved_ids") or []
            ],
            tables=[
                TableDefinition.model_validate(item)
                for item in data.get("tables") or []
            ],
            name=data.get("name", ""),
            description=data.get("description", ""),
        )

    @classmethod
    def from_yaml(cls, path: Path) -> "SchemaSnapshot":
        """Load a snapshot from a YAML dictionary dump.

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the YAML is invalid or not a mapping
        """
        if not path.exists():
            raise FileNotFoundError(f"Dictionary file not found: {path}")

        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in dictionary file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Dictionary file {path} must contain a mapping")

        snapshot = cls.from_dict(data)
        logger.info(
            f"Loaded dictionary {path}: {len(snapshot._table_types)} table types, "
            f"{len(snapshot._tables)} tables"
        )
        return snapshot

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def table_types(self) -> List[TableTypeDefinition]:
        return list(self._table_types.values())

    @property
    def primitive_types(self) -> List[PrimitiveTypeDefinition]:
        return list(self._primitive_types)

    @property
    def macros(self) -> List[MacroDefinition]:
        return list(self._macros.values())

    @property
    def reserved_ids(self) -> List[ReservedIdDefinition]:
        return list(self._reserved_ids)

    @property
    def table_names(self) -> List[str]:
        return list(self._tables)

    def get_table_type(self, name: str) -> Optional[TableTypeDefinition]:
        return self._table_types.get(name)

    def get_primitive_type(self, name: str) -> Optional[PrimitiveTypeDefinition]:
        """Find a primitive type by user name or C name."""
        if not name:
            return None
        for primitive in self._primitive_types:
            if name in (primitive.user_name, primitive.c_name):
                return primitive
        return None

    def is_primitive(self, name: str) -> bool:
        return self.get_primitive_type(name) is not None

    def get_macro(self, name: str) -> Optional[MacroDefinition]:
        return self._macros.get(name.lower())

    def load_table(self, name: str) -> Optional[TableDefinition]:
        """Return a copy of a table, or None if the table does not exist.

        Raises:
            ExportError: If the table's type is unknown or its grid width
                differs from the type's column count
        """
        table = self._tables.get(name)
        if table is None:
            return None

        table_type = self.get_table_type(table.type_name)
        if table_type is None:
            raise ExportError(
                f"Table '{name}' references unknown table type '{table.type_name}'"
            )

        for index, row in enumerate(table.rows):
            if len(row) != table_type.column_count:
                raise ExportError(
                    f"Table '{name}' row {index} has {len(row)} cells; "
                    f"table type '{table_type.name}' has {table_type.column_count} columns"
                )

        return table.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Macros
    # ------------------------------------------------------------------

    def referenced_macros(self, text: Optional[str]) -> List[str]:
        """Names of the known macros referenced in ``text``."""
        return [name for name in referenced_macros(text) if self.get_macro(name) is not None]

    def replace_macros(self, text: str) -> str:
        """Replace every known macro reference with its literal value.

        Macro values that themselves reference macros are expanded too;
        a self-referencing chain is left unexpanded at the point it repeats.
        """
        return self._expand(text, set())

    def _expand(self, text: str, active: Set[str]) -> str:
        def substitute(match) -> str:
            name = match.group(1)
            macro = self.get_macro(name)
            if macro is None or name.lower() in active:
                return match.group(0)
            return self._expand(macro.value, active | {name.lower()})

        return MACRO_PATTERN.sub(substitute, text)

    def replace_all_macros(self, rows: Sequence[Sequence[str]]) -> List[List[str]]:
        return [[self.replace_macros(cell) for cell in row] for row in rows]

    # ------------------------------------------------------------------
    # Merge
    # ------------------------------------------------------------------

    def merge(
        self,
        table_types: Sequence[TableTypeDefinition] = (),
        primitive_types: Sequence[PrimitiveTypeDefinition] = (),
        macros: Sequence[MacroDefinition] = (),
        reserved_ids: Sequence[ReservedIdDefinition] = (),
    ) -> None:
        """Merge imported definitions into the snapshot.

        Nothing is changed unless every definition is either new or
        identical to the known one.

        Raises:
            MergeConflictError: On the first same-named, different definition
        """
        new_table_types = self._check_table_types(table_types)
        new_primitives = self._check_primitive_types(primitive_types)
        new_macros = self._check_macros(macros)

        for table_type in new_table_types:
            self._table_types[table_type.name] = table_type.model_copy(deep=True)

        self._primitive_types.extend(primitive.model_copy() for primitive in new_primitives)

        for macro in new_macros:
            self._macros[macro.name.lower()] = macro.model_copy()

        known_ids = {reserved.ids for reserved in self._reserved_ids}
        for reserved in reserved_ids:
            if reserved.ids not in known_ids:
                known_ids.add(reserved.ids)
                self._reserved_ids.append(reserved.model_copy())

        logger.info(
            f"Merged {len(new_table_types)} table types, {len(new_primitives)} data types, "
            f"{len(new_macros)} macros into the dictionary"
        )

    def _check_table_types(
        self,
        table_types: Sequence[TableTypeDefinition],
    ) -> List[TableTypeDefinition]:
        new: List[TableTypeDefinition] = []
        for table_type in table_types:
            existing = self.get_table_type(table_type.name)
            if existing is None:
                new.append(table_type)
            elif not existing.same_structure(table_type):
                raise MergeConflictError("table type", table_type.name)
        return new

    def _check_primitive_types(
        self,
        primitive_types: Sequence[PrimitiveTypeDefinition],
    ) -> List[PrimitiveTypeDefinition]:
        new: List[PrimitiveTypeDefinition] = []
        for primitive in primitive_types:
            existing = self.get_primitive_type(primitive.name)
            if existing is None:
                new.append(primitive)
            elif not primitives_match(existing, primitive):
                raise MergeConflictError("data type", primitive.name)
        return new

    def _check_macros(self, macros: Sequence[MacroDefinition]) -> List[MacroDefinition]:
        new: List[MacroDefinition] = []
        for macro in macros:
            existing = self.get_macro(macro.name)
            if existing is None:
                new.append(macro)
            elif existing.value != macro.value:
                raise MergeConflictError("macro", macro.name)
        return new


def primitives_match(
    first: PrimitiveTypeDefinition,
    second: PrimitiveTypeDefinition,
) -> bool:
    """True if every field populated on both definitions is equal."""
    for attribute in ("user_name", "c_name", "size_in_bytes", "base_type"):
        left = getattr(first, attribute)
        right = getattr(second, attribute)
        if left in (None, "") or right in (None, ""):
            continue
        if left != right:
            return False
    return True
