"""Reference collector for one export call.

Tracks which table types, primitive data types, macros and variable paths
the exported tables actually touch, so the exporter emits only the shared
definitions that are needed. Every record operation is an idempotent,
insertion-ordered set add; macro names compare case-insensitively.
"""

from typing import Dict, List

from datasheet_codec.models.dictionary import VariablePathEntry


class ReferenceCollector:
    """Insertion-ordered sets of referenced shared definitions."""

    def __init__(self) -> None:
        self._table_types: Dict[str, None] = {}
        self._primitive_types: Dict[str, None] = {}
        # Keyed by lower-cased name; value keeps the first spelling seen
        self._macros: Dict[str, str] = {}
        self._variable_paths: Dict[str, VariablePathEntry] = {}

    def record_table_type(self, name: str) -> None:
        self._table_types.setdefault(name, None)

    def record_primitive_type(self, name: str) -> None:
        self._primitive_types.setdefault(name, None)

    def record_macro(self, name: str) -> bool:
        """Record a macro name.

        Returns:
            True if the name was not recorded before
        """
        key = name.lower()
        if key in self._macros:
            return False
        self._macros[key] = name
        return True

    def record_variable_path(self, entry: VariablePathEntry) -> None:
        self._variable_paths.setdefault(entry.path, entry)

    def has_macro(self, name: str) -> bool:
        return name.lower() in self._macros

    @property
    def table_types(self) -> List[str]:
        return list(self._table_types)

    @property
    def primitive_types(self) -> List[str]:
        return list(self._primitive_types)

    @property
    def macros(self) -> List[str]:
        return list(self._macros.values())

    @property
    def variable_paths(self) -> List[VariablePathEntry]:
        return list(self._variable_paths.values())
