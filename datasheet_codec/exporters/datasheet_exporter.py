"""Data-Sheet Exporter for Relational Dictionary Tables.

This module converts a selection of dictionary tables into the in-memory
data-sheet Document: one namespace per table plus the shared-definition
registry namespaces the tables actually reference.

Architecture:
    - ReferenceCollector: records table types, primitive types, macros and
      variable paths touched while exporting (scoped to one export call)
    - DatasheetExporter: main export orchestrator
    - Helper methods per table kind (structure, command, opaque) and per
      registry namespace (table types, data types, macros, reserved IDs,
      variable paths)

Every non-empty cell the structural Parameter/Command mapping cannot express
is archived in a "Column data" generic set keyed ``"<column> : Row: <row>"``,
so the importer can rebuild the exact grid.
"""

import logging
from typing import List, Optional, Sequence, Set

from pydantic import BaseModel, Field

from datasheet_codec.config.settings import get_setting
from datasheet_codec.core.errors import RecordFormatError
from datasheet_codec.core.records import (
    column_identifier,
    encode_record,
    format_bool,
    parse_enumeration,
    split_bit_length,
    table_namespace_name,
)
from datasheet_codec.core.references import ReferenceCollector
from datasheet_codec.core.snapshot import SchemaSnapshot
from datasheet_codec.models.dictionary import (
    BaseDataType,
    FieldDefinition,
    InputTypeRole,
    PrimitiveTypeDefinition,
    TableDefinition,
    TableTypeDefinition,
    VariablePathEntry,
)
from datasheet_codec.models.document import (
    Argument,
    Command,
    Document,
    EnumeratedDataType,
    FloatDataType,
    GenericEntry,
    IntegerDataType,
    Namespace,
    Parameter,
    SetRole,
    StringDataType,
)
from datasheet_codec.models.units import PhysicalUnit

logger = logging.getLogger(__name__)


class VariablePathSeparators(BaseModel):
    """Separators used to build the user-formatted variable path alias."""
    path_separator: str = "_"
    hide_data_types: bool = True
    type_name_separator: str = "_"


class ExportOptions(BaseModel):
    """Options for one export call.

    Attributes:
        substitute_macros: Replace macro references with their values
        include_reserved_ids: Emit the reserved message ID registry
        include_variable_paths: Emit the variable path registry
        system_field_key: Data field holding a table's system name
        variable_path_separators: Alias formatting for variable paths
    """
    substitute_macros: bool = False
    include_reserved_ids: bool = False
    include_variable_paths: bool = False
    system_field_key: str = Field(default_factory=lambda: get_setting('system_field_key'))
    variable_path_separators: VariablePathSeparators = Field(
        default_factory=VariablePathSeparators
    )


class DatasheetExporter:
    """Exports dictionary tables to a data-sheet Document.

    Usage:
        exporter = DatasheetExporter(snapshot)
        document = exporter.export(["Thermo"], ExportOptions(substitute_macros=True))
        for warning in exporter.warnings:
            print(warning)

    Architecture:
        1. Reset per-run state (references, warnings, document)
        2. Export each table into its own namespace
        3. Emit the referenced table types and primitive data types
        4. Emit macros (unless substituted), reserved IDs and variable paths
           when requested
    """

    def __init__(self, snapshot: SchemaSnapshot):
        """Initialize exporter.

        Args:
            snapshot: Read-only dictionary view to export from
        """
        self.snapshot = snapshot
        self.references = ReferenceCollector()
        self.warnings: List[str] = []
        self.document: Optional[Document] = None

    def export(
        self,
        table_names: Sequence[str],
        options: Optional[ExportOptions] = None,
    ) -> Document:
        """Export the named tables.

        Args:
            table_names: Tables to export, in namespace order
            options: Export options (defaults to ExportOptions())

        Returns:
            The built Document

        Raises:
            ExportError: If a table's grid does not match its table type
        """
        options = options or ExportOptions()

        # Reset per-run state for a fresh export
        self.references = ReferenceCollector()
        self.warnings = []
        self.document = Document(
            name=self.snapshot.name or None,
            description=self.snapshot.description or None,
        )

        # A table listed twice is exported once
        for table_name in dict.fromkeys(table_names):
            self._export_table(table_name, options)

        self._build_table_types_namespace()
        self._build_data_types_namespace()

        if not options.substitute_macros:
            self._build_macros_namespace()

        if options.include_reserved_ids:
            self._build_reserved_ids_namespace()

        if options.include_variable_paths:
            self._build_variable_paths_namespace()

        logger.info(
            f"Exported {len(table_names)} tables into "
            f"{len(self.document.namespaces)} namespaces"
        )
        return self.document

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def _export_table(self, table_name: str, options: ExportOptions) -> None:
        table = self.snapshot.load_table(table_name)
        if table is None:
            self._warn(f"Table '{table_name}' not found; skipped")
            return

        table_type = self.snapshot.get_table_type(table.type_name)
        self.references.record_table_type(table_type.name)

        if options.substitute_macros:
            rows = self.snapshot.replace_all_macros(table.rows)
        else:
            rows = table.rows
            for row in rows:
                for cell in row:
                    for macro in self.snapshot.referenced_macros(cell):
                        self._record_macro(macro)

        system_name = (
            table.field_value(options.system_field_key)
            or get_setting('default_system_name')
        )
        namespace = self.document.get_or_add_namespace(
            table_namespace_name(table.name, system_name),
            table.description or None,
        )

        namespace.add_generic_entries(
            SetRole.TABLE_TYPE,
            [GenericEntry(key=SetRole.TABLE_TYPE.value, value=table_type.name)],
        )
        namespace.add_generic_entries(
            SetRole.DATA_FIELD,
            self._data_field_entries(table.fields, SetRole.DATA_FIELD.value),
        )

        if table_type.is_structure:
            archived = self._export_structure(namespace, table, table_type, rows, options)
        elif table_type.is_command:
            archived = self._export_commands(namespace, table_type, rows)
        else:
            archived = self._archive_cells(table_type, rows)

        namespace.add_generic_entries(SetRole.COLUMN, archived)
        logger.debug(f"Exported table '{table.name}' as namespace '{namespace.name}'")

    def _export_structure(
        self,
        namespace: Namespace,
        table: TableDefinition,
        table_type: TableTypeDefinition,
        rows: List[List[str]],
        options: ExportOptions,
    ) -> List[GenericEntry]:
        """Emit one Parameter per row and archive the remaining cells."""
        var_column = table_type.column_index(InputTypeRole.VARIABLE)
        type_column = table_type.column_index(InputTypeRole.PRIM_AND_STRUCT)
        bit_column = table_type.column_index(InputTypeRole.BIT_LENGTH)
        enum_columns = table_type.column_indices(InputTypeRole.ENUMERATION)
        units_column = table_type.column_index(InputTypeRole.UNITS)
        desc_column = table_type.column_index(InputTypeRole.DESCRIPTION)

        archived: List[GenericEntry] = []

        for row_index, row in enumerate(rows):
            variable_name, bit_length = split_bit_length(row[var_column])
            data_type = row[type_column]
            enumerations: List[str] = []
            units = None
            description = None

            for column, cell in enumerate(row):
                if column == var_column:
                    continue

                # The bit length suffix only survives when the type has a bit length column
                if column == bit_column and not cell and bit_length:
                    cell = bit_length

                if not cell:
                    continue

                archived.append(GenericEntry(
                    key=column_identifier(table_type.columns[column].name, row_index),
                    value=cell,
                ))

                if column in enum_columns:
                    enumerations.append(cell)
                elif column == units_column:
                    units = cell
                elif column == desc_column:
                    description = cell

            self._add_parameter(
                namespace, variable_name, data_type, enumerations, units, description
            )

            if options.include_variable_paths and variable_name:
                self.references.record_variable_path(
                    self._variable_path(table.name, data_type, variable_name, options)
                )

        return archived

    def _add_parameter(
        self,
        namespace: Namespace,
        name: str,
        data_type: str,
        enumerations: List[str],
        units: Optional[str],
        description: Optional[str],
    ) -> None:
        parameter = Parameter(name=name, type=data_type or None, description=description)

        if units:
            unit = PhysicalUnit.parse(units)
            if unit is None:
                logger.warning(
                    f"Unit '{units}' of parameter '{name}' in '{namespace.name}' "
                    f"is not a recognized unit; no unit attached"
                )
            parameter.unit = unit

        primitive = self.snapshot.get_primitive_type(data_type)
        if primitive is not None:
            self.references.record_primitive_type(primitive.name)
            for enumeration in enumerations:
                enum_type = self._enumerated_type(namespace, name, enumeration, primitive)
                if enum_type is not None:
                    namespace.data_types.append(enum_type)

        namespace.parameters.append(parameter)

    def _export_commands(
        self,
        namespace: Namespace,
        table_type: TableTypeDefinition,
        rows: List[List[str]],
    ) -> List[GenericEntry]:
        """Emit one Command per row; argument groups become Arguments."""
        groups = table_type.argument_groups()
        name_column = table_type.column_index(InputTypeRole.COMMAND_NAME)
        desc_column = table_type.command_description_index()
        grouped: Set[int] = {column for group in groups for column in group.columns()}

        archived: List[GenericEntry] = []

        for row_index, row in enumerate(rows):
            command_name = row[name_column]
            command = Command(
                name=command_name,
                description=_cell(row, desc_column) or None,
            )

            for group in groups:
                argument_name = row[group.name]
                argument_type = _cell(row, group.data_type)
                represented: Set[int] = set()

                if argument_name and argument_type:
                    command.arguments.append(Argument(
                        name=argument_name,
                        type=argument_type,
                        description=_cell(row, group.description) or None,
                    ))
                    represented.update(
                        column for column in (group.name, group.data_type, group.description)
                        if column is not None
                    )

                    primitive = self.snapshot.get_primitive_type(argument_type)
                    if primitive is not None:
                        self.references.record_primitive_type(primitive.name)

                    enumeration = _cell(row, group.enumeration)
                    if enumeration:
                        enum_type = self._enumerated_type(
                            namespace, argument_name, enumeration, primitive, owner=command_name
                        )
                        if enum_type is not None:
                            namespace.data_types.append(enum_type)
                            represented.add(group.enumeration)

                for column in group.columns():
                    if column not in represented and row[column]:
                        archived.append(GenericEntry(
                            key=column_identifier(table_type.columns[column].name, row_index),
                            value=row[column],
                        ))

            for column, cell in enumerate(row):
                if column in grouped or column in (name_column, desc_column) or not cell:
                    continue
                archived.append(GenericEntry(
                    key=column_identifier(table_type.columns[column].name, row_index),
                    value=cell,
                ))

            namespace.commands.append(command)

        return archived

    def _archive_cells(
        self,
        table_type: TableTypeDefinition,
        rows: List[List[str]],
    ) -> List[GenericEntry]:
        """Archive every non-empty cell of a table with no structural mapping."""
        return [
            GenericEntry(
                key=column_identifier(table_type.columns[column].name, row_index),
                value=cell,
            )
            for row_index, row in enumerate(rows)
            for column, cell in enumerate(row)
            if cell
        ]

    def _enumerated_type(
        self,
        namespace: Namespace,
        name: str,
        enumeration: str,
        primitive: Optional[PrimitiveTypeDefinition],
        owner: Optional[str] = None,
    ) -> Optional[EnumeratedDataType]:
        """Build an enumerated type declaration, or None if the text is malformed."""
        try:
            labels = parse_enumeration(enumeration)
        except RecordFormatError as e:
            self._warn(
                f"Enumeration '{enumeration}' format invalid in table "
                f"'{namespace.name}'; {e}"
            )
            return None

        return EnumeratedDataType(
            name=name,
            description=owner,
            size_in_bits=primitive.size_in_bits if primitive else None,
            signed=not (primitive and primitive.is_unsigned),
            labels=labels,
        )

    def _variable_path(
        self,
        table_name: str,
        data_type: str,
        variable_name: str,
        options: ExportOptions,
    ) -> VariablePathEntry:
        """Build the application-format path and its user-formatted alias."""
        path = f"{table_name},{data_type}.{variable_name}"
        separators = options.variable_path_separators

        segments = [table_name]
        for segment in path.split(",")[1:]:
            segment_type, _, segment_name = segment.partition(".")
            if separators.hide_data_types:
                segments.append(segment_name)
            else:
                segments.append(segment_type + separators.type_name_separator + segment_name)

        return VariablePathEntry(
            path=path,
            alias=separators.path_separator.join(segments),
        )

    def _record_macro(self, name: str) -> None:
        """Record a macro and every macro its value references."""
        if not self.references.record_macro(name):
            return
        macro = self.snapshot.get_macro(name)
        if macro is not None:
            for nested in self.snapshot.referenced_macros(macro.value):
                self._record_macro(nested)

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    # ------------------------------------------------------------------
    # Registry namespaces
    # ------------------------------------------------------------------

    @staticmethod
    def _data_field_entries(
        fields: Sequence[FieldDefinition],
        key: str,
    ) -> List[GenericEntry]:
        return [
            GenericEntry(
                key=key,
                value=encode_record([
                    data_field.name,
                    data_field.description,
                    data_field.size,
                    data_field.input_type.value,
                    format_bool(data_field.required),
                    data_field.applicability.value,
                    data_field.value,
                ]),
            )
            for data_field in fields
        ]

    def _build_table_types_namespace(self) -> None:
        table_types = [
            self.snapshot.get_table_type(name) for name in self.references.table_types
        ]
        table_types = [table_type for table_type in table_types if table_type is not None]
        if not table_types:
            return

        namespace = self.document.get_or_add_namespace(
            SetRole.TABLE_TYPE.value, "Table type definitions"
        )

        entries = []
        for table_type in table_types:
            fields: List[object] = [table_type.description]
            for column in table_type.columns:
                fields.extend([
                    column.name,
                    column.description,
                    column.input_type.value,
                    format_bool(column.unique),
                    format_bool(column.required),
                    format_bool(column.structure_allowed),
                    format_bool(column.pointer_allowed),
                ])
            entries.append(GenericEntry(key=table_type.name, value=encode_record(fields)))
        namespace.add_generic_entries(SetRole.TABLE_TYPE, entries)

        for table_type in table_types:
            namespace.add_generic_entries(
                SetRole.DATA_FIELD,
                self._data_field_entries(
                    table_type.fields,
                    f"{SetRole.DATA_FIELD.value}:{table_type.name}",
                ),
                qualifier=table_type.name,
            )

    def _build_data_types_namespace(self) -> None:
        primitives = [
            self.snapshot.get_primitive_type(name) for name in self.references.primitive_types
        ]
        primitives = [primitive for primitive in primitives if primitive is not None]
        if not primitives:
            return

        namespace = self.document.get_or_add_namespace(
            SetRole.DATA_TYPE.value, "Data type definitions"
        )

        entries = []
        for primitive in primitives:
            declaration = _primitive_declaration(primitive)
            if declaration is not None:
                namespace.data_types.append(declaration)
            entries.append(GenericEntry(
                key=primitive.name,
                value=encode_record([
                    primitive.c_name,
                    "" if primitive.size_in_bytes is None else primitive.size_in_bytes,
                    primitive.base_type.value if primitive.base_type else "",
                ]),
            ))
        namespace.add_generic_entries(SetRole.DATA_TYPE, entries)

    def _build_macros_namespace(self) -> None:
        entries = []
        for name in self.references.macros:
            macro = self.snapshot.get_macro(name)
            if macro is not None:
                entries.append(GenericEntry(key=macro.name, value=encode_record([macro.value])))

        if entries:
            namespace = self.document.get_or_add_namespace(
                SetRole.MACRO.value, "Macro definitions"
            )
            namespace.add_generic_entries(SetRole.MACRO, entries)

    def _build_reserved_ids_namespace(self) -> None:
        entries = [
            GenericEntry(key=reserved.ids, value=encode_record([reserved.description]))
            for reserved in self.snapshot.reserved_ids
        ]
        if entries:
            namespace = self.document.get_or_add_namespace(
                SetRole.RESERVED_MSG_ID.value, "Reserved message ID definitions"
            )
            namespace.add_generic_entries(SetRole.RESERVED_MSG_ID, entries)

    def _build_variable_paths_namespace(self) -> None:
        entries = [
            GenericEntry(key=entry.path, value=encode_record([entry.alias]))
            for entry in self.references.variable_paths
        ]
        if entries:
            namespace = self.document.get_or_add_namespace(
                SetRole.VARIABLE_PATH.value, "Variable paths"
            )
            namespace.add_generic_entries(SetRole.VARIABLE_PATH, entries)


def _cell(row: List[str], column: Optional[int]) -> str:
    if column is None:
        return ""
    return row[column]


def _primitive_declaration(primitive: PrimitiveTypeDefinition):
    """Typed declaration for a primitive, matched once on its base type."""
    if primitive.base_type is None:
        return None
    if primitive.base_type.is_integer:
        return IntegerDataType(
            name=primitive.name,
            size_in_bits=primitive.size_in_bits,
            signed=not primitive.is_unsigned,
        )
    if primitive.base_type == BaseDataType.FLOAT:
        return FloatDataType(name=primitive.name, size_in_bits=primitive.size_in_bits)
    return StringDataType(name=primitive.name)
