"""Data-Sheet Importer for Relational Dictionary Tables.

This module rebuilds draft relational definitions from an in-memory
data-sheet Document and merges the shared ones into the Schema Snapshot.

Resolution order is fixed:

    Pass 1 - shared definitions from the registry namespaces
        - table types (always), with their per-type data fields
        - primitive data types, macros and reserved message IDs
          (ALL_DEFINITIONS scope only)
    Pass 2 - one table per "Table: <name> [: <system>]" namespace
        (a) rows from the ParameterSet or CommandSet, plus table data fields
        (b) command argument enumerations from the embedded enumerated types
        (c) archived "Column data" entries, written only into empty cells
    Post-pass - merge into the snapshot (all-or-nothing)

Every table namespace's type is resolved before any row grid is built, so an
unknown table type fails the import without partial work.

Recoverable per-entry problems (a bad field record, an unknown column name,
...) go through the ErrorContinuationPolicy; fatal ones raise a
FatalImportError subclass.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from pydantic import BaseModel, Field

from datasheet_codec.config.settings import get_setting
from datasheet_codec.core.error_policy import (
    DecisionCallback,
    ErrorCategory,
    ErrorContinuationPolicy,
)
from datasheet_codec.core.errors import (
    AmbiguousEnumerationError,
    MalformedDocumentError,
    MergeConflictError,
    RecordFormatError,
    UnknownTableTypeError,
)
from datasheet_codec.core.records import (
    decode_record,
    format_enumeration,
    parse_bool,
    parse_column_identifier,
    parse_table_namespace_name,
)
from datasheet_codec.core.snapshot import SchemaSnapshot
from datasheet_codec.models.dictionary import (
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
)
from datasheet_codec.models.document import (
    Document,
    FloatDataType,
    GenericEntry,
    IntegerDataType,
    Namespace,
    SetRole,
    StringDataType,
)

from .row_grid import RowGrid

logger = logging.getLogger(__name__)

# Fields per column in a table type record
COLUMN_RECORD_FIELDS = 7

# Fields in a data field record
FIELD_RECORD_FIELDS = 7


class ImportScope(str, Enum):
    """Which parts of a document an import reads."""
    ALL_DEFINITIONS = "all_definitions"
    FIRST_TABLE_ONLY = "first_table_only"


class ImportResult(BaseModel):
    """Draft definitions produced by one import run.

    Attributes:
        table_type_defs: Table types read from the table type registry
        table_defs: Tables rebuilt from the table namespaces
        primitive_type_defs: Primitive data types (ALL_DEFINITIONS only)
        macro_defs: Macros (ALL_DEFINITIONS only)
        reserved_id_defs: Reserved message IDs (ALL_DEFINITIONS only)
        skipped: (category, message) for every entry the error policy dropped
    """
    table_type_defs: List[TableTypeDefinition] = Field(default_factory=list)
    table_defs: List[TableDefinition] = Field(default_factory=list)
    primitive_type_defs: List[PrimitiveTypeDefinition] = Field(default_factory=list)
    macro_defs: List[MacroDefinition] = Field(default_factory=list)
    reserved_id_defs: List[ReservedIdDefinition] = Field(default_factory=list)
    skipped: List[Tuple[ErrorCategory, str]] = Field(default_factory=list)


class _TablePlan(BaseModel):
    """A table namespace with its resolved table type."""
    namespace: Namespace
    table_name: str
    table_type: TableTypeDefinition


class DatasheetImporter:
    """Imports a data-sheet Document into draft relational definitions.

    Usage:
        importer = DatasheetImporter(snapshot, decide=always_ignore_all)
        result = importer.import_document(document, ImportScope.ALL_DEFINITIONS)
        for table in result.table_defs:
            print(table.name, len(table.rows))
    """

    def __init__(
        self,
        snapshot: SchemaSnapshot,
        decide: Optional[DecisionCallback] = None,
    ):
        """Initialize importer.

        Args:
            snapshot: Dictionary view that receives the final merge
            decide: Decision callback for recoverable errors
                (defaults to always aborting)
        """
        self.snapshot = snapshot
        self.decide = decide
        self.policy = ErrorContinuationPolicy(decide)
        self._table_types: Dict[str, TableTypeDefinition] = {}
        self._primitives: List[PrimitiveTypeDefinition] = []
        self._macros: Dict[str, MacroDefinition] = {}
        self._reserved_ids: Dict[str, ReservedIdDefinition] = {}

    def import_document(
        self,
        document: Document,
        scope: ImportScope = ImportScope.ALL_DEFINITIONS,
    ) -> ImportResult:
        """Import a document.

        Args:
            document: Document to import
            scope: ALL_DEFINITIONS or FIRST_TABLE_ONLY

        Returns:
            ImportResult with the draft definitions

        Raises:
            UnknownTableTypeError: If a table namespace names an unknown type
            MalformedDocumentError: If a table namespace is structurally invalid
            MergeConflictError: If a shared definition conflicts with a known one
            AmbiguousEnumerationError: If two enumerations claim one argument
            ImportAbortedError: If the error policy stops the import
        """
        # Reset per-run state
        self.policy = ErrorContinuationPolicy(self.decide)
        self._table_types = {}
        self._primitives = []
        self._macros = {}
        self._reserved_ids = {}

        import_all = scope == ImportScope.ALL_DEFINITIONS

        # Pass 1: shared definitions
        table_type_ns = document.find_namespace(SetRole.TABLE_TYPE.value)
        if table_type_ns is not None:
            self._import_table_types(table_type_ns)

        if import_all:
            data_type_ns = document.find_namespace(SetRole.DATA_TYPE.value)
            if data_type_ns is not None:
                self._import_data_types(data_type_ns)

            macro_ns = document.find_namespace(SetRole.MACRO.value)
            if macro_ns is not None:
                self._import_macros(macro_ns)

            reserved_ns = document.find_namespace(SetRole.RESERVED_MSG_ID.value)
            if reserved_ns is not None:
                self._import_reserved_ids(reserved_ns)

        # Pass 2: tables, after every table type has been resolved
        plans = self._plan_tables(document, scope)
        tables = [self._build_table(plan) for plan in plans]

        # Post-pass: one all-or-nothing merge
        table_types = list(self._table_types.values())
        if import_all:
            self.snapshot.merge(
                table_types=table_types,
                primitive_types=self._primitives,
                macros=list(self._macros.values()),
                reserved_ids=list(self._reserved_ids.values()),
            )
        else:
            self.snapshot.merge(table_types=table_types)

        result = ImportResult(
            table_type_defs=table_types,
            table_defs=tables,
            skipped=list(self.policy.skipped),
        )
        if import_all:
            result.primitive_type_defs = list(self._primitives)
            result.macro_defs = list(self._macros.values())
            result.reserved_id_defs = list(self._reserved_ids.values())

        logger.info(
            f"Imported {len(tables)} tables, {len(table_types)} table types; "
            f"{len(result.skipped)} entries skipped"
        )
        return result

    # ------------------------------------------------------------------
    # Pass 1: shared definitions
    # ------------------------------------------------------------------

    def _import_table_types(self, namespace: Namespace) -> None:
        for entry in namespace.generic_entries(SetRole.TABLE_TYPE):
            try:
                table_type = _parse_table_type(entry)
            except RecordFormatError as e:
                self.policy.handle(
                    ErrorCategory.TABLE_TYPE,
                    f"Table type '{entry.key}' definition invalid; {e}",
                )
                continue

            known = self._table_types.get(table_type.name)
            if known is not None:
                if not known.same_structure(table_type):
                    logger.error(f"Table type '{table_type.name}' defined twice, differently")
                    raise MergeConflictError("table type", table_type.name)
                continue

            existing = self.snapshot.get_table_type(table_type.name)
            if existing is not None and not existing.same_structure(table_type):
                logger.error(f"Imported table type '{table_type.name}' conflicts")
                raise MergeConflictError("table type", table_type.name)

            self._table_types[table_type.name] = table_type
            logger.debug(f"Read table type '{table_type.name}'")

        for generic_set in namespace.generic_sets_for(SetRole.DATA_FIELD):
            for entry in generic_set.entries:
                owner = generic_set.qualifier or entry.key.rsplit(":", 1)[-1]
                table_type = self._table_types.get(owner.strip())
                if table_type is None:
                    continue
                try:
                    table_type.fields.append(_parse_field(entry, table_type.name))
                except RecordFormatError as e:
                    self.policy.handle(
                        ErrorCategory.TABLE_TYPE_FIELD,
                        f"Table type '{table_type.name}' data field invalid; {e}",
                    )

    def _import_data_types(self, namespace: Namespace) -> None:
        """Rebuild primitive types from typed declarations and generic records.

        A generic record describing an already-declared type only fills
        that type's blank fields.
        """
        drafts: Dict[str, PrimitiveTypeDefinition] = {}

        for declaration in namespace.data_types:
            if isinstance(declaration, IntegerDataType):
                draft = PrimitiveTypeDefinition(
                    user_name=declaration.name,
                    size_in_bytes=_bits_to_bytes(declaration.size_in_bits),
                    base_type=(
                        BaseDataType.SIGNED_INT if declaration.signed
                        else BaseDataType.UNSIGNED_INT
                    ),
                )
            elif isinstance(declaration, FloatDataType):
                draft = PrimitiveTypeDefinition(
                    user_name=declaration.name,
                    size_in_bytes=_bits_to_bytes(declaration.size_in_bits),
                    base_type=BaseDataType.FLOAT,
                )
            elif isinstance(declaration, StringDataType):
                draft = PrimitiveTypeDefinition(
                    user_name=declaration.name,
                    base_type=BaseDataType.CHARACTER,
                )
            else:
                continue
            drafts.setdefault(draft.name, draft)

        for entry in namespace.generic_entries(SetRole.DATA_TYPE):
            try:
                described = _parse_data_type(entry)
            except RecordFormatError as e:
                self.policy.handle(
                    ErrorCategory.DATA_TYPE,
                    f"Data type '{entry.key}' definition invalid; {e}",
                )
                continue

            draft = drafts.get(described.name)
            if draft is None:
                drafts[described.name] = described
                continue

            for attribute in ("c_name", "size_in_bytes", "base_type"):
                if getattr(draft, attribute) in (None, ""):
                    setattr(draft, attribute, getattr(described, attribute))

        self._primitives = list(drafts.values())

    def _import_macros(self, namespace: Namespace) -> None:
        for entry in namespace.generic_entries(SetRole.MACRO):
            try:
                if not entry.key.strip():
                    raise RecordFormatError("macro name missing")
                fields = decode_record(entry.value)
                if len(fields) > 1:
                    raise RecordFormatError(f"expected 1 field, found {len(fields)}")
            except RecordFormatError as e:
                self.policy.handle(
                    ErrorCategory.MACRO, f"Macro '{entry.key}' definition invalid; {e}"
                )
                continue

            macro = MacroDefinition(name=entry.key.strip(), value=fields[0] if fields else "")
            known = self._macros.get(macro.name.lower())
            if known is None:
                self._macros[macro.name.lower()] = macro
            elif known.value != macro.value:
                logger.error(f"Macro '{macro.name}' defined twice with different values")
                raise MergeConflictError("macro", macro.name)

    def _import_reserved_ids(self, namespace: Namespace) -> None:
        for entry in namespace.generic_entries(SetRole.RESERVED_MSG_ID):
            try:
                if not entry.key.strip():
                    raise RecordFormatError("reserved message ID missing")
                fields = decode_record(entry.value)
            except RecordFormatError as e:
                self.policy.handle(
                    ErrorCategory.RESERVED_MSG_ID,
                    f"Reserved message ID '{entry.key}' definition invalid; {e}",
                )
                continue

            self._reserved_ids.setdefault(entry.key.strip(), ReservedIdDefinition(
                ids=entry.key.strip(),
                description=fields[0] if fields else "",
            ))

    # ------------------------------------------------------------------
    # Pass 2: tables
    # ------------------------------------------------------------------

    def _resolve_table_type(self, name: str) -> Optional[TableTypeDefinition]:
        return self._table_types.get(name) or self.snapshot.get_table_type(name)

    def _plan_tables(self, document: Document, scope: ImportScope) -> List[_TablePlan]:
        plans: List[_TablePlan] = []

        for namespace in document.namespaces:
            parsed = parse_table_namespace_name(namespace.name)
            if parsed is None:
                continue
            table_name = parsed[0]

            type_entries = namespace.generic_entries(SetRole.TABLE_TYPE)
            if not type_entries or not type_entries[0].value.strip():
                logger.error(f"Table namespace '{namespace.name}' has no table type")
                raise MalformedDocumentError(
                    f"Table '{table_name}' does not declare its table type"
                )

            type_name = type_entries[0].value.strip()
            table_type = self._resolve_table_type(type_name)
            if table_type is None:
                logger.error(f"Table '{table_name}' references unknown table type '{type_name}'")
                raise UnknownTableTypeError(type_name, table_name)

            if namespace.parameters and not table_type.is_structure:
                raise MalformedDocumentError(
                    f"Table '{table_name}' declares parameters but table type "
                    f"'{type_name}' is not a structure type"
                )
            if namespace.commands and not table_type.is_command:
                raise MalformedDocumentError(
                    f"Table '{table_name}' declares commands but table type "
                    f"'{type_name}' is not a command type"
                )

            plans.append(_TablePlan(
                namespace=namespace, table_name=table_name, table_type=table_type
            ))
            if scope == ImportScope.FIRST_TABLE_ONLY:
                break

        return plans

    def _build_table(self, plan: _TablePlan) -> TableDefinition:
        namespace = plan.namespace
        table_type = plan.table_type
        grid = RowGrid(table_type.column_count)

        # (a) rows and data fields
        if table_type.is_structure:
            self._fill_parameters(grid, namespace, table_type)
        elif table_type.is_command:
            self._fill_commands(grid, namespace, table_type)

        fields = []
        for entry in namespace.generic_entries(SetRole.DATA_FIELD):
            try:
                fields.append(_parse_field(entry, plan.table_name))
            except RecordFormatError as e:
                self.policy.handle(
                    ErrorCategory.DATA_FIELD,
                    f"Table '{plan.table_name}' data field invalid; {e}",
                )

        # (b) command argument enumerations
        if table_type.is_command:
            self._fill_enumerations(grid, namespace, table_type)

        # (c) archived column data, never overwriting
        self._fill_archived_columns(grid, namespace, table_type, plan.table_name)

        logger.debug(f"Rebuilt table '{plan.table_name}' with {len(grid)} rows")
        return TableDefinition(
            name=plan.table_name,
            type_name=table_type.name,
            description=namespace.description or "",
            rows=grid.rows(),
            fields=fields,
        )

    def _fill_parameters(
        self,
        grid: RowGrid,
        namespace: Namespace,
        table_type: TableTypeDefinition,
    ) -> None:
        var_column = table_type.column_index(InputTypeRole.VARIABLE)
        type_column = table_type.column_index(InputTypeRole.PRIM_AND_STRUCT)
        desc_column = table_type.column_index(InputTypeRole.DESCRIPTION)
        units_column = table_type.column_index(InputTypeRole.UNITS)

        for parameter in namespace.parameters:
            row = grid.append_row()
            grid.set_cell(row, var_column, parameter.name)
            if parameter.type:
                grid.set_cell(row, type_column, parameter.type)
            if desc_column is not None and parameter.description:
                grid.set_cell(row, desc_column, parameter.description)
            if units_column is not None and parameter.unit is not None:
                grid.set_cell(row, units_column, parameter.unit.value)

    def _fill_commands(
        self,
        grid: RowGrid,
        namespace: Namespace,
        table_type: TableTypeDefinition,
    ) -> None:
        """One row per Command; arguments fill the argument groups in order.

        A group whose name or data type cell was archived for a row did not
        produce an Argument on export, so it is passed over for that row.
        """
        name_column = table_type.column_index(InputTypeRole.COMMAND_NAME)
        desc_column = table_type.command_description_index()
        groups = table_type.argument_groups()
        archived = _archived_cells(namespace, table_type)

        for command in namespace.commands:
            row = grid.append_row()
            grid.set_cell(row, name_column, command.name)
            if desc_column is not None and command.description:
                grid.set_cell(row, desc_column, command.description)

            available = [
                group for group in groups
                if (group.name, row) not in archived
                and (group.data_type, row) not in archived
            ]
            for group, argument in zip(available, command.arguments):
                grid.set_cell(row, group.name, argument.name)
                if group.data_type is not None and argument.type:
                    grid.set_cell(row, group.data_type, argument.type)
                if group.description is not None and argument.description:
                    grid.set_cell(row, group.description, argument.description)

            if len(command.arguments) > len(available):
                logger.warning(
                    f"Command '{command.name}' has {len(command.arguments)} arguments; "
                    f"table type '{table_type.name}' holds {len(available)}"
                )

    def _fill_enumerations(
        self,
        grid: RowGrid,
        namespace: Namespace,
        table_type: TableTypeDefinition,
    ) -> None:
        """Attach each enumerated type to its owning command's argument.

        The owner is the enumeration's description. The argument is the first
        group, at or after the owner's running index, whose name cell matches
        the enumeration name; the running index restarts whenever the owner
        differs from the previous enumeration's owner.

        Raises:
            AmbiguousEnumerationError: If two enumerations resolve to the
                same command argument
        """
        name_column = table_type.column_index(InputTypeRole.COMMAND_NAME)
        groups = table_type.argument_groups()
        claimed: Set[Tuple[str, int]] = set()
        owner: Optional[str] = None
        running_index = 0

        for enumeration in namespace.enumerations():
            if enumeration.description != owner:
                owner = enumeration.description
                running_index = 0

            row = _find_row(grid, name_column, owner)
            if row is None:
                logger.debug(f"Enumeration '{enumeration.name}' has no owning command row")
                continue

            argument_index = running_index
            for index in range(running_index, len(groups)):
                if grid.get(row, groups[index].name) == enumeration.name:
                    argument_index = index
                    break
            running_index = argument_index + 1

            if argument_index >= len(groups):
                logger.debug(
                    f"Enumeration '{enumeration.name}' of command '{owner}' "
                    f"matches no argument group"
                )
                continue

            if (owner, argument_index) in claimed:
                logger.error(
                    f"Enumerations collide on argument {argument_index + 1} of '{owner}'"
                )
                raise AmbiguousEnumerationError(owner, argument_index)
            claimed.add((owner, argument_index))

            enum_column = groups[argument_index].enumeration
            if enum_column is not None:
                grid.set_cell(row, enum_column, format_enumeration(enumeration.labels))

    def _fill_archived_columns(
        self,
        grid: RowGrid,
        namespace: Namespace,
        table_type: TableTypeDefinition,
        table_name: str,
    ) -> None:
        entries = namespace.generic_entries(SetRole.COLUMN)
        row_limit = max(len(grid), len(entries)) + get_setting('max_archived_row_gap')

        for entry in entries:
            try:
                column_name, row = parse_column_identifier(entry.key)
            except RecordFormatError as e:
                self.policy.handle(
                    ErrorCategory.COLUMN, f"Table '{table_name}' column data invalid; {e}"
                )
                continue

            if row >= row_limit:
                self.policy.handle(
                    ErrorCategory.COLUMN,
                    f"Table '{table_name}' column data row {row} out of range",
                )
                continue

            column = table_type.column_index_by_name(column_name)
            if column is None:
                self.policy.handle(
                    ErrorCategory.COLUMN,
                    f"Table '{table_name}' column name '{column_name}' unrecognized",
                )
                continue

            if not grid.set_if_empty(row, column, entry.value):
                logger.debug(
                    f"Archived value for '{entry.key}' in table '{table_name}' "
                    f"ignored; cell already populated"
                )


# ============================================================================
# Record parsing
# ============================================================================

def _parse_table_type(entry: GenericEntry) -> TableTypeDefinition:
    """Rebuild a table type from ``description, then 7 fields per column``.

    Raises:
        RecordFormatError: If the record or any column in it is invalid
    """
    name = entry.key.strip()
    if not name:
        raise RecordFormatError("table type name missing")

    fields = decode_record(entry.value)
    if not fields or (len(fields) - 1) % COLUMN_RECORD_FIELDS != 0:
        raise RecordFormatError("missing or extra input(s)")

    columns = []
    for start in range(1, len(fields), COLUMN_RECORD_FIELDS):
        column_name, description, input_type, unique, required, structure, pointer = (
            fields[start:start + COLUMN_RECORD_FIELDS]
        )
        if not column_name:
            raise RecordFormatError("column name missing")
        try:
            role = InputTypeRole.from_name(input_type)
        except ValueError as e:
            raise RecordFormatError(f"column '{column_name}': {e}") from e
        columns.append(ColumnDefinition(
            name=column_name,
            description=description,
            input_type=role,
            unique=parse_bool(unique),
            required=parse_bool(required),
            structure_allowed=parse_bool(structure),
            pointer_allowed=parse_bool(pointer),
        ))

    return TableTypeDefinition(name=name, description=fields[0], columns=columns)


def _parse_field(entry: GenericEntry, owner: str) -> FieldDefinition:
    """Rebuild a data field from its 7-field record.

    Raises:
        RecordFormatError: If the record is invalid
    """
    fields = decode_record(entry.value)
    if len(fields) != FIELD_RECORD_FIELDS:
        raise RecordFormatError("missing or extra data field input(s)")

    name, description, size, input_type, required, applicability, value = fields
    if not name:
        raise RecordFormatError("data field name missing")
    try:
        return FieldDefinition(
            owner=owner,
            name=name,
            description=description,
            size=int(size),
            input_type=InputTypeRole.from_name(input_type),
            required=parse_bool(required),
            applicability=FieldApplicability.from_name(applicability),
            value=value,
        )
    except ValueError as e:
        raise RecordFormatError(f"data field '{name}': {e}") from e


def _parse_data_type(entry: GenericEntry) -> PrimitiveTypeDefinition:
    """Rebuild a primitive type from ``c name, size in bytes, base type``.

    Raises:
        RecordFormatError: If the record is invalid
    """
    name = entry.key.strip()
    if not name:
        raise RecordFormatError("data type name missing")

    fields = decode_record(entry.value)
    if len(fields) != 3:
        raise RecordFormatError("missing or extra input(s)")

    c_name, size, base_type = fields
    try:
        return PrimitiveTypeDefinition(
            user_name=name,
            c_name=c_name,
            size_in_bytes=int(size) if size else None,
            base_type=BaseDataType.from_name(base_type) if base_type else None,
        )
    except ValueError as e:
        raise RecordFormatError(str(e)) from e


def _bits_to_bytes(size_in_bits: Optional[int]) -> Optional[int]:
    if size_in_bits is None:
        return None
    return size_in_bits // 8


def _archived_cells(
    namespace: Namespace,
    table_type: TableTypeDefinition,
) -> Set[Tuple[int, int]]:
    """(column, row) of every parsable archived cell; bad keys are reported later."""
    cells: Set[Tuple[int, int]] = set()
    for entry in namespace.generic_entries(SetRole.COLUMN):
        try:
            column_name, row = parse_column_identifier(entry.key)
        except RecordFormatError:
            continue
        column = table_type.column_index_by_name(column_name)
        if column is not None:
            cells.add((column, row))
    return cells


def _find_row(grid: RowGrid, column: Optional[int], value: Optional[str]) -> Optional[int]:
    if column is None or value is None:
        return None
    for row in range(len(grid)):
        if grid.get(row, column) == value:
            return row
    return None
