"""Relational data-dictionary definitions.

These Pydantic models describe the flat, row/column side of the codec: table
types and their columns, primitive data types, macros, reserved message IDs,
data fields, tables and variable paths.

Column behaviour is driven exclusively by each column's input type role
(``InputTypeRole``); a table's *name* never decides how it is mapped.

Architecture:
    - TableTypeDefinition owns the column roles and derives the structure /
      command classification and the command argument column groups
    - TableDefinition holds a row-major grid of string cells whose width is
      the resolved type's column count
    - BaseDataType is the tagged variant for primitive kinds; callers match on
      it once instead of inspecting type names
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class InputTypeRole(str, Enum):
    """Input type roles a table type column can carry.

    The enum value is the display name used on the wire.
    """
    VARIABLE = "Variable name"
    PRIM_AND_STRUCT = "Primitive & Structure"
    PRIMITIVE = "Primitive"
    ARRAY_INDEX = "Array index"
    BIT_LENGTH = "Bit length"
    ENUMERATION = "Enumeration"
    DESCRIPTION = "Description"
    UNITS = "Units"
    COMMAND_NAME = "Command name"
    COMMAND_CODE = "Command code"
    ARGUMENT_NAME = "Argument name"
    MINIMUM = "Minimum"
    MAXIMUM = "Maximum"
    TEXT = "Text"
    ALPHANUMERIC = "Alphanumeric"
    INTEGER = "Integer"
    POSITIVE_INTEGER = "Positive integer"
    FLOAT = "Float"
    BOOLEAN = "Boolean"
    MESSAGE_ID = "Message ID"

    @classmethod
    def from_name(cls, name: str) -> "InputTypeRole":
        """Resolve a display name (case-insensitive) to a role.

        Raises:
            ValueError: If the name is not a known input type
        """
        wanted = (name or "").strip().lower()
        for role in cls:
            if role.value.lower() == wanted:
                return role
        raise ValueError(f"Unknown input type '{name}'")


# Roles that fill a slot of a command argument column group
_ARGUMENT_SLOTS = {
    InputTypeRole.PRIMITIVE: "data_type",
    InputTypeRole.ENUMERATION: "enumeration",
    InputTypeRole.UNITS: "units",
    InputTypeRole.DESCRIPTION: "description",
    InputTypeRole.MINIMUM: "minimum",
    InputTypeRole.MAXIMUM: "maximum",
}


class ColumnDefinition(BaseModel):
    """One visible column of a table type."""
    name: str
    description: str = ""
    input_type: InputTypeRole = InputTypeRole.TEXT
    unique: bool = False
    required: bool = False
    structure_allowed: bool = False
    pointer_allowed: bool = False


class ArgumentColumnGroup(BaseModel):
    """Visible column indices that together describe one command argument.

    Attributes:
        name: Index of the argument name column (always present)
        data_type: Index of the argument data type column
        enumeration: Index of the argument enumeration column
        units: Index of the argument units column
        description: Index of the argument description column
        minimum: Index of the argument minimum value column
        maximum: Index of the argument maximum value column
        other: Indices of any other columns following the group's name column
    """
    name: int
    data_type: Optional[int] = None
    enumeration: Optional[int] = None
    units: Optional[int] = None
    description: Optional[int] = None
    minimum: Optional[int] = None
    maximum: Optional[int] = None
    other: List[int] = Field(default_factory=list)

    def columns(self) -> List[int]:
        """All column indices claimed by this group."""
        claimed = [self.name]
        for slot in _ARGUMENT_SLOTS.values():
            index = getattr(self, slot)
            if index is not None:
                claimed.append(index)
        return claimed + list(self.other)


class FieldApplicability(str, Enum):
    """Tables a data field applies to."""
    ALL = "All tables"
    PARENTS_ONLY = "Parents only"
    ROOTS_ONLY = "Roots only"
    CHILDREN_ONLY = "Children only"

    @classmethod
    def from_name(cls, name: str) -> "FieldApplicability":
        wanted = (name or "").strip().lower()
        for applicability in cls:
            if applicability.value.lower() == wanted:
                return applicability
        raise ValueError(f"Unknown field applicability '{name}'")


class FieldDefinition(BaseModel):
    """Data field attached to a table or to a table type.

    Attributes:
        owner: Name of the owning table or table type
        name: Field name
        description: Field description (tool tip)
        size: Display size in characters
        input_type: Input type of the field value
        required: True if a value is required
        applicability: Tables the field applies to
        value: Field value
    """
    owner: str = ""
    name: str
    description: str = ""
    size: int = 10
    input_type: InputTypeRole = InputTypeRole.TEXT
    required: bool = False
    applicability: FieldApplicability = FieldApplicability.ALL
    value: str = ""


class TableTypeDefinition(BaseModel):
    """Table type: an ordered set of role-typed columns plus default fields."""
    name: str
    description: str = ""
    columns: List[ColumnDefinition] = Field(default_factory=list)
    fields: List[FieldDefinition] = Field(default_factory=list)

    @property
    def column_count(self) -> int:
        return len(self.columns)

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]

    def column_index(self, role: InputTypeRole) -> Optional[int]:
        """Index of the first column with the given role, or None."""
        for index, column in enumerate(self.columns):
            if column.input_type == role:
                return index
        return None

    def column_indices(self, role: InputTypeRole) -> List[int]:
        return [
            index for index, column in enumerate(self.columns)
            if column.input_type == role
        ]

    def column_index_by_name(self, name: str) -> Optional[int]:
        wanted = name.strip().lower()
        for index, column in enumerate(self.columns):
            if column.name.lower() == wanted:
                return index
        return None

    def has_role(self, role: InputTypeRole) -> bool:
        return self.column_index(role) is not None

    @property
    def is_structure(self) -> bool:
        """Structure tables declare both a variable name and a data type column."""
        return (
            self.has_role(InputTypeRole.VARIABLE)
            and self.has_role(InputTypeRole.PRIM_AND_STRUCT)
        )

    @property
    def is_command(self) -> bool:
        return self.has_role(InputTypeRole.COMMAND_NAME)

    def argument_groups(self) -> List[ArgumentColumnGroup]:
        """Build the command argument column groups in column order.

        Each argument name column opens a group. Columns that follow fill the
        group's matching empty slot; anything else is kept in ``other``.
        """
        groups: List[ArgumentColumnGroup] = []
        current: Optional[ArgumentColumnGroup] = None

        for index, column in enumerate(self.columns):
            if column.input_type == InputTypeRole.ARGUMENT_NAME:
                current = ArgumentColumnGroup(name=index)
                groups.append(current)
                continue

            if current is None:
                continue

            slot = _ARGUMENT_SLOTS.get(column.input_type)
            if slot is not None and getattr(current, slot) is None:
                setattr(current, slot, index)
            elif column.input_type != InputTypeRole.COMMAND_NAME:
                current.other.append(index)

        return groups

    def command_description_index(self) -> Optional[int]:
        """Index of the command's own description column.

        Only a description column that precedes the first argument group
        describes the command itself.
        """
        description = self.column_index(InputTypeRole.DESCRIPTION)
        if description is None:
            return None
        groups = self.argument_groups()
        if groups and description > groups[0].name:
            return None
        return description

    def same_structure(self, other: "TableTypeDefinition") -> bool:
        """True if both definitions describe the same columns."""
        return (
            self.name == other.name
            and self.description == other.description
            and self.columns == other.columns
        )


class BaseDataType(str, Enum):
    """Primitive data type kinds."""
    SIGNED_INT = "signed integer"
    UNSIGNED_INT = "unsigned integer"
    FLOAT = "floating point"
    CHARACTER = "character"

    @classmethod
    def from_name(cls, name: str) -> "BaseDataType":
        wanted = (name or "").strip().lower()
        for base_type in cls:
            if base_type.value == wanted:
                return base_type
        raise ValueError(f"Unknown base data type '{name}'")

    @property
    def is_integer(self) -> bool:
        return self in (BaseDataType.SIGNED_INT, BaseDataType.UNSIGNED_INT)


class PrimitiveTypeDefinition(BaseModel):
    """Primitive data type: user name, C name, size and base type.

    Draft definitions rebuilt during import may have blank fields, so size
    and base type are optional.
    """
    user_name: str = ""
    c_name: str = ""
    size_in_bytes: Optional[int] = None
    base_type: Optional[BaseDataType] = None

    @property
    def name(self) -> str:
        """User name if set, otherwise the C name."""
        return self.user_name or self.c_name

    @property
    def size_in_bits(self) -> Optional[int]:
        if self.size_in_bytes is None:
            return None
        return self.size_in_bytes * 8

    @property
    def is_unsigned(self) -> bool:
        return self.base_type == BaseDataType.UNSIGNED_INT


class MacroDefinition(BaseModel):
    """Macro name and its literal value (which may reference other macros)."""
    name: str
    value: str = ""


class ReservedIdDefinition(BaseModel):
    """Reserved message ID (single value or range) and its description."""
    ids: str
    description: str = ""


class TableDefinition(BaseModel):
    """Table instance: a row-major grid of cells plus attached data fields."""
    name: str
    type_name: str = ""
    description: str = ""
    rows: List[List[str]] = Field(default_factory=list)
    fields: List[FieldDefinition] = Field(default_factory=list)

    def field_value(self, name: str) -> Optional[str]:
        for data_field in self.fields:
            if data_field.name == name:
                return data_field.value
        return None


class VariablePathEntry(BaseModel):
    """Variable path in application format plus its user-formatted alias."""
    path: str
    alias: str = ""
