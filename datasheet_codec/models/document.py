"""In-memory data-sheet document model.

The document side of the codec is a tree of namespaces. Each namespace may
hold a parameter set (telemetry), a command set, any number of role-tagged
generic sets (key/value archive records) and a set of data type declarations
scoped to that namespace.

Instances are built fresh for every export or import run and discarded
afterwards; the XML writer and reader translate them to and from the wire.

Data type declarations are a tagged union on ``kind``:
    - IntegerDataType: size in bits and signedness
    - FloatDataType: optional size in bits
    - StringDataType: name only
    - EnumeratedDataType: integer encoding plus value/label pairs; the
      description names the owning command for command argument enumerations
"""

from enum import Enum
from typing import Annotated, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field

from .units import PhysicalUnit


class SetRole(str, Enum):
    """Roles of generic sets; the value is the tag written on the wire."""
    COLUMN = "Column data"
    DATA_FIELD = "Data field"
    TABLE_TYPE = "Table type"
    DATA_TYPE = "Data type"
    MACRO = "Macro"
    RESERVED_MSG_ID = "Reserved Message ID"
    VARIABLE_PATH = "Variable Path"

    @classmethod
    def from_tag(cls, tag: str) -> Optional["SetRole"]:
        """Resolve a set name (optionally suffixed ``:<qualifier>``) to its role."""
        base = tag.split(":", 1)[0].strip()
        for role in cls:
            if role.value == base:
                return role
        return None


class GenericEntry(BaseModel):
    """Key/value archive record."""
    key: str
    value: str = ""


class GenericSet(BaseModel):
    """Role-tagged group of generic entries.

    ``role_name`` is the role tag, optionally qualified as
    ``"<tag>:<qualifier>"`` (the per-table-type data field sets).
    """
    role_name: str
    entries: List[GenericEntry] = Field(default_factory=list)

    @property
    def role(self) -> Optional[SetRole]:
        return SetRole.from_tag(self.role_name)

    @property
    def qualifier(self) -> Optional[str]:
        if ":" not in self.role_name:
            return None
        return self.role_name.split(":", 1)[1]


class IntegerDataType(BaseModel):
    kind: Literal["integer"] = "integer"
    name: str
    size_in_bits: Optional[int] = None
    signed: bool = True


class FloatDataType(BaseModel):
    kind: Literal["float"] = "float"
    name: str
    size_in_bits: Optional[int] = None


class StringDataType(BaseModel):
    kind: Literal["string"] = "string"
    name: str


class EnumeratedDataType(BaseModel):
    """Enumerated type with an integer encoding.

    Attributes:
        name: Parameter or argument name the enumeration belongs to
        description: Owning command name (command argument enumerations only)
        size_in_bits: Encoding width, taken from the primitive type
        signed: Encoding signedness, taken from the primitive type
        labels: Ordered (value, label) pairs
    """
    kind: Literal["enumerated"] = "enumerated"
    name: str
    description: Optional[str] = None
    size_in_bits: Optional[int] = None
    signed: bool = True
    labels: List[Tuple[int, str]] = Field(default_factory=list)


DataTypeDeclaration = Annotated[
    Union[IntegerDataType, FloatDataType, StringDataType, EnumeratedDataType],
    Field(discriminator="kind"),
]


class Parameter(BaseModel):
    """Telemetry parameter."""
    name: str
    type: Optional[str] = None
    description: Optional[str] = None
    unit: Optional[PhysicalUnit] = None


class Argument(BaseModel):
    """Command argument."""
    name: str
    type: Optional[str] = None
    description: Optional[str] = None


class Command(BaseModel):
    """Command with ordered arguments."""
    name: str
    description: Optional[str] = None
    arguments: List[Argument] = Field(default_factory=list)


class Namespace(BaseModel):
    """Named grouping of a table's or a shared-definition registry's content."""
    name: str
    description: Optional[str] = None
    parameters: List[Parameter] = Field(default_factory=list)
    commands: List[Command] = Field(default_factory=list)
    generic_sets: List[GenericSet] = Field(default_factory=list)
    data_types: List[DataTypeDeclaration] = Field(default_factory=list)

    def add_generic_entries(
        self,
        role: SetRole,
        entries: List[GenericEntry],
        qualifier: Optional[str] = None,
    ) -> Optional[GenericSet]:
        """Append a new generic set holding ``entries``.

        Nothing is added when ``entries`` is empty.
        """
        if not entries:
            return None
        role_name = role.value if qualifier is None else f"{role.value}:{qualifier}"
        generic_set = GenericSet(role_name=role_name, entries=list(entries))
        self.generic_sets.append(generic_set)
        return generic_set

    def generic_sets_for(self, role: SetRole) -> List[GenericSet]:
        return [generic_set for generic_set in self.generic_sets if generic_set.role == role]

    def generic_entries(self, role: SetRole) -> List[GenericEntry]:
        """All entries of all sets with the given role, in document order."""
        return [
            entry
            for generic_set in self.generic_sets_for(role)
            for entry in generic_set.entries
        ]

    def find_data_type(self, name: str) -> Optional[DataTypeDeclaration]:
        for data_type in self.data_types:
            if data_type.name == name:
                return data_type
        return None

    def enumerations(self) -> List[EnumeratedDataType]:
        return [
            data_type for data_type in self.data_types
            if isinstance(data_type, EnumeratedDataType)
        ]


class Document(BaseModel):
    """Ordered list of uniquely named namespaces."""
    name: Optional[str] = None
    description: Optional[str] = None
    namespaces: List[Namespace] = Field(default_factory=list)

    def find_namespace(self, name: str) -> Optional[Namespace]:
        for namespace in self.namespaces:
            if namespace.name == name:
                return namespace
        return None

    def get_or_add_namespace(
        self,
        name: str,
        description: Optional[str] = None,
    ) -> Namespace:
        """Return the namespace with this name, creating it if needed.

        A repeated name reuses the existing namespace object; the original
        description is kept.
        """
        namespace = self.find_namespace(name)
        if namespace is None:
            namespace = Namespace(name=name, description=description)
            self.namespaces.append(namespace)
        return namespace
