"""Fragment model: the classified forms a piece of user input can take."""

from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar, Self


class FragmentKind(StrEnum):
    """Kinds of fragments, with a docstring on every member."""

    def __new__(cls, value: str, doc: str = "") -> Self:
        """Create a new enum member with a docstring."""
        obj = str.__new__(cls, value)
        obj._value_ = value
        obj.__doc__ = doc
        return obj

    IMPORT = "import", "One or more import statements."
    TYPE = "type", "A class declaration, possibly decorated."
    TYPED_BINDING = "typed-binding", "An annotated assignment to a single name."
    BINDING = "binding", "An assignment to a single name."
    FUNCTION = "function", "A function definition, possibly decorated or async."
    EXPRESSION = "expression", "Anything else, evaluated for its value."
    STATEMENT = "statement", "Input that only compiles as a statement; never produced by the classifier."


@dataclass(frozen=True, slots=True)
class Import:
    source: str

    kind: ClassVar[FragmentKind] = FragmentKind.IMPORT


@dataclass(frozen=True, slots=True)
class TypeDeclaration:
    source: str
    type_name: str

    kind: ClassVar[FragmentKind] = FragmentKind.TYPE


@dataclass(frozen=True, slots=True)
class TypedBinding:
    source: str
    name: str
    declared_type: str
    value: str

    kind: ClassVar[FragmentKind] = FragmentKind.TYPED_BINDING

    @property
    def key(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class Binding:
    source: str
    name: str
    value: str

    kind: ClassVar[FragmentKind] = FragmentKind.BINDING

    @property
    def key(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class FunctionDefinition:
    source: str
    name: str

    kind: ClassVar[FragmentKind] = FragmentKind.FUNCTION

    @property
    def key(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class Expression:
    source: str

    kind: ClassVar[FragmentKind] = FragmentKind.EXPRESSION


@dataclass(frozen=True, slots=True)
class Statement:
    source: str

    kind: ClassVar[FragmentKind] = FragmentKind.STATEMENT


Fragment = Import | TypeDeclaration | TypedBinding | Binding | FunctionDefinition | Expression | Statement
KeyedFragment = TypedBinding | Binding | FunctionDefinition


def fragment_key(fragment: Fragment) -> str | None:
    """Return the name a fragment binds its value to, or None for unkeyed fragments."""
    if isinstance(fragment, KeyedFragment):
        return fragment.key
    return None
