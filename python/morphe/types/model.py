# Copyright Rand Arete @ Ananke 2025
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================
"""Type representation for morphe's structural type system.

This module defines the type hierarchy checked by morphe:
- Primitive types (number, string, boolean, ... plus any/unknown/never)
- Literal types ("circle", 42, true)
- Union and intersection types
- Structural object types with optional/readonly fields, an index
  signature and call signatures
- Arrays, tuples (with optional elements and a rest element), functions
- Generic type parameters and references to named aliases

Types are plain immutable values. Structural equality is provided by the
dataclasses; canonical identity is provided by ``TypeTable.intern`` which
also normalizes unions and intersections. Code outside ``morphe.types``
should build types through the table factories rather than constructing
these classes directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Dict, FrozenSet, Optional, Tuple, Union


# =============================================================================
# Variance
# =============================================================================


class Variance(Enum):
    """Position of a type occurrence relative to the enclosing signature.

    - COVARIANT: output positions (return types, array elements, fields)
    - CONTRAVARIANT: input positions (function parameters)
    """

    COVARIANT = auto()
    CONTRAVARIANT = auto()

    def flip(self) -> "Variance":
        if self is Variance.COVARIANT:
            return Variance.CONTRAVARIANT
        return Variance.COVARIANT


LiteralValue = Union[str, int, float, bool]


# =============================================================================
# Type Representation Hierarchy
# =============================================================================


class Type(ABC):
    """Abstract base class for all types.

    Note: Subclasses using @dataclass(frozen=True) get __eq__ and __hash__
    automatically. ``free_type_params()``, ``substitute()`` and
    ``map_types()`` have default implementations for leaf types. Override
    them in subclasses that contain nested types.
    """

    def free_type_params(self) -> FrozenSet[str]:
        """Return the names of type parameters occurring free in this type."""
        return frozenset()

    def substitute(self, substitution: Dict[str, "Type"]) -> "Type":
        """Replace type parameters by name.

        The result is not normalized; pass it through ``TypeTable.intern``.
        """
        return self

    def map_types(self, fn: Callable[["Type"], "Type"]) -> "Type":
        """Rebuild this type with ``fn`` applied to every direct child type."""
        return self

    @abstractmethod
    def __eq__(self, other: object) -> bool:
        pass

    @abstractmethod
    def __hash__(self) -> int:
        pass

    def __str__(self) -> str:
        return repr(self)


PRIMITIVE_NAMES: FrozenSet[str] = frozenset(
    {
        "number",
        "string",
        "boolean",
        "bigint",
        "symbol",
        "null",
        "undefined",
        "void",
        "object",
        "never",
        "unknown",
        "any",
    }
)


@dataclass(frozen=True, slots=True)
class PrimitiveType(Type):
    """A primitive type, including the special members any/unknown/never.

    Attributes:
        name: One of ``PRIMITIVE_NAMES``
    """

    name: str

    def __post_init__(self) -> None:
        if self.name not in PRIMITIVE_NAMES:
            raise ValueError(f"Unknown primitive type: {self.name!r}")

    def __repr__(self) -> str:
        return self.name


# Primitive type singletons
NUMBER = PrimitiveType("number")
STRING = PrimitiveType("string")
BOOLEAN = PrimitiveType("boolean")
BIGINT = PrimitiveType("bigint")
SYMBOL = PrimitiveType("symbol")
NULL = PrimitiveType("null")
UNDEFINED = PrimitiveType("undefined")
VOID = PrimitiveType("void")
OBJECT = PrimitiveType("object")
NEVER = PrimitiveType("never")
UNKNOWN = PrimitiveType("unknown")
ANY = PrimitiveType("any")

PRIMITIVES: Tuple[PrimitiveType, ...] = (
    NUMBER,
    STRING,
    BOOLEAN,
    BIGINT,
    SYMBOL,
    NULL,
    UNDEFINED,
    VOID,
    OBJECT,
    NEVER,
    UNKNOWN,
    ANY,
)

# Primitives whose only values are null/undefined
NULLISH: FrozenSet[PrimitiveType] = frozenset({NULL, UNDEFINED, VOID})

_LITERAL_BASES: Dict[str, PrimitiveType] = {
    "string": STRING,
    "number": NUMBER,
    "boolean": BOOLEAN,
    "bigint": BIGINT,
}


@dataclass(frozen=True, slots=True)
class LiteralType(Type):
    """A literal type: exactly one value of a primitive kind.

    Attributes:
        kind: "string", "number", "boolean" or "bigint"
        value: The literal value
    """

    kind: str
    value: LiteralValue

    def __post_init__(self) -> None:
        if self.kind not in _LITERAL_BASES:
            raise ValueError(f"Literal kind must be one of {sorted(_LITERAL_BASES)}")

    @property
    def base(self) -> PrimitiveType:
        """The primitive this literal widens to."""
        return _LITERAL_BASES[self.kind]

    @property
    def is_falsy(self) -> bool:
        return self.value in ("", 0)

    def __repr__(self) -> str:
        if self.kind == "string":
            escaped = str(self.value).replace('"', '\\"')
            return f'"{escaped}"'
        if self.kind == "boolean":
            return "true" if self.value else "false"
        if self.kind == "bigint":
            return f"{self.value}n"
        return repr(self.value)


TRUE = LiteralType("boolean", True)
FALSE = LiteralType("boolean", False)


def literal_of(value: LiteralValue) -> LiteralType:
    """Build the literal type of a Python value (bool checked before int)."""
    if isinstance(value, bool):
        return TRUE if value else FALSE
    if isinstance(value, (int, float)):
        return LiteralType("number", value)
    if isinstance(value, str):
        return LiteralType("string", value)
    raise ValueError(f"No literal type for value {value!r}")


@dataclass(frozen=True)
class UnionType(Type):
    """A union of types (T1 | T2 | ...).

    The members are stored as a frozenset to ensure canonical representation
    and proper equality semantics.

    Attributes:
        members: The set of types in the union
    """

    members: FrozenSet[Type]

    def free_type_params(self) -> FrozenSet[str]:
        names: FrozenSet[str] = frozenset()
        for m in self.members:
            names = names | m.free_type_params()
        return names

    def substitute(self, substitution: Dict[str, Type]) -> Type:
        return UnionType(frozenset(m.substitute(substitution) for m in self.members))

    def map_types(self, fn: Callable[[Type], Type]) -> Type:
        return UnionType(frozenset(fn(m) for m in self.members))

    def __repr__(self) -> str:
        # Sort for consistent representation
        parts = sorted(_parenthesize(m) for m in self.members)
        return " | ".join(parts)

    def __hash__(self) -> int:
        return hash(("|", self.members))


@dataclass(frozen=True)
class IntersectionType(Type):
    """An intersection of types (T1 & T2 & ...).

    Attributes:
        members: The set of types in the intersection
    """

    members: FrozenSet[Type]

    def free_type_params(self) -> FrozenSet[str]:
        names: FrozenSet[str] = frozenset()
        for m in self.members:
            names = names | m.free_type_params()
        return names

    def substitute(self, substitution: Dict[str, Type]) -> Type:
        return IntersectionType(
            frozenset(m.substitute(substitution) for m in self.members)
        )

    def map_types(self, fn: Callable[[Type], Type]) -> Type:
        return IntersectionType(frozenset(fn(m) for m in self.members))

    def __repr__(self) -> str:
        parts = sorted(_parenthesize(m) for m in self.members)
        return " & ".join(parts)

    def __hash__(self) -> int:
        return hash(("&", self.members))


def _parenthesize(t: Type) -> str:
    if isinstance(t, (UnionType, IntersectionType, FunctionType)):
        return f"({t!r})"
    return repr(t)


# =============================================================================
# Structural Types
# =============================================================================


@dataclass(frozen=True, slots=True)
class Property:
    """A named field of an object type.

    Attributes:
        name: Field name
        type: Field type
        optional: Whether the field may be absent
        readonly: Whether assignment through this field is rejected
    """

    name: str
    type: Type
    optional: bool = False
    readonly: bool = False

    def __repr__(self) -> str:
        prefix = "readonly " if self.readonly else ""
        marker = "?" if self.optional else ""
        return f"{prefix}{self.name}{marker}: {self.type!r}"


@dataclass(frozen=True, slots=True)
class IndexSignature:
    """An index signature ``[key: string]: V`` or ``[key: number]: V``."""

    key_kind: str
    value: Type

    def __post_init__(self) -> None:
        if self.key_kind not in ("string", "number"):
            raise ValueError("Index signature key must be 'string' or 'number'")

    def __repr__(self) -> str:
        return f"[key: {self.key_kind}]: {self.value!r}"


@dataclass(frozen=True)
class ObjectType(Type):
    """A structural object shape.

    Field order is preserved for display but irrelevant to equality: two
    object types with the same field set are equal.

    Attributes:
        properties: Ordered fields
        index_signature: Optional index signature
        call_signatures: Ordered call signatures (callable or overloaded shapes)
    """

    properties: Tuple[Property, ...] = ()
    index_signature: Optional[IndexSignature] = None
    call_signatures: Tuple["FunctionType", ...] = ()

    def __post_init__(self) -> None:
        names = [p.name for p in self.properties]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate field in object type: {names}")

    def get_property(self, name: str) -> Optional[Property]:
        """Look up a field by name."""
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    @property
    def is_empty(self) -> bool:
        """True for the empty shape ``{}``."""
        return (
            not self.properties
            and self.index_signature is None
            and not self.call_signatures
        )

    @property
    def is_callable_only(self) -> bool:
        return (
            bool(self.call_signatures)
            and not self.properties
            and self.index_signature is None
        )

    def free_type_params(self) -> FrozenSet[str]:
        names: FrozenSet[str] = frozenset()
        for prop in self.properties:
            names = names | prop.type.free_type_params()
        if self.index_signature is not None:
            names = names | self.index_signature.value.free_type_params()
        for sig in self.call_signatures:
            names = names | sig.free_type_params()
        return names

    def substitute(self, substitution: Dict[str, Type]) -> Type:
        return self.map_types(lambda t: t.substitute(substitution))

    def map_types(self, fn: Callable[[Type], Type]) -> Type:
        index = None
        if self.index_signature is not None:
            index = IndexSignature(
                self.index_signature.key_kind, fn(self.index_signature.value)
            )
        return ObjectType(
            tuple(
                Property(p.name, fn(p.type), p.optional, p.readonly)
                for p in self.properties
            ),
            index,
            tuple(fn(sig) for sig in self.call_signatures),  # type: ignore[misc]
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ObjectType):
            return NotImplemented
        return (
            frozenset(self.properties) == frozenset(other.properties)
            and self.index_signature == other.index_signature
            and self.call_signatures == other.call_signatures
        )

    def __hash__(self) -> int:
        return hash(
            ("{}", frozenset(self.properties), self.index_signature, self.call_signatures)
        )

    def __repr__(self) -> str:
        parts = [repr(p) for p in self.properties]
        if self.index_signature is not None:
            parts.append(repr(self.index_signature))
        parts.extend(repr(sig) for sig in self.call_signatures)
        if not parts:
            return "{}"
        return "{ " + "; ".join(parts) + " }"


@dataclass(frozen=True, slots=True)
class ArrayType(Type):
    """A homogeneous array type.

    Attributes:
        element: The type of array elements
    """

    element: Type

    def free_type_params(self) -> FrozenSet[str]:
        return self.element.free_type_params()

    def substitute(self, substitution: Dict[str, Type]) -> Type:
        return ArrayType(self.element.substitute(substitution))

    def map_types(self, fn: Callable[[Type], Type]) -> Type:
        return ArrayType(fn(self.element))

    def __repr__(self) -> str:
        return f"{_parenthesize(self.element)}[]"


@dataclass(frozen=True, slots=True)
class TupleElement:
    """One fixed position of a tuple type."""

    type: Type
    optional: bool = False

    def __repr__(self) -> str:
        return f"{self.type!r}?" if self.optional else repr(self.type)


@dataclass(frozen=True, slots=True)
class TupleType(Type):
    """A tuple type with fixed positions and an optional rest element.

    Attributes:
        elements: The fixed positions
        rest: Element type of the trailing rest element, if any
    """

    elements: Tuple[TupleElement, ...]
    rest: Optional[Type] = None

    def __post_init__(self) -> None:
        seen_optional = False
        for element in self.elements:
            if element.optional:
                seen_optional = True
            elif seen_optional:
                raise ValueError("A required tuple element cannot follow an optional one")

    @property
    def min_length(self) -> int:
        return sum(1 for e in self.elements if not e.optional)

    @property
    def max_length(self) -> Optional[int]:
        """Maximum length, or None when a rest element is present."""
        return None if self.rest is not None else len(self.elements)

    def element_at(self, index: int) -> Optional[Type]:
        """Type accepted at ``index``, or None when out of range."""
        if index < len(self.elements):
            return self.elements[index].type
        return self.rest

    def free_type_params(self) -> FrozenSet[str]:
        names: FrozenSet[str] = frozenset()
        for e in self.elements:
            names = names | e.type.free_type_params()
        if self.rest is not None:
            names = names | self.rest.free_type_params()
        return names

    def substitute(self, substitution: Dict[str, Type]) -> Type:
        return self.map_types(lambda t: t.substitute(substitution))

    def map_types(self, fn: Callable[[Type], Type]) -> Type:
        return TupleType(
            tuple(TupleElement(fn(e.type), e.optional) for e in self.elements),
            fn(self.rest) if self.rest is not None else None,
        )

    def __repr__(self) -> str:
        parts = [repr(e) for e in self.elements]
        if self.rest is not None:
            parts.append(f"...{_parenthesize(self.rest)}[]")
        return "[" + ", ".join(parts) + "]"


@dataclass(frozen=True, slots=True)
class Parameter:
    """A function parameter.

    Attributes:
        name: Parameter name (display only)
        type: Parameter type; for a rest parameter the element type
        optional: Whether callers may omit it
    """

    name: str
    type: Type
    optional: bool = False

    def __repr__(self) -> str:
        marker = "?" if self.optional else ""
        return f"{self.name}{marker}: {self.type!r}"


@dataclass(frozen=True, slots=True)
class TypeParam(Type):
    """A generic type parameter.

    Attributes:
        name: Parameter name, unique within its declaring signature or alias
        bound: Optional upper bound (``T extends bound``)
        default: Optional default used when nothing informs the parameter
    """

    name: str
    bound: Optional[Type] = None
    default: Optional[Type] = None

    def free_type_params(self) -> FrozenSet[str]:
        return frozenset({self.name})

    def substitute(self, substitution: Dict[str, Type]) -> Type:
        if self.name in substitution:
            return substitution[self.name]
        return self

    def describe(self) -> str:
        """Declaration form, including bound and default."""
        text = self.name
        if self.bound is not None:
            text += f" extends {self.bound!r}"
        if self.default is not None:
            text += f" = {self.default!r}"
        return text

    def __repr__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class FunctionType(Type):
    """A function signature.

    Attributes:
        params: Ordered parameters; required ones come first
        returns: The return type
        rest: Optional trailing rest parameter (typed by its element type)
        type_params: Generic type parameters declared by this signature
    """

    params: Tuple[Parameter, ...]
    returns: Type
    rest: Optional[Parameter] = None
    type_params: Tuple[TypeParam, ...] = ()

    def __post_init__(self) -> None:
        seen_optional = False
        for param in self.params:
            if param.optional:
                seen_optional = True
            elif seen_optional:
                raise ValueError(
                    f"Required parameter {param.name!r} cannot follow an optional one"
                )

    @property
    def min_arity(self) -> int:
        return sum(1 for p in self.params if not p.optional)

    @property
    def max_arity(self) -> Optional[int]:
        """Maximum argument count, or None with a rest parameter."""
        return None if self.rest is not None else len(self.params)

    def param_type_at(self, index: int) -> Optional[Type]:
        """Type expected for the argument at ``index``, or None when too many."""
        if index < len(self.params):
            return self.params[index].type
        if self.rest is not None:
            return self.rest.type
        return None

    def free_type_params(self) -> FrozenSet[str]:
        names: FrozenSet[str] = self.returns.free_type_params()
        for p in self.params:
            names = names | p.type.free_type_params()
        if self.rest is not None:
            names = names | self.rest.type.free_type_params()
        return names - frozenset(tp.name for tp in self.type_params)

    def substitute(self, substitution: Dict[str, Type]) -> Type:
        if self.type_params:
            shadowed = {tp.name for tp in self.type_params}
            substitution = {
                k: v for k, v in substitution.items() if k not in shadowed
            }
        return self.map_types(lambda t: t.substitute(substitution))

    def map_types(self, fn: Callable[[Type], Type]) -> Type:
        rest = None
        if self.rest is not None:
            rest = Parameter(self.rest.name, fn(self.rest.type), self.rest.optional)
        return FunctionType(
            tuple(Parameter(p.name, fn(p.type), p.optional) for p in self.params),
            fn(self.returns),
            rest,
            self.type_params,
        )

    def __repr__(self) -> str:
        parts = [repr(p) for p in self.params]
        if self.rest is not None:
            parts.append(f"...{self.rest.name}: {_parenthesize(self.rest.type)}[]")
        generics = ""
        if self.type_params:
            generics = "<" + ", ".join(tp.describe() for tp in self.type_params) + ">"
        return f"{generics}({', '.join(parts)}) => {self.returns!r}"


@dataclass(frozen=True, slots=True)
class AliasRef(Type):
    """A reference to a named alias, interface, enum or class.

    Recursive types refer to themselves only through AliasRef, so the
    type graph never contains a physical cycle.

    Attributes:
        name: Alias name
        args: Type arguments
    """

    name: str
    args: Tuple[Type, ...] = ()

    def free_type_params(self) -> FrozenSet[str]:
        names: FrozenSet[str] = frozenset()
        for a in self.args:
            names = names | a.free_type_params()
        return names

    def substitute(self, substitution: Dict[str, Type]) -> Type:
        if not self.args:
            return self
        return AliasRef(self.name, tuple(a.substitute(substitution) for a in self.args))

    def map_types(self, fn: Callable[[Type], Type]) -> Type:
        if not self.args:
            return self
        return AliasRef(self.name, tuple(fn(a) for a in self.args))

    def __repr__(self) -> str:
        if not self.args:
            return self.name
        return f"{self.name}<{', '.join(repr(a) for a in self.args)}>"


@dataclass(frozen=True, slots=True)
class ErrorType(Type):
    """Sentinel standing in for a broken alias.

    It is assignable to and from every type, so a single broken declaration
    does not cascade into further diagnostics.
    """

    def __repr__(self) -> str:
        return "<error>"


ERROR = ErrorType()


def is_top(t: Type) -> bool:
    """True for types that short-circuit the assignability relation."""
    return t is ANY or t == ANY or isinstance(t, ErrorType)
