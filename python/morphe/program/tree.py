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
"""Declaration tree handed to the checker by a parser.

Nodes are frozen dataclasses compared and hashed by identity, so they can
key the checker's node -> type map even when two nodes look alike. Every
node carries an optional source location.

Three families of nodes:

- type expressions (``NamedType``, ``UnionTypeExpr``, ...), turned into
  interned types by ``morphe.program.builder``
- declarations (``TypeAliasDecl``, ``InterfaceDecl``, ``FunctionDecl``, ...)
- statements and expressions of function bodies
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from ..errors import SourceLocation

LiteralValue = Union[str, int, float, bool, None]


@dataclass(frozen=True, eq=False)
class Node:
    """Base class for all tree nodes."""

    loc: Optional[SourceLocation] = field(default=None, kw_only=True)


# =============================================================================
# Type expressions
# =============================================================================


class TypeExpr(Node):
    """Base class for type expressions."""


@dataclass(frozen=True, eq=False)
class NamedType(TypeExpr):
    """Reference to a primitive, alias, interface, enum, class or type parameter."""

    name: str
    args: Tuple[TypeExpr, ...] = ()


@dataclass(frozen=True, eq=False)
class LiteralTypeExpr(TypeExpr):
    """A literal type such as ``"circle"``, ``42`` or ``true``."""

    value: Union[str, int, float, bool]


@dataclass(frozen=True, eq=False)
class ArrayTypeExpr(TypeExpr):
    element: TypeExpr


@dataclass(frozen=True, eq=False)
class TupleMember(Node):
    type: TypeExpr
    optional: bool = False


@dataclass(frozen=True, eq=False)
class TupleTypeExpr(TypeExpr):
    elements: Tuple[TupleMember, ...] = ()
    rest: Optional[TypeExpr] = None


@dataclass(frozen=True, eq=False)
class PropertyDecl(Node):
    """A field of an object type, interface or class."""

    name: str
    type: TypeExpr
    optional: bool = False
    readonly: bool = False


@dataclass(frozen=True, eq=False)
class IndexSignatureDecl(Node):
    key_kind: str
    value: TypeExpr


@dataclass(frozen=True, eq=False)
class TypeParamDecl(Node):
    """A generic parameter ``T extends bound = default``."""

    name: str
    bound: Optional[TypeExpr] = None
    default: Optional[TypeExpr] = None


@dataclass(frozen=True, eq=False)
class ParamDecl(Node):
    """A function parameter.

    A missing annotation means ``any``, unless a ``default`` value is given:
    the parameter then takes the widened type of the default. A parameter
    with a default is optional.
    """

    name: str
    type: Optional[TypeExpr] = None
    optional: bool = False
    default: Optional[Expr] = None

    @property
    def is_optional(self) -> bool:
        return self.optional or self.default is not None


@dataclass(frozen=True, eq=False)
class FunctionTypeExpr(TypeExpr):
    """A function signature (also used for overloads and methods)."""

    params: Tuple[ParamDecl, ...] = ()
    returns: Optional[TypeExpr] = None
    rest: Optional[ParamDecl] = None
    type_params: Tuple[TypeParamDecl, ...] = ()


@dataclass(frozen=True, eq=False)
class ObjectTypeExpr(TypeExpr):
    properties: Tuple[PropertyDecl, ...] = ()
    index: Optional[IndexSignatureDecl] = None
    call_signatures: Tuple[FunctionTypeExpr, ...] = ()


@dataclass(frozen=True, eq=False)
class UnionTypeExpr(TypeExpr):
    members: Tuple[TypeExpr, ...]


@dataclass(frozen=True, eq=False)
class IntersectionTypeExpr(TypeExpr):
    members: Tuple[TypeExpr, ...]


# =============================================================================
# Expressions
# =============================================================================


class Expr(Node):
    """Base class for expressions."""


@dataclass(frozen=True, eq=False)
class Literal(Expr):
    """A literal value; ``None`` is ``null``."""

    value: LiteralValue


@dataclass(frozen=True, eq=False)
class Identifier(Expr):
    name: str


@dataclass(frozen=True, eq=False)
class ArrayLiteral(Expr):
    elements: Tuple[Expr, ...] = ()


@dataclass(frozen=True, eq=False)
class ObjectLiteral(Expr):
    properties: Tuple[Tuple[str, Expr], ...] = ()


@dataclass(frozen=True, eq=False)
class Member(Expr):
    """Property access ``object.name``."""

    object: Expr
    name: str


@dataclass(frozen=True, eq=False)
class Call(Expr):
    callee: Expr
    args: Tuple[Expr, ...] = ()
    type_args: Tuple[TypeExpr, ...] = ()


@dataclass(frozen=True, eq=False)
class New(Expr):
    class_name: str
    args: Tuple[Expr, ...] = ()
    type_args: Tuple[TypeExpr, ...] = ()


@dataclass(frozen=True, eq=False)
class ArrowFunction(Expr):
    """An arrow function; ``body`` is an expression or a statement tuple."""

    params: Tuple[ParamDecl, ...] = ()
    body: Union[Expr, Tuple["Stmt", ...]] = ()
    returns: Optional[TypeExpr] = None
    type_params: Tuple[TypeParamDecl, ...] = ()


@dataclass(frozen=True, eq=False)
class TypeofTest(Expr):
    """``typeof operand === kind`` (``!==`` when negated)."""

    operand: Expr
    kind: str
    negated: bool = False


@dataclass(frozen=True, eq=False)
class Equality(Expr):
    """``left === right`` (``!==`` when negated)."""

    left: Expr
    right: Expr
    negated: bool = False


@dataclass(frozen=True, eq=False)
class Not(Expr):
    operand: Expr


BINARY_OPERATORS = frozenset(
    {
        "+", "-", "*", "/", "%", "**",
        "<", ">", "<=", ">=", "==", "!=", "in", "instanceof",
        "&&", "||", "??",
    }
)


@dataclass(frozen=True, eq=False)
class Binary(Expr):
    """Arithmetic, comparison and logical operators."""

    op: str
    left: Expr
    right: Expr


# =============================================================================
# Statements
# =============================================================================


class Stmt(Node):
    """Base class for statements."""


@dataclass(frozen=True, eq=False)
class VariableDecl(Stmt):
    """``let``/``const`` binding (also a top-level declaration)."""

    name: str
    type: Optional[TypeExpr] = None
    init: Optional[Expr] = None
    const: bool = False


@dataclass(frozen=True, eq=False)
class Assign(Stmt):
    """Assignment to an identifier or a member."""

    target: Expr
    value: Expr


@dataclass(frozen=True, eq=False)
class ExprStmt(Stmt):
    expr: Expr


@dataclass(frozen=True, eq=False)
class If(Stmt):
    test: Expr
    then: Tuple[Stmt, ...] = ()
    otherwise: Tuple[Stmt, ...] = ()


@dataclass(frozen=True, eq=False)
class Return(Stmt):
    value: Optional[Expr] = None


@dataclass(frozen=True, eq=False)
class Throw(Stmt):
    value: Expr


@dataclass(frozen=True, eq=False)
class Block(Stmt):
    body: Tuple[Stmt, ...] = ()


# =============================================================================
# Declarations
# =============================================================================


@dataclass(frozen=True, eq=False)
class TypeAliasDecl(Node):
    name: str
    type: TypeExpr
    type_params: Tuple[TypeParamDecl, ...] = ()


@dataclass(frozen=True, eq=False)
class InterfaceDecl(Node):
    """A (possibly partial) interface declaration."""

    name: str
    properties: Tuple[PropertyDecl, ...] = ()
    extends: Tuple[NamedType, ...] = ()
    call_signatures: Tuple[FunctionTypeExpr, ...] = ()
    index: Optional[IndexSignatureDecl] = None
    type_params: Tuple[TypeParamDecl, ...] = ()


@dataclass(frozen=True, eq=False)
class EnumMember(Node):
    """An enum member; without a value it continues the numeric sequence."""

    name: str
    value: Optional[Union[str, int, float]] = None


@dataclass(frozen=True, eq=False)
class EnumDecl(Node):
    name: str
    members: Tuple[EnumMember, ...] = ()


@dataclass(frozen=True, eq=False)
class MethodDecl(Node):
    """A method; abstract methods have a signature and no body."""

    name: str
    signature: FunctionTypeExpr
    body: Tuple[Stmt, ...] = ()
    abstract: bool = False


@dataclass(frozen=True, eq=False)
class ClassDecl(Node):
    """A class; its instance type is structural like any object type.

    ``constructor_params`` is None when the class declares no constructor;
    it then inherits the constructor of its ``extends`` base, if any.
    """

    name: str
    properties: Tuple[PropertyDecl, ...] = ()
    methods: Tuple[MethodDecl, ...] = ()
    constructor_params: Optional[Tuple[ParamDecl, ...]] = None
    implements: Tuple[NamedType, ...] = ()
    type_params: Tuple[TypeParamDecl, ...] = ()
    extends: Optional[NamedType] = None
    abstract: bool = False


@dataclass(frozen=True, eq=False)
class FunctionDecl(Node):
    """A function; ``overloads`` lists the signatures callers see."""

    name: str
    params: Tuple[ParamDecl, ...] = ()
    returns: Optional[TypeExpr] = None
    body: Tuple[Stmt, ...] = ()
    type_params: Tuple[TypeParamDecl, ...] = ()
    rest: Optional[ParamDecl] = None
    overloads: Tuple[FunctionTypeExpr, ...] = ()

    @property
    def signature(self) -> FunctionTypeExpr:
        """The implementation signature as a type expression."""
        return FunctionTypeExpr(
            self.params, self.returns, self.rest, self.type_params, loc=self.loc
        )


Declaration = Union[
    TypeAliasDecl,
    InterfaceDecl,
    EnumDecl,
    ClassDecl,
    FunctionDecl,
    VariableDecl,
    Stmt,
]


@dataclass(frozen=True, eq=False)
class Program(Node):
    """A whole program: declarations in source order."""

    declarations: Tuple[Declaration, ...] = ()
    file: Optional[str] = None
