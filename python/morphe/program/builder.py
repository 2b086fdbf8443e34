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
"""Turn type expressions of the declaration tree into interned types."""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from ..errors import (
    TypeArgumentCountError,
    UnassignableTypeError,
    UnresolvedIdentifierError,
)
from ..types.model import (
    ANY,
    FALSE,
    PRIMITIVE_NAMES,
    TRUE,
    VOID,
    ArrayType,
    FunctionType,
    IndexSignature,
    Parameter,
    Property,
    Type,
    TypeParam,
    is_top,
)
from ..types.table import TypeTable
from . import tree

logger = logging.getLogger(__name__)

TypeScope = Mapping[str, TypeParam]
DefaultTyper = Callable[[tree.Expr], Type]

_EMPTY_SCOPE: Dict[str, TypeParam] = {}


def keep_required_before(
    decls: Sequence[tree.ParamDecl], params: List[Parameter]
) -> List[Parameter]:
    """A defaulted parameter followed by a required one stays required."""
    for index in range(len(params) - 2, -1, -1):
        decl = decls[index]
        if decl.default is not None and not decl.optional and not params[index + 1].optional:
            params[index] = Parameter(decl.name, params[index].type)
    return params


class TypeBuilder:
    """Builds types from type expressions.

    Names resolve, in order, to type parameters in scope, primitives, the
    built-in ``Array<T>``, the literals ``true``/``false``, and finally to
    declared aliases (interfaces, enums and classes included), which become
    lazy ``AliasRef``s.

    Attributes:
        table: Table the built types are interned in
    """

    def __init__(self, table: TypeTable) -> None:
        self.table = table
        self._arity: Dict[str, Tuple[int, int]] = {}

    def declare(self, name: str, params: Sequence[tree.TypeParamDecl] = ()) -> None:
        """Make ``name`` known as a type taking ``params``."""
        required = sum(1 for p in params if p.default is None)
        self._arity[name] = (required, len(params))

    def is_declared(self, name: str) -> bool:
        return name in self._arity

    # =========================================================================
    # Type expressions
    # =========================================================================

    def build(self, expr: tree.TypeExpr, scope: Optional[TypeScope] = None) -> Type:
        """Build the type denoted by ``expr``.

        Raises:
            UnresolvedIdentifierError: For unknown type names
            TypeArgumentCountError: For a wrong number of type arguments
        """
        scope = scope if scope is not None else _EMPTY_SCOPE
        table = self.table

        if isinstance(expr, tree.NamedType):
            return self._named(expr, scope)
        if isinstance(expr, tree.LiteralTypeExpr):
            return table.literal(expr.value)
        if isinstance(expr, tree.ArrayTypeExpr):
            return table.array(self.build(expr.element, scope))
        if isinstance(expr, tree.TupleTypeExpr):
            return table.tuple(
                [self.build(m.type, scope) for m in expr.elements],
                [m.optional for m in expr.elements],
                self.build(expr.rest, scope) if expr.rest is not None else None,
            )
        if isinstance(expr, tree.ObjectTypeExpr):
            return table.object(
                [self.property(p, scope) for p in expr.properties],
                self.index_signature(expr.index, scope) if expr.index is not None else None,
                [self.signature(s, scope) for s in expr.call_signatures],
            )
        if isinstance(expr, tree.FunctionTypeExpr):
            return self.signature(expr, scope)
        if isinstance(expr, tree.UnionTypeExpr):
            return table.union(self.build(m, scope) for m in expr.members)
        if isinstance(expr, tree.IntersectionTypeExpr):
            return table.intersection(self.build(m, scope) for m in expr.members)
        raise TypeError(f"Not a type expression: {expr!r}")

    def _named(self, expr: tree.NamedType, scope: TypeScope) -> Type:
        name = expr.name
        args = [self.build(a, scope) for a in expr.args]
        if name in scope and not args:
            return scope[name]
        if name in PRIMITIVE_NAMES and not args:
            return self.table.primitive(name)
        if name == "true" and not args:
            return TRUE
        if name == "false" and not args:
            return FALSE
        if name == "Array" and name not in self._arity:
            if len(args) != 1:
                raise TypeArgumentCountError(name, 1, 1, len(args)).at(expr.loc)
            return self.table.array(args[0])
        arity = self._arity.get(name)
        if arity is None:
            raise UnresolvedIdentifierError(name).at(expr.loc)
        required, total = arity
        if not required <= len(args) <= total:
            raise TypeArgumentCountError(name, required, total, len(args)).at(expr.loc)
        return self.table.alias_ref(name, args)

    def property(self, decl: tree.PropertyDecl, scope: Optional[TypeScope] = None) -> Property:
        return Property(
            decl.name, self.build(decl.type, scope), decl.optional, decl.readonly
        )

    def index_signature(
        self, decl: tree.IndexSignatureDecl, scope: Optional[TypeScope] = None
    ) -> IndexSignature:
        return IndexSignature(decl.key_kind, self.build(decl.value, scope))

    # =========================================================================
    # Generics and signatures
    # =========================================================================

    def type_params(
        self, decls: Sequence[tree.TypeParamDecl], scope: Optional[TypeScope] = None
    ) -> Tuple[Tuple[TypeParam, ...], Dict[str, TypeParam]]:
        """Build type parameters; each may refer to the ones before it.

        Returns:
            The parameters and the scope extended with them
        """
        inner: Dict[str, TypeParam] = dict(scope or {})
        built = []
        for decl in decls:
            bound = self.build(decl.bound, inner) if decl.bound is not None else None
            default = self.build(decl.default, inner) if decl.default is not None else None
            param = self.table.type_param(decl.name, bound, default)
            inner[decl.name] = param
            built.append(param)
        return tuple(built), inner

    def parameter(
        self,
        decl: tree.ParamDecl,
        scope: Optional[TypeScope] = None,
        default_type: Optional[DefaultTyper] = None,
    ) -> Parameter:
        """Build a parameter; a default value makes it optional.

        An unannotated parameter with a default is typed by ``default_type``
        (the widened type of the default value), or ``any`` without one.
        """
        if decl.type is not None:
            param_type = self.build(decl.type, scope)
        elif decl.default is not None and default_type is not None:
            param_type = default_type(decl.default)
        else:
            param_type = ANY
        return Parameter(decl.name, param_type, decl.is_optional)

    def parameters(
        self,
        decls: Sequence[tree.ParamDecl],
        scope: Optional[TypeScope] = None,
        default_type: Optional[DefaultTyper] = None,
    ) -> List[Parameter]:
        return keep_required_before(decls, [self.parameter(p, scope, default_type) for p in decls])

    def rest_parameter(
        self, decl: tree.ParamDecl, scope: Optional[TypeScope] = None
    ) -> Parameter:
        """Rest parameters are annotated with an array type and typed by its element."""
        if decl.type is None:
            return Parameter(decl.name, ANY)
        annotated = self.table.expand(self.build(decl.type, scope))
        if isinstance(annotated, ArrayType):
            return Parameter(decl.name, annotated.element)
        if is_top(annotated):
            return Parameter(decl.name, ANY)
        raise UnassignableTypeError(
            annotated, self.table.array(ANY), "a rest parameter must be of an array type"
        ).at(decl.loc)

    def signature(
        self,
        expr: tree.FunctionTypeExpr,
        scope: Optional[TypeScope] = None,
        returns: Optional[Type] = None,
        default_type: Optional[DefaultTyper] = None,
    ) -> FunctionType:
        """Build a function signature.

        Args:
            expr: The signature expression
            scope: Type parameters of enclosing declarations
            returns: Return type to use when ``expr`` has no annotation
                (defaults to ``void``)
            default_type: Types the default values of unannotated parameters
        """
        type_params, inner = self.type_params(expr.type_params, scope)
        params = self.parameters(expr.params, inner, default_type)
        rest = self.rest_parameter(expr.rest, inner) if expr.rest is not None else None
        if expr.returns is not None:
            return_type = self.build(expr.returns, inner)
        else:
            return_type = returns if returns is not None else VOID
        return self.table.function(params, return_type, rest, type_params)
