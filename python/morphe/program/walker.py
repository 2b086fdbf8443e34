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
"""Statement and expression checking for one declaration.

A ``DeclarationChecker`` walks one value declaration (variable, function,
class methods or top-level statement) with its own scope, diagnostics list
and node -> type map. It reads the shared ``CheckContext`` but never writes
to it, so several declarations may be walked on different threads.

Every expression is typed bottom-up; an optional *expected* type flows
top-down into literals, object/array literals and arrow functions
(contextual typing), which keeps literal types where a literal type is
expected and widens them elsewhere.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from ..checking.inference import GenericBinder
from ..checking.narrowing import NarrowingEngine, NarrowingScope
from ..checking.overloads import OverloadMatch, OverloadResolver
from ..checking.subtype import SubtypeChecker
from ..config import CheckerConfig
from ..errors import (
    AbstractInstantiationError,
    CheckError,
    Diagnostic,
    MissingPropertyError,
    NotCallableError,
    ReadonlyAssignmentError,
    TypeParameterConstraintError,
    UnassignableTypeError,
    UnresolvedIdentifierError,
)
from ..stats import PassStats
from ..types.model import (
    ANY,
    BIGINT,
    BOOLEAN,
    ERROR,
    NULL,
    NUMBER,
    STRING,
    UNDEFINED,
    VOID,
    ArrayType,
    ErrorType,
    FunctionType,
    IntersectionType,
    LiteralType,
    ObjectType,
    Parameter,
    Property,
    TupleType,
    Type,
    TypeParam,
    UnionType,
    is_top,
)
from ..types.table import TypeTable
from . import tree
from .builder import TypeBuilder, keep_required_before

logger = logging.getLogger(__name__)

_COMPARISON_OPERATORS = frozenset({"<", ">", "<=", ">=", "==", "!=", "in", "instanceof"})
_ARITHMETIC_OPERATORS = frozenset({"-", "*", "/", "%", "**"})


@dataclass
class ClassInfo:
    """A declared class.

    Attributes:
        name: Class name
        params: Generic parameters
        instance: Instance type, ``AliasRef(name, params)``
        constructor: Construct signature returning the instance type
        abstract: Whether the class is declared abstract
        abstract_methods: Abstract methods left unimplemented, mapped to the
            class that declares them (empty for concrete classes)
        base: Name of the extended class, if any
    """

    name: str
    params: Tuple[TypeParam, ...]
    instance: Type
    constructor: FunctionType
    abstract: bool = False
    abstract_methods: Dict[str, str] = field(default_factory=dict)
    base: Optional[str] = None


@dataclass
class CheckContext:
    """State shared by every declaration of a pass.

    Built during the serial phase; read-only while declarations are walked.
    """

    table: TypeTable
    config: CheckerConfig
    stats: PassStats
    checker: SubtypeChecker
    binder: GenericBinder
    resolver: OverloadResolver
    narrowing: NarrowingEngine
    builder: TypeBuilder
    globals: Dict[str, Type] = field(default_factory=dict)
    constants: Set[str] = field(default_factory=set)
    classes: Dict[str, ClassInfo] = field(default_factory=dict)
    implementations: Dict[str, FunctionType] = field(default_factory=dict)
    overloads: Dict[str, Tuple[FunctionType, ...]] = field(default_factory=dict)

    @classmethod
    def create(cls, config: CheckerConfig, stats: PassStats) -> "CheckContext":
        table = TypeTable(stats)
        checker = SubtypeChecker(table, config, stats)
        binder = GenericBinder(table, checker, stats)
        return cls(
            table=table,
            config=config,
            stats=stats,
            checker=checker,
            binder=binder,
            resolver=OverloadResolver(checker, binder, stats),
            narrowing=NarrowingEngine(table, checker),
            builder=TypeBuilder(table),
        )


@dataclass
class _ReturnContext:
    declared: Optional[Type]
    observed: List[Type] = field(default_factory=list)


class DeclarationChecker:
    """Walks one declaration and records diagnostics and node types.

    Attributes:
        label: Name of the declaration, attached to its diagnostics
        diagnostics: Problems found, in walk order
        node_types: Type of every expression and binding node walked
    """

    def __init__(self, context: CheckContext, label: str) -> None:
        self.context = context
        self.table = context.table
        self.builder = context.builder
        self.label = label
        self.diagnostics: List[Diagnostic] = []
        self.node_types: Dict[tree.Node, Type] = {}
        self.scope = NarrowingScope(context.globals)
        self._constants: List[Set[str]] = [set(context.constants)]
        self._returns: List[_ReturnContext] = []
        self._type_scope: Dict[str, TypeParam] = {}

    # =========================================================================
    # Declarations
    # =========================================================================

    def check(self, decl: tree.Declaration) -> None:
        """Walk a top-level value declaration."""
        if isinstance(decl, tree.FunctionDecl):
            self._guarded(decl, self._check_function)
        elif isinstance(decl, tree.ClassDecl):
            info = self.context.classes.get(decl.name)
            if info is not None:
                if decl.constructor_params:
                    self._guarded(decl, lambda d: self._check_constructor(d, info))
                for method in decl.methods:
                    if not method.abstract:
                        self._guarded(method, lambda m: self._check_method(m, info))
        elif isinstance(decl, tree.Stmt):
            self.statement(decl)

    def _guarded(self, node: tree.Node, action) -> None:
        try:
            action(node)
        except CheckError as e:
            self.report(e, node)

    def report(self, error: CheckError, node: Optional[tree.Node]) -> None:
        fallback = node.loc if node is not None else None
        diagnostic = Diagnostic.from_error(error, self.label, fallback)
        logger.debug("%s: %s", self.label, diagnostic)
        self.diagnostics.append(diagnostic)

    def _check_function(self, decl: tree.FunctionDecl) -> None:
        implementation = self.context.implementations.get(decl.name)
        if implementation is None:
            return
        self.node_types[decl] = self.context.globals.get(decl.name, implementation)
        for overload_expr, overload in zip(
            decl.overloads, self.context.overloads.get(decl.name, ())
        ):
            if not self.context.checker.signatures_compatible(implementation, overload):
                self.report(
                    UnassignableTypeError(
                        overload,
                        implementation,
                        "overload signature is not compatible with its implementation",
                    ),
                    overload_expr,
                )
        declared = (
            implementation.returns if decl.returns is not None else None
        )
        self.callable_body(decl.params, decl.rest, implementation, decl.body, declared)

    def _check_method(self, method: tree.MethodDecl, info: ClassInfo) -> None:
        scope = {p.name: p for p in info.params}
        signature = self.builder.signature(
            method.signature, scope, returns=ANY, default_type=self.default_type
        )
        declared = signature.returns if method.signature.returns is not None else None
        saved = self._type_scope
        self._type_scope = {**saved, **scope}
        self._enter()
        try:
            self._bind("this", info.instance, constant=True)
            self.callable_body(
                method.signature.params, method.signature.rest, signature, method.body, declared
            )
        finally:
            self._exit()
            self._type_scope = saved

    def _check_constructor(self, decl: tree.ClassDecl, info: ClassInfo) -> None:
        """Constructor parameters have no body here; only their defaults are checked."""
        saved = self._type_scope
        self._type_scope = {**saved, **{p.name: p for p in info.params}}
        self._enter()
        try:
            for param_decl, param in zip(decl.constructor_params, info.constructor.params):
                if param_decl.default is not None:
                    self._check_default(param_decl, param)
                self._bind(param.name, param.type)
        finally:
            self._exit()
            self._type_scope = saved

    def default_type(self, expr: tree.Expr) -> Type:
        """Type of an unannotated parameter, from its widened default value.

        Errors in the default are reported when the callable is walked.
        """
        try:
            return self.table.widen(self.infer(expr))
        except CheckError:
            return ANY

    def _check_default(self, decl: tree.ParamDecl, param: Parameter) -> None:
        try:
            if decl.type is None:
                self.infer(decl.default)
            else:
                value = self.infer(decl.default, param.type)
                self.require_assignable(value, param.type, decl.default)
        except CheckError as e:
            self.report(e, decl.default)

    def callable_body(
        self,
        param_decls: Tuple[tree.ParamDecl, ...],
        rest_decl: Optional[tree.ParamDecl],
        signature: FunctionType,
        body: Tuple[tree.Stmt, ...],
        declared_return: Optional[Type],
    ) -> Type:
        """Walk a function body and return its (declared or inferred) return type."""
        saved = self._type_scope
        self._type_scope = {**saved, **{tp.name: tp for tp in signature.type_params}}
        self._enter()
        context = _ReturnContext(declared_return)
        self._returns.append(context)
        try:
            for decl, param in zip(param_decls, signature.params):
                if decl.default is not None:
                    self._check_default(decl, param)
                    param_type = param.type
                elif param.optional:
                    param_type = self.table.union((param.type, UNDEFINED))
                else:
                    param_type = param.type
                self._bind(param.name, param_type)
                self.node_types[decl] = param_type
            if rest_decl is not None and signature.rest is not None:
                rest_type = self.table.array(signature.rest.type)
                self._bind(signature.rest.name, rest_type)
                self.node_types[rest_decl] = rest_type
            self.block(body)
        finally:
            self._returns.pop()
            self._exit()
            self._type_scope = saved
        if declared_return is not None:
            return declared_return
        if not context.observed:
            return VOID
        return self.table.union(self.table.widen(t) for t in context.observed)

    # =========================================================================
    # Scope helpers
    # =========================================================================

    def _enter(self) -> None:
        self.scope.enter()
        self._constants.append(set())

    def _exit(self) -> Dict[str, Type]:
        self._constants.pop()
        return self.scope.exit()

    def _bind(self, name: str, t: Type, constant: bool = False) -> None:
        self.scope.bind(name, t)
        for frame in self._constants:
            frame.discard(name)
        if constant:
            self._constants[-1].add(name)

    def _is_constant(self, name: str) -> bool:
        for frame in reversed(self._constants):
            if name in frame:
                return True
        return False

    # =========================================================================
    # Statements
    # =========================================================================

    def statement(self, stmt: tree.Stmt) -> bool:
        """Walk a statement; returns True if it always exits (return/throw)."""
        try:
            return self._statement(stmt)
        except CheckError as e:
            self.report(e, stmt)
            return False

    def block(self, stmts: Tuple[tree.Stmt, ...]) -> bool:
        exits = False
        for stmt in stmts:
            if self.statement(stmt):
                exits = True
        return exits

    def _statement(self, stmt: tree.Stmt) -> bool:
        if isinstance(stmt, tree.VariableDecl):
            self._variable(stmt)
            return False
        if isinstance(stmt, tree.Assign):
            self._assign(stmt)
            return False
        if isinstance(stmt, tree.ExprStmt):
            self.infer(stmt.expr)
            return False
        if isinstance(stmt, tree.If):
            return self._if(stmt)
        if isinstance(stmt, tree.Return):
            self._return(stmt)
            return True
        if isinstance(stmt, tree.Throw):
            self.infer(stmt.value)
            return True
        if isinstance(stmt, tree.Block):
            self._enter()
            try:
                exits = self.block(stmt.body)
            finally:
                outcome = self._exit()
            for name, t in outcome.items():
                if t is not self.scope.lookup(name):
                    self.scope.narrow(name, t)
            return exits
        raise TypeError(f"Unknown statement: {stmt!r}")

    def _variable(self, decl: tree.VariableDecl) -> None:
        if decl.type is not None:
            declared = self.builder.build(decl.type, self._type_scope)
            self._bind(decl.name, declared, decl.const)
            self.node_types[decl] = declared
            if decl.init is not None:
                value = self.infer(decl.init, declared)
                self.require_assignable(value, declared, decl.init)
                narrowed = self.context.narrowing.narrow_assignment(declared, value)
                if narrowed is not declared:
                    self.scope.narrow(decl.name, narrowed)
            return

        if decl.init is None:
            declared = ANY
        else:
            try:
                value = self.infer(decl.init)
            except CheckError:
                self._bind(decl.name, ERROR, decl.const)
                raise
            declared = value
            if not decl.const and self.context.config.widen_let_literals:
                declared = self.table.widen(value)
        self._bind(decl.name, declared, decl.const)
        self.node_types[decl] = declared

    def _assign(self, stmt: tree.Assign) -> None:
        target = stmt.target
        if isinstance(target, tree.Identifier):
            declared = self.scope.declared(target.name)
            if declared is None:
                raise UnresolvedIdentifierError(target.name).at(target.loc)
            if self._is_constant(target.name):
                raise ReadonlyAssignmentError(target.name).at(target.loc)
            value = self.infer(stmt.value, declared)
            self.require_assignable(value, declared, stmt.value)
            self.node_types[target] = self.context.narrowing.assign(
                self.scope, target.name, value
            )
            return
        if isinstance(target, tree.Member):
            owner = self.infer(target.object)
            field_type, readonly = self.member(owner, target.name, target)
            if readonly:
                raise ReadonlyAssignmentError(target.name).at(target.loc)
            self.node_types[target] = field_type
            value = self.infer(stmt.value, field_type)
            self.require_assignable(value, field_type, stmt.value)
            return
        raise TypeError(f"Invalid assignment target: {target!r}")

    def _if(self, stmt: tree.If) -> bool:
        self.infer(stmt.test)
        refinements = self.refinements(stmt.test)
        then_exits, then_types = self._branch(stmt.then, refinements, True)
        else_exits, else_types = self._branch(stmt.otherwise, refinements, False)
        self.context.narrowing.join(
            self.scope, then_types, else_types, then_exits, else_exits
        )
        return then_exits and else_exits

    def _branch(
        self,
        body: Tuple[tree.Stmt, ...],
        refinements: List[Tuple[str, Type, Type]],
        truthy: bool,
    ) -> Tuple[bool, Dict[str, Type]]:
        self._enter()
        try:
            for name, when_true, when_false in refinements:
                self.scope.narrow(name, when_true if truthy else when_false)
            exits = self.block(body)
        finally:
            outcome = self._exit()
        return exits, outcome

    def _return(self, stmt: tree.Return) -> None:
        context = self._returns[-1] if self._returns else None
        declared = context.declared if context is not None else None
        if stmt.value is None:
            value: Type = UNDEFINED
        else:
            value = self.infer(stmt.value, declared)
        if context is None:
            return
        context.observed.append(value)
        if declared is not None and not (stmt.value is None and declared is VOID):
            self.require_assignable(value, declared, stmt.value or stmt)

    def require_assignable(self, source: Type, target: Type, node: tree.Node) -> None:
        result = self.context.checker.check(source, target)
        if not result.success:
            raise UnassignableTypeError(source, target, result.reason).at(node.loc)

    # =========================================================================
    # Narrowing triggers
    # =========================================================================

    def refinements(self, test: tree.Expr) -> List[Tuple[str, Type, Type]]:
        """Narrowings implied by ``test``: (name, when true, when false)."""
        engine = self.context.narrowing
        if isinstance(test, tree.Not):
            return [(n, f, t) for n, t, f in self.refinements(test.operand)]

        if isinstance(test, tree.TypeofTest) and isinstance(test.operand, tree.Identifier):
            current = self.scope.lookup(test.operand.name)
            if current is None:
                return []
            when_true, when_false = engine.narrow_typeof(current, test.kind)
            return [_oriented(test.operand.name, when_true, when_false, test.negated)]

        if isinstance(test, tree.Equality):
            left, right = test.left, test.right
            value = self._unit_value(right)
            if value is None:
                left, right = right, left
                value = self._unit_value(right)
            if value is None:
                return []
            if isinstance(left, tree.Identifier):
                current = self.scope.lookup(left.name)
                if current is None:
                    return []
                when_true, when_false = engine.narrow_equality(current, value)
                return [_oriented(left.name, when_true, when_false, test.negated)]
            if isinstance(left, tree.Member) and isinstance(left.object, tree.Identifier):
                current = self.scope.lookup(left.object.name)
                if current is None:
                    return []
                when_true, when_false = engine.narrow_discriminant(current, left.name, value)
                return [_oriented(left.object.name, when_true, when_false, test.negated)]
            return []

        if isinstance(test, tree.Identifier):
            current = self.scope.lookup(test.name)
            if current is None:
                return []
            when_true, when_false = engine.narrow_truthiness(current)
            return [(test.name, when_true, when_false)]
        return []

    def _unit_value(self, expr: tree.Expr) -> Optional[Type]:
        t = self.node_types.get(expr)
        if isinstance(t, LiteralType) or t is NULL or t is UNDEFINED:
            return t
        return None

    # =========================================================================
    # Expressions
    # =========================================================================

    def infer(self, expr: tree.Expr, expected: Optional[Type] = None) -> Type:
        """Type ``expr``, using ``expected`` as contextual type if given."""
        t = self._infer(expr, expected)
        self.node_types[expr] = t
        return t

    def _infer(self, expr: tree.Expr, expected: Optional[Type]) -> Type:
        table = self.table
        if isinstance(expr, tree.Literal):
            if expr.value is None:
                return NULL
            return table.literal(expr.value)
        if isinstance(expr, tree.Identifier):
            return self._identifier(expr)
        if isinstance(expr, tree.ArrayLiteral):
            return self._array_literal(expr, expected)
        if isinstance(expr, tree.ObjectLiteral):
            return self._object_literal(expr, expected)
        if isinstance(expr, tree.Member):
            owner = self.infer(expr.object)
            return self.member(owner, expr.name, expr)[0]
        if isinstance(expr, tree.Call):
            return self._call(expr)
        if isinstance(expr, tree.New):
            return self._new(expr)
        if isinstance(expr, tree.ArrowFunction):
            return self._arrow(expr, expected)
        if isinstance(expr, tree.TypeofTest):
            self.infer(expr.operand)
            return BOOLEAN
        if isinstance(expr, tree.Equality):
            self.infer(expr.left)
            self.infer(expr.right)
            return BOOLEAN
        if isinstance(expr, tree.Not):
            self.infer(expr.operand)
            return BOOLEAN
        if isinstance(expr, tree.Binary):
            return self._binary(expr)
        raise TypeError(f"Unknown expression: {expr!r}")

    def _identifier(self, expr: tree.Identifier) -> Type:
        t = self.scope.lookup(expr.name)
        if t is not None:
            return t
        if expr.name == "undefined":
            return UNDEFINED
        if expr.name in ("NaN", "Infinity"):
            return NUMBER
        raise UnresolvedIdentifierError(expr.name).at(expr.loc)

    def _array_literal(self, expr: tree.ArrayLiteral, expected: Optional[Type]) -> Type:
        table = self.table
        context = table.expand(expected) if expected is not None else None
        if isinstance(context, TupleType):
            fits = len(expr.elements) >= context.min_length and (
                context.rest is not None or len(expr.elements) <= len(context.elements)
            )
            if fits:
                return table.tuple(
                    [self.infer(e, context.element_at(i)) for i, e in enumerate(expr.elements)]
                )
        element_context = self._element_context(context)
        types = [self.infer(e, element_context) for e in expr.elements]
        if not types:
            return table.array(element_context if element_context is not None else ANY)
        if element_context is None:
            types = [table.widen(t) for t in types]
        return table.array(table.union(types))

    def _element_context(self, context: Optional[Type]) -> Optional[Type]:
        if context is None:
            return None
        found = []
        for member in self.table.members_of(context):
            member = self.table.expand(member)
            if isinstance(member, ArrayType):
                found.append(member.element)
        return self.table.union(found) if found else None

    def _object_literal(self, expr: tree.ObjectLiteral, expected: Optional[Type]) -> Type:
        table = self.table
        properties: Dict[str, Property] = {}
        for name, value_expr in expr.properties:
            context = self._property_context(expected, name)
            value = self.infer(value_expr, context)
            if expected is None:
                value = table.widen(value)
            properties[name] = Property(name, value)
        return table.object(properties.values())

    def _property_context(self, expected: Optional[Type], name: str) -> Optional[Type]:
        if expected is None:
            return None
        found = []
        for member in self.table.members_of(self.table.expand(expected)):
            shape = self.table.expand(member)
            if not isinstance(shape, ObjectType):
                continue
            prop = shape.get_property(name)
            if prop is not None:
                found.append(prop.type)
            elif shape.index_signature is not None:
                found.append(shape.index_signature.value)
        return self.table.union(found) if found else None

    def member(self, owner: Type, name: str, node: tree.Node) -> Tuple[Type, bool]:
        """Type of ``owner.name`` and whether the field is readonly.

        Raises:
            MissingPropertyError: If some possible shape of ``owner`` lacks it
        """
        table = self.table
        shape = table.expand(owner)
        if isinstance(shape, ErrorType):
            return ERROR, False
        if is_top(shape):
            return ANY, False
        if isinstance(shape, UnionType):
            results = [self.member(m, name, node) for m in shape.members]
            return (
                table.union(t for t, _ in results),
                any(readonly for _, readonly in results),
            )
        if isinstance(shape, IntersectionType):
            found = []
            for m in shape.members:
                try:
                    found.append(self.member(m, name, node))
                except MissingPropertyError:
                    continue
            if found:
                return (
                    table.intersection(t for t, _ in found),
                    any(readonly for _, readonly in found),
                )
        if isinstance(shape, ObjectType):
            prop = shape.get_property(name)
            if prop is not None:
                field_type = table.union((prop.type, UNDEFINED)) if prop.optional else prop.type
                return field_type, prop.readonly
            index = shape.index_signature
            if index is not None and (index.key_kind == "string" or name.isdigit()):
                return index.value, False
        if isinstance(shape, (ArrayType, TupleType)) and name == "length":
            return NUMBER, False
        if isinstance(shape, TupleType) and name.isdigit():
            element = shape.element_at(int(name))
            if element is not None:
                return element, False
        if isinstance(shape, ArrayType) and name.isdigit():
            return shape.element, False
        if name == "length" and (
            shape is STRING or (isinstance(shape, LiteralType) and shape.kind == "string")
        ):
            return NUMBER, True
        if isinstance(shape, TypeParam) and shape.bound is not None:
            return self.member(shape.bound, name, node)
        raise MissingPropertyError(owner, name).at(node.loc)

    # =========================================================================
    # Calls
    # =========================================================================

    def _call(self, expr: tree.Call) -> Type:
        callee = self.infer(expr.callee)
        explicit = [self.builder.build(a, self._type_scope) for a in expr.type_args]
        shape = self.table.expand(callee)
        if is_top(shape):
            for arg in expr.args:
                self.infer(arg)
            return shape if isinstance(shape, ErrorType) else ANY
        signatures = self._signatures_of(shape)
        if not signatures:
            raise NotCallableError(callee).at(expr.loc)
        try:
            if len(signatures) == 1:
                match = self._call_signature(signatures[0], expr.args, explicit)
            else:
                arg_types = [self.infer(a) for a in expr.args]
                match = self.context.resolver.resolve(signatures, arg_types, explicit or None)
        except CheckError as e:
            raise e.at(expr.loc)
        return match.returns

    def _signatures_of(self, shape: Type) -> Tuple[FunctionType, ...]:
        if isinstance(shape, FunctionType):
            return (shape,)
        if isinstance(shape, ObjectType):
            return shape.call_signatures
        if isinstance(shape, TypeParam) and shape.bound is not None:
            return self._signatures_of(self.table.expand(shape.bound))
        return ()

    def _call_signature(
        self,
        signature: FunctionType,
        arg_exprs: Tuple[tree.Expr, ...],
        explicit: List[Type],
    ) -> OverloadMatch:
        resolver = self.context.resolver
        if not signature.type_params:
            arg_types = [
                self.infer(a, signature.param_type_at(i)) for i, a in enumerate(arg_exprs)
            ]
            return resolver.check_call(signature, arg_types)

        if explicit:
            binding = self.context.binder.bind(signature, [], explicit)
            arg_types = [
                self.infer(a, binding.signature.param_type_at(i))
                for i, a in enumerate(arg_exprs)
            ]
            return resolver.check_call(signature, arg_types, explicit)

        # Arrow functions with unannotated parameters are typed after a
        # first binding from the other arguments
        provisional: List[Optional[Type]] = [
            None if _context_sensitive(a) else self.infer(a) for a in arg_exprs
        ]
        if any(t is None for t in provisional):
            instantiated: Optional[FunctionType] = None
            try:
                instantiated = self.context.binder.bind(signature, provisional).signature
            except TypeParameterConstraintError:
                logger.debug("Provisional binding of %s failed", signature)
            for index, arg in enumerate(arg_exprs):
                if provisional[index] is None:
                    context = (
                        instantiated.param_type_at(index) if instantiated is not None else None
                    )
                    provisional[index] = self.infer(arg, context)
        arg_types = [t for t in provisional if t is not None]
        return resolver.check_call(signature, arg_types)

    def _new(self, expr: tree.New) -> Type:
        info = self.context.classes.get(expr.class_name)
        if info is None:
            raise UnresolvedIdentifierError(expr.class_name).at(expr.loc)
        if info.abstract:
            raise AbstractInstantiationError(expr.class_name).at(expr.loc)
        explicit = [self.builder.build(a, self._type_scope) for a in expr.type_args]
        try:
            match = self._call_signature(info.constructor, expr.args, explicit)
        except CheckError as e:
            raise e.at(expr.loc)
        return match.returns

    def _arrow(self, expr: tree.ArrowFunction, expected: Optional[Type]) -> Type:
        table = self.table
        context = self._signature_context(expected)
        type_params, scope = self.builder.type_params(expr.type_params, self._type_scope)
        params = []
        for index, decl in enumerate(expr.params):
            if decl.type is not None:
                param_type = self.builder.build(decl.type, scope)
            else:
                param_type = ANY
                found = context.param_type_at(index) if context is not None else None
                if found is not None and not found.free_type_params():
                    param_type = found
                elif decl.default is not None:
                    param_type = self.default_type(decl.default)
            params.append(Parameter(decl.name, param_type, decl.is_optional))
        params = keep_required_before(expr.params, params)

        declared = self.builder.build(expr.returns, scope) if expr.returns is not None else None
        context_return = None
        if context is not None and not context.returns.free_type_params():
            context_return = context.returns

        saved = self._type_scope
        self._type_scope = scope
        self._enter()
        try:
            for decl, param in zip(expr.params, params):
                if decl.default is not None:
                    self._check_default(decl, param)
                    param_type = param.type
                elif param.optional:
                    param_type = table.union((param.type, UNDEFINED))
                else:
                    param_type = param.type
                self._bind(param.name, param_type)
                self.node_types[decl] = param_type
            if isinstance(expr.body, tuple):
                returns_context = _ReturnContext(declared)
                self._returns.append(returns_context)
                try:
                    self.block(expr.body)
                finally:
                    self._returns.pop()
                if declared is not None:
                    returns = declared
                elif returns_context.observed:
                    returns = table.union(table.widen(t) for t in returns_context.observed)
                else:
                    returns = VOID
            else:
                value = self.infer(expr.body, declared or context_return)
                if declared is not None:
                    self.require_assignable(value, declared, expr.body)
                    returns = declared
                elif context_return is not None:
                    returns = value
                else:
                    returns = table.widen(value)
        finally:
            self._exit()
            self._type_scope = saved
        return table.function(params, returns, None, type_params)

    def _signature_context(self, expected: Optional[Type]) -> Optional[FunctionType]:
        if expected is None:
            return None
        shape = self.table.expand(expected)
        if isinstance(shape, FunctionType):
            return shape
        if isinstance(shape, ObjectType) and len(shape.call_signatures) == 1:
            return shape.call_signatures[0]
        return None

    # =========================================================================
    # Operators
    # =========================================================================

    def _binary(self, expr: tree.Binary) -> Type:
        table = self.table
        checker = self.context.checker
        left = self.infer(expr.left)
        right = self.infer(expr.right)
        op = expr.op
        if op in _COMPARISON_OPERATORS:
            return BOOLEAN
        if op == "&&":
            return table.union((self.context.narrowing.narrow_truthiness(left)[1], right))
        if op == "||":
            return table.union((self.context.narrowing.narrow_truthiness(left)[0], right))
        if op == "??":
            present = [
                m for m in table.members_of(table.expand(left)) if m not in (NULL, UNDEFINED)
            ]
            return table.union(present + [right])
        if is_top(left) or is_top(right):
            return ANY
        if op == "+":
            if checker.is_assignable(left, STRING) or checker.is_assignable(right, STRING):
                return STRING
        if op == "+" or op in _ARITHMETIC_OPERATORS:
            if checker.is_assignable(left, BIGINT) and checker.is_assignable(right, BIGINT):
                return BIGINT
            for operand, node in ((left, expr.left), (right, expr.right)):
                if not checker.is_assignable(operand, NUMBER):
                    raise UnassignableTypeError(
                        operand, NUMBER, f"operator '{op}' needs numeric operands"
                    ).at(node.loc)
            return NUMBER
        raise TypeError(f"Unknown operator: {op!r}")


def _oriented(
    name: str, when_true: Type, when_false: Type, negated: bool
) -> Tuple[str, Type, Type]:
    if negated:
        return name, when_false, when_true
    return name, when_true, when_false


def _context_sensitive(expr: tree.Expr) -> bool:
    return isinstance(expr, tree.ArrowFunction) and any(
        p.type is None for p in expr.params
    )
