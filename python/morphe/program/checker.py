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
"""Whole-program checking pass.

A pass has two phases:

1. Serial phase. Every type name is declared, aliases, enums, classes and
   interfaces are defined in the type table, every alias is resolved once
   (so each broken cycle is reported exactly once), ``implements`` clauses
   and class member overrides are checked, and the types of global values
   (functions and top-level variables) are computed. The table is then frozen.
2. Value phase. Each top-level value declaration is walked by its own
   ``DeclarationChecker``, serially or on a thread pool. Results are merged
   back in declaration order, so the output does not depend on the number
   of workers.

Problems in one declaration never stop the others; everything ends up as a
``Diagnostic`` in the ``CheckResult``.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from ..config import CheckerConfig
from ..errors import (
    CheckError,
    CyclicAliasError,
    DuplicateDeclarationError,
    Diagnostic,
    InvalidEnumMemberError,
    UnassignableTypeError,
    UnimplementedAbstractMemberError,
    UnresolvedIdentifierError,
)
from ..stats import PassStats
from ..types.merging import InterfacePart, merge_interface
from ..types.model import (
    ANY,
    ERROR,
    UNKNOWN,
    AliasRef,
    ObjectType,
    Parameter,
    Property,
    Type,
    TypeParam,
)
from ..types.table import TypeTable
from . import tree
from .walker import CheckContext, ClassInfo, DeclarationChecker

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    """Outcome of checking a program.

    Attributes:
        diagnostics: All diagnostics, in declaration order
        node_types: Type computed for each expression and binding node
        stats: Counters of the pass
        table: The (frozen) type table of the pass
        elapsed_ms: Wall time of the pass
    """

    diagnostics: List[Diagnostic]
    node_types: Dict[tree.Node, Type]
    stats: PassStats
    table: TypeTable
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.diagnostics

    def diagnostics_for(self, declaration: str) -> List[Diagnostic]:
        """Diagnostics attached to the top-level declaration ``declaration``."""
        return [d for d in self.diagnostics if d.declaration == declaration]

    def kinds(self) -> List[str]:
        return [d.kind for d in self.diagnostics]

    def type_of(self, node: tree.Node) -> Optional[Type]:
        return self.node_types.get(node)

    def to_dict(self) -> Dict[str, object]:
        return {
            "ok": self.ok,
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "stats": self.stats.to_dict(),
            "elapsed_ms": round(self.elapsed_ms, 3),
        }


@dataclass
class _Unit:
    index: int
    label: str
    decl: tree.Declaration


@dataclass
class _UnitResult:
    diagnostics: List[Diagnostic] = field(default_factory=list)
    node_types: Dict[tree.Node, Type] = field(default_factory=dict)


def _label(index: int, decl: tree.Declaration) -> str:
    name = getattr(decl, "name", None)
    if isinstance(name, str):
        return name
    return f"<statement {index + 1}>"


class ProgramChecker:
    """Checks whole programs.

    Example:
        >>> result = ProgramChecker(CheckerConfig(workers=4)).check(program)
        >>> for diagnostic in result.diagnostics:
        ...     print(diagnostic)
    """

    def __init__(self, config: Optional[CheckerConfig] = None) -> None:
        self.config = config if config is not None else CheckerConfig()

    def check(self, program: tree.Program) -> CheckResult:
        start = time.perf_counter()
        self.config.apply_logging()
        stats = PassStats()
        context = CheckContext.create(self.config, stats)
        declarations = program.declarations
        logger.info(
            "Checking %s: %d declarations, %d worker(s)",
            program.file or "<program>",
            len(declarations),
            self.config.workers,
        )

        serial = _SerialPhase(context, declarations)
        serial.run()
        context.table.freeze()

        units = [
            _Unit(index, _label(index, decl), decl)
            for index, decl in enumerate(declarations)
            if isinstance(decl, (tree.FunctionDecl, tree.ClassDecl, tree.Stmt))
        ]
        results = self._run_units(context, units)

        diagnostics: List[Diagnostic] = []
        node_types: Dict[tree.Node, Type] = {}
        for index in range(len(declarations)):
            diagnostics.extend(serial.diagnostics.get(index, ()))
            unit_result = results.get(index)
            if unit_result is not None:
                diagnostics.extend(unit_result.diagnostics)
                node_types.update(unit_result.node_types)

        limit = self.config.max_diagnostics
        if limit is not None and len(diagnostics) > limit:
            logger.info("Truncating %d diagnostics to %d", len(diagnostics), limit)
            diagnostics = diagnostics[:limit]

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "Checked %s: %d diagnostic(s) in %.1fms",
            program.file or "<program>",
            len(diagnostics),
            elapsed_ms,
        )
        return CheckResult(diagnostics, node_types, stats, context.table, elapsed_ms)

    def _run_units(
        self, context: CheckContext, units: List[_Unit]
    ) -> Dict[int, _UnitResult]:
        if self.config.workers == 1 or len(units) < 2:
            return {unit.index: _check_unit(context, unit) for unit in units}
        with ThreadPoolExecutor(max_workers=self.config.workers) as executor:
            futures = [(unit.index, executor.submit(_check_unit, context, unit)) for unit in units]
            return {index: future.result() for index, future in futures}


def _check_unit(context: CheckContext, unit: _Unit) -> _UnitResult:
    walker = DeclarationChecker(context, unit.label)
    walker.check(unit.decl)
    context.stats.record("declarations_checked")
    return _UnitResult(walker.diagnostics, walker.node_types)


def check_program(
    program: tree.Program, config: Optional[CheckerConfig] = None
) -> CheckResult:
    """Check ``program`` and return its diagnostics and node types."""
    return ProgramChecker(config).check(program)


# =============================================================================
# Serial phase
# =============================================================================


class _SerialPhase:
    """Defines every type and global value of a program."""

    def __init__(self, context: CheckContext, declarations: Tuple[tree.Declaration, ...]):
        self.context = context
        self.table = context.table
        self.builder = context.builder
        self.declarations = declarations
        self.diagnostics: Dict[int, List[Diagnostic]] = {}
        self._type_origin: Dict[str, int] = {}
        self._value_names: Set[str] = set()
        self._interfaces: Dict[str, List[Tuple[int, tree.InterfaceDecl]]] = {}
        self._interface_state: Dict[str, str] = {}
        self._classes: Dict[str, Tuple[int, tree.ClassDecl]] = {}
        self._class_state: Dict[str, str] = {}
        self._class_bases: Dict[str, Tuple[Type, tree.NamedType]] = {}
        self._own_fields: Dict[str, Tuple[Property, ...]] = {}

    def report(self, index: int, error: CheckError, node: Optional[tree.Node] = None) -> None:
        decl = self.declarations[index]
        fallback = node.loc if node is not None else decl.loc
        diagnostic = Diagnostic.from_error(error, _label(index, decl), fallback)
        logger.debug("%s", diagnostic)
        self.diagnostics.setdefault(index, []).append(diagnostic)

    def run(self) -> None:
        self._declare_types()
        self._define_aliases()
        self._define_enums()
        self._define_classes()
        self._define_interfaces()
        self._resolve_aliases()
        self._check_implements()
        self._define_values()

    def _of_kind(self, kind: type) -> List[Tuple[int, tree.Declaration]]:
        return [(i, d) for i, d in enumerate(self.declarations) if isinstance(d, kind)]

    # =========================================================================
    # Types
    # =========================================================================

    def _declare_types(self) -> None:
        for index, decl in enumerate(self.declarations):
            if isinstance(decl, tree.InterfaceDecl):
                origin = self._type_origin.get(decl.name)
                if origin is not None and decl.name not in self._interfaces:
                    self.report(index, DuplicateDeclarationError(decl.name))
                    continue
                if origin is None:
                    self._type_origin[decl.name] = index
                    self.builder.declare(decl.name, decl.type_params)
                self._interfaces.setdefault(decl.name, []).append((index, decl))
            elif isinstance(decl, (tree.TypeAliasDecl, tree.EnumDecl, tree.ClassDecl)):
                params = getattr(decl, "type_params", ())
                if decl.name in self._type_origin:
                    self.report(index, DuplicateDeclarationError(decl.name))
                    continue
                self._type_origin[decl.name] = index
                self.builder.declare(decl.name, params)

    def _is_origin(self, index: int, name: str) -> bool:
        return self._type_origin.get(name) == index

    def _define_aliases(self) -> None:
        for index, decl in self._of_kind(tree.TypeAliasDecl):
            if not self._is_origin(index, decl.name):
                continue
            params: Tuple[TypeParam, ...] = ()
            try:
                params, scope = self.builder.type_params(decl.type_params)
                target = self.builder.build(decl.type, scope)
            except CheckError as e:
                self.report(index, e)
                target = ERROR
            self.table.define_alias(decl.name, target, params)

    def _define_enums(self) -> None:
        for index, decl in self._of_kind(tree.EnumDecl):
            if not self._is_origin(index, decl.name):
                continue
            members: Dict[str, Type] = {}
            next_value: Optional[float] = 0
            for member in decl.members:
                if member.name in members:
                    duplicate = DuplicateDeclarationError(f"{decl.name}.{member.name}")
                    self.report(index, duplicate, member)
                    continue
                value = member.value
                if value is None:
                    if next_value is None:
                        self.report(index, InvalidEnumMemberError(decl.name, member.name), member)
                        continue
                    value = next_value
                next_value = value + 1 if isinstance(value, (int, float)) else None
                members[member.name] = self.table.literal(value)
            self.table.define_alias(decl.name, self.table.union(members.values()))
            self._add_value(
                index,
                decl.name,
                self.table.object(
                    Property(name, t, readonly=True) for name, t in members.items()
                ),
                constant=True,
            )

    def _define_classes(self) -> None:
        for index, decl in self._of_kind(tree.ClassDecl):
            if self._is_origin(index, decl.name):
                self._classes[decl.name] = (index, decl)
        for name in self._classes:
            self._define_class(name)

    def _define_class(self, name: str) -> None:
        """Define a class after its base class, if it has one."""
        if name in self.context.classes or self._class_state.get(name) == "defining":
            return
        self._class_state[name] = "defining"
        index, decl = self._classes[name]
        base: Optional[ClassInfo] = None
        if decl.extends is not None:
            base_name = decl.extends.name
            if base_name not in self._classes:
                self.report(index, UnresolvedIdentifierError(base_name), decl.extends)
            elif self._class_state.get(base_name) == "defining":
                chain = (name, base_name, name) if base_name != name else (name, name)
                self.report(index, CyclicAliasError(name, chain), decl.extends)
            else:
                self._define_class(base_name)
                base = self.context.classes[base_name]

        params: Tuple[TypeParam, ...] = ()
        inherited: Dict[str, Property] = {}
        fields: Dict[str, Property] = {}
        constructor_params: List[Parameter] = []
        default_type = DeclarationChecker(self.context, _label(index, decl)).default_type
        try:
            params, scope = self.builder.type_params(decl.type_params)
            base_type = self.builder.build(decl.extends, scope) if base is not None else None
            if base_type is not None:
                shape = self.table.expand(base_type)
                if isinstance(shape, ObjectType):
                    inherited = {p.name: p for p in shape.properties}
                self._class_bases[name] = (base_type, decl.extends)
            for prop in decl.properties:
                fields[prop.name] = self.builder.property(prop, scope)
            for method in decl.methods:
                if method.name in fields:
                    raise DuplicateDeclarationError(
                        f"{decl.name}.{method.name}"
                    ).at(method.loc)
                signature = self.builder.signature(
                    method.signature, scope, returns=ANY, default_type=default_type
                )
                fields[method.name] = Property(method.name, signature)
            if decl.constructor_params is not None:
                constructor_params = self.builder.parameters(
                    decl.constructor_params, scope, default_type
                )
            elif base is not None and base_type is not None:
                constructor_params = self._inherited_constructor(base, base_type)
        except CheckError as e:
            self.report(index, e)
        self._own_fields[name] = tuple(fields.values())
        merged = {**inherited, **fields}
        self.table.define_alias(decl.name, self.table.object(merged.values()), params)
        instance = self.table.alias_ref(decl.name, params)
        constructor = self.table.function(constructor_params, instance, None, params)

        abstract_methods = dict(base.abstract_methods) if base is not None else {}
        for method in decl.methods:
            if method.abstract:
                abstract_methods[method.name] = decl.name
            else:
                abstract_methods.pop(method.name, None)
        for prop in decl.properties:
            abstract_methods.pop(prop.name, None)
        if not decl.abstract:
            for member, owner in abstract_methods.items():
                self.report(index, UnimplementedAbstractMemberError(name, member, owner))
            abstract_methods = {}

        self.context.classes[name] = ClassInfo(
            name,
            params,
            instance,
            constructor,
            abstract=decl.abstract,
            abstract_methods=abstract_methods,
            base=base.name if base is not None else None,
        )
        self._class_state[name] = "defined"

    def _inherited_constructor(self, base: ClassInfo, base_type: Type) -> List[Parameter]:
        """Constructor parameters of the base, instantiated with the type arguments of extends."""
        args = base_type.args if isinstance(base_type, AliasRef) else ()
        substitution: Dict[str, Type] = {}
        for position, param in enumerate(base.params):
            if position < len(args):
                substitution[param.name] = args[position]
            else:
                substitution[param.name] = param.default if param.default is not None else UNKNOWN
        return [
            Parameter(p.name, self.table.substitute(p.type, substitution), p.optional)
            for p in base.constructor.params
        ]

    def _define_interfaces(self) -> None:
        for name in self._interfaces:
            self._define_interface(name)

    def _define_interface(self, name: str) -> None:
        state = self._interface_state.get(name)
        if state is not None:
            return
        self._interface_state[name] = "defining"
        group = self._interfaces[name]
        first_index = group[0][0]
        for _, decl in group:
            for base in decl.extends:
                if base.name in self._interfaces:
                    if self._interface_state.get(base.name) == "defining":
                        self.report(
                            first_index,
                            CyclicAliasError(name, (name, base.name, name)),
                            base,
                        )
                        self._interface_state[name] = "defined"
                        self.table.define_alias(name, ERROR)
                        return
                    self._define_interface(base.name)

        parts = []
        shape: Type = ERROR
        params: Tuple[TypeParam, ...] = ()
        try:
            params, scope = self.builder.type_params(group[0][1].type_params)
            for _, decl in group:
                part_params, part_scope = self.builder.type_params(decl.type_params)
                part_scope = {**part_scope, **scope}
                parts.append(
                    InterfacePart(
                        name,
                        tuple(self.builder.property(p, part_scope) for p in decl.properties),
                        tuple(self.builder.build(b, part_scope) for b in decl.extends),
                        tuple(self.builder.signature(s, part_scope) for s in decl.call_signatures),
                        self.builder.index_signature(decl.index, part_scope)
                        if decl.index is not None
                        else None,
                        part_params,
                    )
                )
            shape = merge_interface(parts, resolve_base=self.table.expand)
        except CheckError as e:
            self.report(first_index, e)
        self._interface_state[name] = "defined"
        self.table.define_alias(name, shape, params)

    def _resolve_aliases(self) -> None:
        for name in self.table.alias_names():
            try:
                self.table.resolve_alias(name)
            except CyclicAliasError as e:
                index = self._type_origin.get(e.alias, self._type_origin.get(name, 0))
                self.report(index, e)
            except CheckError as e:
                self.report(self._type_origin.get(name, 0), e)

    def _check_implements(self) -> None:
        checker = self.context.checker
        for index, decl in self._of_kind(tree.ClassDecl):
            info = self.context.classes.get(decl.name)
            if info is None or not self._is_origin(index, decl.name):
                continue
            scope = {p.name: p for p in info.params}
            for clause in decl.implements:
                try:
                    interface = self.builder.build(clause, scope)
                    result = checker.check(info.instance, interface)
                    if not result.success:
                        raise UnassignableTypeError(
                            info.instance,
                            interface,
                            f"class '{decl.name}' incorrectly implements '{clause.name}': "
                            f"{result.reason}",
                        )
                except CheckError as e:
                    self.report(index, e, clause)
            if decl.name in self._class_bases:
                self._check_overrides(index, decl.name)

    def _check_overrides(self, index: int, name: str) -> None:
        """Redeclared members must stay assignable to the base class member."""
        base_type, clause = self._class_bases[name]
        try:
            shape = self.table.expand(base_type)
        except CheckError as e:
            self.report(index, e, clause)
            return
        if not isinstance(shape, ObjectType):
            return
        for prop in self._own_fields.get(name, ()):
            inherited = shape.get_property(prop.name)
            if inherited is None:
                continue
            result = self.context.checker.check(prop.type, inherited.type)
            if not result.success:
                self.report(
                    index,
                    UnassignableTypeError(
                        prop.type,
                        inherited.type,
                        f"property '{prop.name}' of class '{name}' is not assignable to "
                        f"the same property in base class '{clause.name}': {result.reason}",
                    ),
                    clause,
                )

    # =========================================================================
    # Global values
    # =========================================================================

    def _add_value(self, index: int, name: str, t: Type, constant: bool = False) -> bool:
        if name in self._value_names:
            self.report(index, DuplicateDeclarationError(name))
            return False
        self._value_names.add(name)
        self.context.globals[name] = t
        if constant:
            self.context.constants.add(name)
        return True

    def _define_values(self) -> None:
        pending_variables: List[Tuple[int, tree.VariableDecl]] = []
        for index, decl in self._of_kind(tree.VariableDecl):
            if decl.type is None:
                pending_variables.append((index, decl))
                continue
            try:
                declared = self.builder.build(decl.type)
            except CheckError:
                declared = ERROR
            self._add_value(index, decl.name, declared, constant=decl.const)

        inferred_returns: List[Tuple[int, tree.FunctionDecl]] = []
        for index, decl in self._of_kind(tree.FunctionDecl):
            default_type = DeclarationChecker(self.context, _label(index, decl)).default_type
            try:
                implementation = self.builder.signature(
                    decl.signature, returns=ANY, default_type=default_type
                )
                overloads = tuple(
                    self.builder.signature(o, returns=ANY) for o in decl.overloads
                )
            except CheckError as e:
                self.report(index, e)
                self._add_value(index, decl.name, ERROR, constant=True)
                continue
            if overloads:
                value: Type = self.table.object(call_signatures=overloads)
            else:
                value = implementation
            if not self._add_value(index, decl.name, value, constant=True):
                continue
            self.context.implementations[decl.name] = implementation
            self.context.overloads[decl.name] = overloads
            if decl.returns is None:
                inferred_returns.append((index, decl))

        for index, decl in inferred_returns:
            self._infer_return(index, decl)

        for index, decl in pending_variables:
            walker = DeclarationChecker(self.context, _label(index, decl))
            walker.statement(decl)
            self._add_value(
                index, decl.name, walker.node_types.get(decl, ERROR), constant=decl.const
            )

    def _infer_return(self, index: int, decl: tree.FunctionDecl) -> None:
        implementation = self.context.implementations[decl.name]
        walker = DeclarationChecker(self.context, _label(index, decl))
        returns = walker.callable_body(
            decl.params, decl.rest, implementation, decl.body, None
        )
        inferred = self.table.function(
            implementation.params, returns, implementation.rest, implementation.type_params
        )
        logger.debug("Inferred %s: %s", decl.name, inferred)
        self.context.implementations[decl.name] = inferred
        if not self.context.overloads.get(decl.name):
            self.context.globals[decl.name] = inferred
