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
"""Generic type parameter binding at call sites.

Uses local type inference: each declared parameter type is matched against
the corresponding argument type, and every occurrence of a type parameter
records the argument's type as a candidate. Candidates found in covariant
positions take precedence; contravariant candidates (from callback
parameters) are used only when nothing covariant was observed.

Example:
    ``function identity<T>(x: T): T`` called with ``(42)`` binds ``T`` to
    ``number``; called with ``(1, "a")`` against ``(...xs: T[])`` binds
    ``T`` to ``number | string``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence, Set, Tuple

from ..errors import TypeArgumentCountError, TypeParameterConstraintError
from ..stats import PassStats
from ..types.model import (
    UNKNOWN,
    AliasRef,
    ArrayType,
    FunctionType,
    IntersectionType,
    ObjectType,
    TupleType,
    Type,
    TypeParam,
    UnionType,
    Variance,
    is_top,
)
from ..types.table import TypeTable
from .subtype import SubtypeChecker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InferenceCandidate:
    """A type observed for a type parameter.

    Attributes:
        param: Type parameter name
        type: The observed argument type (or part of it)
        variance: Position in which it was observed
    """

    param: str
    type: Type
    variance: Variance


@dataclass
class Binding:
    """Result of binding a generic signature.

    Attributes:
        substitution: Type parameter name -> bound type
        signature: The signature with bindings substituted and no type params
        inferred: Names whose binding came from argument candidates
    """

    substitution: Dict[str, Type]
    signature: FunctionType
    inferred: FrozenSet[str] = field(default_factory=frozenset)

    def __getitem__(self, name: str) -> Type:
        return self.substitution[name]


@dataclass
class _Candidates:
    covariant: Dict[str, List[Type]] = field(default_factory=dict)
    contravariant: Dict[str, List[Type]] = field(default_factory=dict)

    def add(self, candidate: InferenceCandidate) -> None:
        bucket = (
            self.covariant
            if candidate.variance is Variance.COVARIANT
            else self.contravariant
        )
        bucket.setdefault(candidate.param, []).append(candidate.type)

    def for_param(self, name: str) -> List[Type]:
        return self.covariant.get(name) or self.contravariant.get(name) or []


class GenericBinder:
    """Binds the type parameters of generic signatures.

    Attributes:
        table: Type table used to build instantiated types
        checker: Assignability relation used for bound checks
    """

    def __init__(
        self,
        table: TypeTable,
        checker: SubtypeChecker,
        stats: Optional[PassStats] = None,
    ) -> None:
        self.table = table
        self.checker = checker
        self.stats = stats if stats is not None else table.stats

    def bind(
        self,
        signature: FunctionType,
        args: Sequence[Optional[Type]],
        explicit_type_args: Optional[Sequence[Type]] = None,
    ) -> Binding:
        """Bind ``signature``'s type parameters for a call with ``args``.

        Args:
            signature: A possibly generic signature
            args: Argument types; ``None`` entries are skipped (arguments
                whose type depends on the binding itself)
            explicit_type_args: Type arguments written at the call site

        Returns:
            The binding and the instantiated signature

        Raises:
            TypeArgumentCountError: If too many explicit type arguments
            TypeParameterConstraintError: If a binding violates its bound
        """
        params = signature.type_params
        if not params:
            return Binding({}, signature)
        explicit = list(explicit_type_args or ())
        required = sum(1 for p in params if p.default is None)
        if len(explicit) > len(params) or (explicit and len(explicit) < required):
            raise TypeArgumentCountError(
                str(signature), required, len(params), len(explicit)
            )

        self.stats.record("bindings")
        names = frozenset(p.name for p in params)
        candidates = _Candidates()
        if not explicit:
            for index, arg in enumerate(args):
                if arg is None:
                    continue
                param_type = signature.param_type_at(index)
                if param_type is None:
                    continue
                self._infer(param_type, arg, names, candidates, Variance.COVARIANT, set())

        substitution: Dict[str, Type] = {}
        inferred: Set[str] = set()
        for index, param in enumerate(params):
            bound = (
                self.table.substitute(param.bound, substitution)
                if param.bound is not None
                else None
            )
            if index < len(explicit):
                computed = self.table.intern(explicit[index])
            else:
                observed = candidates.for_param(param.name)
                if observed:
                    computed = self._choose(observed, bound)
                    inferred.add(param.name)
                elif param.default is not None:
                    computed = self.table.substitute(param.default, substitution)
                else:
                    computed = UNKNOWN
            if bound is not None and not self.checker.is_assignable(computed, bound):
                raise TypeParameterConstraintError(param, bound, computed)
            substitution[param.name] = computed

        instantiated = self.table.intern(
            self.table.substitute(
                FunctionType(signature.params, signature.returns, signature.rest),
                substitution,
            )
        )
        assert isinstance(instantiated, FunctionType)
        logger.debug(
            "Bound %s with %s",
            signature,
            ", ".join(f"{k}={v}" for k, v in substitution.items()),
        )
        return Binding(substitution, instantiated, frozenset(inferred))

    # =========================================================================
    # Candidate selection
    # =========================================================================

    def _choose(self, observed: Sequence[Type], bound: Optional[Type]) -> Type:
        widened = self.table.union(self.table.widen(t) for t in observed)
        if bound is None or self.checker.is_assignable(widened, bound):
            return widened
        exact = self.table.union(observed)
        if self.checker.is_assignable(exact, bound):
            # Only the literal union satisfies the bound, e.g. T extends "a" | "b"
            return exact
        return widened

    # =========================================================================
    # Candidate collection
    # =========================================================================

    def _infer(
        self,
        template: Type,
        concrete: Type,
        names: FrozenSet[str],
        candidates: _Candidates,
        variance: Variance,
        seen: Set[Tuple[Type, Type]],
    ) -> None:
        if isinstance(template, TypeParam) and template.name in names:
            candidates.add(InferenceCandidate(template.name, concrete, variance))
            return
        if template.free_type_params().isdisjoint(names):
            return
        if is_top(concrete):
            return

        if isinstance(template, AliasRef) or isinstance(concrete, AliasRef):
            pair = (template, concrete)
            if pair in seen:
                return
            seen.add(pair)
            template = self.table.expand(template)
            concrete = self.table.expand(concrete)
            if template.free_type_params().isdisjoint(names):
                return

        if isinstance(template, UnionType):
            self._infer_union(template, concrete, names, candidates, variance, seen)
            return
        if isinstance(concrete, UnionType):
            for member in concrete.members:
                self._infer(template, member, names, candidates, variance, seen)
            return
        if isinstance(template, IntersectionType):
            for member in template.members:
                self._infer(member, concrete, names, candidates, variance, seen)
            return

        if isinstance(template, ArrayType):
            if isinstance(concrete, ArrayType):
                self._infer(template.element, concrete.element, names, candidates, variance, seen)
            elif isinstance(concrete, TupleType):
                for element in concrete.elements:
                    self._infer(template.element, element.type, names, candidates, variance, seen)
                if concrete.rest is not None:
                    self._infer(template.element, concrete.rest, names, candidates, variance, seen)
            return

        if isinstance(template, TupleType):
            if isinstance(concrete, TupleType):
                for index, element in enumerate(template.elements):
                    found = concrete.element_at(index)
                    if found is not None:
                        self._infer(element.type, found, names, candidates, variance, seen)
                if template.rest is not None and concrete.rest is not None:
                    self._infer(template.rest, concrete.rest, names, candidates, variance, seen)
            elif isinstance(concrete, ArrayType):
                for element in template.elements:
                    self._infer(element.type, concrete.element, names, candidates, variance, seen)
            return

        if isinstance(template, ObjectType):
            if isinstance(concrete, ObjectType):
                self._infer_object(template, concrete, names, candidates, variance, seen)
            elif isinstance(concrete, FunctionType) and template.call_signatures:
                self._infer(
                    template.call_signatures[-1], concrete, names, candidates, variance, seen
                )
            return

        if isinstance(template, FunctionType):
            if isinstance(concrete, ObjectType) and concrete.call_signatures:
                concrete = concrete.call_signatures[-1]
            if isinstance(concrete, FunctionType):
                self._infer_function(template, concrete, names, candidates, variance, seen)

    def _infer_union(
        self,
        template: UnionType,
        concrete: Type,
        names: FrozenSet[str],
        candidates: _Candidates,
        variance: Variance,
        seen: Set[Tuple[Type, Type]],
    ) -> None:
        fixed = [m for m in template.members if m.free_type_params().isdisjoint(names)]
        open_members = [m for m in template.members if m not in fixed]
        parts = concrete.members if isinstance(concrete, UnionType) else (concrete,)
        for part in parts:
            # Parts already covered by a fixed member say nothing about T
            if any(self.checker.is_assignable(part, f) for f in fixed):
                continue
            for member in open_members:
                self._infer(member, part, names, candidates, variance, seen)

    def _infer_object(
        self,
        template: ObjectType,
        concrete: ObjectType,
        names: FrozenSet[str],
        candidates: _Candidates,
        variance: Variance,
        seen: Set[Tuple[Type, Type]],
    ) -> None:
        for prop in template.properties:
            found = concrete.get_property(prop.name)
            if found is not None:
                self._infer(prop.type, found.type, names, candidates, variance, seen)
        if template.index_signature is not None:
            value = template.index_signature.value
            if concrete.index_signature is not None:
                self._infer(
                    value, concrete.index_signature.value, names, candidates, variance, seen
                )
            for prop in concrete.properties:
                self._infer(value, prop.type, names, candidates, variance, seen)
        for t_sig, c_sig in zip(template.call_signatures, concrete.call_signatures):
            self._infer(t_sig, c_sig, names, candidates, variance, seen)

    def _infer_function(
        self,
        template: FunctionType,
        concrete: FunctionType,
        names: FrozenSet[str],
        candidates: _Candidates,
        variance: Variance,
        seen: Set[Tuple[Type, Type]],
    ) -> None:
        flipped = variance.flip()
        for index, param in enumerate(template.params):
            found = concrete.param_type_at(index)
            if found is not None:
                self._infer(param.type, found, names, candidates, flipped, seen)
        if template.rest is not None and concrete.rest is not None:
            self._infer(template.rest.type, concrete.rest.type, names, candidates, flipped, seen)
        self._infer(template.returns, concrete.returns, names, candidates, variance, seen)
