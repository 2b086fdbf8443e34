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
"""Structural assignability.

Decides whether a value of a source type may be used where a target type
is expected. The relation is structural: object types are compared by
their fields, never by name.

Rules, in priority order:

1. ``any`` (and the error sentinel) is assignable to and from everything
2. ``unknown`` accepts everything and is assignable only to unknown/any
3. ``never`` is assignable to everything; only never/any flows into never
4. A literal is assignable to its base primitive, not the reverse
5. Source union: every member must be assignable
6. Target union: some member must accept the source
7. Source intersection: some member (or the merged object shape) assignable
8. Target intersection: every member must accept the source
9. Objects: width subtyping with optional fields, index and call signatures
10. Arrays: covariant element
11. Tuples: position-wise, and tuple to array of the element union
12. Functions: covariant return, bivariant parameters unless
    ``strict_function_types`` is set
13. ``void`` accepts ``undefined``

Recursive types are compared coinductively: a (source, target) pair already
in progress for the current query is assumed to hold.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

from ..config import CheckerConfig
from ..stats import PassStats
from ..types.model import (
    ANY,
    BOOLEAN,
    FALSE,
    NEVER,
    NULLISH,
    OBJECT,
    TRUE,
    UNDEFINED,
    UNKNOWN,
    VOID,
    AliasRef,
    ArrayType,
    FunctionType,
    IntersectionType,
    LiteralType,
    ObjectType,
    Parameter,
    PrimitiveType,
    Property,
    TupleType,
    Type,
    TypeParam,
    UnionType,
    is_top,
)
from ..types.table import TypeTable

logger = logging.getLogger(__name__)

_Pair = Tuple[Type, Type]


@dataclass(frozen=True)
class AssignabilityResult:
    """Result of an assignability check.

    Attributes:
        success: True if the source is assignable to the target
        reason: Explanation if the check failed
    """

    success: bool
    reason: Optional[str] = None

    @staticmethod
    def ok() -> AssignabilityResult:
        """Create a successful result."""
        return _OK

    @staticmethod
    def fail(reason: str) -> AssignabilityResult:
        """Create a failure result."""
        return AssignabilityResult(success=False, reason=reason)

    def __bool__(self) -> bool:
        return self.success


_OK = AssignabilityResult(success=True)


class SubtypeChecker:
    """Assignability relation over the types of one table.

    The checker holds no per-query state, so one instance may be shared by
    the worker threads of a pass.

    Attributes:
        table: Type table used to expand aliases and build types
        config: Checker options (``strict_function_types``)
        stats: Pass counters
    """

    def __init__(
        self,
        table: TypeTable,
        config: Optional[CheckerConfig] = None,
        stats: Optional[PassStats] = None,
    ) -> None:
        self.table = table
        self.config = config or CheckerConfig()
        self.stats = stats if stats is not None else table.stats

    # =========================================================================
    # Public API
    # =========================================================================

    def is_assignable(self, source: Type, target: Type) -> bool:
        """Check if ``source`` is assignable to ``target``."""
        return self.check(source, target).success

    def check(self, source: Type, target: Type) -> AssignabilityResult:
        """Check assignability with a failure reason."""
        self.stats.record("assignability_queries")
        result = self._check(source, target, set())
        if not result.success:
            logger.debug("%s is not assignable to %s: %s", source, target, result.reason)
        return result

    def signatures_compatible(
        self, implementation: FunctionType, overload: FunctionType
    ) -> bool:
        """Check that an overload signature agrees with its implementation.

        Parameters are compared bivariantly and the return types must be
        related in either direction.
        """
        impl = self._erase(implementation)
        over = self._erase(overload)
        seen: Set[_Pair] = set()
        if over.min_arity < impl.min_arity:
            return False
        for index in range(len(over.params)):
            impl_type = impl.param_type_at(index)
            if impl_type is None:
                return False
            over_type = over.params[index].type
            if not (
                self._check(over_type, impl_type, seen)
                or self._check(impl_type, over_type, seen)
            ):
                return False
        return bool(
            self._check(impl.returns, over.returns, seen)
            or self._check(over.returns, impl.returns, seen)
            or over.returns is VOID
        )

    # =========================================================================
    # Core relation
    # =========================================================================

    def _check(self, source: Type, target: Type, seen: Set[_Pair]) -> AssignabilityResult:
        if source is target or source == target:
            return _OK

        # Rule 1: any and the error sentinel short-circuit both directions
        if is_top(source) or is_top(target):
            return _OK

        if isinstance(source, AliasRef) or isinstance(target, AliasRef):
            return self._check_aliases(source, target, seen)

        # Rule 2: unknown
        if target is UNKNOWN:
            return _OK
        if source is UNKNOWN:
            return AssignabilityResult.fail(f"'unknown' is not assignable to '{target}'")

        # Rule 3: never
        if source is NEVER:
            return _OK
        if target is NEVER:
            return AssignabilityResult.fail(f"'{source}' is not assignable to 'never'")

        # Rule 4: literals
        if isinstance(source, LiteralType):
            if isinstance(target, LiteralType):
                return AssignabilityResult.fail(f"'{source}' is not '{target}'")
            if target is source.base:
                return _OK
        elif isinstance(target, LiteralType) and isinstance(source, PrimitiveType):
            return AssignabilityResult.fail(
                f"'{source}' is wider than the literal '{target}'"
            )

        # Rule 5: source union
        if isinstance(source, UnionType):
            for member in source.members:
                result = self._check(member, target, seen)
                if not result.success:
                    return AssignabilityResult.fail(
                        f"member '{member}' of '{source}' is not assignable: {result.reason}"
                    )
            return _OK

        # Rule 6: target union
        if isinstance(target, UnionType):
            if source is BOOLEAN:
                # boolean is exactly true | false
                if self._check(TRUE, target, seen) and self._check(FALSE, target, seen):
                    return _OK
            for member in target.members:
                if self._check(source, member, seen).success:
                    return _OK
            return AssignabilityResult.fail(
                f"'{source}' matches no member of '{target}'"
            )

        # Rule 7: source intersection
        if isinstance(source, IntersectionType):
            for member in source.members:
                if self._check(member, target, seen).success:
                    return _OK
            merged = self._merge_object_members(source)
            if merged is not None and self._check(merged, target, seen).success:
                return _OK
            return AssignabilityResult.fail(
                f"no part of '{source}' is assignable to '{target}'"
            )

        # Rule 8: target intersection
        if isinstance(target, IntersectionType):
            for member in target.members:
                result = self._check(source, member, seen)
                if not result.success:
                    return result
            return _OK

        # Type parameters are only known through their bound
        if isinstance(source, TypeParam):
            return self._check(source.bound or UNKNOWN, target, seen)
        if isinstance(target, TypeParam):
            return AssignabilityResult.fail(
                f"'{source}' is not assignable to type parameter '{target}'"
            )

        # Rule 13: void
        if target is VOID:
            if source is UNDEFINED:
                return _OK
            return AssignabilityResult.fail(f"'{source}' is not assignable to 'void'")

        if target is OBJECT:
            if isinstance(source, (ObjectType, ArrayType, TupleType, FunctionType)):
                return _OK
            return AssignabilityResult.fail(f"'{source}' is a primitive, not 'object'")

        if isinstance(target, ObjectType):
            if target.is_empty:
                if source in NULLISH:
                    return AssignabilityResult.fail(f"'{source}' is not assignable to '{{}}'")
                return _OK
            if isinstance(source, ObjectType):
                return self._check_object(source, target, seen)
            if isinstance(source, FunctionType) and target.is_callable_only:
                return self._check_call_signatures((source,), target.call_signatures, seen)
            return AssignabilityResult.fail(
                f"'{source}' does not have the shape '{target}'"
            )

        if isinstance(target, FunctionType):
            if isinstance(source, FunctionType):
                return self._check_function(source, target, seen)
            if isinstance(source, ObjectType) and source.call_signatures:
                return self._check_call_signatures(source.call_signatures, (target,), seen)
            return AssignabilityResult.fail(f"'{source}' is not callable as '{target}'")

        # Rule 10: arrays
        if isinstance(target, ArrayType):
            if isinstance(source, ArrayType):
                return self._check(source.element, target.element, seen)
            if isinstance(source, TupleType):
                return self._check_tuple_to_array(source, target, seen)
            return AssignabilityResult.fail(f"'{source}' is not an array")

        # Rule 11: tuples
        if isinstance(target, TupleType):
            if isinstance(source, TupleType):
                return self._check_tuple(source, target, seen)
            if isinstance(source, ArrayType) and not target.elements and target.rest is not None:
                return self._check(source.element, target.rest, seen)
            return AssignabilityResult.fail(f"'{source}' is not a tuple")

        return AssignabilityResult.fail(f"'{source}' is not assignable to '{target}'")

    def _check_aliases(
        self, source: Type, target: Type, seen: Set[_Pair]
    ) -> AssignabilityResult:
        pair = (source, target)
        if pair in seen:
            self.stats.record("recursion_guard_hits")
            return _OK
        seen.add(pair)
        try:
            return self._check(self.table.expand(source), self.table.expand(target), seen)
        finally:
            seen.discard(pair)

    # =========================================================================
    # Structural rules
    # =========================================================================

    def _check_object(
        self, source: ObjectType, target: ObjectType, seen: Set[_Pair]
    ) -> AssignabilityResult:
        for prop in target.properties:
            found = source.get_property(prop.name)
            if found is None:
                if prop.optional:
                    continue
                return AssignabilityResult.fail(
                    f"property '{prop.name}' is missing in '{source}'"
                )
            if found.optional and not prop.optional:
                return AssignabilityResult.fail(
                    f"property '{prop.name}' is optional in the source but required in the target"
                )
            result = self._check(found.type, prop.type, seen)
            if not result.success:
                return AssignabilityResult.fail(
                    f"types of property '{prop.name}' are incompatible: {result.reason}"
                )

        index = target.index_signature
        if index is not None:
            for prop in source.properties:
                if index.key_kind == "number" and not _is_numeric_name(prop.name):
                    continue
                prop_type = self.table.union((prop.type, UNDEFINED)) if prop.optional else prop.type
                result = self._check(prop_type, index.value, seen)
                if not result.success:
                    return AssignabilityResult.fail(
                        f"property '{prop.name}' is incompatible with the index "
                        f"signature: {result.reason}"
                    )
            source_index = source.index_signature
            if source_index is not None and (
                index.key_kind == "string" or source_index.key_kind == "number"
            ):
                result = self._check(source_index.value, index.value, seen)
                if not result.success:
                    return AssignabilityResult.fail(
                        f"index signatures are incompatible: {result.reason}"
                    )

        if target.call_signatures:
            if not source.call_signatures:
                return AssignabilityResult.fail(f"'{source}' has no call signatures")
            return self._check_call_signatures(
                source.call_signatures, target.call_signatures, seen
            )
        return _OK

    def _check_call_signatures(
        self,
        sources: Tuple[FunctionType, ...],
        targets: Tuple[FunctionType, ...],
        seen: Set[_Pair],
    ) -> AssignabilityResult:
        for target_sig in targets:
            if not any(self._check_function(s, target_sig, seen).success for s in sources):
                return AssignabilityResult.fail(
                    f"no call signature matches '{target_sig}'"
                )
        return _OK

    def _check_function(
        self, source: FunctionType, target: FunctionType, seen: Set[_Pair]
    ) -> AssignabilityResult:
        source = self._erase(source)
        target = self._erase(target)

        if target.rest is None and source.min_arity > len(target.params):
            return AssignabilityResult.fail(
                f"source requires {source.min_arity} parameters, "
                f"target provides {len(target.params)}"
            )

        positions = len(target.params)
        if target.rest is not None:
            positions = max(positions, len(source.params))
        for index in range(positions):
            target_type = target.param_type_at(index)
            source_type = source.param_type_at(index)
            if target_type is None or source_type is None:
                continue
            result = self._check_parameter(source_type, target_type, seen)
            if not result.success:
                return AssignabilityResult.fail(
                    f"parameter {index + 1} is incompatible: {result.reason}"
                )
        if source.rest is not None and target.rest is not None:
            result = self._check_parameter(source.rest.type, target.rest.type, seen)
            if not result.success:
                return result

        if target.returns is VOID:
            return _OK
        result = self._check(source.returns, target.returns, seen)
        if not result.success:
            return AssignabilityResult.fail(f"return types are incompatible: {result.reason}")
        return _OK

    def _check_parameter(
        self, source_param: Type, target_param: Type, seen: Set[_Pair]
    ) -> AssignabilityResult:
        contravariant = self._check(target_param, source_param, seen)
        if contravariant.success or self.config.strict_function_types:
            return contravariant
        # Bivariant parameters: a documented unsoundness
        return self._check(source_param, target_param, seen)

    def _check_tuple(
        self, source: TupleType, target: TupleType, seen: Set[_Pair]
    ) -> AssignabilityResult:
        if source.rest is not None and target.rest is None:
            return AssignabilityResult.fail("source tuple is open-ended, target is fixed")
        if source.min_length < target.min_length:
            return AssignabilityResult.fail(
                f"source has {source.min_length} required elements, "
                f"target requires {target.min_length}"
            )
        if target.rest is None and len(source.elements) > len(target.elements):
            return AssignabilityResult.fail(
                f"source has {len(source.elements)} elements, target allows {len(target.elements)}"
            )
        for index, element in enumerate(source.elements):
            target_type = target.element_at(index)
            if target_type is None:
                return AssignabilityResult.fail(f"no target position {index}")
            result = self._check(element.type, target_type, seen)
            if not result.success:
                return AssignabilityResult.fail(
                    f"element {index} is incompatible: {result.reason}"
                )
        if source.rest is not None:
            for element in target.elements[len(source.elements) :]:
                result = self._check(source.rest, element.type, seen)
                if not result.success:
                    return result
            assert target.rest is not None
            return self._check(source.rest, target.rest, seen)
        return _OK

    def _check_tuple_to_array(
        self, source: TupleType, target: ArrayType, seen: Set[_Pair]
    ) -> AssignabilityResult:
        element_types: List[Type] = [e.type for e in source.elements]
        if source.rest is not None:
            element_types.append(source.rest)
        for index, element_type in enumerate(element_types):
            result = self._check(element_type, target.element, seen)
            if not result.success:
                return AssignabilityResult.fail(
                    f"element {index} is incompatible: {result.reason}"
                )
        return _OK

    # =========================================================================
    # Helpers
    # =========================================================================

    def _erase(self, signature: FunctionType) -> FunctionType:
        """Replace a generic signature's own type parameters by ``any``."""
        if not signature.type_params:
            return signature
        substitution: Dict[str, Type] = {tp.name: ANY for tp in signature.type_params}
        erased = self.table.substitute(
            FunctionType(signature.params, signature.returns, signature.rest),
            substitution,
        )
        if not isinstance(erased, FunctionType):
            raise TypeError(f"Erasing {signature} produced {erased}")
        return erased

    def _merge_object_members(self, intersection: IntersectionType) -> Optional[Type]:
        shapes = []
        for member in intersection.members:
            expanded = self.table.expand(member)
            if isinstance(expanded, ObjectType):
                shapes.append(expanded)
        if len(shapes) < 2:
            return None
        return merge_object_shapes(self.table, shapes)


def merge_object_shapes(table: TypeTable, shapes: List[ObjectType]) -> Type:
    """Merge object shapes of an intersection into one shape.

    Fields present in several shapes get the intersection of their types and
    are optional only if optional everywhere.
    """
    fields: Dict[str, List[Property]] = {}
    for shape in shapes:
        for prop in shape.properties:
            fields.setdefault(prop.name, []).append(prop)
    merged = []
    for name, props in fields.items():
        merged.append(
            Property(
                name,
                table.intersection(p.type for p in props),
                optional=all(p.optional for p in props),
                readonly=any(p.readonly for p in props),
            )
        )
    index = next((s.index_signature for s in shapes if s.index_signature is not None), None)
    call_signatures = tuple(sig for s in shapes for sig in s.call_signatures)
    return table.object(merged, index, call_signatures)


def _is_numeric_name(name: str) -> bool:
    try:
        float(name)
    except ValueError:
        return False
    return True
