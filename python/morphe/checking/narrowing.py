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
"""Flow-sensitive narrowing of binding types.

A binding keeps its declared type for its whole lifetime. Inside a branch
guarded by a test (``typeof x === "string"``, ``x === null``,
``shape.kind === "circle"``, ``if (x)``) the binding is looked up with a
narrower type. Narrowings live in the scope frame of the block that
established them and disappear when that block is exited; at the end of an
if/else the two branches are joined.

Scope frames use ``immutables.Map`` so that snapshotting the whole scope
stack for a branch is a tuple copy.

References:
    - TypeScript handbook, "Narrowing"
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple

from immutables import Map as ImmutableMap

from ..types.model import (
    ANY,
    BIGINT,
    BOOLEAN,
    NEVER,
    NULL,
    NUMBER,
    OBJECT,
    STRING,
    SYMBOL,
    UNDEFINED,
    UNKNOWN,
    VOID,
    ArrayType,
    ErrorType,
    FunctionType,
    LiteralType,
    ObjectType,
    Parameter,
    PrimitiveType,
    TupleType,
    Type,
    TypeParam,
    is_top,
)
from ..types.table import TypeTable
from .subtype import SubtypeChecker

logger = logging.getLogger(__name__)

TYPEOF_KINDS: FrozenSet[str] = frozenset(
    {"number", "string", "boolean", "bigint", "symbol", "undefined", "object", "function"}
)

_TYPEOF_PRIMITIVES: Dict[str, Type] = {
    "number": NUMBER,
    "string": STRING,
    "boolean": BOOLEAN,
    "bigint": BIGINT,
    "symbol": SYMBOL,
    "undefined": UNDEFINED,
    "object": OBJECT,
}


# =============================================================================
# Scope
# =============================================================================


class Scope(ABC):
    """Lexical scope interface consumed by the checking pass."""

    @abstractmethod
    def enter(self) -> None:
        """Open a nested block."""

    @abstractmethod
    def exit(self) -> Dict[str, Type]:
        """Close the innermost block.

        Returns:
            Types, at the end of the block, of outer bindings the block
            narrowed or reassigned
        """

    @abstractmethod
    def bind(self, name: str, type: Type) -> None:
        """Declare ``name`` in the innermost block."""

    @abstractmethod
    def lookup(self, name: str) -> Optional[Type]:
        """Current (possibly narrowed) type of ``name``, or None if unbound."""


@dataclass(frozen=True)
class ScopeFrame:
    """One block of the scope stack.

    Attributes:
        declared: Bindings declared in this block
        narrowed: Narrowings established in this block (for any visible binding)
        touched: Outer or inner names narrowed or reassigned in this block
    """

    declared: ImmutableMap = field(default_factory=ImmutableMap)
    narrowed: ImmutableMap = field(default_factory=ImmutableMap)
    touched: FrozenSet[str] = frozenset()


ScopeSnapshot = Tuple[ScopeFrame, ...]


class NarrowingScope(Scope):
    """Scope stack with per-block narrowings.

    Example:
        >>> scope = NarrowingScope()
        >>> scope.bind("x", table.union([NUMBER, STRING]))
        >>> scope.enter()
        >>> scope.narrow("x", NUMBER)
        >>> scope.lookup("x")
        number
        >>> scope.exit()["x"]
        number
        >>> scope.lookup("x")
        number | string
    """

    def __init__(self, globals: Optional[Mapping[str, Type]] = None) -> None:
        self._frames: List[ScopeFrame] = [
            ScopeFrame(declared=ImmutableMap(dict(globals or {})))
        ]

    @property
    def depth(self) -> int:
        return len(self._frames)

    def enter(self) -> None:
        self._frames.append(ScopeFrame())

    def exit(self) -> Dict[str, Type]:
        if len(self._frames) == 1:
            raise RuntimeError("Cannot exit the outermost scope")
        top = self._frames[-1]
        outcome: Dict[str, Type] = {}
        for name in top.touched:
            if name in top.declared:
                continue
            current = self.lookup(name)
            if current is not None:
                outcome[name] = current
        self._frames.pop()
        return outcome

    def bind(self, name: str, type: Type) -> None:
        top = self._frames[-1]
        narrowed = top.narrowed.delete(name) if name in top.narrowed else top.narrowed
        self._frames[-1] = replace(
            top, declared=top.declared.set(name, type), narrowed=narrowed
        )

    def lookup(self, name: str) -> Optional[Type]:
        for frame in reversed(self._frames):
            narrowed = frame.narrowed.get(name)
            if narrowed is not None:
                return narrowed
            declared = frame.declared.get(name)
            if declared is not None:
                return declared
        return None

    def declared(self, name: str) -> Optional[Type]:
        """Declared type of ``name``, ignoring narrowings."""
        for frame in reversed(self._frames):
            declared = frame.declared.get(name)
            if declared is not None:
                return declared
        return None

    def narrow(self, name: str, type: Type) -> None:
        """Record a narrowing of ``name`` in the innermost block."""
        top = self._frames[-1]
        self._frames[-1] = replace(
            top, narrowed=top.narrowed.set(name, type), touched=top.touched | {name}
        )

    def invalidate(self, name: str) -> None:
        """Drop the narrowing of ``name`` back to its declared type.

        Outer frames are left alone; the reset shadows them until this block
        is exited.
        """
        declared = self.declared(name)
        if declared is not None:
            self.narrow(name, declared)

    def snapshot(self) -> ScopeSnapshot:
        return tuple(self._frames)

    def restore(self, snapshot: ScopeSnapshot) -> None:
        self._frames = list(snapshot)


# =============================================================================
# Narrowing operations
# =============================================================================


class NarrowingEngine:
    """Computes narrowed types; never mutates a type.

    Every ``narrow_*`` operation returns the pair (type when the test holds,
    type when it does not).
    """

    def __init__(self, table: TypeTable, checker: SubtypeChecker) -> None:
        self.table = table
        self.checker = checker

    def narrow_typeof(self, t: Type, kind: str) -> Tuple[Type, Type]:
        """Narrow by ``typeof x === kind``."""
        if kind not in TYPEOF_KINDS:
            raise ValueError(f"Unknown typeof kind: {kind!r}")
        expanded = self.table.expand(t)
        if expanded is UNKNOWN or is_top(expanded):
            if kind == "function":
                return self.any_callable(), t
            tested = _TYPEOF_PRIMITIVES[kind]
            if kind == "object":
                tested = self.table.union((OBJECT, NULL))
            return tested, t

        true_parts: List[Type] = []
        false_parts: List[Type] = []
        for member in self.table.members_of(expanded):
            verdict = self._typeof_matches(member, kind)
            if verdict is None or verdict:
                true_parts.append(member)
            if verdict is None or not verdict:
                false_parts.append(member)
        return self.table.union(true_parts), self.table.union(false_parts)

    def any_callable(self) -> Type:
        """Shape of a value known only to be a function: ``(...args: any[]) => unknown``."""
        signature = self.table.function([], UNKNOWN, Parameter("args", ANY))
        return self.table.object(call_signatures=[signature])

    def _typeof_matches(self, member: Type, kind: str) -> Optional[bool]:
        """Whether ``typeof`` of a value of ``member`` is ``kind`` (None: maybe)."""
        member = self.table.expand(member)
        if isinstance(member, LiteralType):
            return member.kind == kind
        if isinstance(member, PrimitiveType):
            if member is NULL:
                return kind == "object"
            if member in (UNDEFINED, VOID):
                return kind == "undefined"
            if member is OBJECT:
                return None if kind in ("object", "function") else False
            return member.name == kind
        if isinstance(member, FunctionType):
            return kind == "function"
        if isinstance(member, ObjectType):
            if member.call_signatures:
                return kind == "function"
            return kind == "object"
        if isinstance(member, (ArrayType, TupleType)):
            return kind == "object"
        if isinstance(member, TypeParam):
            if member.bound is None:
                return None
            return self._typeof_bound(member.bound, kind)
        return None

    def _typeof_bound(self, bound: Type, kind: str) -> Optional[bool]:
        members = self.table.members_of(self.table.expand(bound))
        verdicts = {self._typeof_matches(m, kind) for m in members}
        return verdicts.pop() if len(verdicts) == 1 else None

    def narrow_equality(self, t: Type, value: Type) -> Tuple[Type, Type]:
        """Narrow by ``x === value`` where value is a literal, null or undefined."""
        expanded = self.table.expand(t)
        if expanded is UNKNOWN or is_top(expanded):
            return value, t
        members = self.table.members_of(expanded)
        admits = any(self.checker.is_assignable(value, m) for m in members)
        true_type = value if admits else NEVER
        false_type = self.table.union(m for m in members if not _same_unit(m, value))
        return true_type, false_type

    def narrow_discriminant(self, t: Type, field_name: str, value: Type) -> Tuple[Type, Type]:
        """Narrow a union of object types by ``x.field === value``."""
        expanded = self.table.expand(t)
        if is_top(expanded) or expanded is UNKNOWN:
            return t, t
        true_parts: List[Type] = []
        false_parts: List[Type] = []
        for member in self.table.members_of(expanded):
            shape = self.table.expand(member)
            prop = shape.get_property(field_name) if isinstance(shape, ObjectType) else None
            if prop is None:
                true_parts.append(member)
                false_parts.append(member)
                continue
            field_type = self.table.expand(prop.type)
            if self.checker.is_assignable(value, field_type):
                true_parts.append(member)
            if not _same_unit(field_type, value):
                false_parts.append(member)
        return self.table.union(true_parts), self.table.union(false_parts)

    def narrow_truthiness(self, t: Type) -> Tuple[Type, Type]:
        """Narrow by ``if (x)``."""
        expanded = self.table.expand(t)
        if expanded is UNKNOWN or is_top(expanded):
            return t, t
        true_parts: List[Type] = []
        false_parts: List[Type] = []
        for member in self.table.members_of(expanded):
            shape = self.table.expand(member)
            if shape in (NULL, UNDEFINED, VOID):
                false_parts.append(member)
            elif isinstance(shape, LiteralType):
                (false_parts if shape.is_falsy else true_parts).append(member)
            elif shape in (STRING, NUMBER, BIGINT, BOOLEAN) or isinstance(shape, TypeParam):
                true_parts.append(member)
                false_parts.append(member)
            else:
                true_parts.append(member)
        return self.table.union(true_parts), self.table.union(false_parts)

    def narrow_assignment(self, declared: Type, assigned: Type) -> Type:
        """Type of a binding right after assigning ``assigned`` to it."""
        expanded = self.table.expand(declared)
        if isinstance(assigned, ErrorType) or assigned is ANY:
            return declared
        members = self.table.members_of(expanded)
        if len(members) < 2:
            return declared
        parts = self.table.members_of(assigned)
        kept = [
            m
            for m in members
            if any(self.checker.is_assignable(p, m) for p in parts)
        ]
        if not kept:
            return declared
        return self.table.union(kept)

    # =========================================================================
    # Flow
    # =========================================================================

    def assign(self, scope: NarrowingScope, name: str, assigned: Type) -> Type:
        """Apply the narrowing effect of ``name = <assigned>``.

        A value that fits the current (narrowed) type narrows the binding
        further, to the members of the current type it can inhabit. Any
        other value resets the binding to its declared type.

        Returns:
            The type of ``name`` after the assignment
        """
        current = scope.lookup(name)
        declared = scope.declared(name)
        if current is None or declared is None:
            return assigned
        if not self.checker.is_assignable(assigned, current):
            logger.debug("Assignment to %s resets %s to %s", name, current, declared)
            if current is not declared:
                scope.invalidate(name)
            return declared
        narrowed = self.narrow_assignment(current, assigned)
        if narrowed is not current:
            scope.narrow(name, narrowed)
        return narrowed

    def join(
        self,
        scope: NarrowingScope,
        then_types: Mapping[str, Type],
        else_types: Mapping[str, Type],
        then_exits: bool,
        else_exits: bool,
    ) -> None:
        """Merge the outcome of two branches into the enclosing block.

        A branch that exits (return/throw) contributes nothing. If both
        exit, the pre-branch state is kept.
        """
        if then_exits and else_exits:
            return
        for name in sorted(set(then_types) | set(else_types)):
            before = scope.lookup(name)
            if before is None:
                continue
            after_then = then_types.get(name, before)
            after_else = else_types.get(name, before)
            if then_exits:
                joined = after_else
            elif else_exits:
                joined = after_then
            else:
                joined = self.table.union((after_then, after_else))
            if joined is not before:
                logger.debug("Joined %s: %s -> %s", name, before, joined)
                scope.narrow(name, joined)


def _same_unit(member: Type, value: Type) -> bool:
    """Whether ``member`` is exactly the single value ``value``."""
    if isinstance(member, LiteralType) or member in (NULL, UNDEFINED):
        return member == value
    return False
