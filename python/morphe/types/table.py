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
"""Per-pass type table: interning arena and alias registry.

The table is created at the start of a checking pass and discarded at its
end. It provides:

- ``intern``: canonical instances, so structurally equal types are the
  same object and ``equals(a, b)`` is an identity test
- normalizing factories for every type constructor
- the alias registry with memoized, cycle-checked resolution

Interning is append-only and guarded by a lock, so workers of the parallel
value phase may intern new types. Alias definitions are fixed by
``freeze()`` before that phase starts.

Example:
    >>> table = TypeTable()
    >>> table.union([NUMBER, STRING]) is table.union([STRING, NUMBER])
    True
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from ..errors import (
    CyclicAliasError,
    DuplicateDeclarationError,
    FrozenTableError,
    UnresolvedIdentifierError,
)
from ..stats import PassStats
from .model import (
    ANY,
    BOOLEAN,
    ERROR,
    FALSE,
    NEVER,
    PRIMITIVES,
    TRUE,
    UNKNOWN,
    AliasRef,
    ArrayType,
    ErrorType,
    FunctionType,
    IndexSignature,
    IntersectionType,
    LiteralType,
    LiteralValue,
    ObjectType,
    Parameter,
    PrimitiveType,
    Property,
    TupleElement,
    TupleType,
    Type,
    TypeParam,
    UnionType,
    literal_of,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AliasDefinition:
    """A registered alias.

    Attributes:
        name: Alias name
        target: Interned target type (may mention ``params``)
        params: Generic parameters of the alias
    """

    name: str
    target: Type
    params: Tuple[TypeParam, ...] = ()

    @property
    def required_params(self) -> int:
        return sum(1 for p in self.params if p.default is None)


class TypeTable:
    """Interning arena and alias registry for one checking pass.

    Attributes:
        stats: Counters shared with the rest of the pass
    """

    def __init__(self, stats: Optional[PassStats] = None) -> None:
        self.stats = stats if stats is not None else PassStats()
        self._lock = threading.Lock()
        self._canonical: Dict[Type, Type] = {}
        self._ids: Dict[int, int] = {}
        self._arena: List[Type] = []
        self._aliases: Dict[str, AliasDefinition] = {}
        self._resolved: Dict[Tuple[str, Tuple[Type, ...]], Type] = {}
        self._broken: Set[str] = set()
        self._frozen = False

        for primitive in PRIMITIVES:
            self._canonicalize(primitive)
        self._canonicalize(ERROR)

    # =========================================================================
    # Interning
    # =========================================================================

    def intern(self, t: Type) -> Type:
        """Return the canonical instance of ``t``.

        Nested types are interned bottom-up and unions/intersections are
        normalized, so any structurally built type may be passed in.
        """
        existing = self._canonical.get(t)
        if existing is not None:
            return existing
        if isinstance(t, UnionType):
            return self.union(t.members)
        if isinstance(t, IntersectionType):
            return self.intersection(t.members)
        return self._canonicalize(t.map_types(self.intern))

    def _canonicalize(self, t: Type) -> Type:
        existing = self._canonical.get(t)
        if existing is not None:
            return existing
        with self._lock:
            existing = self._canonical.get(t)
            if existing is not None:
                return existing
            self._canonical[t] = t
            self._ids[id(t)] = len(self._arena)
            self._arena.append(t)
            return t

    def type_id(self, t: Type) -> int:
        """Stable arena identifier of the canonical instance of ``t``."""
        return self._ids[id(self.intern(t))]

    def lookup_id(self, type_id: int) -> Type:
        return self._arena[type_id]

    @staticmethod
    def equals(a: Type, b: Type) -> bool:
        """Equality of interned types."""
        return a is b

    def __len__(self) -> int:
        return len(self._arena)

    # =========================================================================
    # Factories
    # =========================================================================

    def primitive(self, name: str) -> Type:
        return self._canonicalize(PrimitiveType(name))

    def literal(self, value: LiteralValue, kind: Optional[str] = None) -> Type:
        if kind is None:
            return self._canonicalize(literal_of(value))
        return self._canonicalize(LiteralType(kind, value))

    def array(self, element: Type) -> Type:
        return self._canonicalize(ArrayType(self.intern(element)))

    def tuple(
        self,
        elements: Sequence[Type],
        optional: Sequence[bool] = (),
        rest: Optional[Type] = None,
    ) -> Type:
        flags = list(optional) + [False] * (len(elements) - len(optional))
        return self.intern(
            TupleType(
                tuple(TupleElement(e, o) for e, o in zip(elements, flags)),
                rest,
            )
        )

    def object(
        self,
        properties: Iterable[Property] = (),
        index_signature: Optional[IndexSignature] = None,
        call_signatures: Sequence[FunctionType] = (),
    ) -> Type:
        return self.intern(
            ObjectType(tuple(properties), index_signature, tuple(call_signatures))
        )

    def function(
        self,
        params: Sequence[Parameter],
        returns: Type,
        rest: Optional[Parameter] = None,
        type_params: Sequence[TypeParam] = (),
    ) -> FunctionType:
        fn = self.intern(FunctionType(tuple(params), returns, rest, tuple(type_params)))
        assert isinstance(fn, FunctionType)
        return fn

    def type_param(
        self, name: str, bound: Optional[Type] = None, default: Optional[Type] = None
    ) -> TypeParam:
        param = self.intern(
            TypeParam(
                name,
                self.intern(bound) if bound is not None else None,
                self.intern(default) if default is not None else None,
            )
        )
        assert isinstance(param, TypeParam)
        return param

    def alias_ref(self, name: str, args: Sequence[Type] = ()) -> Type:
        return self.intern(AliasRef(name, tuple(args)))

    def union(self, members: Iterable[Type]) -> Type:
        """Build a normalized union.

        Members are flattened and deduplicated, ``never`` drops out, ``any``
        and ``unknown`` absorb, ``true | false`` becomes ``boolean`` and a
        single member collapses to itself.
        """
        flat: Dict[Type, None] = {}
        for member in members:
            member = self.intern(member)
            parts = member.members if isinstance(member, UnionType) else (member,)
            for part in parts:
                if part is ANY or isinstance(part, ErrorType):
                    return part
                flat[part] = None
        if UNKNOWN in flat:
            return UNKNOWN
        flat.pop(NEVER, None)
        if BOOLEAN in flat or (TRUE in flat and FALSE in flat):
            flat.pop(TRUE, None)
            flat.pop(FALSE, None)
            flat[BOOLEAN] = None
        if not flat:
            return NEVER
        if len(flat) == 1:
            return next(iter(flat))
        return self._canonicalize(UnionType(frozenset(flat)))

    def intersection(self, members: Iterable[Type]) -> Type:
        """Build a normalized intersection.

        Collapses to ``never`` when a member is ``never`` or two primitive or
        literal members are mutually exclusive. ``any`` absorbs, ``unknown``
        drops out and a single member collapses to itself.
        """
        flat: Dict[Type, None] = {}
        for member in members:
            member = self.intern(member)
            parts = (
                member.members if isinstance(member, IntersectionType) else (member,)
            )
            for part in parts:
                if part is ANY or isinstance(part, ErrorType):
                    return part
                if part is NEVER:
                    return NEVER
                if part is UNKNOWN:
                    continue
                flat[part] = None

        units = [t for t in flat if _is_unit_like(t)]
        for i, a in enumerate(units):
            for b in units[i + 1 :]:
                if _disjoint(a, b):
                    return NEVER
        # A literal subsumes its own base primitive
        for t in units:
            if isinstance(t, LiteralType):
                flat.pop(t.base, None)

        if not flat:
            return UNKNOWN
        if len(flat) == 1:
            return next(iter(flat))
        return self._canonicalize(IntersectionType(frozenset(flat)))

    # =========================================================================
    # Derived operations
    # =========================================================================

    def substitute(self, t: Type, substitution: Mapping[str, Type]) -> Type:
        """Replace type parameters by name and re-normalize the result."""
        if not substitution or t.free_type_params().isdisjoint(substitution):
            return t
        return self.intern(t.substitute(dict(substitution)))

    def widen(self, t: Type) -> Type:
        """Widen literal types (also inside unions) to their base primitive."""
        if isinstance(t, LiteralType):
            return t.base
        if isinstance(t, UnionType):
            return self.union(self.widen(m) for m in t.members)
        return t

    def members_of(self, t: Type) -> Tuple[Type, ...]:
        """Union members of ``t`` (``t`` itself if not a union).

        ``boolean`` is expanded to ``true | false``.
        """
        parts = t.members if isinstance(t, UnionType) else (t,)
        result: List[Type] = []
        for part in parts:
            if part is BOOLEAN:
                result.extend((TRUE, FALSE))
            else:
                result.append(part)
        return tuple(result)

    # =========================================================================
    # Aliases
    # =========================================================================

    def define_alias(
        self, name: str, target: Type, params: Sequence[TypeParam] = ()
    ) -> AliasDefinition:
        """Register an alias.

        Raises:
            FrozenTableError: If the table is frozen
            DuplicateDeclarationError: If ``name`` is already defined
        """
        if self._frozen:
            raise FrozenTableError(f"Cannot define alias '{name}' on a frozen table")
        if name in self._aliases:
            raise DuplicateDeclarationError(name)
        definition = AliasDefinition(name, self.intern(target), tuple(params))
        self._aliases[name] = definition
        logger.debug("Defined alias %s = %s", name, definition.target)
        return definition

    def has_alias(self, name: str) -> bool:
        return name in self._aliases

    def alias(self, name: str) -> AliasDefinition:
        """Return the definition of ``name``.

        Raises:
            UnresolvedIdentifierError: If no alias has that name
        """
        definition = self._aliases.get(name)
        if definition is None:
            raise UnresolvedIdentifierError(name)
        return definition

    def alias_names(self) -> Tuple[str, ...]:
        return tuple(self._aliases)

    def is_broken(self, name: str) -> bool:
        return name in self._broken

    def freeze(self) -> None:
        """Forbid further alias definitions."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def resolve_alias(self, name: str, args: Sequence[Type] = ()) -> Type:
        """Resolve an alias to its target with ``args`` substituted.

        Directly nested aliases (also inside unions and intersections) are
        expanded; object, array, tuple and function types are boundaries
        behind which ``AliasRef``s stay lazy. Results are memoized.

        Raises:
            UnresolvedIdentifierError: If ``name`` is not defined
            CyclicAliasError: If the alias reaches itself without crossing a
                boundary. Every alias on the cycle is then marked broken and
                resolves silently to the error sentinel afterwards.
        """
        try:
            return self._resolve(name, tuple(self.intern(a) for a in args), ())
        except CyclicAliasError as e:
            start = e.chain.index(e.alias) if e.alias in e.chain else 0
            cycle = set(e.chain[start:])
            with self._lock:
                self._broken.update(cycle)
            logger.warning("Cyclic alias %s marked as error type", " -> ".join(e.chain))
            raise

    def expand(self, t: Type) -> Type:
        """Follow alias references until reaching a non-alias type."""
        while isinstance(t, AliasRef):
            t = self.resolve_alias(t.name, t.args)
        return t

    def _resolve(
        self, name: str, args: Tuple[Type, ...], chain: Tuple[str, ...]
    ) -> Type:
        if name in self._broken:
            return ERROR
        definition = self.alias(name)
        args = self._fill_args(definition, args)
        key = (name, args)
        cached = self._resolved.get(key)
        if cached is not None:
            self.stats.record("alias_cache_hits")
            return cached
        if name in chain:
            raise CyclicAliasError(name, chain + (name,))

        substitution = {p.name: a for p, a in zip(definition.params, args)}
        body = self.substitute(definition.target, substitution)
        result = self._expand_shallow(body, chain + (name,))

        self.stats.record("alias_resolutions")
        with self._lock:
            result = self._resolved.setdefault(key, result)
        logger.debug("Resolved alias %s%s -> %s", name, list(args) if args else "", result)
        return result

    def _fill_args(
        self, definition: AliasDefinition, args: Tuple[Type, ...]
    ) -> Tuple[Type, ...]:
        if len(args) >= len(definition.params):
            return args[: len(definition.params)]
        filled = list(args)
        for param in definition.params[len(args) :]:
            if param.default is not None:
                substitution = {
                    p.name: a for p, a in zip(definition.params, filled)
                }
                filled.append(self.substitute(param.default, substitution))
            else:
                # Uninstantiated reference, e.g. checking a generic alias body
                filled.append(param)
        return tuple(filled)

    def _expand_shallow(self, t: Type, chain: Tuple[str, ...]) -> Type:
        if isinstance(t, AliasRef):
            return self._resolve(t.name, t.args, chain)
        if isinstance(t, UnionType):
            return self.union(self._expand_shallow(m, chain) for m in t.members)
        if isinstance(t, IntersectionType):
            return self.intersection(
                self._expand_shallow(m, chain) for m in t.members
            )
        return t


def _is_unit_like(t: Type) -> bool:
    """Literals and the primitives that partition the value space (``object`` included)."""
    return isinstance(t, LiteralType) or (
        isinstance(t, PrimitiveType) and t.name not in ("any", "unknown", "never", "void")
    )


def _disjoint(a: Type, b: Type) -> bool:
    """Whether two primitive/literal types share no value.

    ``object`` shares no value with any primitive or literal.
    """
    if isinstance(a, LiteralType) and isinstance(b, LiteralType):
        return a != b
    if isinstance(a, LiteralType):
        return a.base is not b
    if isinstance(b, LiteralType):
        return b.base is not a
    return a is not b
