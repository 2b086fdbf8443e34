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
"""Property-based tests for interning and the assignability relation.

Types are generated as type expressions and built into a fresh table per
example, so every property also exercises the builder and normalization.
"""

from __future__ import annotations

from typing import Tuple

from hypothesis import given, settings
import hypothesis.strategies as st

from morphe.checking.subtype import SubtypeChecker
from morphe.config import CheckerConfig
from morphe.program import tree
from morphe.program.builder import TypeBuilder
from morphe.types.model import NEVER, UNKNOWN, LiteralType, Property, Type
from morphe.types.table import TypeTable

# =============================================================================
# Strategies
# =============================================================================

PRIMITIVE_NAMES = ["number", "string", "boolean", "bigint", "null", "undefined", "object"]

literal_values = st.one_of(
    st.text(alphabet="abcxyz", max_size=3),
    st.integers(min_value=-5, max_value=5),
    st.booleans(),
)

leaf_exprs = st.one_of(
    st.sampled_from(PRIMITIVE_NAMES).map(tree.NamedType),
    literal_values.map(tree.LiteralTypeExpr),
)


def _compound(children: st.SearchStrategy) -> st.SearchStrategy:
    properties = st.dictionaries(
        st.sampled_from(["a", "b", "c", "kind"]), children, max_size=3
    ).map(
        lambda fields: tree.ObjectTypeExpr(
            tuple(tree.PropertyDecl(name, t) for name, t in sorted(fields.items()))
        )
    )
    return st.one_of(
        children.map(tree.ArrayTypeExpr),
        st.lists(children, min_size=2, max_size=3).map(
            lambda ms: tree.UnionTypeExpr(tuple(ms))
        ),
        st.lists(children, min_size=1, max_size=3).map(
            lambda ms: tree.TupleTypeExpr(tuple(tree.TupleMember(m) for m in ms))
        ),
        properties,
    )


type_exprs = st.recursive(leaf_exprs, _compound, max_leaves=8)


@st.composite
def built_types(draw, count: int = 1) -> Tuple[TypeTable, SubtypeChecker, Tuple[Type, ...]]:
    """Draw count types built into one fresh table."""
    table = TypeTable()
    builder = TypeBuilder(table)
    types = tuple(builder.build(draw(type_exprs)) for _ in range(count))
    return table, SubtypeChecker(table, CheckerConfig()), types


# =============================================================================
# Interning
# =============================================================================


class TestInterningProperties:
    """Structurally equal types are one object."""

    @given(expr=type_exprs)
    @settings(max_examples=100)
    def test_building_twice_yields_same_object(self, expr: tree.TypeExpr) -> None:
        builder = TypeBuilder(TypeTable())
        assert builder.build(expr) is builder.build(expr)

    @given(built=built_types(count=2))
    @settings(max_examples=100)
    def test_union_is_commutative(self, built) -> None:
        table, _, (a, b) = built
        assert table.union([a, b]) is table.union([b, a])
        assert table.union([a, a]) is a

    @given(built=built_types(count=3))
    @settings(max_examples=50)
    def test_union_is_associative(self, built) -> None:
        table, _, (a, b, c) = built
        left = table.union([table.union([a, b]), c])
        right = table.union([a, table.union([b, c])])
        assert left is right

    @given(built=built_types())
    @settings(max_examples=100)
    def test_arena_ids_round_trip(self, built) -> None:
        table, _, (t,) = built
        assert table.lookup_id(table.type_id(t)) is t


# =============================================================================
# Assignability
# =============================================================================


class TestRelationProperties:
    """Algebraic properties of the assignability relation."""

    @given(built=built_types())
    @settings(max_examples=100)
    def test_reflexive(self, built) -> None:
        _, checker, (t,) = built
        assert checker.is_assignable(t, t)

    @given(built=built_types())
    @settings(max_examples=100)
    def test_top_and_bottom(self, built) -> None:
        _, checker, (t,) = built
        assert checker.is_assignable(t, UNKNOWN)
        assert checker.is_assignable(NEVER, t)

    @given(built=built_types(count=2))
    @settings(max_examples=100)
    def test_union_members_are_assignable(self, built) -> None:
        table, checker, (a, b) = built
        union = table.union([a, b])
        assert checker.is_assignable(a, union)
        assert checker.is_assignable(b, union)
        assert checker.is_assignable(table.array(a), table.array(union))

    @given(built=built_types(count=3))
    @settings(max_examples=150)
    def test_union_source_distributes(self, built) -> None:
        """A | B fits T exactly when both A and B fit T."""
        table, checker, (a, b, target) = built
        assert checker.is_assignable(table.union([a, b]), target) == (
            checker.is_assignable(a, target) and checker.is_assignable(b, target)
        )

    @given(built=built_types())
    @settings(max_examples=100)
    def test_widening_is_a_supertype(self, built) -> None:
        table, checker, (t,) = built
        widened = table.widen(t)
        assert checker.is_assignable(t, widened)
        assert table.widen(widened) is widened

    @given(value=literal_values)
    @settings(max_examples=50)
    def test_literal_base_asymmetry(self, value) -> None:
        table = TypeTable()
        checker = SubtypeChecker(table, CheckerConfig())
        literal = table.literal(value)
        assert isinstance(literal, LiteralType)
        assert checker.is_assignable(literal, literal.base)
        assert not checker.is_assignable(literal.base, literal)

    @given(built=built_types(count=2))
    @settings(max_examples=100)
    def test_extra_properties_are_allowed(self, built) -> None:
        table, checker, (a, b) = built
        narrow = table.object([Property("a", a)])
        wide = table.object([Property("a", a), Property("extra", b)])
        assert checker.is_assignable(wide, narrow)
