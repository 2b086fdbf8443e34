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
"""End-to-end tests: load a program from its dict form and check it."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import pytest

from morphe import CheckerConfig, check_program, load_program
from morphe.types.model import NUMBER, STRING, AliasRef, FunctionType

# =============================================================================
# Program builders
# =============================================================================


def lit(value: Any) -> Dict[str, Any]:
    return {"kind": "literal", "value": value}


def ident(name: str) -> Dict[str, Any]:
    return {"kind": "identifier", "name": name}


def member(obj: Dict[str, Any], name: str) -> Dict[str, Any]:
    return {"kind": "member", "object": obj, "name": name}


def call(callee: Dict[str, Any], *args: Dict[str, Any], type_args=()) -> Dict[str, Any]:
    return {"kind": "call", "callee": callee, "args": list(args), "type_args": list(type_args)}


def ret(value: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {"kind": "return", "value": value}


def var(name: str, type=None, init=None, kind: str = "let", line: Optional[int] = None):
    decl = {"kind": kind, "name": name, "type": type, "init": init}
    if line is not None:
        decl["loc"] = {"line": line, "column": 1}
    return decl


def union(*members) -> Dict[str, Any]:
    return {"kind": "union", "members": list(members)}


def function(name: str, params, returns, body, **extra) -> Dict[str, Any]:
    return {
        "kind": "function",
        "name": name,
        "params": params,
        "returns": returns,
        "body": body,
        **extra,
    }


def check(*declarations, **options):
    """Load and check a program; returns (program, result)."""
    program = load_program({"file": "main.ts", "declarations": list(declarations)})
    return program, check_program(program, CheckerConfig(**options))


# =============================================================================
# Aliases and recursion
# =============================================================================


class TestAliases:
    """Alias cycles and recursive types."""

    def test_cycle_reported_once(self) -> None:
        """Every alias on the cycle becomes the error type silently."""
        _, result = check(
            {"kind": "type", "name": "A", "type": "B"},
            {"kind": "type", "name": "B", "type": "A"},
            var("x", "A", lit(1)),
            var("y", "B", lit("s")),
        )
        assert result.kinds() == ["cyclic-alias"]
        diagnostic = result.diagnostics[0]
        assert diagnostic.declaration == "A"
        assert "A -> B -> A" in diagnostic.message

    def test_recursion_through_object_is_allowed(self) -> None:
        list_type = {
            "kind": "object",
            "properties": [
                {"name": "value", "type": "number"},
                {"name": "next", "type": union("List", "null")},
            ],
        }
        node = {
            "kind": "object",
            "properties": [
                {"name": "value", "value": lit(1)},
                {
                    "name": "next",
                    "value": {
                        "kind": "object",
                        "properties": [
                            {"name": "value", "value": lit(2)},
                            {"name": "next", "value": lit(None)},
                        ],
                    },
                },
            ],
        }
        bad = {"kind": "object", "properties": [{"name": "value", "value": lit("x")}]}
        _, result = check(
            {"kind": "type", "name": "List", "type": list_type},
            var("l", "List", node),
            var("bad", "List", bad),
        )
        assert result.kinds() == ["unassignable"]
        assert result.diagnostics[0].declaration == "bad"

    def test_recursion_through_array_is_allowed(self) -> None:
        json_type = union("string", "number", {"kind": "array", "element": "Json"})
        nested = {"kind": "array", "elements": [lit(1), {"kind": "array", "elements": [lit("a")]}]}
        _, result = check(
            {"kind": "type", "name": "Json", "type": json_type},
            var("j", "Json", nested),
        )
        assert result.ok

    def test_duplicate_alias(self) -> None:
        _, result = check(
            {"kind": "type", "name": "T", "type": "number"},
            {"kind": "type", "name": "T", "type": "string"},
        )
        assert result.kinds() == ["duplicate-declaration"]


# =============================================================================
# Interfaces, enums and classes
# =============================================================================


NAME_FIELD = {"name": "name", "type": "string"}


class TestDeclarations:
    """Interface merging, enums and classes."""

    def test_interface_parts_merge(self) -> None:
        point = {
            "kind": "object",
            "properties": [{"name": "x", "value": lit(1)}, {"name": "y", "value": lit(2)}],
        }
        partial = {"kind": "object", "properties": [{"name": "x", "value": lit(1)}]}
        _, result = check(
            {"kind": "interface", "name": "Point", "properties": [{"name": "x", "type": "number"}]},
            {"kind": "interface", "name": "Point", "properties": [{"name": "y", "type": "number"}]},
            var("p", "Point", point),
            var("q", "Point", partial),
        )
        assert result.kinds() == ["unassignable"]
        assert result.diagnostics[0].declaration == "q"
        assert "'y' is missing" in result.diagnostics[0].message

    def test_conflicting_interface_parts(self) -> None:
        _, result = check(
            {"kind": "interface", "name": "Box", "properties": [{"name": "v", "type": "number"}]},
            {"kind": "interface", "name": "Box", "properties": [{"name": "v", "type": "string"}]},
        )
        assert result.kinds() == ["duplicate-declaration"]
        assert result.diagnostics[0].declaration == "Box"

    def test_extends_and_extends_cycle(self) -> None:
        person = {
            "kind": "object",
            "properties": [{"name": "name", "value": lit("a")}, {"name": "age", "value": lit(3)}],
        }
        _, result = check(
            {"kind": "interface", "name": "Named", "properties": [NAME_FIELD]},
            {
                "kind": "interface",
                "name": "Person",
                "extends": ["Named"],
                "properties": [{"name": "age", "type": "number"}],
            },
            var("p", "Person", person),
            {"kind": "interface", "name": "Loop1", "extends": ["Loop2"]},
            {"kind": "interface", "name": "Loop2", "extends": ["Loop1"]},
        )
        assert result.kinds() == ["cyclic-alias"]
        assert result.diagnostics[0].declaration == "Loop2"

    def test_enums(self) -> None:
        _, result = check(
            {"kind": "enum", "name": "Direction", "members": ["Up", "Down"]},
            var("d", "Direction", member(ident("Direction"), "Up")),
            var("bad", "Direction", lit(5)),
            {"kind": "assign", "target": member(ident("Direction"), "Up"), "value": lit(3)},
            {"kind": "enum", "name": "E", "members": [{"name": "A", "value": "a"}, "B"]},
        )
        assert result.kinds() == [
            "unassignable",
            "readonly-assignment",
            "invalid-enum-member",
        ]
        assert result.diagnostics[1].declaration == "<statement 4>"

    def test_class_instances_and_methods(self) -> None:
        increment = {
            "kind": "binary",
            "op": "+",
            "left": member(ident("this"), "count"),
            "right": lit(1),
        }
        program, result = check(
            {
                "kind": "class",
                "name": "Counter",
                "properties": [{"name": "count", "type": "number"}],
                "methods": [{"name": "increment", "returns": "number", "body": [ret(increment)]}],
            },
            var("c", init={"kind": "new", "class": "Counter"}, kind="const"),
            var("total", "number", call(member(ident("c"), "increment"))),
            var("wrong", "string", member(ident("c"), "count")),
        )
        assert result.kinds() == ["unassignable"]
        assert result.diagnostics[0].declaration == "wrong"
        instance = result.type_of(program.declarations[1])
        assert isinstance(instance, AliasRef) and instance.name == "Counter"

    def test_incorrect_implements(self) -> None:
        _, result = check(
            {"kind": "interface", "name": "HasName", "properties": [NAME_FIELD]},
            {
                "kind": "class",
                "name": "Anon",
                "properties": [{"name": "id", "type": "number"}],
                "implements": ["HasName"],
            },
        )
        assert result.kinds() == ["unassignable"]
        assert "class 'Anon' incorrectly implements 'HasName'" in result.diagnostics[0].message

    def test_subclass_inherits_fields_and_constructor(self) -> None:
        animal = {
            "kind": "class",
            "name": "Animal",
            "properties": [{"name": "name", "type": "string"}],
            "constructor": [{"name": "name", "type": "string"}],
            "methods": [
                {
                    "name": "describe",
                    "returns": "string",
                    "body": [ret(member(ident("this"), "name"))],
                }
            ],
        }
        dog = {
            "kind": "class",
            "name": "Dog",
            "extends": "Animal",
            "properties": [{"name": "good", "type": "boolean"}],
            "methods": [
                {
                    "name": "label",
                    "returns": "string",
                    "body": [ret(call(member(ident("this"), "describe")))],
                }
            ],
        }
        _, result = check(
            animal,
            dog,
            var("d", init={"kind": "new", "class": "Dog", "args": [lit("rex")]}, kind="const"),
            var("n", "string", member(ident("d"), "name")),
            var("g", "boolean", member(ident("d"), "good")),
            var("a", "Animal", ident("d")),
            var("bad", init={"kind": "new", "class": "Dog", "args": [lit(1)]}),
        )
        assert result.kinds() == ["unassignable"]
        assert result.diagnostics[0].declaration == "bad"

    def test_generic_base_constructor_is_instantiated(self) -> None:
        box = {
            "kind": "class",
            "name": "Box",
            "type_params": [{"name": "T"}],
            "properties": [{"name": "value", "type": "T"}],
            "constructor": [{"name": "value", "type": "T"}],
        }
        number_box = {
            "kind": "class",
            "name": "NumberBox",
            "extends": {"kind": "named", "name": "Box", "args": ["number"]},
        }
        _, result = check(
            box,
            number_box,
            var("ok", "number", member({"kind": "new", "class": "NumberBox", "args": [lit(1)]},
                                       "value")),
            var("bad", init={"kind": "new", "class": "NumberBox", "args": [lit("s")]}),
        )
        assert result.kinds() == ["unassignable"]
        assert result.diagnostics[0].declaration == "bad"

    def test_incompatible_override_and_unknown_base(self) -> None:
        _, result = check(
            {"kind": "class", "name": "Base", "properties": [{"name": "id", "type": "number"}]},
            {
                "kind": "class",
                "name": "Derived",
                "extends": "Base",
                "properties": [{"name": "id", "type": "string"}],
            },
            {"kind": "class", "name": "Orphan", "extends": "Missing"},
        )
        assert result.kinds() == ["unassignable", "unresolved-identifier"]
        assert "base class 'Base'" in result.diagnostics[0].message
        assert result.diagnostics[0].declaration == "Derived"

    def test_extends_cycle_between_classes(self) -> None:
        _, result = check(
            {"kind": "class", "name": "A", "extends": "B"},
            {"kind": "class", "name": "B", "extends": "A"},
        )
        assert result.kinds() == ["cyclic-alias"]

    def test_abstract_classes(self) -> None:
        shape = {
            "kind": "class",
            "name": "Shape",
            "abstract": True,
            "methods": [
                {"name": "area", "returns": "number", "abstract": True},
                {"name": "twice", "returns": "number", "body": [ret(lit(0))]},
            ],
        }
        square = {
            "kind": "class",
            "name": "Square",
            "extends": "Shape",
            "methods": [{"name": "area", "returns": "number", "body": [ret(lit(4))]}],
        }
        circle = {"kind": "class", "name": "Circle", "extends": "Shape"}
        _, result = check(
            shape,
            square,
            circle,
            var("s", "number", call(member({"kind": "new", "class": "Square"}, "area"))),
            var("x", init={"kind": "new", "class": "Shape"}),
        )
        assert result.kinds() == ["unimplemented-abstract-member", "abstract-instantiation"]
        missing, instantiated = result.diagnostics
        assert missing.declaration == "Circle"
        assert "'area' from class 'Shape'" in missing.message
        assert instantiated.declaration == "x"


# =============================================================================
# Calls, overloads and generics
# =============================================================================


ANY_PARAM = [{"name": "x", "type": "any"}]


class TestCalls:
    """Call checking through whole programs."""

    @pytest.fixture
    def pick(self) -> Dict[str, Any]:
        return function(
            "pick",
            ANY_PARAM,
            "any",
            [ret(ident("x"))],
            overloads=[
                {"params": [{"name": "x", "type": union("string", "number")}], "returns": "string"},
                {"params": [{"name": "x", "type": "string"}], "returns": "number"},
            ],
        )

    def test_first_matching_overload_wins(self, pick) -> None:
        program, result = check(
            pick,
            var("r", init=call(ident("pick"), lit("a")), kind="const"),
            var("n", "number", call(ident("pick"), lit(1)), line=3),
            {"kind": "expr", "expr": call(ident("pick"), lit(True))},
        )
        assert result.kinds() == ["unassignable", "no-matching-overload"]
        assert result.type_of(program.declarations[1]) is STRING
        assert result.diagnostics[0].location.line == 3
        assert result.diagnostics[0].location.file == "main.ts"
        assert result.diagnostics[1].declaration == "<statement 4>"
        assert result.stats.overload_attempts >= 5

    def test_incompatible_overload(self) -> None:
        _, result = check(
            function(
                "f",
                [{"name": "x", "type": "number"}],
                "number",
                [ret(ident("x"))],
                overloads=[{"params": [{"name": "x", "type": "string"}], "returns": "string"}],
            )
        )
        assert result.kinds() == ["unassignable"]
        assert "not compatible with its implementation" in result.diagnostics[0].message

    def test_arity_and_unknown_names(self) -> None:
        add = function(
            "add",
            [{"name": "a", "type": "number"}, {"name": "b", "type": "number"}],
            "number",
            [ret({"kind": "binary", "op": "+", "left": ident("a"), "right": ident("b")})],
        )
        _, result = check(
            add,
            {"kind": "expr", "expr": call(ident("add"), lit(1))},
            {"kind": "expr", "expr": call(ident("missing"), lit(1))},
            {"kind": "expr", "expr": call(lit(3))},
        )
        assert result.kinds() == ["arity-mismatch", "unresolved-identifier", "not-callable"]

    def test_default_parameters(self) -> None:
        repeat = function(
            "repeat",
            [{"name": "text", "type": "string"}, {"name": "times", "default": lit(1)}],
            "number",
            [ret(ident("times"))],
        )
        bad_default = function(
            "bad",
            [{"name": "n", "type": "number", "default": lit("zero")}],
            "number",
            [ret(ident("n"))],
        )
        _, result = check(
            repeat,
            var("once", "number", call(ident("repeat"), lit("a"))),
            var("twice", "number", call(ident("repeat"), lit("a"), lit(2))),
            {"kind": "expr", "expr": call(ident("repeat"), lit("a"), lit("x"))},
            bad_default,
        )
        assert result.kinds() == ["unassignable", "unassignable"]
        wrong_argument, wrong_default = result.diagnostics
        assert wrong_argument.declaration == "<statement 4>"
        assert wrong_default.declaration == "bad"

    def test_arrow_default_parameter(self) -> None:
        arrow = {"kind": "arrow", "params": [{"name": "x", "default": lit(1)}], "body": ident("x")}
        _, result = check(
            var("f", init=arrow, kind="const"),
            var("r", "number", call(ident("f"))),
            {"kind": "expr", "expr": call(ident("f"), lit("s"))},
        )
        assert result.kinds() == ["unassignable"]
        assert result.diagnostics[0].declaration == "<statement 3>"

    def test_generic_inference_widens(self) -> None:
        identity = function(
            "identity",
            [{"name": "x", "type": "T"}],
            "T",
            [ret(ident("x"))],
            type_params=["T"],
        )
        program, result = check(
            identity,
            var("a", init=call(ident("identity"), lit("hello")), kind="const"),
            var("b", init=call(ident("identity"), lit("a"), type_args=["number"])),
            var("c", init=call(ident("identity"), lit(1), type_args=["number", "string"])),
        )
        assert result.type_of(program.declarations[1]) is STRING
        assert result.kinds() == ["unassignable", "type-argument-count"]
        assert result.stats.bindings >= 1

    def test_literal_bound_keeps_literal(self) -> None:
        pick_kind = function(
            "pickKind",
            [{"name": "k", "type": "K"}],
            "K",
            [ret(ident("k"))],
            type_params=[{"name": "K", "bound": union({"kind": "literal", "value": "a"},
                                                      {"kind": "literal", "value": "b"})}],
        )
        program, result = check(
            pick_kind,
            var("k", init=call(ident("pickKind"), lit("a")), kind="const"),
            {"kind": "expr", "expr": call(ident("pickKind"), lit("c"))},
        )
        assert result.type_of(program.declarations[1]) is result.table.literal("a")
        assert result.kinds() == ["type-parameter-constraint"]

    def test_lambda_parameters_from_other_arguments(self) -> None:
        """map(["a"], x => x.length) types x from the array argument."""
        map_fn = function(
            "map",
            [
                {"name": "xs", "type": {"kind": "array", "element": "T"}},
                {
                    "name": "f",
                    "type": {
                        "kind": "function",
                        "params": [{"name": "x", "type": "T"}],
                        "returns": "U",
                    },
                },
            ],
            {"kind": "array", "element": "U"},
            [ret({"kind": "array", "elements": []})],
            type_params=["T", "U"],
        )
        arrow = {"kind": "arrow", "params": ["x"], "body": member(ident("x"), "length")}
        words = {"kind": "array", "elements": [lit("a"), lit("bb")]}
        program, result = check(
            map_fn,
            var("lengths", init=call(ident("map"), words, arrow), kind="const"),
        )
        assert result.ok, result.diagnostics
        assert result.type_of(program.declarations[1]) is result.table.array(NUMBER)
        lambda_type = result.type_of(program.declarations[1].init.args[1])
        assert isinstance(lambda_type, FunctionType)
        assert lambda_type.params[0].type is STRING


# =============================================================================
# Bindings and narrowing
# =============================================================================


class TestBindings:
    """Variables, constants and readonly fields."""

    def test_let_widens_and_const_keeps_literals(self) -> None:
        program, result = check(var("a", init=lit("x")), var("b", init=lit("x"), kind="const"))
        assert result.type_of(program.declarations[0]) is STRING
        assert result.type_of(program.declarations[1]) is result.table.literal("x")

    def test_let_widening_can_be_disabled(self) -> None:
        program, result = check(var("a", init=lit("x")), widen_let_literals=False)
        assert result.type_of(program.declarations[0]) is result.table.literal("x")

    def test_reassignment(self) -> None:
        _, result = check(
            var("limit", init=lit(10), kind="const"),
            {"kind": "assign", "target": ident("limit"), "value": lit(11)},
            var("count", init=lit(1)),
            {"kind": "assign", "target": ident("count"), "value": lit(2)},
            {"kind": "assign", "target": ident("count"), "value": lit("two")},
            {"kind": "assign", "target": ident("nowhere"), "value": lit(0)},
        )
        assert result.kinds() == ["readonly-assignment", "unassignable", "unresolved-identifier"]

    def test_readonly_field(self) -> None:
        _, result = check(
            {
                "kind": "interface",
                "name": "Config",
                "properties": [{"name": "port", "type": "number", "readonly": True}],
            },
            function(
                "setPort",
                [{"name": "c", "type": "Config"}],
                "void",
                [{"kind": "assign", "target": member(ident("c"), "port"), "value": lit(1)}],
            ),
        )
        assert result.kinds() == ["readonly-assignment"]
        assert result.diagnostics[0].declaration == "setPort"

    def test_duplicate_values(self) -> None:
        _, result = check(var("x", init=lit(1)), var("x", init=lit(2)))
        assert result.kinds() == ["duplicate-declaration"]

    def test_inferred_return_type(self) -> None:
        program, result = check(
            function("two", [], None, [ret(lit(2))]),
            var("n", init=call(ident("two")), kind="const"),
            var("s", "string", call(ident("two"))),
        )
        assert result.type_of(program.declarations[1]) is NUMBER
        assert result.kinds() == ["unassignable"]


X_PARAM = [{"name": "x", "type": union("string", "number")}]


class TestNarrowing:
    """Flow-sensitive narrowing inside function bodies."""

    def test_typeof_with_early_return(self) -> None:
        is_string = {"kind": "typeof", "operand": ident("x"), "type": "string"}
        _, result = check(
            function(
                "len",
                X_PARAM,
                "number",
                [
                    {"kind": "if", "test": is_string, "then": [ret(member(ident("x"), "length"))]},
                    ret(ident("x")),
                ],
            )
        )
        assert result.ok, result.diagnostics

    def test_narrowing_ends_with_branch(self) -> None:
        is_string = {"kind": "typeof", "operand": ident("x"), "type": "string"}
        _, result = check(
            function(
                "len",
                X_PARAM,
                "number",
                [
                    {"kind": "if", "test": is_string, "then": [var("y", init=lit(1))]},
                    ret(ident("x")),
                ],
            )
        )
        assert result.kinds() == ["unassignable"]

    def test_typeof_function_makes_unknown_callable(self) -> None:
        is_function = {"kind": "typeof", "operand": ident("f"), "type": "function"}
        invoke = call(ident("f"), lit(1), lit("a"))
        _, result = check(
            function(
                "guarded",
                [{"name": "f", "type": "unknown"}],
                "unknown",
                [{"kind": "if", "test": is_function, "then": [ret(invoke)]}],
            ),
            function("unguarded", [{"name": "f", "type": "unknown"}], "unknown", [ret(invoke)]),
        )
        assert result.kinds() == ["not-callable"]
        assert result.diagnostics[0].declaration == "unguarded"

    def test_null_check(self) -> None:
        is_null = {"kind": "equals", "left": ident("s"), "right": lit(None)}
        nullable = [{"name": "s", "type": union("string", "null")}]
        _, result = check(
            function(
                "safe",
                nullable,
                "number",
                [
                    {"kind": "if", "test": is_null, "then": [ret(lit(0))]},
                    ret(member(ident("s"), "length")),
                ],
            ),
            function("unsafe", nullable, "number", [ret(member(ident("s"), "length"))]),
            function(
                "fallback",
                nullable,
                "string",
                [ret({"kind": "binary", "op": "??", "left": ident("s"), "right": lit("d")})],
            ),
        )
        assert result.kinds() == ["missing-property"]
        assert result.diagnostics[0].declaration == "unsafe"

    def test_discriminated_union(self) -> None:
        circle = {
            "kind": "object",
            "properties": [
                {"name": "kind", "type": {"kind": "literal", "value": "circle"}},
                {"name": "radius", "type": "number"},
            ],
        }
        square = {
            "kind": "object",
            "properties": [
                {"name": "kind", "type": {"kind": "literal", "value": "square"}},
                {"name": "side", "type": "number"},
            ],
        }
        is_circle = {"kind": "equals", "left": member(ident("s"), "kind"), "right": lit("circle")}
        _, result = check(
            {"kind": "type", "name": "Shape", "type": union(circle, square)},
            function(
                "size",
                [{"name": "s", "type": "Shape"}],
                "number",
                [
                    {"kind": "if", "test": is_circle, "then": [ret(member(ident("s"), "radius"))]},
                    ret(member(ident("s"), "side")),
                ],
            ),
        )
        assert result.ok, result.diagnostics

    def test_assignment_narrows(self) -> None:
        _, result = check(
            function(
                "h",
                [],
                "number",
                [
                    var("v", union("string", "number")),
                    {"kind": "assign", "target": ident("v"), "value": lit(1)},
                    ret(ident("v")),
                ],
            )
        )
        assert result.ok, result.diagnostics

    def test_reassignment_outside_narrowing_resets(self) -> None:
        """'v' is narrowed to string by its initializer; 1 drops that narrowing."""
        _, result = check(
            function(
                "h",
                [],
                "number",
                [
                    var("v", union("string", "number"), lit("a")),
                    {"kind": "assign", "target": ident("v"), "value": lit(1)},
                    ret(ident("v")),
                ],
            )
        )
        assert result.kinds() == ["unassignable"]


# =============================================================================
# Results
# =============================================================================


class TestResult:
    """CheckResult reporting."""

    def test_to_dict_and_limits(self) -> None:
        declarations = [var(f"v{i}", "number", lit("s")) for i in range(4)]
        _, result = check(*declarations, max_diagnostics=2)
        assert len(result.diagnostics) == 2
        assert [d.declaration for d in result.diagnostics] == ["v0", "v1"]
        exported = result.to_dict()
        assert exported["ok"] is False
        assert exported["diagnostics"][0]["declaration"] == "v0"
        assert exported["stats"]["declarations_checked"] == 4
        assert result.table.frozen

    def test_diagnostics_for(self) -> None:
        _, result = check(var("a", "number", lit("s")), var("b", "number", lit(1)))
        assert len(result.diagnostics_for("a")) == 1
        assert result.diagnostics_for("b") == []

    def test_logs_the_pass(self, caplog) -> None:
        caplog.set_level(logging.INFO, logger="morphe")
        check(var("a", init=lit(1)))
        messages = [r.getMessage() for r in caplog.records]
        assert any(m.startswith("Checking main.ts: 1 declarations") for m in messages)
        assert any(m.startswith("Checked main.ts: 0 diagnostic(s)") for m in messages)
