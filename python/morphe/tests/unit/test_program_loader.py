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
"""Tests for loading declaration trees from dicts and JSON."""

from __future__ import annotations

import json

import pytest

from morphe.errors import ProgramFormatError, SourceLocation
from morphe.program import tree
from morphe.program.loader import load_program


def _program(*declarations):
    return {"declarations": list(declarations)}


class TestTypeExpressions:
    """Tests for type expression forms."""

    def test_bare_string_names_a_type(self) -> None:
        program = load_program(_program({"kind": "type", "name": "N", "type": "number"}))
        (alias,) = program.declarations
        assert isinstance(alias, tree.TypeAliasDecl)
        assert isinstance(alias.type, tree.NamedType)
        assert alias.type.name == "number"
        assert alias.type.args == ()

    def test_nested_forms(self) -> None:
        program = load_program(
            _program(
                {
                    "kind": "type",
                    "name": "Box",
                    "type_params": [{"name": "T", "bound": "object"}],
                    "type": {
                        "kind": "union",
                        "members": [
                            {"kind": "array", "element": "T"},
                            {
                                "kind": "tuple",
                                "elements": ["string", {"type": "number", "optional": True}],
                            },
                            {"kind": "literal", "value": "none"},
                            {
                                "kind": "object",
                                "properties": [{"name": "v", "type": "T", "readonly": True}],
                                "index": {"key": "number", "value": "T"},
                            },
                        ],
                    },
                }
            )
        )
        alias = program.declarations[0]
        assert alias.type_params[0].name == "T"
        assert alias.type_params[0].bound.name == "object"
        array, pair, literal, shape = alias.type.members
        assert isinstance(array, tree.ArrayTypeExpr)
        assert isinstance(pair, tree.TupleTypeExpr)
        assert [m.optional for m in pair.elements] == [False, True]
        assert literal.value == "none"
        assert shape.properties[0].readonly
        assert shape.index.key_kind == "number"

    def test_function_type(self) -> None:
        program = load_program(
            _program(
                {
                    "kind": "type",
                    "name": "F",
                    "type": {
                        "kind": "function",
                        "params": [{"name": "x", "type": "number"}, "y"],
                        "rest": {"name": "more", "type": {"kind": "array", "element": "string"}},
                        "returns": "void",
                    },
                }
            )
        )
        fn = program.declarations[0].type
        assert isinstance(fn, tree.FunctionTypeExpr)
        assert fn.params[1].name == "y"
        assert fn.params[1].type is None
        assert fn.rest.name == "more"

    def test_empty_union_is_rejected(self) -> None:
        with pytest.raises(ProgramFormatError) as excinfo:
            load_program(
                _program({"kind": "type", "name": "U", "type": {"kind": "union", "members": []}})
            )
        assert excinfo.value.path == "$.declarations[0].type.members"


class TestDeclarations:
    """Tests for declaration and statement forms."""

    def test_every_declaration_kind(self) -> None:
        program = load_program(
            _program(
                {"kind": "interface", "name": "I", "extends": ["J"], "properties": []},
                {"kind": "enum", "name": "Color", "members": ["Red", {"name": "Blue", "value": 5}]},
                {
                    "kind": "class",
                    "name": "C",
                    "constructor": [{"name": "x", "type": "number"}],
                    "implements": ["I"],
                    "methods": [{"name": "m", "returns": "number", "body": []}],
                },
                {
                    "kind": "function",
                    "name": "f",
                    "params": ["a"],
                    "overloads": [
                        {"params": [{"name": "a", "type": "string"}], "returns": "string"}
                    ],
                    "body": [{"kind": "return", "value": {"kind": "identifier", "name": "a"}}],
                },
                {"kind": "const", "name": "k", "init": {"kind": "literal", "value": 1}},
                {"kind": "expr", "expr": {"kind": "identifier", "name": "k"}},
            )
        )
        interface, enum, cls, fn, const, stmt = program.declarations
        assert interface.extends[0].name == "J"
        assert [m.value for m in enum.members] == [None, 5]
        assert cls.constructor_params[0].name == "x"
        assert cls.methods[0].signature.returns.name == "number"
        assert len(fn.overloads) == 1
        assert isinstance(fn.body[0], tree.Return)
        assert isinstance(const, tree.VariableDecl) and const.const
        assert isinstance(stmt, tree.ExprStmt)

    def test_inheritance_and_defaults(self) -> None:
        program = load_program(
            _program(
                {
                    "kind": "class",
                    "name": "Shape",
                    "abstract": True,
                    "methods": [{"name": "area", "returns": "number", "abstract": True}],
                },
                {
                    "kind": "class",
                    "name": "Square",
                    "extends": "Shape",
                    "methods": [
                        {
                            "name": "scale",
                            "params": [
                                {"name": "by", "default": {"kind": "literal", "value": 2}}
                            ],
                            "body": [],
                        }
                    ],
                },
            )
        )
        shape, square = program.declarations
        assert shape.abstract and shape.methods[0].abstract
        assert shape.extends is None
        assert square.extends.name == "Shape"
        assert not square.abstract
        assert square.constructor_params is None
        (by,) = square.methods[0].signature.params
        assert by.type is None
        assert isinstance(by.default, tree.Literal)
        assert by.is_optional and not by.optional

    def test_let_is_not_const(self) -> None:
        program = load_program(_program({"kind": "let", "name": "x"}))
        assert program.declarations[0].const is False
        assert program.declarations[0].init is None

    def test_statements(self) -> None:
        body = [
            {
                "kind": "if",
                "test": {
                    "kind": "typeof",
                    "operand": {"kind": "identifier", "name": "x"},
                    "type": "string",
                },
                "then": [{"kind": "throw", "value": {"kind": "literal", "value": "bad"}}],
                "else": [{"kind": "block", "body": []}],
            },
            {
                "kind": "assign",
                "target": {
                    "kind": "member",
                    "object": {"kind": "identifier", "name": "o"},
                    "name": "f",
                },
                "value": {"kind": "literal", "value": None},
            },
            {"kind": "return"},
        ]
        program = load_program(_program({"kind": "function", "name": "f", "body": body}))
        test_if, assign, ret = program.declarations[0].body
        assert isinstance(test_if.test, tree.TypeofTest)
        assert isinstance(test_if.then[0], tree.Throw)
        assert isinstance(test_if.otherwise[0], tree.Block)
        assert isinstance(assign.target, tree.Member)
        assert assign.value.value is None
        assert ret.value is None

    def test_arrow_bodies(self) -> None:
        expr_body = {
            "kind": "arrow",
            "params": ["x"],
            "body": {"kind": "identifier", "name": "x"},
        }
        block_body = {"kind": "arrow", "body": [{"kind": "return"}]}
        program = load_program(
            _program(
                {"kind": "expr", "expr": expr_body},
                {"kind": "expr", "expr": block_body},
            )
        )
        first, second = (d.expr for d in program.declarations)
        assert isinstance(first.body, tree.Identifier)
        assert isinstance(second.body, tuple)
        assert isinstance(second.body[0], tree.Return)


class TestLocationsAndErrors:
    """Tests for source locations and malformed input."""

    def test_locations_carry_the_file(self) -> None:
        program = load_program(
            {
                "file": "shapes.ts",
                "declarations": [
                    {"kind": "let", "name": "x", "loc": {"line": 3, "column": 7}},
                ],
            }
        )
        assert program.file == "shapes.ts"
        assert program.declarations[0].loc == SourceLocation(3, 7, "shapes.ts")

    def test_json_string(self) -> None:
        text = json.dumps(_program({"kind": "let", "name": "x", "type": "string"}))
        program = load_program(text, file="a.ts")
        assert program.file == "a.ts"
        assert program.declarations[0].type.name == "string"

    def test_invalid_json(self) -> None:
        with pytest.raises(ProgramFormatError):
            load_program("{not json")

    @pytest.mark.parametrize(
        "declaration, path",
        [
            ({"name": "x"}, "$.declarations[0]"),
            ({"kind": "mystery"}, "$.declarations[0]"),
            ({"kind": "let", "name": 3}, "$.declarations[0].name"),
            (
                {"kind": "expr", "expr": {"kind": "typeof", "type": "integer",
                                          "operand": {"kind": "identifier", "name": "x"}}},
                "$.declarations[0].expr.type",
            ),
            (
                {"kind": "expr", "expr": {"kind": "binary", "op": "<<",
                                          "left": {"kind": "literal", "value": 1},
                                          "right": {"kind": "literal", "value": 2}}},
                "$.declarations[0].expr.op",
            ),
            (
                {"kind": "assign", "target": {"kind": "literal", "value": 1},
                 "value": {"kind": "literal", "value": 2}},
                "$.declarations[0].target",
            ),
            ({"kind": "enum", "name": "E", "members": [{"name": "A", "value": True}]},
             "$.declarations[0].members[0].value"),
            ({"kind": "class", "name": "C", "extends": ["A", "B"]}, "$.declarations[0].extends"),
            (
                {"kind": "class", "name": "C",
                 "methods": [{"name": "m", "abstract": True}]},
                "$.declarations[0].methods[0]",
            ),
            (
                {"kind": "class", "name": "C", "abstract": True,
                 "methods": [{"name": "m", "abstract": True, "body": [{"kind": "return"}]}]},
                "$.declarations[0].methods[0].body",
            ),
        ],
    )
    def test_malformed_input_reports_path(self, declaration, path: str) -> None:
        with pytest.raises(ProgramFormatError) as excinfo:
            load_program(_program(declaration))
        assert excinfo.value.path == path

    def test_declarations_must_be_a_list(self) -> None:
        with pytest.raises(ProgramFormatError):
            load_program({"declarations": {"kind": "let"}})
