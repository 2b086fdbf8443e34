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
"""Build a declaration tree from plain dicts.

This is the JSON shape an external parser emits. Every node is a dict with
a ``"kind"`` key; a type expression may also be a bare string naming a type
(``"number"``). Optional ``"loc": {"line": 3, "column": 5}`` entries become
source locations.

Example:
    >>> program = load_program({
    ...     "declarations": [
    ...         {"kind": "var", "name": "x", "type": "number",
    ...          "init": {"kind": "literal", "value": 1}},
    ...     ]
    ... })
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Optional, Tuple, Union

from ..checking.narrowing import TYPEOF_KINDS
from ..errors import ProgramFormatError, SourceLocation
from . import tree

logger = logging.getLogger(__name__)


class _Loader:
    """Recursive loader that tracks the JSON path for error messages."""

    def __init__(self, file: Optional[str]) -> None:
        self.file = file

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _fail(self, path: str, message: str) -> ProgramFormatError:
        return ProgramFormatError(message, path)

    def _dict(self, data: Any, path: str) -> Dict[str, Any]:
        if not isinstance(data, dict):
            raise self._fail(path, f"expected an object, got {type(data).__name__}")
        return data

    def _require(self, data: Dict[str, Any], key: str, path: str) -> Any:
        if key not in data:
            raise self._fail(path, f"missing required key '{key}'")
        return data[key]

    def _str(self, data: Dict[str, Any], key: str, path: str) -> str:
        value = self._require(data, key, path)
        if not isinstance(value, str):
            raise self._fail(f"{path}.{key}", "expected a string")
        return value

    def _list(self, data: Dict[str, Any], key: str, path: str) -> list:
        value = data.get(key, [])
        if not isinstance(value, list):
            raise self._fail(f"{path}.{key}", "expected a list")
        return value

    def _loc(self, data: Dict[str, Any], path: str) -> Optional[SourceLocation]:
        loc = data.get("loc")
        if loc is None:
            return None
        loc = self._dict(loc, f"{path}.loc")
        try:
            return SourceLocation(
                line=int(loc.get("line", 0)),
                column=int(loc.get("column", 0)),
                file=loc.get("file", self.file),
            )
        except (TypeError, ValueError) as e:
            raise self._fail(f"{path}.loc", str(e)) from e

    def _kind(self, data: Dict[str, Any], path: str) -> str:
        return self._str(data, "kind", path)

    def _many(
        self, data: Dict[str, Any], key: str, path: str, load: Callable[[Any, str], Any]
    ) -> Tuple[Any, ...]:
        items = self._list(data, key, path)
        return tuple(load(item, f"{path}.{key}[{i}]") for i, item in enumerate(items))

    def _optional(
        self, data: Dict[str, Any], key: str, path: str, load: Callable[[Any, str], Any]
    ) -> Any:
        value = data.get(key)
        return None if value is None else load(value, f"{path}.{key}")

    # -------------------------------------------------------------------------
    # Type expressions
    # -------------------------------------------------------------------------

    def type_expr(self, data: Any, path: str) -> tree.TypeExpr:
        if isinstance(data, str):
            return tree.NamedType(data)
        data = self._dict(data, path)
        kind = self._kind(data, path)
        loc = self._loc(data, path)
        if kind == "named":
            return tree.NamedType(
                self._str(data, "name", path),
                self._many(data, "args", path, self.type_expr),
                loc=loc,
            )
        if kind == "literal":
            value = self._require(data, "value", path)
            if not isinstance(value, (str, int, float, bool)):
                raise self._fail(f"{path}.value", "literal type needs a string, number or boolean")
            return tree.LiteralTypeExpr(value, loc=loc)
        if kind == "array":
            element = self._require(data, "element", path)
            return tree.ArrayTypeExpr(self.type_expr(element, f"{path}.element"), loc=loc)
        if kind == "tuple":
            return tree.TupleTypeExpr(
                self._many(data, "elements", path, self.tuple_member),
                self._optional(data, "rest", path, self.type_expr),
                loc=loc,
            )
        if kind == "object":
            return tree.ObjectTypeExpr(
                self._many(data, "properties", path, self.property_decl),
                self._optional(data, "index", path, self.index_signature),
                self._many(data, "call_signatures", path, self.function_type),
                loc=loc,
            )
        if kind == "function":
            return self.function_type(data, path)
        if kind in ("union", "intersection"):
            members = self._many(data, "members", path, self.type_expr)
            if not members:
                raise self._fail(f"{path}.members", f"{kind} needs at least one member")
            cls = tree.UnionTypeExpr if kind == "union" else tree.IntersectionTypeExpr
            return cls(members, loc=loc)
        raise self._fail(path, f"unknown type expression kind '{kind}'")

    def tuple_member(self, data: Any, path: str) -> tree.TupleMember:
        if isinstance(data, dict) and "type" in data and "kind" not in data:
            return tree.TupleMember(
                self.type_expr(data["type"], f"{path}.type"),
                bool(data.get("optional", False)),
                loc=self._loc(data, path),
            )
        return tree.TupleMember(self.type_expr(data, path))

    def property_decl(self, data: Any, path: str) -> tree.PropertyDecl:
        data = self._dict(data, path)
        return tree.PropertyDecl(
            self._str(data, "name", path),
            self.type_expr(self._require(data, "type", path), f"{path}.type"),
            bool(data.get("optional", False)),
            bool(data.get("readonly", False)),
            loc=self._loc(data, path),
        )

    def index_signature(self, data: Any, path: str) -> tree.IndexSignatureDecl:
        data = self._dict(data, path)
        key_kind = data.get("key", "string")
        if key_kind not in ("string", "number"):
            raise self._fail(f"{path}.key", "index key must be 'string' or 'number'")
        return tree.IndexSignatureDecl(
            key_kind,
            self.type_expr(self._require(data, "value", path), f"{path}.value"),
            loc=self._loc(data, path),
        )

    def type_param(self, data: Any, path: str) -> tree.TypeParamDecl:
        if isinstance(data, str):
            return tree.TypeParamDecl(data)
        data = self._dict(data, path)
        return tree.TypeParamDecl(
            self._str(data, "name", path),
            self._optional(data, "bound", path, self.type_expr),
            self._optional(data, "default", path, self.type_expr),
            loc=self._loc(data, path),
        )

    def param(self, data: Any, path: str) -> tree.ParamDecl:
        if isinstance(data, str):
            return tree.ParamDecl(data)
        data = self._dict(data, path)
        return tree.ParamDecl(
            self._str(data, "name", path),
            self._optional(data, "type", path, self.type_expr),
            bool(data.get("optional", False)),
            self._optional(data, "default", path, self.expr),
            loc=self._loc(data, path),
        )

    def function_type(self, data: Any, path: str) -> tree.FunctionTypeExpr:
        data = self._dict(data, path)
        return tree.FunctionTypeExpr(
            self._many(data, "params", path, self.param),
            self._optional(data, "returns", path, self.type_expr),
            self._optional(data, "rest", path, self.param),
            self._many(data, "type_params", path, self.type_param),
            loc=self._loc(data, path),
        )

    # -------------------------------------------------------------------------
    # Expressions
    # -------------------------------------------------------------------------

    def expr(self, data: Any, path: str) -> tree.Expr:
        data = self._dict(data, path)
        kind = self._kind(data, path)
        loc = self._loc(data, path)
        if kind == "literal":
            value = data.get("value")
            if value is not None and not isinstance(value, (str, int, float, bool)):
                raise self._fail(f"{path}.value", "unsupported literal value")
            return tree.Literal(value, loc=loc)
        if kind == "identifier":
            return tree.Identifier(self._str(data, "name", path), loc=loc)
        if kind == "array":
            return tree.ArrayLiteral(self._many(data, "elements", path, self.expr), loc=loc)
        if kind == "object":
            props = []
            for i, item in enumerate(self._list(data, "properties", path)):
                item_path = f"{path}.properties[{i}]"
                item = self._dict(item, item_path)
                props.append(
                    (
                        self._str(item, "name", item_path),
                        self.expr(self._require(item, "value", item_path), f"{item_path}.value"),
                    )
                )
            return tree.ObjectLiteral(tuple(props), loc=loc)
        if kind == "member":
            return tree.Member(
                self.expr(self._require(data, "object", path), f"{path}.object"),
                self._str(data, "name", path),
                loc=loc,
            )
        if kind == "call":
            return tree.Call(
                self.expr(self._require(data, "callee", path), f"{path}.callee"),
                self._many(data, "args", path, self.expr),
                self._many(data, "type_args", path, self.type_expr),
                loc=loc,
            )
        if kind == "new":
            return tree.New(
                self._str(data, "class", path),
                self._many(data, "args", path, self.expr),
                self._many(data, "type_args", path, self.type_expr),
                loc=loc,
            )
        if kind == "arrow":
            body = self._require(data, "body", path)
            loaded_body: Union[tree.Expr, Tuple[tree.Stmt, ...]]
            if isinstance(body, list):
                loaded_body = self._many(data, "body", path, self.stmt)
            else:
                loaded_body = self.expr(body, f"{path}.body")
            return tree.ArrowFunction(
                self._many(data, "params", path, self.param),
                loaded_body,
                self._optional(data, "returns", path, self.type_expr),
                self._many(data, "type_params", path, self.type_param),
                loc=loc,
            )
        if kind == "typeof":
            tested = self._str(data, "type", path)
            if tested not in TYPEOF_KINDS:
                raise self._fail(f"{path}.type", f"unknown typeof result '{tested}'")
            return tree.TypeofTest(
                self.expr(self._require(data, "operand", path), f"{path}.operand"),
                tested,
                bool(data.get("negated", False)),
                loc=loc,
            )
        if kind == "equals":
            return tree.Equality(
                self.expr(self._require(data, "left", path), f"{path}.left"),
                self.expr(self._require(data, "right", path), f"{path}.right"),
                bool(data.get("negated", False)),
                loc=loc,
            )
        if kind == "not":
            operand = self.expr(self._require(data, "operand", path), f"{path}.operand")
            return tree.Not(operand, loc=loc)
        if kind == "binary":
            op = self._str(data, "op", path)
            if op not in tree.BINARY_OPERATORS:
                raise self._fail(f"{path}.op", f"unknown operator '{op}'")
            return tree.Binary(
                op,
                self.expr(self._require(data, "left", path), f"{path}.left"),
                self.expr(self._require(data, "right", path), f"{path}.right"),
                loc=loc,
            )
        raise self._fail(path, f"unknown expression kind '{kind}'")

    # -------------------------------------------------------------------------
    # Statements and declarations
    # -------------------------------------------------------------------------

    def stmt(self, data: Any, path: str) -> tree.Stmt:
        data = self._dict(data, path)
        kind = self._kind(data, path)
        loc = self._loc(data, path)
        if kind in ("var", "let", "const"):
            return self.variable(data, path)
        if kind == "assign":
            target = self.expr(self._require(data, "target", path), f"{path}.target")
            if not isinstance(target, (tree.Identifier, tree.Member)):
                raise self._fail(
                    f"{path}.target", "assignment target must be an identifier or member"
                )
            value = self.expr(self._require(data, "value", path), f"{path}.value")
            return tree.Assign(target, value, loc=loc)
        if kind == "expr":
            inner = self.expr(self._require(data, "expr", path), f"{path}.expr")
            return tree.ExprStmt(inner, loc=loc)
        if kind == "if":
            return tree.If(
                self.expr(self._require(data, "test", path), f"{path}.test"),
                self._many(data, "then", path, self.stmt),
                self._many(data, "else", path, self.stmt),
                loc=loc,
            )
        if kind == "return":
            return tree.Return(self._optional(data, "value", path, self.expr), loc=loc)
        if kind == "throw":
            value = self.expr(self._require(data, "value", path), f"{path}.value")
            return tree.Throw(value, loc=loc)
        if kind == "block":
            return tree.Block(self._many(data, "body", path, self.stmt), loc=loc)
        raise self._fail(path, f"unknown statement kind '{kind}'")

    def variable(self, data: Dict[str, Any], path: str) -> tree.VariableDecl:
        kind = data["kind"]
        return tree.VariableDecl(
            self._str(data, "name", path),
            self._optional(data, "type", path, self.type_expr),
            self._optional(data, "init", path, self.expr),
            const=kind == "const" or bool(data.get("const", False)),
            loc=self._loc(data, path),
        )

    def declaration(self, data: Any, path: str) -> tree.Declaration:
        data = self._dict(data, path)
        kind = self._kind(data, path)
        loc = self._loc(data, path)
        if kind == "type":
            return tree.TypeAliasDecl(
                self._str(data, "name", path),
                self.type_expr(self._require(data, "type", path), f"{path}.type"),
                self._many(data, "type_params", path, self.type_param),
                loc=loc,
            )
        if kind == "interface":
            return tree.InterfaceDecl(
                self._str(data, "name", path),
                self._many(data, "properties", path, self.property_decl),
                self._many(data, "extends", path, self._named),
                self._many(data, "call_signatures", path, self.function_type),
                self._optional(data, "index", path, self.index_signature),
                self._many(data, "type_params", path, self.type_param),
                loc=loc,
            )
        if kind == "enum":
            return tree.EnumDecl(
                self._str(data, "name", path),
                self._many(data, "members", path, self.enum_member),
                loc=loc,
            )
        if kind == "class":
            return self.class_decl(data, path)
        if kind == "function":
            return tree.FunctionDecl(
                self._str(data, "name", path),
                self._many(data, "params", path, self.param),
                self._optional(data, "returns", path, self.type_expr),
                self._many(data, "body", path, self.stmt),
                self._many(data, "type_params", path, self.type_param),
                self._optional(data, "rest", path, self.param),
                self._many(data, "overloads", path, self.function_type),
                loc=loc,
            )
        return self.stmt(data, path)

    def class_decl(self, data: Dict[str, Any], path: str) -> tree.ClassDecl:
        if isinstance(data.get("extends"), list):
            raise self._fail(f"{path}.extends", "a class can only extend a single class")
        abstract = bool(data.get("abstract", False))
        methods = self._many(data, "methods", path, self.method)
        for i, method in enumerate(methods):
            if method.abstract and not abstract:
                raise self._fail(
                    f"{path}.methods[{i}]", "abstract methods are only allowed in abstract classes"
                )
        constructor = None
        if data.get("constructor") is not None:
            constructor = self._many(data, "constructor", path, self.param)
        return tree.ClassDecl(
            self._str(data, "name", path),
            self._many(data, "properties", path, self.property_decl),
            methods,
            constructor,
            self._many(data, "implements", path, self._named),
            self._many(data, "type_params", path, self.type_param),
            self._optional(data, "extends", path, self._named),
            abstract,
            loc=self._loc(data, path),
        )

    def _named(self, data: Any, path: str) -> tree.NamedType:
        loaded = self.type_expr(data, path)
        if not isinstance(loaded, tree.NamedType):
            raise self._fail(path, "expected a named type")
        return loaded

    def enum_member(self, data: Any, path: str) -> tree.EnumMember:
        if isinstance(data, str):
            return tree.EnumMember(data)
        data = self._dict(data, path)
        value = data.get("value")
        if value is not None and (
            isinstance(value, bool) or not isinstance(value, (str, int, float))
        ):
            raise self._fail(f"{path}.value", "enum values must be strings or numbers")
        return tree.EnumMember(self._str(data, "name", path), value, loc=self._loc(data, path))

    def method(self, data: Any, path: str) -> tree.MethodDecl:
        data = self._dict(data, path)
        abstract = bool(data.get("abstract", False))
        body = self._many(data, "body", path, self.stmt)
        if abstract and body:
            raise self._fail(f"{path}.body", "an abstract method cannot have a body")
        return tree.MethodDecl(
            self._str(data, "name", path),
            self.function_type(data, path),
            body,
            abstract,
            loc=self._loc(data, path),
        )

    def program(self, data: Any) -> tree.Program:
        data = self._dict(data, "$")
        declarations = self._many(data, "declarations", "$", self.declaration)
        return tree.Program(declarations, data.get("file", self.file))


def load_program(data: Union[Dict[str, Any], str], file: Optional[str] = None) -> tree.Program:
    """Build a Program from its dict (or JSON string) form.

    Raises:
        ProgramFormatError: If the input is malformed
    """
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as e:
            raise ProgramFormatError(f"invalid JSON: {e}") from e
    if isinstance(data, dict) and file is None:
        file = data.get("file")
    program = _Loader(file).program(data)
    logger.debug("Loaded program with %d declarations", len(program.declarations))
    return program
