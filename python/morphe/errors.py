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
"""Errors and diagnostics.

Every problem found in a checked program is a ``CheckError``. The checking
pass catches them at statement granularity and turns them into frozen
``Diagnostic`` values attached to the enclosing declaration. Problems with
the checker's own inputs (configuration, malformed trees) raise
``ConfigError``/``ProgramFormatError`` and are never turned into diagnostics.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence, Tuple

if TYPE_CHECKING:
    from .types.model import FunctionType, Type, TypeParam


@dataclass(frozen=True, slots=True)
class SourceLocation:
    """A position in the checked program.

    Attributes:
        line: 1-based line number (0 when unknown)
        column: 1-based column number (0 when unknown)
        file: Optional file name
    """

    line: int = 0
    column: int = 0
    file: Optional[str] = None

    def __str__(self) -> str:
        prefix = f"{self.file}:" if self.file else ""
        return f"{prefix}{self.line}:{self.column}"


# =============================================================================
# Check errors (become diagnostics)
# =============================================================================


class CheckError(Exception):
    """Base class for type errors found in the checked program.

    Attributes:
        kind: Stable diagnostic code
        location: Where the error was detected, if known
    """

    kind = "check-error"

    def __init__(self, message: str, location: Optional[SourceLocation] = None):
        super().__init__(message)
        self.message = message
        self.location = location

    def at(self, location: Optional[SourceLocation]) -> "CheckError":
        """Attach a location unless one is already set."""
        if self.location is None:
            self.location = location
        return self


class CyclicAliasError(CheckError):
    """An alias refers to itself without passing through a structural boundary."""

    kind = "cyclic-alias"

    def __init__(self, alias: str, chain: Sequence[str] = ()):
        self.alias = alias
        self.chain: Tuple[str, ...] = tuple(chain) or (alias, alias)
        super().__init__(
            f"Type alias '{alias}' circularly references itself "
            f"({' -> '.join(self.chain)})"
        )


class UnassignableTypeError(CheckError):
    """A value of ``source`` type is used where ``target`` is required."""

    kind = "unassignable"

    def __init__(self, source: "Type", target: "Type", reason: Optional[str] = None):
        self.source = source
        self.target = target
        self.reason = reason
        message = f"Type '{source}' is not assignable to type '{target}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class TypeParameterConstraintError(CheckError):
    """A type parameter's binding violates its bound."""

    kind = "type-parameter-constraint"

    def __init__(self, param: "TypeParam", bound: "Type", computed: "Type"):
        self.param = param
        self.bound = bound
        self.computed = computed
        super().__init__(
            f"Type '{computed}' inferred for '{param.name}' does not satisfy "
            f"the constraint '{bound}'"
        )


class NoMatchingOverloadError(CheckError):
    """No overload signature accepts the call's arguments."""

    kind = "no-matching-overload"

    def __init__(
        self,
        signatures_attempted: Sequence["FunctionType"],
        args: Sequence["Type"] = (),
    ):
        self.signatures_attempted: Tuple["FunctionType", ...] = tuple(
            signatures_attempted
        )
        self.args: Tuple["Type", ...] = tuple(args)
        listed = "; ".join(str(sig) for sig in self.signatures_attempted)
        arg_text = ", ".join(str(a) for a in self.args)
        super().__init__(
            f"No overload matches this call with arguments ({arg_text}); "
            f"tried {len(self.signatures_attempted)}: {listed}"
        )


class UnresolvedIdentifierError(CheckError):
    """A name that refers to no binding, alias or declaration."""

    kind = "unresolved-identifier"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Cannot find name '{name}'")


class ArityMismatchError(CheckError):
    """A call passes too few or too many arguments."""

    kind = "arity-mismatch"

    def __init__(self, expected_min: int, expected_max: Optional[int], actual: int):
        self.expected_min = expected_min
        self.expected_max = expected_max
        self.actual = actual
        if expected_max is None:
            expected = f"at least {expected_min}"
        elif expected_min == expected_max:
            expected = str(expected_min)
        else:
            expected = f"{expected_min}-{expected_max}"
        super().__init__(f"Expected {expected} arguments, but got {actual}")


class TypeArgumentCountError(CheckError):
    """Wrong number of explicit type arguments."""

    kind = "type-argument-count"

    def __init__(self, name: str, expected_min: int, expected_max: int, actual: int):
        self.name = name
        self.expected_min = expected_min
        self.expected_max = expected_max
        self.actual = actual
        if expected_min == expected_max:
            expected = str(expected_max)
        else:
            expected = f"{expected_min}-{expected_max}"
        super().__init__(
            f"'{name}' expects {expected} type arguments, but got {actual}"
        )


class ReadonlyAssignmentError(CheckError):
    """Assignment to a readonly field or a const binding."""

    kind = "readonly-assignment"

    def __init__(self, field: str):
        self.field = field
        super().__init__(
            f"Cannot assign to '{field}' because it is a read-only property or constant"
        )


class NotCallableError(CheckError):
    """A call or ``new`` on a value without call signatures."""

    kind = "not-callable"

    def __init__(self, type: "Type"):
        self.type = type
        super().__init__(f"This expression is not callable. Type '{type}' has no call signatures")


class MissingPropertyError(CheckError):
    """Member access to a field the type does not have."""

    kind = "missing-property"

    def __init__(self, type: "Type", name: str):
        self.type = type
        self.name = name
        super().__init__(f"Property '{name}' does not exist on type '{type}'")


class DuplicateDeclarationError(CheckError):
    """A name declared twice incompatibly."""

    kind = "duplicate-declaration"

    def __init__(self, name: str, detail: Optional[str] = None):
        self.name = name
        message = f"Duplicate declaration '{name}'"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class InvalidEnumMemberError(CheckError):
    """An enum member that cannot be given a value."""

    kind = "invalid-enum-member"

    def __init__(self, enum: str, member: str):
        self.enum = enum
        self.member = member
        super().__init__(f"Enum member '{enum}.{member}' must have an initializer")


class AbstractInstantiationError(CheckError):
    """``new`` on an abstract class."""

    kind = "abstract-instantiation"

    def __init__(self, class_name: str):
        self.class_name = class_name
        super().__init__(f"Cannot create an instance of the abstract class '{class_name}'")


class UnimplementedAbstractMemberError(CheckError):
    """A concrete class leaves an inherited abstract method without implementation."""

    kind = "unimplemented-abstract-member"

    def __init__(self, class_name: str, member: str, base: str):
        self.class_name = class_name
        self.member = member
        self.base = base
        super().__init__(
            f"Non-abstract class '{class_name}' does not implement inherited "
            f"abstract member '{member}' from class '{base}'"
        )


class FrozenTableError(RuntimeError):
    """Alias definitions were modified after the table was frozen."""


# =============================================================================
# Input errors (never diagnostics)
# =============================================================================


class ConfigError(ValueError):
    """Invalid checker configuration."""


class ProgramFormatError(ValueError):
    """Malformed declaration tree input."""

    def __init__(self, message: str, path: str = "$"):
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}")


# =============================================================================
# Diagnostics
# =============================================================================


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """A reported problem in the checked program.

    Attributes:
        kind: Stable code taken from the originating CheckError
        message: Human-readable description
        location: Source location, if known
        declaration: Name of the enclosing top-level declaration
    """

    kind: str
    message: str
    location: Optional[SourceLocation] = None
    declaration: Optional[str] = None

    @staticmethod
    def from_error(
        error: CheckError,
        declaration: Optional[str] = None,
        fallback: Optional[SourceLocation] = None,
    ) -> "Diagnostic":
        """Build a diagnostic from a CheckError."""
        return Diagnostic(
            kind=error.kind,
            message=error.message,
            location=error.location or fallback,
            declaration=declaration,
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.location is not None:
            result["line"] = self.location.line
            result["column"] = self.location.column
            if self.location.file:
                result["file"] = self.location.file
        if self.declaration is not None:
            result["declaration"] = self.declaration
        return result

    def __str__(self) -> str:
        where = f"{self.location}: " if self.location is not None else ""
        return f"{where}error[{self.kind}]: {self.message}"
