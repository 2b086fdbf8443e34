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
"""Morphe: a structural, gradually typed type checker for TypeScript-like programs.

Morphe checks a declaration tree (handed over by a parser, or loaded from
its JSON form) and reports every type error it finds as a diagnostic,
together with the type of each expression.

Key Components:
    - types: Type model, interning table, alias resolution, interface merging
    - checking: Assignability, generic binding, narrowing, overloads
    - program: Declaration tree, JSON loader and the whole-program pass
    - config: Pass options (workers, strict function types, ...)
    - errors: CheckError hierarchy and diagnostics

Usage:
    >>> from morphe import check_program, load_program
    >>> result = check_program(load_program(source_json))
    >>> result.ok
    True

References:
    - TypeScript handbook, "Type Compatibility"
    - Siek & Taha, "Gradual Typing for Functional Languages" (2006)
"""

# Use lazy imports so that importing one submodule does not load the others


def __getattr__(name: str):
    """Lazy import of module attributes."""
    # Checking pass
    if name in ("CheckResult", "ProgramChecker", "check_program"):
        from .program.checker import CheckResult, ProgramChecker, check_program

        return locals()[name]

    if name == "load_program":
        from .program.loader import load_program

        return load_program

    # Configuration and counters
    if name == "CheckerConfig":
        from .config import CheckerConfig

        return CheckerConfig

    if name == "PassStats":
        from .stats import PassStats

        return PassStats

    # Errors
    if name in (
        "CheckError",
        "Diagnostic",
        "SourceLocation",
        "ConfigError",
        "ProgramFormatError",
    ):
        from .errors import (
            CheckError,
            ConfigError,
            Diagnostic,
            ProgramFormatError,
            SourceLocation,
        )

        return locals()[name]

    # Types and relations
    if name in ("TypeTable", "AliasDefinition"):
        from .types.table import AliasDefinition, TypeTable

        return locals()[name]

    if name in ("SubtypeChecker", "GenericBinder", "NarrowingEngine", "OverloadResolver"):
        from .checking import (
            GenericBinder,
            NarrowingEngine,
            OverloadResolver,
            SubtypeChecker,
        )

        return locals()[name]

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    # Checking pass
    "CheckResult",
    "ProgramChecker",
    "check_program",
    "load_program",
    # Configuration
    "CheckerConfig",
    "PassStats",
    # Errors
    "CheckError",
    "Diagnostic",
    "SourceLocation",
    "ConfigError",
    "ProgramFormatError",
    # Types and relations
    "TypeTable",
    "AliasDefinition",
    "SubtypeChecker",
    "GenericBinder",
    "NarrowingEngine",
    "OverloadResolver",
]

__version__ = "0.1.0"
