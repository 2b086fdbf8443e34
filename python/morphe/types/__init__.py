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
"""Type representation.

Key Components:
- model: Type hierarchy (primitives, literals, unions, objects, ...)
- table: Per-pass interning arena and alias registry
- merging: Interface declaration merging
"""

from .merging import InterfacePart, merge_interface, merge_interfaces
from .model import (
    # Type hierarchy
    Type,
    PrimitiveType,
    LiteralType,
    UnionType,
    IntersectionType,
    ObjectType,
    Property,
    IndexSignature,
    ArrayType,
    TupleType,
    TupleElement,
    FunctionType,
    Parameter,
    TypeParam,
    AliasRef,
    ErrorType,
    Variance,
    # Singletons
    NUMBER,
    STRING,
    BOOLEAN,
    BIGINT,
    SYMBOL,
    NULL,
    UNDEFINED,
    VOID,
    OBJECT,
    NEVER,
    UNKNOWN,
    ANY,
    TRUE,
    FALSE,
    ERROR,
    PRIMITIVES,
    PRIMITIVE_NAMES,
    literal_of,
)
from .table import AliasDefinition, TypeTable

__all__ = [
    "Type",
    "PrimitiveType",
    "LiteralType",
    "UnionType",
    "IntersectionType",
    "ObjectType",
    "Property",
    "IndexSignature",
    "ArrayType",
    "TupleType",
    "TupleElement",
    "FunctionType",
    "Parameter",
    "TypeParam",
    "AliasRef",
    "ErrorType",
    "Variance",
    "NUMBER",
    "STRING",
    "BOOLEAN",
    "BIGINT",
    "SYMBOL",
    "NULL",
    "UNDEFINED",
    "VOID",
    "OBJECT",
    "NEVER",
    "UNKNOWN",
    "ANY",
    "TRUE",
    "FALSE",
    "ERROR",
    "PRIMITIVES",
    "PRIMITIVE_NAMES",
    "literal_of",
    "AliasDefinition",
    "TypeTable",
    "InterfacePart",
    "merge_interface",
    "merge_interfaces",
]
