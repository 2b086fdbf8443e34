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
"""Interface declaration merging.

Several partial declarations of the same interface name contribute fields to
one final object shape. Merging runs before any checking, so the subtype
checker only ever sees complete object types.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..errors import DuplicateDeclarationError
from .model import FunctionType, IndexSignature, ObjectType, Property, Type, TypeParam

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InterfacePart:
    """One partial interface declaration.

    Attributes:
        name: Interface name
        properties: Fields declared by this part, in order
        extends: Base types whose fields are inherited
        call_signatures: Call signatures declared by this part
        index_signature: Optional index signature
        params: Generic parameters (must agree across parts)
    """

    name: str
    properties: Tuple[Property, ...] = ()
    extends: Tuple[Type, ...] = ()
    call_signatures: Tuple[FunctionType, ...] = ()
    index_signature: Optional[IndexSignature] = None
    params: Tuple[TypeParam, ...] = ()


def merge_interface(
    parts: Sequence[InterfacePart],
    resolve_base: Optional[Callable[[Type], Type]] = None,
) -> ObjectType:
    """Merge the partial declarations of a single interface.

    Base fields come first, then the parts' fields in first-seen order. A
    field redeclared by a later part must have the same type and
    modifiers; an own field overrides an inherited one.

    Args:
        parts: Partial declarations, all with the same name
        resolve_base: Expands an ``extends`` entry to its object shape

    Raises:
        DuplicateDeclarationError: On conflicting field or parameter lists
    """
    if not parts:
        raise ValueError("merge_interface needs at least one part")
    name = parts[0].name
    params = parts[0].params
    for part in parts[1:]:
        if tuple(p.name for p in part.params) != tuple(p.name for p in params):
            raise DuplicateDeclarationError(
                name, "all declarations must have identical type parameters"
            )

    fields: Dict[str, Property] = {}
    call_signatures: List[FunctionType] = []
    index: Optional[IndexSignature] = None

    for part in parts:
        for base in part.extends:
            shape = resolve_base(base) if resolve_base is not None else base
            if not isinstance(shape, ObjectType):
                logger.debug("Ignoring non-object base %s of %s", shape, name)
                continue
            for prop in shape.properties:
                fields.setdefault(prop.name, prop)
            call_signatures.extend(
                s for s in shape.call_signatures if s not in call_signatures
            )
            if index is None:
                index = shape.index_signature

    declared: Dict[str, Property] = {}
    own_index: Optional[IndexSignature] = None
    for part in parts:
        for prop in part.properties:
            previous = declared.get(prop.name)
            if previous is not None and previous != prop:
                raise DuplicateDeclarationError(
                    name,
                    f"subsequent declarations of '{prop.name}' must have the same "
                    f"type; '{previous.type}' vs '{prop.type}'",
                )
            declared[prop.name] = prop
            fields[prop.name] = prop
        for sig in part.call_signatures:
            if sig not in call_signatures:
                call_signatures.append(sig)
        if part.index_signature is not None:
            if own_index is not None and own_index != part.index_signature:
                raise DuplicateDeclarationError(name, "conflicting index signatures")
            own_index = index = part.index_signature

    return ObjectType(tuple(fields.values()), index, tuple(call_signatures))


def merge_interfaces(
    partials: Iterable[InterfacePart],
    resolve_base: Optional[Callable[[Type], Type]] = None,
) -> Dict[str, ObjectType]:
    """Group partial declarations by name and merge each group.

    Returns:
        Mapping of interface name to merged shape, in first-seen order
    """
    groups: Dict[str, List[InterfacePart]] = {}
    for part in partials:
        groups.setdefault(part.name, []).append(part)
    merged = {name: merge_interface(parts, resolve_base) for name, parts in groups.items()}
    logger.debug(
        "Merged %d interface declarations into %d shapes",
        sum(map(len, groups.values())),
        len(merged),
    )
    return merged
