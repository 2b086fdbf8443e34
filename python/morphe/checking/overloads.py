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
"""Call checking and overload resolution.

Overloaded functions carry an ordered tuple of signatures. Resolution tries
them in declaration order and picks the first one whose arity fits and
whose parameters accept every argument; it does not look for a "most
specific" match.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ..errors import (
    ArityMismatchError,
    CheckError,
    NoMatchingOverloadError,
    UnassignableTypeError,
)
from ..stats import PassStats
from ..types.model import FunctionType, Type
from .inference import Binding, GenericBinder
from .subtype import SubtypeChecker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverloadMatch:
    """The signature chosen for a call.

    Attributes:
        index: Position of the signature in declaration order
        signature: The declared signature
        instantiated: The signature with generic bindings substituted
        binding: The generic binding, if the signature is generic
    """

    index: int
    signature: FunctionType
    instantiated: FunctionType
    binding: Optional[Binding] = None

    @property
    def returns(self) -> Type:
        return self.instantiated.returns


class OverloadResolver:
    """Checks calls against one or several signatures."""

    def __init__(
        self,
        checker: SubtypeChecker,
        binder: GenericBinder,
        stats: Optional[PassStats] = None,
    ) -> None:
        self.checker = checker
        self.binder = binder
        self.stats = stats if stats is not None else checker.stats

    def check_call(
        self,
        signature: FunctionType,
        args: Sequence[Type],
        explicit_type_args: Optional[Sequence[Type]] = None,
    ) -> OverloadMatch:
        """Check a call against a single signature.

        Raises:
            ArityMismatchError: If the argument count does not fit
            UnassignableTypeError: If an argument is not accepted
            TypeParameterConstraintError: If generic binding fails
        """
        check_arity(signature, len(args))
        binding = None
        instantiated = signature
        if signature.type_params:
            binding = self.binder.bind(signature, args, explicit_type_args)
            instantiated = binding.signature
        for index, arg in enumerate(args):
            param_type = instantiated.param_type_at(index)
            assert param_type is not None
            result = self.checker.check(arg, param_type)
            if not result.success:
                raise UnassignableTypeError(arg, param_type, result.reason)
        return OverloadMatch(0, signature, instantiated, binding)

    def resolve(
        self,
        signatures: Sequence[FunctionType],
        args: Sequence[Type],
        explicit_type_args: Optional[Sequence[Type]] = None,
    ) -> OverloadMatch:
        """Pick the first signature that accepts ``args``.

        Raises:
            NoMatchingOverloadError: Listing every attempted signature
        """
        for index, signature in enumerate(signatures):
            self.stats.record("overload_attempts")
            try:
                match = self.check_call(signature, args, explicit_type_args)
            except CheckError as e:
                logger.debug("Overload %d (%s) rejected: %s", index, signature, e.message)
                continue
            logger.debug("Overload %d (%s) selected", index, signature)
            return OverloadMatch(index, signature, match.instantiated, match.binding)
        raise NoMatchingOverloadError(signatures, args)


def check_arity(signature: FunctionType, count: int) -> None:
    """Raise ArityMismatchError unless ``count`` arguments fit ``signature``."""
    maximum = signature.max_arity
    if count < signature.min_arity or (maximum is not None and count > maximum):
        raise ArityMismatchError(signature.min_arity, maximum, count)
