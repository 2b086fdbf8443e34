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
"""Type relations and flow analysis.

Key Components:
- subtype: Structural assignability
- inference: Generic type parameter binding
- narrowing: Scopes and flow-sensitive narrowing
- overloads: Call checking and first-match overload resolution
"""

from .inference import Binding, GenericBinder, InferenceCandidate
from .narrowing import NarrowingEngine, NarrowingScope, Scope, ScopeFrame
from .overloads import OverloadMatch, OverloadResolver, check_arity
from .subtype import AssignabilityResult, SubtypeChecker, merge_object_shapes

__all__ = [
    "AssignabilityResult",
    "SubtypeChecker",
    "merge_object_shapes",
    "Binding",
    "GenericBinder",
    "InferenceCandidate",
    "NarrowingEngine",
    "NarrowingScope",
    "Scope",
    "ScopeFrame",
    "OverloadMatch",
    "OverloadResolver",
    "check_arity",
]
