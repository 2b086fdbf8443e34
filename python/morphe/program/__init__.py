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
"""Program-level checking.

Key Components:
- tree: Declaration tree handed over by a parser
- loader: JSON form of the declaration tree
- builder: Type expressions -> interned types
- walker: Statement and expression checking of one declaration
- checker: The two-phase whole-program pass
"""

from .builder import TypeBuilder
from .checker import CheckResult, ProgramChecker, check_program
from .loader import load_program
from .walker import CheckContext, ClassInfo, DeclarationChecker

__all__ = [
    "TypeBuilder",
    "CheckResult",
    "ProgramChecker",
    "check_program",
    "load_program",
    "CheckContext",
    "ClassInfo",
    "DeclarationChecker",
]
