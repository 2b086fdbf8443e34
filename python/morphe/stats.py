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
"""Counters describing one checking pass."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class PassStats:
    """Counters for one pass.

    Workers of the value phase share one instance; ``record`` is
    thread-safe.

    Attributes:
        assignability_queries: Top-level assignability checks
        recursion_guard_hits: Checks cut short by the in-progress pair memo
        alias_resolutions: Alias resolutions computed (memo misses)
        alias_cache_hits: Alias resolutions served from the memo
        overload_attempts: Signatures tried by the overload resolver
        bindings: Generic signatures bound at call sites
        declarations_checked: Value declarations checked
    """

    assignability_queries: int = 0
    recursion_guard_hits: int = 0
    alias_resolutions: int = 0
    alias_cache_hits: int = 0
    overload_attempts: int = 0
    bindings: int = 0
    declarations_checked: int = 0
    _lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    def record(self, counter: str, amount: int = 1) -> None:
        """Increment ``counter`` by ``amount``."""
        with self._lock:
            setattr(self, counter, getattr(self, counter) + amount)

    @property
    def alias_hit_rate(self) -> float:
        """Fraction of alias lookups served from the memo."""
        total = self.alias_resolutions + self.alias_cache_hits
        return self.alias_cache_hits / total if total else 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Export counters as dictionary."""
        return {
            "assignability_queries": self.assignability_queries,
            "recursion_guard_hits": self.recursion_guard_hits,
            "alias_resolutions": self.alias_resolutions,
            "alias_cache_hits": self.alias_cache_hits,
            "alias_hit_rate": round(self.alias_hit_rate, 4),
            "overload_attempts": self.overload_attempts,
            "bindings": self.bindings,
            "declarations_checked": self.declarations_checked,
        }
