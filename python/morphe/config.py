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
"""Checker configuration.

Example:
    >>> config = CheckerConfig.from_dict({"workers": 4})
    >>> config.to_dict()["workers"]
    4
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from .errors import ConfigError

logger = logging.getLogger(__name__)

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


@dataclass(frozen=True)
class CheckerConfig:
    """Options for one checking pass.

    Attributes:
        workers: Number of threads for the value phase (1 = serial)
        strict_function_types: Compare function parameters contravariantly
            instead of bivariantly
        widen_let_literals: Widen literal initializers of ``let`` bindings
            to their base primitive
        max_diagnostics: Stop collecting after this many diagnostics
            (None = unlimited)
        log_level: Optional level applied to the ``morphe`` logger
    """

    workers: int = 1
    strict_function_types: bool = False
    widen_let_literals: bool = True
    max_diagnostics: Optional[int] = None
    log_level: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.workers, bool) or not isinstance(self.workers, int):
            raise ConfigError(f"workers must be an integer, got {self.workers!r}")
        if self.workers < 1:
            raise ConfigError(f"workers must be >= 1, got {self.workers}")
        for name in ("strict_function_types", "widen_let_literals"):
            if not isinstance(getattr(self, name), bool):
                raise ConfigError(f"{name} must be a boolean")
        if self.max_diagnostics is not None and (
            isinstance(self.max_diagnostics, bool)
            or not isinstance(self.max_diagnostics, int)
            or self.max_diagnostics < 0
        ):
            raise ConfigError(
                f"max_diagnostics must be a non-negative integer, got {self.max_diagnostics!r}"
            )
        if self.log_level is not None and str(self.log_level).upper() not in _LOG_LEVELS:
            raise ConfigError(f"Unknown log_level: {self.log_level!r}")

    def apply_logging(self) -> None:
        """Set the package logger level if ``log_level`` is configured."""
        if self.log_level is not None:
            logging.getLogger("morphe").setLevel(self.log_level.upper())
            logger.debug("morphe log level set to %s", self.log_level.upper())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        d: Dict[str, Any] = {
            "workers": self.workers,
            "strict_function_types": self.strict_function_types,
            "widen_let_literals": self.widen_let_literals,
        }
        if self.max_diagnostics is not None:
            d["max_diagnostics"] = self.max_diagnostics
        if self.log_level is not None:
            d["log_level"] = self.log_level
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CheckerConfig":
        """Create from dictionary.

        Raises:
            ConfigError: On unknown keys or invalid values
        """
        if not isinstance(d, dict):
            raise ConfigError(f"Configuration must be a dict, got {type(d).__name__}")
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(d) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(**d)
