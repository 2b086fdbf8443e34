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
"""Shared fixtures for morphe tests."""

from __future__ import annotations

import pytest

from morphe.checking.inference import GenericBinder
from morphe.checking.narrowing import NarrowingEngine, NarrowingScope
from morphe.checking.overloads import OverloadResolver
from morphe.checking.subtype import SubtypeChecker
from morphe.config import CheckerConfig
from morphe.program.builder import TypeBuilder
from morphe.stats import PassStats
from morphe.types.table import TypeTable


@pytest.fixture
def stats() -> PassStats:
    return PassStats()


@pytest.fixture
def table(stats: PassStats) -> TypeTable:
    """A fresh type table for one test."""
    return TypeTable(stats)


@pytest.fixture
def checker(table: TypeTable, stats: PassStats) -> SubtypeChecker:
    return SubtypeChecker(table, CheckerConfig(), stats)


@pytest.fixture
def strict_checker(table: TypeTable, stats: PassStats) -> SubtypeChecker:
    """Checker comparing function parameters contravariantly only."""
    return SubtypeChecker(table, CheckerConfig(strict_function_types=True), stats)


@pytest.fixture
def binder(table: TypeTable, checker: SubtypeChecker, stats: PassStats) -> GenericBinder:
    return GenericBinder(table, checker, stats)


@pytest.fixture
def resolver(
    checker: SubtypeChecker, binder: GenericBinder, stats: PassStats
) -> OverloadResolver:
    return OverloadResolver(checker, binder, stats)


@pytest.fixture
def engine(table: TypeTable, checker: SubtypeChecker) -> NarrowingEngine:
    return NarrowingEngine(table, checker)


@pytest.fixture
def scope() -> NarrowingScope:
    return NarrowingScope()


@pytest.fixture
def builder(table: TypeTable) -> TypeBuilder:
    return TypeBuilder(table)
