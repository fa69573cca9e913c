"""Synthetic unit-test fixtures for recording rules."""

from promtestgen.fixtures.generator import (
    FixtureGenerator,
    SeriesAccumulator,
    assemble_input,
    generate_fixtures,
)
from promtestgen.fixtures.models import (
    ExpectedSample,
    ExpressionTestCase,
    Fixture,
    InputSeries,
    format_duration,
    format_value,
)
from promtestgen.fixtures.serializer import UnitTestFile, render_test_file

__all__ = [
    "FixtureGenerator",
    "SeriesAccumulator",
    "assemble_input",
    "generate_fixtures",
    "ExpectedSample",
    "ExpressionTestCase",
    "Fixture",
    "InputSeries",
    "format_duration",
    "format_value",
    "UnitTestFile",
    "render_test_file",
]
