"""Tests for synthetic fixture generation."""

import itertools
from datetime import timedelta

import pytest

from fakes import T0, FakeGateway, group, matrix, recording, stream
from promtestgen.client.models import ScalarResult, Sample, VectorResult
from promtestgen.core.errors import ExpressionParseError, QueryError
from promtestgen.fixtures.generator import (
    FixtureGenerator,
    SeriesAccumulator,
    assemble_input,
    generate_fixtures,
)
from promtestgen.fixtures.models import ExpectedSample
from promtestgen.rules.catalog import RuleCatalog

NOW = T0 + timedelta(seconds=42)
CPU_RULE = "job:cpu:rate5m"


def catalog_of(*rules):
    return RuleCatalog.from_groups([group("test", *rules)])


@pytest.fixture
def cpu_catalog():
    return catalog_of(recording(CPU_RULE, "sum by (job) (rate(cpu_seconds_total[5m]))"))


@pytest.fixture
def cpu_gateway():
    return FakeGateway(
        instant={
            f"{CPU_RULE}[5m]": matrix(
                stream({"__name__": CPU_RULE, "job": "node"}, [0.2, 0.25, 0.3, 0.35, 0.5]),
            )
        },
        ranges={
            "cpu_seconds_total": matrix(
                stream({"__name__": "cpu_seconds_total", "job": "node", "cpu": "1"}, [10, 20, 30, 40, 50, 60]),
                stream({"__name__": "cpu_seconds_total", "job": "node", "cpu": "0"}, [1, 2, 3, 4, 5, 6.5]),
            )
        },
    )


class TestGenerateRule:
    """Tests for the fixture of a single rule."""

    def test_fixture_contents(self, cpu_catalog, cpu_gateway):
        (fixture,) = generate_fixtures(cpu_catalog, cpu_gateway, now=NOW)

        assert fixture.interval == timedelta(minutes=1)
        assert [s.series for s in fixture.input_series] == [
            'cpu_seconds_total{cpu="0", job="node"}',
            'cpu_seconds_total{cpu="1", job="node"}',
        ]
        assert fixture.input_series[0].values == "1 2 3 4 5 6.5"
        assert fixture.input_series[1].values == "10 20 30 40 50 60"

        case = fixture.test_case
        assert case.expr == CPU_RULE
        assert case.eval_time == timedelta(minutes=5)
        assert case.exp_samples == [ExpectedSample(labels=f'{CPU_RULE}{{job="node"}}', value=0.5)]

    def test_own_value_queried_at_now(self, cpu_catalog, cpu_gateway):
        generate_fixtures(cpu_catalog, cpu_gateway, now=NOW)
        assert cpu_gateway.calls[0] == ("query", f"{CPU_RULE}[5m]", NOW)

    def test_dependency_window_aligned_to_latest_sample(self, cpu_catalog, cpu_gateway):
        """Range queries end at the last recorded sample, not at wall-clock now."""
        generate_fixtures(cpu_catalog, cpu_gateway, now=NOW)

        (call,) = cpu_gateway.range_calls()
        _, expr, start, end, step = call
        assert expr == "cpu_seconds_total"
        assert end == T0
        assert start == T0 - timedelta(minutes=5)
        assert step == timedelta(minutes=1)

    def test_alignment_uses_latest_stream(self, cpu_catalog):
        late = T0 + timedelta(seconds=15)
        gateway = FakeGateway(
            instant={
                f"{CPU_RULE}[5m]": matrix(
                    stream({"__name__": CPU_RULE, "job": "b"}, [1, 2]),
                    stream({"__name__": CPU_RULE, "job": "a"}, [3, 4], end=late),
                )
            }
        )

        (fixture,) = generate_fixtures(cpu_catalog, gateway, now=NOW)

        assert gateway.range_calls()[0][3] == late
        assert [s.labels for s in fixture.test_case.exp_samples] == [
            f'{CPU_RULE}{{job="a"}}',
            f'{CPU_RULE}{{job="b"}}',
        ]
        assert [s.value for s in fixture.test_case.exp_samples] == [4.0, 2.0]

    def test_other_recording_rules_not_queried(self):
        catalog = catalog_of(
            recording(CPU_RULE, "rate(cpu_seconds_total[5m])"),
            recording("derived:metric", f"{CPU_RULE} * on(job) group_left() machine_count"),
        )
        gateway = FakeGateway(
            instant={"derived:metric[5m]": matrix(stream({"__name__": "derived:metric"}, [1]))}
        )

        generate_fixtures(catalog, gateway, select=lambda name: name == "derived:metric", now=NOW)

        assert [call[1] for call in gateway.range_calls()] == ["machine_count"]

    def test_unnamed_selectors_not_queried(self):
        catalog = catalog_of(recording("job:targets:count", 'count({job="node"}) + count(up)'))
        gateway = FakeGateway(
            instant={"job:targets:count[5m]": matrix(stream({"__name__": "job:targets:count"}, [3]))}
        )

        generate_fixtures(catalog, gateway, now=NOW)

        assert [call[1] for call in gateway.range_calls()] == ["up"]

    def test_dependencies_across_definitions(self):
        catalog = RuleCatalog.from_groups(
            [
                group("one", recording("job:load:max", "max(node_load1)")),
                group("two", recording("job:load:max", "max(node_load1) + max(node_load5)")),
            ]
        )
        gateway = FakeGateway(
            instant={"job:load:max[5m]": matrix(stream({"__name__": "job:load:max"}, [1]))}
        )

        generate_fixtures(catalog, gateway, now=NOW)

        assert [call[1] for call in gateway.range_calls()] == ["node_load1", "node_load5"]


class TestFailures:
    """Any failure aborts the whole run."""

    def test_empty_own_value_is_query_error(self, cpu_catalog):
        gateway = FakeGateway(instant={f"{CPU_RULE}[5m]": matrix()})

        with pytest.raises(QueryError) as exc_info:
            generate_fixtures(cpu_catalog, gateway, now=NOW)

        assert "found 0 samples" in exc_info.value.message
        assert gateway.range_calls() == []

    def test_streams_without_samples_count_as_empty(self, cpu_catalog):
        gateway = FakeGateway(
            instant={f"{CPU_RULE}[5m]": matrix(stream({"__name__": CPU_RULE}, []))}
        )
        with pytest.raises(QueryError):
            generate_fixtures(cpu_catalog, gateway, now=NOW)

    def test_non_matrix_own_value_is_query_error(self, cpu_catalog):
        gateway = FakeGateway(instant={f"{CPU_RULE}[5m]": VectorResult()})
        with pytest.raises(QueryError):
            generate_fixtures(cpu_catalog, gateway, now=NOW)

    def test_error_stops_later_rules(self):
        catalog = catalog_of(recording("a:rule", "up"), recording("b:rule", "up"))
        gateway = FakeGateway(
            instant={
                "a:rule[5m]": QueryError("query 'a:rule[5m]' failed"),
                "b:rule[5m]": matrix(stream({"__name__": "b:rule"}, [1])),
            }
        )

        with pytest.raises(QueryError):
            generate_fixtures(catalog, gateway, now=NOW)

        assert [call[1] for call in gateway.calls] == ["a:rule[5m]"]

    def test_range_error_aborts(self, cpu_catalog, cpu_gateway):
        cpu_gateway.ranges["cpu_seconds_total"] = QueryError("range query failed")
        with pytest.raises(QueryError):
            generate_fixtures(cpu_catalog, cpu_gateway, now=NOW)

    def test_parse_error_aborts(self):
        catalog = catalog_of(recording("a:rule", "sum(rate(x[5m])"))
        gateway = FakeGateway()

        with pytest.raises(ExpressionParseError):
            generate_fixtures(catalog, gateway, now=NOW)

        assert gateway.calls == []


class TestGenerate:
    """Tests for generating several fixtures."""

    def test_non_matrix_dependency_skipped(self):
        """A dependency answering with a scalar contributes no input series."""
        catalog = catalog_of(
            recording("a:rule", "sum(rate(requests_total[5m]))"),
            recording("b:rule", "sum(weird_metric)"),
        )
        gateway = FakeGateway(
            instant={
                "a:rule[5m]": matrix(stream({"__name__": "a:rule"}, [5])),
                "b:rule[5m]": matrix(stream({"__name__": "b:rule"}, [7])),
            },
            ranges={
                "requests_total": matrix(stream({"__name__": "requests_total"}, [1, 2, 3])),
                "weird_metric": ScalarResult(sample=Sample(timestamp=T0, value=1.0)),
            },
        )

        first, second = generate_fixtures(catalog, gateway, now=NOW)

        assert first.test_case.expr == "a:rule"
        assert [s.series for s in first.input_series] == ["requests_total"]
        assert first.input_series[0].values == "_ _ _ 1 2 3"
        assert second.test_case.expr == "b:rule"
        assert second.input_series == []
        assert second.test_case.exp_samples == [ExpectedSample(labels="b:rule", value=7.0)]

    def test_rules_in_name_order(self):
        catalog = catalog_of(recording("z:rule", "up"), recording("a:rule", "up"))
        gateway = FakeGateway(
            instant={
                "z:rule[5m]": matrix(stream({"__name__": "z:rule"}, [1])),
                "a:rule[5m]": matrix(stream({"__name__": "a:rule"}, [1])),
            }
        )

        fixtures = generate_fixtures(catalog, gateway, now=NOW)

        assert [f.test_case.expr for f in fixtures] == ["a:rule", "z:rule"]

    def test_select_predicate(self, cpu_catalog, cpu_gateway):
        assert generate_fixtures(cpu_catalog, cpu_gateway, select=lambda name: False, now=NOW) == []
        assert cpu_gateway.calls == []

    def test_series_not_shared_between_rules(self):
        catalog = catalog_of(recording("a:rule", "sum(foo)"), recording("b:rule", "sum(bar)"))
        gateway = FakeGateway(
            instant={
                "a:rule[5m]": matrix(stream({"__name__": "a:rule"}, [1])),
                "b:rule[5m]": matrix(stream({"__name__": "b:rule"}, [1])),
            },
            ranges={
                "foo": matrix(stream({"__name__": "foo"}, [1])),
                "bar": matrix(stream({"__name__": "bar"}, [2])),
            },
        )

        first, second = generate_fixtures(catalog, gateway, now=NOW)

        assert [(s.series, s.values) for s in first.input_series] == [("foo", "_ _ _ _ _ 1")]
        assert [(s.series, s.values) for s in second.input_series] == [("bar", "_ _ _ _ _ 2")]

    def test_first_query_wins_for_shared_series(self):
        catalog = catalog_of(recording("a:rule", "sum(first_metric) + sum(second_metric)"))
        shared = {"__name__": "shared", "job": "x"}
        gateway = FakeGateway(
            instant={"a:rule[5m]": matrix(stream({"__name__": "a:rule"}, [1]))},
            ranges={
                "first_metric": matrix(stream(shared, [1, 2, 3])),
                "second_metric": matrix(stream(shared, [7, 8, 9]), stream({"__name__": "other"}, [4])),
            },
        )

        (fixture,) = generate_fixtures(catalog, gateway, now=NOW)

        rows = {s.series: s.values for s in fixture.input_series}
        assert rows == {'shared{job="x"}': "_ _ _ 1 2 3", "other": "_ _ _ _ _ 4"}

    def test_generator_defaults_to_current_time(self, cpu_catalog, cpu_gateway):
        FixtureGenerator(cpu_catalog, cpu_gateway).generate()
        _, _, at = cpu_gateway.calls[0]
        assert at.tzinfo is not None


class TestInputAlignment:
    """Input values sit on the step grid that ends at the alignment point."""

    def test_late_series_padded_at_start(self, cpu_catalog, cpu_gateway):
        cpu_gateway.ranges["cpu_seconds_total"] = matrix(
            stream({"__name__": "cpu_seconds_total", "i": "old"}, [1, 1, 1, 1, 1, 1]),
            stream({"__name__": "cpu_seconds_total", "i": "new"}, [7, 8, 9]),
        )

        (fixture,) = generate_fixtures(cpu_catalog, cpu_gateway, now=NOW)

        rows = {s.series: s.values for s in fixture.input_series}
        assert rows == {
            'cpu_seconds_total{i="new"}': "_ _ _ 7 8 9",
            'cpu_seconds_total{i="old"}': "1 1 1 1 1 1",
        }

    def test_series_ending_early_padded_at_end(self, cpu_catalog, cpu_gateway):
        cpu_gateway.ranges["cpu_seconds_total"] = matrix(
            stream({"__name__": "cpu_seconds_total"}, [4, 5], end=T0 - timedelta(minutes=4)),
        )

        (fixture,) = generate_fixtures(cpu_catalog, cpu_gateway, now=NOW)

        assert fixture.input_series[0].values == "4 5 _ _ _ _"

    def test_gap_kept_in_place(self):
        start = T0 - timedelta(minutes=5)
        samples = [
            Sample(timestamp=start, value=1.0),
            Sample(timestamp=start + timedelta(minutes=1), value=2.0),
            Sample(timestamp=start + timedelta(minutes=4), value=5.0),
            Sample(timestamp=T0, value=6.0),
        ]

        (row,) = assemble_input({"up": samples}, start, timedelta(minutes=1), 6)

        assert row.values == "1 2 _ _ 5 6"

    def test_samples_outside_window_ignored(self):
        start = T0 - timedelta(minutes=5)
        samples = [
            Sample(timestamp=start - timedelta(minutes=1), value=0.0),
            Sample(timestamp=T0, value=6.0),
            Sample(timestamp=T0 + timedelta(minutes=1), value=7.0),
        ]

        (row,) = assemble_input({"up": samples}, start, timedelta(minutes=1), 6)

        assert row.values == "_ _ _ _ _ 6"

    def test_window_follows_unaligned_latest_sample(self, cpu_catalog):
        late = T0 + timedelta(seconds=15)
        gateway = FakeGateway(
            instant={f"{CPU_RULE}[5m]": matrix(stream({"__name__": CPU_RULE}, [1], end=late))},
            ranges={"cpu_seconds_total": matrix(stream({"__name__": "cpu_seconds_total"}, [3, 4], end=late))},
        )

        (fixture,) = generate_fixtures(cpu_catalog, gateway, now=NOW)

        assert fixture.input_series[0].values == "_ _ _ _ 3 4"

    def test_slots_follow_lookback_and_step(self, cpu_catalog, cpu_gateway):
        generator = FixtureGenerator(
            cpu_catalog, cpu_gateway, lookback=timedelta(minutes=10), step=timedelta(seconds=30)
        )
        assert generator.slots == 21


class TestSeriesAccumulator:
    """Tests for sample accumulation and input assembly."""

    def test_first_writer_wins(self):
        first = stream({"__name__": "up"}, [1, 2]).samples
        acc = SeriesAccumulator()
        assert acc.add("up", first)
        assert not acc.add("up", stream({"__name__": "up"}, [9]).samples)
        assert acc.get("up") == first
        assert len(acc) == 1
        assert "up" in acc

    def test_add_matrix_counts_new_series(self):
        acc = SeriesAccumulator()
        acc.add("a", stream({"__name__": "a"}, [1]).samples)
        added = acc.add_matrix(matrix(stream({"__name__": "a"}, [5]), stream({"__name__": "b"}, [6])))
        assert added == 1
        assert [s.value for s in acc.get("a")] == [1.0]
        assert [s.value for s in acc.get("b")] == [6.0]

    def test_assemble_input_independent_of_insertion_order(self):
        series = {
            'up{job="b"}': stream({}, [1, 0]).samples,
            'up{job="a"}': stream({}, [1, 1]).samples,
            "node_load1": stream({}, [0.25, 1.5]).samples,
        }
        start = T0 - timedelta(minutes=1)
        outputs = {
            tuple(assemble_input(dict(order), start, timedelta(minutes=1), 2))
            for order in itertools.permutations(series.items())
        }

        assert len(outputs) == 1
        (rows,) = outputs
        assert [r.series for r in rows] == ["node_load1", 'up{job="a"}', 'up{job="b"}']
        assert rows[0].values == "0.25 1.5"
