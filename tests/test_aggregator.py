from datetime import timedelta

import pytest

from meshstats.aggregator import aggregate, build_period, bytes_to_gb
from meshstats.models import ABSENT, Member, Present, TimeWindow


class TestBytesToGb:
    def test_decimal_gigabytes(self) -> "None":
        assert bytes_to_gb(2_500_000_000) == 2.5

    def test_zero(self) -> "None":
        assert bytes_to_gb(0) == 0.0


class TestAggregate:
    def test_up_only(self) -> "None":
        up, down, total = aggregate(Present(1_000_000_000), ABSENT)
        assert up == Present(1.0)
        assert down is ABSENT
        assert total == Present(1.0)

    def test_down_only(self) -> "None":
        up, down, total = aggregate(ABSENT, Present(3_000_000_000))
        assert up is ABSENT
        assert down == Present(3.0)
        assert total == Present(3.0)

    def test_both_absent_is_inactive(self) -> "None":
        up, down, total = aggregate(ABSENT, ABSENT)
        assert up is ABSENT
        assert down is ABSENT
        assert total is ABSENT

    def test_both_zero_is_active(self) -> "None":
        up, down, total = aggregate(Present(0), Present(0))
        assert up == Present(0.0)
        assert down == Present(0.0)
        assert total == Present(0.0)

    def test_sums_both_directions(self) -> "None":
        _, _, total = aggregate(Present(1_500_000_000), Present(2_000_000_000))
        assert total == Present(3.5)

    def test_pure(self) -> "None":
        first = aggregate(Present(42.0), ABSENT)
        second = aggregate(Present(42.0), ABSENT)
        assert first == second


class TestBuildPeriod:
    def test_trims_name_and_copies_window(self, window: "TimeWindow") -> "None":
        member = Member(id="rec1", name="  Alice \n", network_key="key=")
        period = build_period(member, window, Present(1_000_000_000), ABSENT)

        assert period.name == "Alice"
        assert period.start == window.start
        assert period.end == window.end
        assert period.duration == window.duration
        assert period.active is True

    def test_inactive_member(self, window: "TimeWindow") -> "None":
        member = Member(id="rec1", name="Bob", network_key="key=")
        period = build_period(member, window, ABSENT, ABSENT)
        assert period.active is False

    @pytest.mark.parametrize(
        "up, down, expected",
        [
            (Present(0), Present(0), {"up": 0.0, "down": 0.0, "total": 0.0}),
            (ABSENT, Present(2e9), {"up": None, "down": 2.0, "total": 2.0}),
            (ABSENT, ABSENT, {"up": None, "down": None, "total": None}),
        ],
    )
    def test_document_amounts(
        self,
        window: "TimeWindow",
        up: "object",
        down: "object",
        expected: "dict[str, float | None]",
    ) -> "None":
        member = Member(id="rec1", name="Carol", network_key="key=")
        doc = build_period(member, window, up, down).to_document()
        assert {k: doc[k] for k in ("up", "down", "total")} == expected

    def test_document_duration_in_nanoseconds(self, window: "TimeWindow") -> "None":
        member = Member(id="rec1", name="Carol", network_key="key=")
        doc = build_period(member, window, Present(1), ABSENT).to_document()
        assert doc["duration"] == 24 * 3600 * 1_000_000_000
        assert doc["from"] == window.start
        assert doc["to"] == window.end
        assert doc["name"] == "Carol"
        assert window.duration == timedelta(hours=24)
