"""Tests for scenario overlay computation and commit planning."""

import pytest

from kitting_scheduler.schemas.job import JobCreate, JobUpdate
from kitting_scheduler.services.delay_injection import DelaySpec
from kitting_scheduler.services.job_snapshot import JobSnapshot
from kitting_scheduler.services.scenario_engine import (
    ChangeOperation,
    ScenarioChangeSpec,
    ScenarioCommitError,
    ScenarioSnapshot,
    compute_overlay,
    merge_change_data,
    plan_commit,
    scenario_only,
)

ADD = ChangeOperation.ADD
MODIFY = ChangeOperation.MODIFY
DELETE = ChangeOperation.DELETE


def _job_payload(job_number: str = "KJ-NEW", **overrides) -> dict:
    payload = {
        "job_number": job_number,
        "customer_name": "Acme Assembly",
        "ordered_quantity": 4,
        "route_steps": [{"name": "Pick", "expected_seconds": 90}],
        "scheduled_date": "2026-02-24",
        "scheduled_start_time": "07:00",
    }
    payload.update(overrides)
    return payload


def _production() -> list[JobSnapshot]:
    return [
        JobSnapshot.from_payload("job-1", _job_payload("KJ-0001", ordered_quantity=10)),
        JobSnapshot.from_payload("job-2", _job_payload("KJ-0002", ordered_quantity=20)),
    ]


def _scenario(*changes: ScenarioChangeSpec) -> ScenarioSnapshot:
    return ScenarioSnapshot(id="scn-1", name="Rush order", changes=tuple(changes))


def _change(change_id: str, operation: ChangeOperation, job_id=None, **change_data) -> ScenarioChangeSpec:
    return ScenarioChangeSpec(id=change_id, operation=operation, job_id=job_id, change_data=change_data)


class TestComputeOverlay:
    def test_empty_scenario_is_production(self):
        jobs = _production()
        overlay = compute_overlay(jobs, _scenario())
        assert [item.base for item in overlay] == jobs
        assert scenario_only(overlay) == []

    def test_add_appends_tagged_job(self):
        overlay = compute_overlay(_production(), _scenario(_change("c-add", ADD, **_job_payload())))
        added = overlay[-1]
        assert added.id == "c-add"
        assert added.annotation.operation is ADD
        assert added.base.expected_job_duration == 360

    def test_modify_recomputes_durations(self):
        overlay = compute_overlay(_production(), _scenario(_change("c-mod", MODIFY, "job-1", station_count=2)))
        modified = overlay[0]
        assert modified.annotation.operation is MODIFY
        assert modified.base.station_count == 2
        assert modified.base.expected_job_duration == 450

    def test_modify_of_added_job_keeps_add_tag(self):
        scenario = _scenario(
            _change("c-add", ADD, **_job_payload()),
            _change("c-mod", MODIFY, "c-add", ordered_quantity=8),
        )
        added = compute_overlay(_production(), scenario)[-1]
        assert added.annotation.operation is ADD
        assert added.base.ordered_quantity == 8

    def test_delete_marks_but_keeps_job(self):
        overlay = compute_overlay(_production(), _scenario(_change("c-del", DELETE, "job-2")))
        assert len(overlay) == 2
        assert overlay[1].is_deleted
        assert overlay[1].to_dict()["scenario"]["deleted"] is True
        assert overlay[0].to_dict()["scenario"] is None

    def test_changes_after_delete_are_skipped(self, caplog):
        scenario = _scenario(
            _change("c-del", DELETE, "job-1"),
            _change("c-mod", MODIFY, "job-1", ordered_quantity=1),
        )
        overlay = compute_overlay(_production(), scenario)
        assert overlay[0].is_deleted
        assert overlay[0].base.ordered_quantity == 10
        assert "deleted job" in caplog.text

    def test_unknown_job_is_skipped(self, caplog):
        overlay = compute_overlay(_production(), _scenario(_change("c-mod", MODIFY, "ghost", setup=60)))
        assert scenario_only(overlay) == []
        assert "unknown job" in caplog.text

    @pytest.mark.parametrize(
        "patch",
        [
            {"scheduled_date": "next tuesday"},
            {"ordered_quantity": "ten"},
            {"setup": None},
            {"station_count": 0},
            {"scheduled_start_time": "25:99"},
            {"allowed_shift_ids": 5},
        ],
    )
    def test_invalid_patch_is_skipped(self, patch, caplog):
        jobs = _production()
        scenario = _scenario(
            ScenarioChangeSpec(id="c-bad", operation=MODIFY, job_id="job-1", change_data=patch),
            _change("c-ok", MODIFY, "job-2", setup=60),
        )
        overlay = compute_overlay(jobs, scenario)

        assert overlay[0].base == jobs[0]
        assert overlay[0].annotation is None
        assert overlay[1].base.setup == 60
        assert "invalid patch" in caplog.text

    def test_invalid_add_payload_is_skipped(self, caplog):
        bad_steps = [{"name": "Pick", "expected_seconds": "ninety"}]
        overlay = compute_overlay(_production(), _scenario(_change("c-add", ADD, **_job_payload(route_steps=bad_steps))))
        assert len(overlay) == 2
        assert scenario_only(overlay) == []
        assert "invalid ADD payload" in caplog.text

    def test_changes_replayed_in_order(self):
        scenario = _scenario(
            _change("c1", MODIFY, "job-1", ordered_quantity=2),
            _change("c2", MODIFY, "job-1", ordered_quantity=3),
        )
        assert compute_overlay(_production(), scenario)[0].base.ordered_quantity == 3

    def test_idempotent(self):
        jobs = _production()
        scenario = _scenario(
            _change("c-add", ADD, **_job_payload()),
            _change("c-mod", MODIFY, "job-1", setup=300),
            _change("c-del", DELETE, "job-2"),
        )
        delays = [DelaySpec("d1", "job-1", "Late parts", 600, 1)]
        assert compute_overlay(jobs, scenario, delays) == compute_overlay(jobs, scenario, delays)

    def test_production_inputs_untouched(self):
        jobs = _production()
        before = list(jobs)
        compute_overlay(jobs, _scenario(_change("c-mod", MODIFY, "job-1", setup=300)))
        assert jobs == before

    def test_injects_production_and_own_delays_only(self):
        delays = [
            DelaySpec("prod", "job-1", "Late parts", 600, 1),
            DelaySpec("own", "job-2", "Inspection", 300, 0, scenario_id="scn-1"),
            DelaySpec("other", "job-2", "Other", 900, 0, scenario_id="scn-2"),
        ]
        jobs = _production()
        first, second = compute_overlay(jobs, _scenario(), delays)
        assert first.base.expected_job_duration == jobs[0].expected_job_duration + 600
        assert second.base.expected_job_duration == jobs[1].expected_job_duration + 300

    def test_delay_on_added_job(self):
        scenario = _scenario(_change("c-add", ADD, **_job_payload()))
        delays = [DelaySpec("d1", "c-add", "Setup issue", 120, 1, scenario_id="scn-1")]
        added = compute_overlay(_production(), scenario, delays)[-1]
        assert added.base.expected_job_duration == 480


class TestMergeChangeData:
    def test_incoming_wins(self):
        assert merge_change_data({"setup": 1, "take_down": 2}, {"setup": 5}) == {"setup": 5, "take_down": 2}

    def test_handles_missing(self):
        assert merge_change_data(None, {"setup": 5}) == {"setup": 5}
        assert merge_change_data({"setup": 5}, None) == {"setup": 5}


class TestPlanCommit:
    def test_valid_plan(self):
        plan = plan_commit(
            [
                _change("c-add", ADD, **_job_payload()),
                _change("c-mod", MODIFY, "job-1", station_count=3),
                _change("c-del", DELETE, "job-2"),
            ],
            ["job-1", "job-2"],
        )
        assert [step.operation for step in plan] == [ADD, MODIFY, DELETE]
        assert plan[0].job_id == "c-add"
        assert isinstance(plan[0].payload, JobCreate)
        assert isinstance(plan[1].payload, JobUpdate)
        assert plan[2].payload is None

    def test_modify_of_added_job_allowed(self):
        plan = plan_commit(
            [_change("c-add", ADD, **_job_payload()), _change("c-mod", MODIFY, "c-add", setup=60)],
            [],
        )
        assert plan[1].job_id == "c-add"

    def test_missing_job_raises(self):
        with pytest.raises(ScenarioCommitError, match="missing job"):
            plan_commit([_change("c-mod", MODIFY, "ghost", setup=60)], ["job-1"])

    def test_change_after_delete_raises(self):
        with pytest.raises(ScenarioCommitError):
            plan_commit(
                [_change("c-del", DELETE, "job-1"), _change("c-mod", MODIFY, "job-1", setup=60)],
                ["job-1"],
            )

    def test_invalid_add_payload_raises(self):
        with pytest.raises(ScenarioCommitError, match="invalid job payload"):
            plan_commit([_change("c-add", ADD, job_number="KJ-1")], [])

    def test_unknown_patch_field_raises(self):
        with pytest.raises(ScenarioCommitError, match="invalid patch"):
            plan_commit([_change("c-mod", MODIFY, "job-1", colour="red")], ["job-1"])

    def test_derived_duration_rejected(self):
        with pytest.raises(ScenarioCommitError):
            plan_commit([_change("c-mod", MODIFY, "job-1", expected_job_duration=5)], ["job-1"])
