"""
Tests for closure motive suggestion.

Rules are evaluated first-match-wins; code 8 means continue to installation.
"""

from datetime import datetime, timezone

import pytest

from app.schemas.closure_motive import ClosureMotiveCode
from app.schemas.work_order import Answer, Question
from app.services.order_execution.decision import RULES, evaluate_rules, is_early_exit, suggest
from tests.factories import HappyPathRecordFactory, InspectionRecordFactory

YES = Answer.YES
NO = Answer.NO

FIRST_VISIT = datetime(2026, 2, 20, 9, 0, tzinfo=timezone.utc)


class TestSuggest:
    """suggest() over the currently meaningful answers of a record."""

    def test_unanswered_record_continues(self):
        assert suggest(InspectionRecordFactory()) == ClosureMotiveCode.CHANGE_COMPLETED

    def test_no_resident_first_visit(self):
        """Scenario A: nobody home and no earlier visit."""
        record = InspectionRecordFactory(resident_present=NO)
        assert suggest(record) == 1

    def test_no_resident_second_visit(self):
        record = InspectionRecordFactory(resident_present=NO, first_visit_at=FIRST_VISIT)
        assert suggest(record) == 9

    def test_happy_path_continues_to_installation(self):
        """Scenario B: every answer on the normal path."""
        assert suggest(HappyPathRecordFactory()) == 8
        assert is_early_exit(HappyPathRecordFactory()) is False

    @pytest.mark.parametrize(
        "changes, expected",
        [
            ({"client_accepts_change": NO}, 2),
            ({"meter_serial_matches": NO}, 3),
            ({"meter_damaged": YES}, 4),
            ({"has_grate_or_weld": YES, "grate_removable": NO}, 5),
            ({"leak_outside_zone": YES}, 6),
            ({"valve_leak": YES}, 7),
            ({"valve_operable": NO}, 10),
            ({"leak_persists_after_valve_op": YES}, 11),
        ],
    )
    def test_single_branch_outcomes(self, changes, expected):
        record = HappyPathRecordFactory(**changes)
        assert suggest(record) == expected
        assert is_early_exit(record) is True

    def test_removable_grate_is_not_an_obstruction(self):
        record = HappyPathRecordFactory(has_grate_or_weld=YES, grate_removable=YES)
        assert suggest(record) == 8

    def test_hidden_answers_are_ignored(self):
        """Changing an early answer orphans later ones; they must not decide."""
        record = HappyPathRecordFactory(meter_serial_matches=NO, valve_leak=YES)
        assert suggest(record) == 3

        record = InspectionRecordFactory(resident_present=YES, client_accepts_change=None, meter_damaged=YES)
        assert suggest(record) == 8

    def test_orphaned_valve_leak_under_outside_leak(self):
        """valve_leak is hidden once a leak outside the zone is reported."""
        record = HappyPathRecordFactory(leak_outside_zone=YES, valve_leak=YES)
        assert suggest(record) == 6

    def test_first_visit_stamp_only_matters_for_resident(self):
        record = HappyPathRecordFactory(client_accepts_change=NO, first_visit_at=FIRST_VISIT)
        assert suggest(record) == 2

    def test_result_always_in_catalog(self):
        for answer in (None, YES, NO):
            for question in Question:
                record = HappyPathRecordFactory(**{question.value: answer})
                assert suggest(record) in set(ClosureMotiveCode)


class TestEvaluateRules:
    """Raw rule evaluation, without visibility masking."""

    def test_rule_order(self):
        assert [int(rule.outcome) for rule in RULES] == [1, 9, 2, 3, 4, 5, 7, 10, 11, 6]

    def test_first_match_wins(self):
        """An answer set matching two rules yields the earlier rule's code."""
        answers = {Question.client_accepts_change: NO, Question.meter_damaged: YES}
        assert evaluate_rules(answers, first_visit_done=False) == 2

    def test_valve_leak_precedes_outside_leak(self):
        answers = {Question.leak_outside_zone: YES, Question.valve_leak: YES}
        assert evaluate_rules(answers, first_visit_done=False) == 7

    def test_no_resident_beats_everything(self):
        answers = {q: NO for q in Question}
        assert evaluate_rules(answers, first_visit_done=False) == 1
        assert evaluate_rules(answers, first_visit_done=True) == 9

    def test_missing_answers_default_to_unanswered(self):
        assert evaluate_rules({}, first_visit_done=True) == 8
