"""
Closure motive suggestion.

An ordered rule list evaluated first-match-wins over the checklist answers.
Code 8 (CHANGE_COMPLETED) means no early exit: continue to installation.
"""

from typing import Callable, Mapping, NamedTuple, Optional

from app.schemas.closure_motive import ClosureMotiveCode
from app.schemas.work_order import Answer, InspectionRecord, Question
from app.services.order_execution.visibility import effective_answers

Answers = Mapping[Question, Optional[Answer]]

YES = Answer.YES
NO = Answer.NO


class Rule(NamedTuple):
    outcome: ClosureMotiveCode
    matches: Callable[[Answers, bool], bool]


# (answers, first_visit_done) -> bool
RULES: tuple[Rule, ...] = (
    Rule(
        ClosureMotiveCode.NO_RESIDENT_FIRST_VISIT,
        lambda a, visited: a[Question.resident_present] == NO and not visited,
    ),
    Rule(
        ClosureMotiveCode.NO_RESIDENT_SECOND_VISIT,
        lambda a, visited: a[Question.resident_present] == NO and visited,
    ),
    Rule(
        ClosureMotiveCode.CLIENT_REFUSES,
        lambda a, _: a[Question.client_accepts_change] == NO,
    ),
    Rule(
        ClosureMotiveCode.SERIAL_MISMATCH,
        lambda a, _: a[Question.meter_serial_matches] == NO,
    ),
    Rule(
        ClosureMotiveCode.METER_DAMAGED,
        lambda a, _: a[Question.meter_damaged] == YES,
    ),
    Rule(
        ClosureMotiveCode.GRATE_OBSTRUCTION,
        lambda a, _: a[Question.has_grate_or_weld] == YES and a[Question.grate_removable] == NO,
    ),
    Rule(
        ClosureMotiveCode.VALVE_LEAK,
        lambda a, _: a[Question.valve_leak] == YES,
    ),
    Rule(
        ClosureMotiveCode.VALVE_NOT_OPERABLE,
        lambda a, _: a[Question.valve_operable] == NO,
    ),
    Rule(
        ClosureMotiveCode.LEAK_PERSISTS,
        lambda a, _: a[Question.leak_persists_after_valve_op] == YES,
    ),
    Rule(
        ClosureMotiveCode.LEAK_OUTSIDE_ZONE,
        lambda a, _: a[Question.leak_outside_zone] == YES,
    ),
)


def evaluate_rules(answers: Answers, first_visit_done: bool) -> ClosureMotiveCode:
    """Return the outcome of the first matching rule, or CHANGE_COMPLETED."""
    full = {q: answers.get(q) for q in Question}
    for rule in RULES:
        if rule.matches(full, first_visit_done):
            return rule.outcome
    return ClosureMotiveCode.CHANGE_COMPLETED


def suggest(record: InspectionRecord) -> ClosureMotiveCode:
    """Suggested closure motive for the record's currently meaningful answers."""
    return evaluate_rules(
        effective_answers(record),
        first_visit_done=record.first_visit_at is not None,
    )


def is_early_exit(record: InspectionRecord) -> bool:
    return suggest(record) != ClosureMotiveCode.CHANGE_COMPLETED
