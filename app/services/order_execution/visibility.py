"""
Checklist visibility.

Which inspection questions are currently askable, given the answers so far.
The questions form a dependency DAG: a question is askable only when its
predecessors are askable and answered the way the condition requires.
Answers stored for hidden questions are orphans and carry no meaning.
"""

from typing import Optional

from app.schemas.work_order import Answer, InspectionRecord, Question

YES = Answer.YES
NO = Answer.NO


def effective_answer(record: InspectionRecord, question: Question) -> Optional[Answer]:
    """The stored answer if the question is currently askable, otherwise None."""
    if not is_askable(record, question):
        return None
    return record.answer(question)


def _is(record: InspectionRecord, question: Question, expected: Answer) -> bool:
    return effective_answer(record, question) == expected


def is_askable(record: InspectionRecord, question: Question) -> bool:
    """Whether ``question`` should be shown to the agent for this record."""
    q = Question(question)

    if q is Question.resident_present:
        return True
    if q is Question.client_accepts_change:
        return _is(record, Question.resident_present, YES)
    if q is Question.meter_serial_matches:
        return _is(record, Question.client_accepts_change, YES)
    if q is Question.meter_damaged:
        return _is(record, Question.meter_serial_matches, YES)
    if q is Question.has_grate_or_weld:
        return _is(record, Question.meter_damaged, NO)
    if q is Question.grate_removable:
        return _is(record, Question.has_grate_or_weld, YES)
    if q is Question.leak_outside_zone:
        return _is(record, Question.meter_damaged, NO) and (
            _is(record, Question.has_grate_or_weld, NO)
            or _is(record, Question.grate_removable, YES)
        )
    if q is Question.valve_leak:
        return _is(record, Question.leak_outside_zone, NO)
    if q is Question.valve_operable:
        return _is(record, Question.leak_outside_zone, NO) and _is(record, Question.valve_leak, NO)
    if q is Question.leak_persists_after_valve_op:
        return _is(record, Question.valve_operable, YES)
    return False


def askable_questions(record: InspectionRecord) -> list[Question]:
    """All currently askable questions, in checklist order."""
    return [q for q in Question if is_askable(record, q)]


def effective_answers(record: InspectionRecord) -> dict[Question, Optional[Answer]]:
    """Checklist answers with orphaned (hidden) answers masked out."""
    return {q: effective_answer(record, q) for q in Question}
