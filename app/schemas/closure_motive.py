from enum import IntEnum

from pydantic import BaseModel


class ClosureMotiveCode(IntEnum):
    """Closure motive catalog codes. CHANGE_COMPLETED is the normal path."""

    NO_RESIDENT_FIRST_VISIT = 1
    CLIENT_REFUSES = 2
    SERIAL_MISMATCH = 3
    METER_DAMAGED = 4
    GRATE_OBSTRUCTION = 5
    LEAK_OUTSIDE_ZONE = 6
    VALVE_LEAK = 7
    CHANGE_COMPLETED = 8
    NO_RESIDENT_SECOND_VISIT = 9
    VALVE_NOT_OPERABLE = 10
    LEAK_PERSISTS = 11


DEFAULT_CLOSURE_MOTIVES = {
    ClosureMotiveCode.NO_RESIDENT_FIRST_VISIT: "No resident present - schedule second visit",
    ClosureMotiveCode.CLIENT_REFUSES: "Client refuses the meter change",
    ClosureMotiveCode.SERIAL_MISMATCH: "Meter serial does not match",
    ClosureMotiveCode.METER_DAMAGED: "Cabinet or meter damaged or tampered",
    ClosureMotiveCode.GRATE_OBSTRUCTION: "Grate or weld cannot be removed",
    ClosureMotiveCode.LEAK_OUTSIDE_ZONE: "Leak detected outside the work zone",
    ClosureMotiveCode.VALVE_LEAK: "Leak at the valve",
    ClosureMotiveCode.CHANGE_COMPLETED: "Meter change completed",
    ClosureMotiveCode.NO_RESIDENT_SECOND_VISIT: "No resident present on second visit",
    ClosureMotiveCode.VALVE_NOT_OPERABLE: "Valve cannot be operated",
    ClosureMotiveCode.LEAK_PERSISTS: "Leak persists after operating the valve",
}


class ClosureMotiveResponse(BaseModel):
    """Closure motive catalog entry."""

    code: int
    label: str

    class Config:
        from_attributes = True
