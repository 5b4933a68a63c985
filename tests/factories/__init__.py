"""
Test factories for generating realistic test data.

Uses factory_boy for declarative test data generation.
"""

from .inspection_record import (
    InspectionRecordFactory,
    HappyPathRecordFactory,
    InstalledRecordFactory,
)

__all__ = [
    "InspectionRecordFactory",
    "HappyPathRecordFactory",
    "InstalledRecordFactory",
]
