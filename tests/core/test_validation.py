"""Tests for SchedulingValidator - half-open interval conflicts."""

from datetime import datetime, timezone

import pytest

from core.validation import DATE_REQUIRED, SchedulingValidator, intervals_overlap


def at(hour, minute=0):
    return datetime(2026, 3, 2, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def validator():
    return SchedulingValidator()


class TestIntervalsOverlap:

    def test_overlapping(self):
        assert intervals_overlap(at(14), at(15), at(14, 30), at(15)) is True

    def test_back_to_back_does_not_overlap(self):
        assert intervals_overlap(at(14), at(15), at(15), at(15, 30)) is False
        assert intervals_overlap(at(15), at(15, 30), at(14), at(15)) is False

    def test_contained(self):
        assert intervals_overlap(at(14), at(17), at(15), at(15, 30)) is True

    def test_zero_length_inside_other(self):
        assert intervals_overlap(at(14, 30), at(14, 30), at(14), at(15)) is True


class TestValidate:

    def test_no_existing_appointments(self, validator, make_candidate):
        result = validator.validate(make_candidate(start=at(9)), [])
        assert result.is_success is True
        assert result.error == ""

    def test_missing_date(self, validator, make_candidate, make_appointment):
        result = validator.validate(make_candidate(start=None), [make_appointment(start=at(9))])

        assert result.is_success is False
        assert result.error == DATE_REQUIRED

    def test_overlap_rejected(self, validator, make_candidate, make_appointment):
        """14:00 for 60 minutes blocks 14:30 for 30 minutes."""
        existing = [make_appointment(name="Dentist", start=at(14), duration=60)]

        result = validator.validate(make_candidate(start=at(14, 30), duration=30), existing)

        assert result.is_success is False
        assert "Dentist" in result.error
        assert "2026-03-02 14:00" in result.error
        assert "60 min" in result.error

    def test_back_to_back_allowed(self, validator, make_candidate, make_appointment):
        """14:00 for 60 minutes leaves 15:00 free."""
        existing = [make_appointment(start=at(14), duration=60)]

        result = validator.validate(make_candidate(start=at(15), duration=30), existing)

        assert result.is_success is True

    def test_ending_exactly_at_existing_start_allowed(
        self, validator, make_candidate, make_appointment
    ):
        existing = [make_appointment(start=at(14), duration=60)]

        result = validator.validate(make_candidate(start=at(13, 30), duration=30), existing)

        assert result.is_success is True

    def test_incomplete_existing_entries_skipped(
        self, validator, make_candidate, make_appointment
    ):
        existing = [
            make_appointment(appointment_id=1, start=None, duration=60),
            make_appointment(appointment_id=2, start=at(14), duration=None),
        ]

        result = validator.validate(make_candidate(start=at(14), duration=30), existing)

        assert result.is_success is True

    def test_first_conflict_is_reported(self, validator, make_candidate, make_appointment):
        existing = [
            make_appointment(appointment_id=1, name="Later", start=at(15), duration=60),
            make_appointment(appointment_id=2, name="Earlier", start=at(14), duration=60),
        ]

        result = validator.validate(make_candidate(start=at(14, 30), duration=60), existing)

        assert "Later" in result.error
