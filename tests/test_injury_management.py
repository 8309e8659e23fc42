"""Tests for injury reporting and contraindication lookups."""
from __future__ import annotations

import pytest

from hybridcoach.exceptions import NotFoundError, ValidationError
from hybridcoach.models.enums import AdaptationTrigger, InjuryStatus, InjuryType
from hybridcoach.services.injury_management import build_movement_restrictions

from tests.conftest import TODAY, USER_ID


class TestMovementRestrictions:
    def test_all_fields(self):
        assert (
            build_movement_restrictions("No overhead pressing", "moderate", "sharp when lifting")
            == "No overhead pressing; Severity: moderate; Pain: sharp when lifting"
        )

    def test_blank_fields_are_dropped(self):
        assert build_movement_restrictions("  ", None, "dull ache") == "Pain: dull ache"
        assert build_movement_restrictions(None) == ""


class TestReporting:
    def test_report_without_plan_still_records_injury(self, make_profile, injuries):
        make_profile()

        report = injuries.report_injury(USER_ID, " Shoulder ", InjuryType.ACUTE, severity="mild")

        assert report.adaptation is None
        assert report.injury.id is not None
        assert report.injury.body_part == "Shoulder"
        assert report.injury.status == InjuryStatus.ACTIVE
        assert report.injury.reported_date == TODAY
        assert report.injury.movement_restrictions == "Severity: mild"

    def test_report_with_plan_adapts_it(self, make_profile, generator, injuries):
        make_profile()
        generator.generate_plan(USER_ID)

        report = injuries.report_injury(USER_ID, "Shoulder", InjuryType.ACUTE, "No overhead pressing")

        assert report.adaptation is not None
        assert report.adaptation.trigger == AdaptationTrigger.INJURY
        assert report.adaptation.changes["injury_id"] == report.injury.id

    def test_blank_body_part(self, make_profile, injuries):
        make_profile()

        with pytest.raises(ValidationError):
            injuries.report_injury(USER_ID, "   ", InjuryType.ACUTE)

    def test_unknown_user(self, injuries):
        with pytest.raises(NotFoundError):
            injuries.report_injury("nobody", "Knee", InjuryType.CHRONIC)


class TestStatus:
    def test_resolve(self, make_profile, injuries):
        profile = make_profile(injuries=[("Knee", "")])
        injury = profile.injuries[0]

        resolved = injuries.resolve_injury(USER_ID, injury.id)

        assert resolved.status == InjuryStatus.RESOLVED
        assert resolved.resolved_date == TODAY
        assert injuries.get_active_injuries(USER_ID) == []

    def test_improving_is_not_active(self, make_profile, injuries):
        profile = make_profile(injuries=[("Knee", ""), ("Wrist", "")])

        injuries.update_injury_status(USER_ID, profile.injuries[0].id, InjuryStatus.IMPROVING)

        assert [injury.body_part for injury in injuries.get_active_injuries(USER_ID)] == ["Wrist"]
        assert profile.injuries[0].resolved_date is None

    def test_foreign_injury(self, make_profile, injuries):
        make_profile()
        other = make_profile(user_id="athlete-2", injuries=[("Ankle", "")])

        with pytest.raises(NotFoundError):
            injuries.resolve_injury(USER_ID, other.injuries[0].id)


class TestContraindications:
    def test_listing(self, make_profile, injuries):
        make_profile(injuries=[("Shoulder", "")])

        found = injuries.get_contraindicated_exercises(USER_ID)

        severities = {item.entry.name: item.severity for item in found}
        assert severities["Overhead Press"] == "absolute"
        assert "Back Squat" not in severities

    def test_listing_without_injuries(self, make_profile, injuries):
        make_profile()

        assert injuries.get_contraindicated_exercises(USER_ID) == []

    def test_substitute(self, make_profile, injuries, exercise_named):
        make_profile(injuries=[("Shoulder", "")])

        suggestion = injuries.get_substitute_exercise(USER_ID, exercise_named("Overhead Press").id)

        assert suggestion.substitute.name == "Push-up"
        assert suggestion.reason == "Alternative for Overhead Press due to injury"

    def test_no_substitute_needed_without_injuries(self, make_profile, injuries, exercise_named):
        make_profile()

        assert injuries.get_substitute_exercise(USER_ID, exercise_named("Overhead Press").id) is None

    def test_unknown_exercise(self, make_profile, injuries):
        make_profile(injuries=[("Shoulder", "")])

        with pytest.raises(NotFoundError):
            injuries.get_substitute_exercise(USER_ID, 99999)
