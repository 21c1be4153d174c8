"""Unit tests for input clamping in create/update models."""

from datetime import date

import pytest
from pydantic import ValidationError

from src.domain.activity import SportType
from src.domain.create_models import (
    BonusFineCreate,
    FamilyCreate,
    MemberCreate,
    SchoolTaskCreate,
    SportActivityCreate,
    TaskCreate,
    parse_score_value,
)
from src.domain.member import MemberRole
from src.domain.update_models import TaskUpdate


@pytest.mark.unit
class TestParseScoreValue:
    """Tests for parse_score_value."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (15, 15),
            ("25", 25),
            (" 7 ", 7),
            ("12.9", 12),
            (-5, 0),
            ("-3", 0),
            ("abc", 10),
            (None, 10),
            ("", 10),
        ],
    )
    def test_parsing(self, raw, expected):
        assert parse_score_value(raw) == expected

    def test_custom_default(self):
        assert parse_score_value("nope", default=0) == 0


@pytest.mark.unit
class TestTaskCreate:
    """Tests for TaskCreate."""

    def test_defaults(self):
        task = TaskCreate(title="Dishes")

        assert task.score_value == 10
        assert task.recurring_daily is False
        assert task.scheduled_days is None
        assert task.deadline is None

    def test_title_is_trimmed(self):
        assert TaskCreate(title="  Laundry  ").title == "Laundry"

    def test_blank_title_rejected(self):
        with pytest.raises(ValidationError, match="Title is required"):
            TaskCreate(title="   ")

    def test_negative_score_clamped(self):
        assert TaskCreate(title="Dishes", score_value=-20).score_value == 0

    def test_weekdays_clamped_and_deduplicated(self):
        assert TaskCreate(title="Dishes", scheduled_days=[8, 1, 1, -1]).scheduled_days == [0, 1, 6]

    def test_blank_deadline_is_none(self):
        assert TaskCreate(title="Dishes", deadline="").deadline is None

    def test_blank_assignee_is_none(self):
        assert TaskCreate(title="Dishes", default_assignee_id=" ").default_assignee_id is None


@pytest.mark.unit
class TestSportActivityCreate:
    """Tests for SportActivityCreate."""

    def test_extra_activity_drops_schedule(self):
        activity = SportActivityCreate(member_id=1, title="Run", type="extra", scheduled_days=[1, 2])

        assert activity.scheduled_days == []
        assert activity.member_id == "1"

    def test_weekly_activity_keeps_clamped_schedule(self):
        activity = SportActivityCreate(member_id="1", title="Swim", type="weekly", scheduled_days=[2, 9])

        assert activity.type == SportType.WEEKLY
        assert activity.scheduled_days == [2, 6]


@pytest.mark.unit
class TestSchoolTaskCreate:
    """Tests for SchoolTaskCreate."""

    def test_blank_member_defaults_later(self):
        task = SchoolTaskCreate(member_id="", title="Essay", due_date="2026-10-21")

        assert task.member_id is None
        assert task.due_date == date(2026, 10, 21)

    def test_type_defaults_to_homework(self):
        assert SchoolTaskCreate(title="Essay", type="").type == "homework"


@pytest.mark.unit
class TestMemberAndFamily:
    """Tests for member and onboarding payloads."""

    def test_member_role_defaults_to_regular(self):
        assert MemberCreate(name="Alice", role=None).role == MemberRole.REGULAR

    def test_blank_avatar_is_none(self):
        assert MemberCreate(name="Alice", avatar_url="  ").avatar_url is None

    def test_blank_family_name_rejected(self):
        with pytest.raises(ValidationError):
            FamilyCreate(family_name=" ", member_name="Mom")


@pytest.mark.unit
class TestBonusFineCreate:
    """Tests for BonusFineCreate."""

    def test_unparsable_points_become_zero(self):
        assert BonusFineCreate(member_id=3, kind="bonus", points="lots").points == 0

    def test_negative_points_become_zero(self):
        assert BonusFineCreate(member_id=3, kind="fine", points=-4).points == 0

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            BonusFineCreate(member_id=3, kind="gift", points=5)


@pytest.mark.unit
class TestTaskUpdate:
    """Tests for TaskUpdate."""

    def test_only_set_fields_are_dumped(self):
        update = TaskUpdate(score_value="-1")

        assert update.model_dump(exclude_unset=True) == {"score_value": 0}
