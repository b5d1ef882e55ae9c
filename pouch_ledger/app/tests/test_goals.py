from datetime import date, timedelta
from decimal import Decimal

import pytest

from ..core.errors import GoalNotFoundError, PouchNotFoundError, ValidationError
from ..models import GoalCreate, GoalUpdate
from ..services import GoalService
from ..services.goals import monthly_contribution, months_remaining, progress_percentage
from .factories import OWNER, make_pouch

TODAY = date(2026, 1, 1)


@pytest.fixture
def goals(executor) -> GoalService:
    return GoalService(executor, today=lambda: TODAY)


def _create(goals: GoalService, **overrides):
    values = {
        "user_id": OWNER,
        "title": "Emergency fund",
        "target_amount": Decimal("10000.00"),
        "current_amount": Decimal("7500.00"),
        "target_date": TODAY + timedelta(days=180),
    }
    values.update(overrides)
    return goals.create_goal(GoalCreate(**values))


def test_months_remaining_rounds_up_and_floors_at_one() -> None:
    assert months_remaining(TODAY + timedelta(days=180), TODAY) == 6
    assert months_remaining(TODAY + timedelta(days=181), TODAY) == 7
    assert months_remaining(TODAY + timedelta(days=1), TODAY) == 1
    assert months_remaining(TODAY - timedelta(days=40), TODAY) == 1


def test_periods_are_thirty_days_not_calendar_months() -> None:
    today = date(2026, 10, 16)
    six_months_out = date(2027, 4, 16)

    assert months_remaining(six_months_out, today) == 7
    assert monthly_contribution(Decimal("10000"), Decimal("7500"), six_months_out, today) == Decimal("357.14")


def test_contribution_is_clamped_at_zero() -> None:
    achieved = monthly_contribution(Decimal("100"), Decimal("150"), TODAY + timedelta(days=60), TODAY)

    assert achieved == Decimal("0.00")


def test_progress_percentage() -> None:
    assert progress_percentage(Decimal("10000"), Decimal("7500")) == Decimal("75.00")
    assert progress_percentage(Decimal("3"), Decimal("1")) == Decimal("33.33")


def test_contribution_follows_the_schedule(goals) -> None:
    goal = _create(goals)

    assert goal.monthly_contribution == Decimal("416.67")
    assert goal.days_remaining == 180
    assert goal.progress_percentage == Decimal("75.00")
    assert not goal.is_achieved

    moved = goals.update_goal(goal.id, GoalUpdate(target_date=TODAY + timedelta(days=30)))

    assert moved.monthly_contribution == Decimal("2500.00")
    assert goals.get_goal(goal.id).monthly_contribution == Decimal("2500.00")


def test_unrelated_edits_keep_the_contribution(goals, executor) -> None:
    goal = _create(goals)
    later = GoalService(executor, today=lambda: TODAY + timedelta(days=150))

    renamed = later.update_goal(goal.id, GoalUpdate(title="Rainy day", priority=2))

    assert renamed.title == "Rainy day"
    assert renamed.monthly_contribution == Decimal("416.67")

    topped_up = later.update_goal(goal.id, GoalUpdate(current_amount=Decimal("10000.00")))
    assert topped_up.monthly_contribution == Decimal("0.00")
    assert topped_up.is_achieved


def test_overdue_goal_is_behind_schedule(goals) -> None:
    goal = _create(goals, target_date=TODAY - timedelta(days=10))

    assert goal.is_behind_schedule
    assert goal.days_remaining == 0
    assert goal.monthly_contribution == Decimal("2500.00")


def test_goal_pouch_must_be_usable(goals, ledger) -> None:
    pouch = make_pouch(ledger, "Vacation")
    foreign = make_pouch(ledger, "Theirs", user_id="user-2")

    linked = _create(goals, pouch_id=pouch.id)
    assert linked.pouch_id == pouch.id

    with pytest.raises(PouchNotFoundError):
        _create(goals, pouch_id="missing")
    with pytest.raises(ValidationError):
        _create(goals, pouch_id=foreign.id)


def test_goal_lifecycle(goals) -> None:
    first = _create(goals, title="Car", priority=2)
    second = _create(goals, title="House", priority=1)
    goals.update_goal(first.id, GoalUpdate(is_active=False))

    assert [g.id for g in goals.list_goals(OWNER)] == [second.id]
    assert {g.id for g in goals.list_goals(OWNER, include_inactive=True)} == {first.id, second.id}

    with pytest.raises(ValidationError):
        goals.update_goal(second.id, GoalUpdate(title=None))

    goals.delete_goal(second.id)
    with pytest.raises(GoalNotFoundError):
        goals.get_goal(second.id)
    with pytest.raises(GoalNotFoundError):
        goals.delete_goal(second.id)
