from __future__ import annotations

import logging
import math
from collections.abc import Callable
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Optional

from ..core.errors import GoalNotFoundError, PouchNotFoundError, ValidationError
from ..core.executor import ShardExecutor
from ..models import GoalCreate, GoalModel, GoalResponse, GoalUpdate
from .balances import ZERO, to_money
from .repository import LedgerRepository


logger = logging.getLogger(__name__)

DAYS_PER_MONTH = 30


def months_remaining(target_date: date, today: date) -> int:
    """Whole 30-day periods left, rounded up and never below one.

    Periods are fixed at 30 days rather than calendar months, so six calendar
    months ahead (182 days) counts as seven periods.
    """
    days = (target_date - today).days
    return max(1, math.ceil(days / DAYS_PER_MONTH))


def monthly_contribution(
    target_amount: Decimal, current_amount: Decimal, target_date: date, today: date
) -> Decimal:
    remaining = max(to_money(target_amount) - to_money(current_amount), ZERO)
    return to_money(remaining / months_remaining(target_date, today))


def progress_percentage(target_amount: Decimal, current_amount: Decimal) -> Decimal:
    if target_amount <= 0:
        return Decimal("100.00")
    return to_money(Decimal(current_amount) / Decimal(target_amount) * 100)


def is_behind_schedule(
    target_amount: Decimal, current_amount: Decimal, target_date: date, today: date
) -> bool:
    return today > target_date and current_amount < target_amount


def days_remaining(target_date: date, today: date) -> int:
    return max(0, (target_date - today).days)


class GoalService:
    """Savings goals and their derived monthly contribution.

    ``today`` is injectable so contribution schedules can be computed against
    a fixed calendar day.
    """

    def __init__(
        self, executor: ShardExecutor, today: Callable[[], date] = date.today
    ) -> None:
        self.executor = executor
        self.today = today

    # ------------------------------------------------------------------
    # Helper utilities
    # ------------------------------------------------------------------
    def _get_goal(self, repo: LedgerRepository, goal_id: str) -> GoalModel:
        goal = repo.get_goal(goal_id)
        if goal is None:
            raise GoalNotFoundError(f"Goal {goal_id} not found")
        return goal

    def _check_pouch(self, repo: LedgerRepository, pouch_id: str, user_id: str) -> None:
        pouch = repo.get_pouch(pouch_id)
        if pouch is None:
            raise PouchNotFoundError(f"Pouch {pouch_id} not found")
        if pouch.user_id != user_id and repo.get_share(pouch_id, user_id) is None:
            raise ValidationError(f"Pouch {pouch_id} is not available to user {user_id}")

    def _recompute(self, goal: GoalModel) -> None:
        goal.monthly_contribution = monthly_contribution(
            goal.target_amount, goal.current_amount, goal.target_date, self.today()
        )
        goal.is_achieved = goal.current_amount >= goal.target_amount

    def _goal_to_response(self, goal: GoalModel) -> GoalResponse:
        today = self.today()
        return GoalResponse(
            id=goal.id,
            user_id=goal.user_id,
            pouch_id=goal.pouch_id,
            title=goal.title,
            description=goal.description,
            target_amount=goal.target_amount,
            current_amount=goal.current_amount,
            target_date=goal.target_date,
            monthly_contribution=goal.monthly_contribution,
            priority=goal.priority,
            is_achieved=goal.is_achieved,
            is_active=goal.is_active,
            progress_percentage=progress_percentage(goal.target_amount, goal.current_amount),
            is_behind_schedule=is_behind_schedule(
                goal.target_amount, goal.current_amount, goal.target_date, today
            ),
            days_remaining=days_remaining(goal.target_date, today),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def create_goal(self, payload: GoalCreate) -> GoalResponse:
        with self.executor.unit_of_work() as uow:
            repo = LedgerRepository(uow)
            if payload.pouch_id is not None:
                self._check_pouch(repo, payload.pouch_id, payload.user_id)
            goal = GoalModel(
                user_id=payload.user_id,
                pouch_id=payload.pouch_id,
                title=payload.title,
                description=payload.description,
                target_amount=to_money(payload.target_amount),
                current_amount=to_money(payload.current_amount),
                target_date=payload.target_date,
                priority=payload.priority,
            )
            self._recompute(goal)
            repo.add(goal)
        logger.info(
            "goal.created",
            extra={"goal_id": goal.id, "monthly_contribution": str(goal.monthly_contribution)},
        )
        return self._goal_to_response(goal)

    def update_goal(self, goal_id: str, payload: GoalUpdate) -> GoalResponse:
        changes = payload.model_dump(exclude_unset=True)
        with self.executor.unit_of_work() as uow:
            repo = LedgerRepository(uow)
            goal = self._get_goal(repo, goal_id)
            if changes.get("pouch_id") is not None:
                self._check_pouch(repo, changes["pouch_id"], goal.user_id)
            for field_name in ("target_amount", "current_amount"):
                if changes.get(field_name) is not None:
                    changes[field_name] = to_money(changes[field_name])
            for field_name, value in changes.items():
                if value is None and field_name not in ("pouch_id", "description"):
                    raise ValidationError(f"Field '{field_name}' cannot be cleared")
                setattr(goal, field_name, value)
            if {"target_amount", "current_amount", "target_date"} & changes.keys():
                self._recompute(goal)
            goal.updated_at = datetime.now(UTC)
        logger.info("goal.updated", extra={"goal_id": goal_id, "fields": sorted(changes)})
        return self._goal_to_response(goal)

    def get_goal(self, goal_id: str) -> GoalResponse:
        with self.executor.unit_of_work() as uow:
            goal = self._get_goal(LedgerRepository(uow), goal_id)
        return self._goal_to_response(goal)

    def list_goals(self, user_id: str, include_inactive: bool = False) -> list[GoalResponse]:
        with self.executor.unit_of_work() as uow:
            goals = LedgerRepository(uow).list_goals(user_id, include_inactive)
        return [self._goal_to_response(goal) for goal in goals]

    def delete_goal(self, goal_id: str) -> None:
        with self.executor.unit_of_work() as uow:
            repo = LedgerRepository(uow)
            repo.remove(self._get_goal(repo, goal_id))
        logger.info("goal.deleted", extra={"goal_id": goal_id})


def seeded_contribution(
    target_amount: str, current_amount: str, target_date: date, today: Optional[date] = None
) -> Decimal:
    """Contribution value for baseline data, computed the same way the service does."""
    return monthly_contribution(
        Decimal(target_amount), Decimal(current_amount), target_date, today or date.today()
    )
