"""Error taxonomy shared by every engine operation.

Callers distinguish failures by type rather than by message:

- ValidationError: the request itself is wrong; fix it and call again.
- ReferentialMismatchError: a consumed item does not belong to the meal.
- AuthExpiredError: the session must be re-established by the caller.
- NotFoundError: the id is stale; informational for deletes.
- TransientStoreError: the store was busy; safe to retry reads.
"""

from __future__ import annotations


class MealTrackError(Exception):
    """Base class for all engine errors."""

    retryable: bool = False


class ValidationError(MealTrackError, ValueError):
    """Request rejected before any state change."""


class ReferentialMismatchError(MealTrackError):
    """A planned food item is not part of the target scheduled meal."""

    def __init__(self, scheduled_meal_id: int, planned_food_item_id: int):
        self.scheduled_meal_id = scheduled_meal_id
        self.planned_food_item_id = planned_food_item_id
        super().__init__(
            f"Planned food item {planned_food_item_id} does not belong to "
            f"the meal time of scheduled meal {scheduled_meal_id}"
        )


class AuthExpiredError(MealTrackError):
    """The caller's session is missing or expired. Never retried."""


class NotFoundError(MealTrackError, LookupError):
    """A referenced record does not exist (stale or already deleted id)."""

    def __init__(self, resource: str, resource_id: int):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} {resource_id} not found")


class TransientStoreError(MealTrackError):
    """The store could not serve the request right now (busy, locked)."""

    retryable = True
