"""Plan and subscription models."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, model_validator


class Plan(BaseModel):
    """A purchasable gym plan."""

    id: str
    name: str
    duration_days: int
    price: float
    tenant_id: str

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Plan":
        return cls(
            id=doc["id"],
            name=doc["name"],
            duration_days=doc["durationDays"],
            price=doc["price"],
            tenant_id=doc["tenant_id"],
        )


class Subscription(BaseModel):
    """A profile's subscription to a plan.

    ``stored_active`` mirrors the flag written at creation time. Access
    decisions use ``is_active``, which is recomputed from the dates.
    """

    id: str | None = None
    profile_id: str
    plan_id: str
    tenant_id: str
    start_date: datetime
    end_date: datetime
    stored_active: bool = True

    @model_validator(mode="after")
    def _check_dates(self) -> "Subscription":
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self

    def is_active_at(self, moment: datetime) -> bool:
        """Whether the subscription covers the given moment."""
        return self.start_date <= moment < self.end_date

    @property
    def is_active(self) -> bool:
        return self.is_active_at(datetime.now(UTC))

    def to_document(self) -> dict[str, Any]:
        return {
            "profileId": self.profile_id,
            "planId": self.plan_id,
            "tenant_id": self.tenant_id,
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
            "isActive": self.stored_active,
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Subscription":
        return cls(
            id=doc.get("id"),
            profile_id=doc["profileId"],
            plan_id=doc["planId"],
            tenant_id=doc["tenant_id"],
            start_date=doc["startDate"],
            end_date=doc["endDate"],
            stored_active=doc.get("isActive", True),
        )
