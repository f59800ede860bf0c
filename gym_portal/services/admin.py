"""Admin dashboard: member listing, section filters and member actions.

Every call here needs the admin bearer token held by the backend client's
store. Subscription status is derived from the end date at read time; it is
never written back.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from gym_portal.core.logging_config import get_logger
from gym_portal.schemas.members import Member, MemberUpdate
from gym_portal.services.api_client import BackendClient
from gym_portal.services.navigation import Notifier
from gym_portal.utils.datetime_utils import get_current_utc_datetime
from gym_portal.utils.enums import (
    AdminSection,
    NoticeLevel,
    PaymentMethod,
    PaymentStatus,
    PlanId,
)

logger = get_logger(__name__)


def in_section(member: Member, section: AdminSection, now: datetime) -> bool:
    match section:
        case AdminSection.all:
            return True
        case AdminSection.pending:
            return member.payment_status == PaymentStatus.pending
        case (
            AdminSection.plan_1month
            | AdminSection.plan_2month
            | AdminSection.plan_3month
            | AdminSection.plan_6month
            | AdminSection.plan_yearly
        ):
            return member.plan == PlanId(section.value)
        case AdminSection.expired:
            return member.is_expired(now)
        case AdminSection.online_pending:
            return (
                member.payment_method == PaymentMethod.online
                and member.payment_status == PaymentStatus.pending
            )


def filter_members(members: List[Member], section: AdminSection, now: Optional[datetime] = None) -> List[Member]:
    now = now or get_current_utc_datetime()
    return [m for m in members if in_section(m, section, now)]


def member_row(member: Member, now: datetime) -> Dict[str, Any]:
    """Member as the dashboard table shows it, with derived status."""
    row = member.model_dump(mode="json", by_alias=True, exclude_none=True)
    row["subscriptionStatus"] = member.derived_status(now).value
    row["isExpired"] = member.is_expired(now)
    row["daysLeft"] = member.days_left(now)
    return row


class AdminDashboard:
    def __init__(
        self,
        client: BackendClient,
        notifier: Notifier,
        clock: Callable[[], datetime] = get_current_utc_datetime,
    ):
        self.client = client
        self.notifier = notifier
        self.clock = clock
        self.members: List[Member] = []

    async def refresh(self) -> List[Member]:
        self.members = await self.client.list_members()
        logger.info(f"Loaded {len(self.members)} members")
        return self.members

    def section(self, section: AdminSection) -> List[Member]:
        return filter_members(self.members, section, self.clock())

    def rows(self, section: AdminSection = AdminSection.all) -> List[Dict[str, Any]]:
        now = self.clock()
        return [member_row(m, now) for m in filter_members(self.members, section, now)]

    def counts(self) -> Dict[str, int]:
        """Headline counters shown above the member table."""
        now = self.clock()
        return {
            "confirmed": sum(1 for m in self.members if m.payment_status == PaymentStatus.confirmed),
            "pending": len(filter_members(self.members, AdminSection.pending, now)),
            "expired": len(filter_members(self.members, AdminSection.expired, now)),
            "total": len(self.members),
        }

    def _find(self, member_id: str) -> Optional[Member]:
        return next((m for m in self.members if m.member_id == member_id), None)

    async def approve_payment(self, member_id: str) -> None:
        await self.client.approve_payment(member_id)
        member = self._find(member_id)
        if member is not None:
            member.payment_status = PaymentStatus.confirmed
        self.notifier.notify(NoticeLevel.success, "Payment approved successfully!")

    async def notify_expired(self, member_id: str) -> bool:
        """E-mail a renewal reminder; False when the member is not on the roster."""
        member = self._find(member_id)
        if member is None:
            self.notifier.notify(NoticeLevel.error, "Member not found")
            return False
        await self.client.notify_expired(member_id, member.email, member.name)
        self.notifier.notify(NoticeLevel.success, "Notification sent successfully!")
        return True

    async def update_member(self, member_id: str, update: MemberUpdate) -> Optional[Member]:
        await self.client.update_member(member_id, update)
        member = self._find(member_id)
        if member is not None:
            changes = update.model_dump(exclude_none=True)
            member = member.model_copy(update=changes)
            # Re-validate date fields into aware datetimes
            member = Member.model_validate(member.model_dump(by_alias=True))
            self.members = [member if m.member_id == member_id else m for m in self.members]
        self.notifier.notify(NoticeLevel.success, "Member updated successfully")
        return member

    async def delete_member(self, member_id: str) -> None:
        await self.client.delete_member(member_id)
        self.members = [m for m in self.members if m.member_id != member_id]
        self.notifier.notify(NoticeLevel.success, "Member deleted successfully")
