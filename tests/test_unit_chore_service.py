"""Service-level tests for the chore lifecycle and point awarding."""

import pytest
from sqlalchemy import select

from chorehub.core.errors import (
    ChoreFinalized,
    Forbidden,
    InsufficientPoints,
    InvalidStateTransition,
    ValidationError,
)
from chorehub.models.activity_log import ActivityLog
from chorehub.models.chore import Chore
from chorehub.models.enums import ChoreStatus
from chorehub.schemas.chore import ChoreCreate, ChoreUpdate
from chorehub.services import chore_service
from chorehub.services.activity_service import list_activity
from chorehub.services.ledger import adjust_balance
from chorehub.services.notification_service import NotificationType, pending_events


async def _completed_chore(db, members, points=20) -> Chore:
    chore = await chore_service.create_chore(
        db, members["parent"],
        ChoreCreate(name="Dishes", point_value=points, assigned_to_id=members["child"].id),
    )
    return await chore_service.complete_chore(db, members["child"], chore.id)


class TestVerify:
    async def test_approve_twice_awards_once(self, db_session, family_members):
        m = family_members
        chore = await _completed_chore(db_session, m, points=20)

        verified = await chore_service.verify_chore(db_session, m["parent"], chore.id, approved=True)
        assert verified.status == ChoreStatus.VERIFIED
        assert verified.verified_by_id == m["parent"].id
        assert m["child"].points_balance == 20

        with pytest.raises(ChoreFinalized):
            await chore_service.verify_chore(db_session, m["parent"], chore.id, approved=True)
        assert m["child"].points_balance == 20

    async def test_penalty_above_balance_changes_nothing(self, db_session, family_members):
        m = family_members
        await adjust_balance(db_session, m["child"].id, 3)
        chore = await _completed_chore(db_session, m)

        with pytest.raises(InsufficientPoints):
            await chore_service.verify_chore(
                db_session, m["parent"], chore.id, approved=False, points_penalty=5,
            )

        await db_session.refresh(chore)
        assert chore.status == ChoreStatus.COMPLETED
        assert chore.verified_at is None
        assert m["child"].points_balance == 3

    async def test_reject_with_penalty(self, db_session, family_members):
        m = family_members
        await adjust_balance(db_session, m["child"].id, 10)
        chore = await _completed_chore(db_session, m)

        rejected = await chore_service.verify_chore(
            db_session, m["parent"], chore.id, approved=False,
            feedback="Still greasy", points_penalty=4,
        )
        assert rejected.status == ChoreStatus.REJECTED
        assert rejected.completed_at is None
        assert rejected.verification_notes == "Still greasy"
        assert m["child"].points_balance == 6

    async def test_child_cannot_verify(self, db_session, family_members):
        m = family_members
        chore = await _completed_chore(db_session, m)
        with pytest.raises(Forbidden):
            await chore_service.verify_chore(db_session, m["child"], chore.id, approved=True)
        assert m["child"].points_balance == 0

    async def test_verify_records_activity_and_events(self, db_session, family_members):
        m = family_members
        chore = await _completed_chore(db_session, m, points=15)
        await chore_service.verify_chore(db_session, m["parent"], chore.id, approved=True)
        await db_session.flush()

        entries = await list_activity(db_session, m["family"].id)
        verified = [e for e in entries if e.action == "CHORE_VERIFIED"]
        assert len(verified) == 1
        assert verified[0].details["points_awarded"] == 15
        assert verified[0].details["child_name"] == "Ava"

        types = [e.type for e in pending_events(db_session)]
        assert NotificationType.CHORE_COMPLETED in types
        assert NotificationType.CHORE_VERIFIED in types
        assert NotificationType.POINTS_AWARDED in types


class TestClaim:
    async def test_only_one_claim_wins(self, db_session, family_members):
        m = family_members
        chore = await chore_service.create_chore(
            db_session, m["parent"], ChoreCreate(name="Wash car", point_value=30, is_bonus=True),
        )

        claimed = await chore_service.claim_chore(db_session, m["child"], chore.id)
        assert claimed.assigned_to_id == m["child"].id

        with pytest.raises(InvalidStateTransition):
            await chore_service.claim_chore(db_session, m["other_child"], chore.id)

        await db_session.refresh(chore)
        assert chore.assigned_to_id == m["child"].id

    async def test_claimed_chore_leaves_available_list(self, db_session, family_members):
        m = family_members
        chore = await chore_service.create_chore(
            db_session, m["parent"], ChoreCreate(name="Rake leaves"),
        )
        available = await chore_service.list_available_chores(db_session, m["family"].id)
        assert [c.id for c in available] == [chore.id]

        await chore_service.claim_chore(db_session, m["child"], chore.id)
        assert await chore_service.list_available_chores(db_session, m["family"].id) == []


class TestCompleteAndReset:
    async def test_resubmission_is_logged(self, db_session, family_members):
        m = family_members
        chore = await _completed_chore(db_session, m)
        await chore_service.verify_chore(db_session, m["parent"], chore.id, approved=False)

        again = await chore_service.complete_chore(db_session, m["child"], chore.id, notes="Redone")
        assert again.status == ChoreStatus.COMPLETED
        assert again.completion_notes == "Redone"

        result = await db_session.execute(
            select(ActivityLog.action).where(ActivityLog.target_id == chore.id)
        )
        assert "CHORE_RESUBMITTED" in result.scalars().all()

    async def test_other_child_cannot_complete(self, db_session, family_members):
        m = family_members
        chore = await chore_service.create_chore(
            db_session, m["parent"], ChoreCreate(name="Homework", assigned_to_id=m["child"].id),
        )
        with pytest.raises(Forbidden):
            await chore_service.complete_chore(db_session, m["other_child"], chore.id)

    async def test_reset_clears_completion(self, db_session, family_members):
        m = family_members
        chore = await _completed_chore(db_session, m)
        await chore_service.verify_chore(db_session, m["parent"], chore.id, approved=False)

        reset = await chore_service.reset_chore(db_session, m["parent"], chore.id)
        assert reset.status == ChoreStatus.PENDING
        assert reset.completed_at is None
        assert reset.verified_at is None


class TestUpdateAndDelete:
    async def test_update_rejects_parent_as_assignee(self, db_session, family_members):
        m = family_members
        chore = await chore_service.create_chore(db_session, m["parent"], ChoreCreate(name="Sweep"))
        with pytest.raises(ValidationError):
            await chore_service.update_chore(
                db_session, m["parent"], chore.id, ChoreUpdate(assigned_to_id=m["parent"].id),
            )

    async def test_update_rejects_null_name(self, db_session, family_members):
        m = family_members
        chore = await chore_service.create_chore(db_session, m["parent"], ChoreCreate(name="Sweep"))
        with pytest.raises(ValidationError):
            await chore_service.update_chore(
                db_session, m["parent"], chore.id, ChoreUpdate(name=None),
            )

    async def test_bulk_delete_all_or_nothing(self, db_session, family_members):
        m = family_members
        open_chore = await chore_service.create_chore(db_session, m["parent"], ChoreCreate(name="Open"))
        done = await _completed_chore(db_session, m)
        await chore_service.verify_chore(db_session, m["parent"], done.id, approved=True)

        with pytest.raises(ChoreFinalized):
            await chore_service.bulk_delete_chores(
                db_session, m["parent"], [open_chore.id, done.id],
            )
        assert await db_session.get(Chore, open_chore.id) is not None

        deleted = await chore_service.bulk_delete_chores(db_session, m["parent"], [open_chore.id])
        assert deleted == 1


class TestCounts:
    async def test_count_by_status(self, db_session, family_members):
        m = family_members
        await chore_service.create_chore(db_session, m["parent"], ChoreCreate(name="A"))
        await _completed_chore(db_session, m)

        counts = await chore_service.count_by_status(db_session, m["family"].id)
        assert counts[ChoreStatus.PENDING] == 1
        assert counts[ChoreStatus.COMPLETED] == 1
        assert counts[ChoreStatus.VERIFIED] == 0


class TestVerifiedIsFinal:
    async def test_verified_chore_rejects_every_change(self, db_session, family_members):
        m = family_members
        chore = await _completed_chore(db_session, m, points=25)
        await chore_service.verify_chore(db_session, m["parent"], chore.id, approved=True)
        await db_session.refresh(chore)
        before = (chore.name, chore.point_value, chore.status, chore.verified_at, chore.completed_at)

        with pytest.raises(ChoreFinalized):
            await chore_service.reset_chore(db_session, m["parent"], chore.id)
        with pytest.raises(ChoreFinalized):
            await chore_service.complete_chore(db_session, m["child"], chore.id, notes="Again")
        with pytest.raises(ChoreFinalized):
            await chore_service.verify_chore(
                db_session, m["parent"], chore.id, approved=False, points_penalty=5,
            )
        with pytest.raises(ChoreFinalized):
            await chore_service.update_chore(
                db_session, m["parent"], chore.id, ChoreUpdate(name="Renamed", point_value=99),
            )
        with pytest.raises(ChoreFinalized):
            await chore_service.delete_chore(db_session, m["parent"], chore.id)

        await db_session.refresh(chore)
        after = (chore.name, chore.point_value, chore.status, chore.verified_at, chore.completed_at)
        assert after == before
        assert m["child"].points_balance == 25


class TestBalanceConservation:
    async def test_mixed_sequence_balances_out(self, db_session, family_members):
        from chorehub.models.enums import RedemptionStatus
        from chorehub.models.reward import Reward
        from chorehub.services import redemption_service

        m = family_members
        child = m["child"]
        await adjust_balance(db_session, child.id, 10)
        credits, debits = 0, 0

        approved = await _completed_chore(db_session, m, points=20)
        await chore_service.verify_chore(db_session, m["parent"], approved.id, approved=True)
        credits += 20

        rejected = await _completed_chore(db_session, m, points=30)
        await chore_service.verify_chore(
            db_session, m["parent"], rejected.id, approved=False, points_penalty=4,
        )
        debits += 4

        reward = Reward(family_id=m["family"].id, name="Movie night", point_cost=15)
        db_session.add(reward)
        await db_session.flush()

        kept = await redemption_service.request_redemption(db_session, child, reward.id)
        await redemption_service.review_redemption(
            db_session, m["parent"], kept.id, RedemptionStatus.APPROVED,
        )
        debits += 15

        returned = await redemption_service.request_redemption(db_session, child, reward.id)
        await redemption_service.review_redemption(
            db_session, m["parent"], returned.id, RedemptionStatus.REJECTED,
        )

        await db_session.refresh(child)
        assert child.points_balance == 10 + credits - debits == 11
