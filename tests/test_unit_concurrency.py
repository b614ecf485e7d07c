"""Interleaved transactions on a shared database file.

Each command runs in its own session and connection.  A gate holds both
commands after they have loaded their row, so both pass the in-memory guards
and the database-level compare-and-set decides the winner.
"""

import asyncio

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import chorehub.models  # noqa: F401 (populate Base.metadata)
from chorehub.core.errors import InvalidStateTransition
from chorehub.database import Base
from chorehub.models.chore import Chore
from chorehub.models.enums import RedemptionStatus, UserRole
from chorehub.models.family import Family
from chorehub.models.reward import Reward
from chorehub.models.user import User
from chorehub.schemas.chore import ChoreCreate
from chorehub.services import chore_service, redemption_service
from chorehub.services.ledger import adjust_balance
from tests.conftest import TEST_DATABASE_URL

pytestmark = pytest.mark.skipif(
    not TEST_DATABASE_URL.startswith("sqlite"),
    reason="the load gate would block on FOR UPDATE row locks",
)


@pytest_asyncio.fixture()
async def file_sessions(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'chorehub.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture()
async def household(file_sessions):
    async with file_sessions() as db:
        family = Family(name="Race Family", invite_code="RACE01")
        db.add(family)
        await db.flush()
        parent = User(family_id=family.id, name="Pat", role=UserRole.PARENT, email="pat@race.test")
        first = User(family_id=family.id, name="Ava", role=UserRole.CHILD)
        second = User(family_id=family.id, name="Ben", role=UserRole.CHILD)
        db.add_all([parent, first, second])
        await db.commit()
    return {"parent": parent, "first": first, "second": second}


def _gate(monkeypatch, module, loader_name: str, parties: int = 2) -> None:
    barrier = asyncio.Barrier(parties)
    load = getattr(module, loader_name)

    async def gated(db, actor, row_id):
        row = await load(db, actor, row_id)
        await asyncio.wait_for(barrier.wait(), timeout=5)
        return row

    monkeypatch.setattr(module, loader_name, gated)


async def _run(file_sessions, command, *args):
    async with file_sessions() as db:
        result = await command(db, *args)
        await db.commit()
        return result


class TestInterleavedClaims:
    async def test_exactly_one_claim_commits(self, file_sessions, household, monkeypatch):
        h = household
        async with file_sessions() as db:
            chore = await chore_service.create_chore(
                db, h["parent"], ChoreCreate(name="Wash car", point_value=30, is_bonus=True),
            )
            await db.commit()

        _gate(monkeypatch, chore_service, "_lock_chore")
        outcomes = await asyncio.gather(
            _run(file_sessions, chore_service.claim_chore, h["first"], chore.id),
            _run(file_sessions, chore_service.claim_chore, h["second"], chore.id),
            return_exceptions=True,
        )

        failures = [o for o in outcomes if isinstance(o, Exception)]
        winners = [o for o in outcomes if not isinstance(o, Exception)]
        assert len(winners) == 1
        assert len(failures) == 1
        assert isinstance(failures[0], InvalidStateTransition)

        async with file_sessions() as db:
            stored = await db.get(Chore, chore.id)
            assert stored.assigned_to_id == winners[0].assigned_to_id
            assert stored.assigned_to_id in (h["first"].id, h["second"].id)


class TestInterleavedReviews:
    async def test_concurrent_rejections_refund_once(self, file_sessions, household, monkeypatch):
        h = household
        async with file_sessions() as db:
            reward = Reward(
                family_id=h["parent"].family_id, name="Pizza", point_cost=25, quantity_available=1,
            )
            db.add(reward)
            await db.flush()
            await adjust_balance(db, h["first"].id, 40)
            redemption = await redemption_service.request_redemption(db, h["first"], reward.id)
            await db.commit()

        _gate(monkeypatch, redemption_service, "_lock_redemption")
        outcomes = await asyncio.gather(
            _run(
                file_sessions, redemption_service.review_redemption,
                h["parent"], redemption.id, RedemptionStatus.REJECTED,
            ),
            _run(
                file_sessions, redemption_service.review_redemption,
                h["parent"], redemption.id, RedemptionStatus.REJECTED,
            ),
            return_exceptions=True,
        )

        failures = [o for o in outcomes if isinstance(o, Exception)]
        assert len(failures) == 1
        assert isinstance(failures[0], InvalidStateTransition)

        async with file_sessions() as db:
            balance = (
                await db.execute(select(User.points_balance).where(User.id == h["first"].id))
            ).scalar_one()
            stock = (
                await db.execute(select(Reward.quantity_available).where(Reward.id == reward.id))
            ).scalar_one()
        assert balance == 40
        assert stock == 1

