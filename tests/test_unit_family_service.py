"""Tests for invite codes and dashboard statistics."""

from chorehub.schemas.chore import ChoreCreate
from chorehub.services import chore_service
from chorehub.services.family_service import _ALPHABET, family_stats, generate_invite_code


async def test_invite_code_format(db_session):
    code = await generate_invite_code(db_session)
    assert len(code) == 6
    assert set(code) <= set(_ALPHABET)


async def test_stats(db_session, family_members):
    m = family_members
    family_members["other_child"].is_active = False
    chore = await chore_service.create_chore(
        db_session, m["parent"],
        ChoreCreate(name="Dishes", point_value=5, assigned_to_id=m["child"].id),
    )
    await chore_service.create_chore(db_session, m["parent"], ChoreCreate(name="Trash"))
    await chore_service.complete_chore(db_session, m["child"], chore.id)

    stats = await family_stats(db_session, m["family"].id)
    assert stats == {
        "parents": 1,
        "children": 1,
        "chores": {
            "pending": 1,
            "awaiting_verification": 1,
            "completed": 0,
            "rejected": 0,
        },
        "pending_redemptions": 0,
    }
