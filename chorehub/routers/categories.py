"""Categories router.

Family-defined chore categories.  Deleting a category leaves its chores
uncategorized.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from chorehub.core.dependencies import ensure_same_family, require_family_member, require_parent
from chorehub.core.errors import Conflict
from chorehub.database import get_db
from chorehub.models.category import Category
from chorehub.models.chore import Chore
from chorehub.models.user import User
from chorehub.schemas.category import CategoryCreate, CategoryResponse, CategoryUpdate

router = APIRouter(prefix="/families/{family_id}/categories", tags=["Categories"])


async def _get_category(
    db: AsyncSession, family_id: uuid.UUID, category_id: uuid.UUID
) -> Category:
    result = await db.execute(
        select(Category).where(
            Category.id == category_id,
            Category.family_id == family_id,
        )
    )
    category = result.scalar_one_or_none()
    if category is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Category not found",
        )
    return category


async def _ensure_name_free(
    db: AsyncSession, family_id: uuid.UUID, name: str, exclude_id: uuid.UUID | None = None
) -> None:
    stmt = select(Category.id).where(
        Category.family_id == family_id,
        func.lower(Category.name) == name.strip().lower(),
    )
    if exclude_id is not None:
        stmt = stmt.where(Category.id != exclude_id)
    if (await db.execute(stmt)).first() is not None:
        raise Conflict(f'Category "{name}" already exists')


async def _chore_count(db: AsyncSession, category_id: uuid.UUID) -> int:
    result = await db.execute(
        select(func.count(Chore.id)).where(Chore.category_id == category_id)
    )
    return result.scalar_one()


def _to_response(category: Category, chore_count: int) -> CategoryResponse:
    response = CategoryResponse.model_validate(category)
    response.chore_count = chore_count
    return response


@router.get("/", response_model=list[CategoryResponse])
async def list_categories(
    family_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_family_member()),
):
    """List the family's categories with the number of chores in each."""
    result = await db.execute(
        select(Category, func.count(Chore.id))
        .outerjoin(Chore, Chore.category_id == Category.id)
        .where(Category.family_id == family_id)
        .group_by(Category.id)
        .order_by(Category.name)
    )
    return [_to_response(category, count) for category, count in result.all()]


@router.post("/", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    family_id: uuid.UUID,
    body: CategoryCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_parent),
):
    """Create a category. Names are unique per family. Requires parent role."""
    ensure_same_family(current_user, family_id)
    await _ensure_name_free(db, family_id, body.name)

    category = Category(
        family_id=family_id,
        name=body.name.strip(),
        color=body.color,
        icon=body.icon,
    )
    db.add(category)
    await db.flush()
    await db.refresh(category)
    return _to_response(category, 0)


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(
    family_id: uuid.UUID,
    category_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_family_member()),
):
    category = await _get_category(db, family_id, category_id)
    return _to_response(category, await _chore_count(db, category.id))


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    family_id: uuid.UUID,
    category_id: uuid.UUID,
    body: CategoryUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_parent),
):
    """Update a category. Requires parent role."""
    ensure_same_family(current_user, family_id)
    category = await _get_category(db, family_id, category_id)

    update_data = body.model_dump(exclude_unset=True, exclude_none=True)
    if "name" in update_data:
        await _ensure_name_free(db, family_id, update_data["name"], exclude_id=category.id)
        update_data["name"] = update_data["name"].strip()
    for field, value in update_data.items():
        setattr(category, field, value)

    await db.flush()
    await db.refresh(category)
    return _to_response(category, await _chore_count(db, category.id))


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    family_id: uuid.UUID,
    category_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_parent),
):
    """Delete a category. Its chores become uncategorized. Requires parent role."""
    ensure_same_family(current_user, family_id)
    category = await _get_category(db, family_id, category_id)

    # SQLite does not enforce ON DELETE SET NULL without the foreign_keys pragma
    await db.execute(
        update(Chore)
        .where(Chore.category_id == category.id)
        .values(category_id=None)
    )
    await db.delete(category)
    await db.flush()
    return None
