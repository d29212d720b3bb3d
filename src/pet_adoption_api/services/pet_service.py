"""Pet catalog operations consumed by the adoption workflow.

Nothing here commits: every function runs inside the caller's transaction so
a status change and its effect on the pet land together or not at all.
"""

import uuid
from datetime import UTC, datetime

from loguru import logger
from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from pet_adoption_api.core.errors import PetNotFoundError, PetUnavailableError
from pet_adoption_api.models.pet import Pet, PetStatus
from pet_adoption_api.models.user import user_adopted_pets


async def get_pet(session: AsyncSession, pet_id: uuid.UUID) -> Pet | None:
    """Get a pet by ID as currently stored; soft-deleted pets are not returned."""
    result = await session.execute(
        select(Pet)
        .where(Pet.id == pet_id, Pet.deleted_at.is_(None))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def find_adoptable_pet(session: AsyncSession, pet_id: uuid.UUID) -> Pet:
    """Return the pet if it accepts new applications.

    Raises:
        PetNotFoundError: No such pet.
        PetUnavailableError: The pet is not ``available``.
    """
    pet = await get_pet(session, pet_id)
    if pet is None:
        raise PetNotFoundError(pet_id)
    if pet.status != PetStatus.AVAILABLE:
        raise PetUnavailableError(pet_id, pet.status)
    return pet


async def increment_inquiry(session: AsyncSession, pet_id: uuid.UUID) -> None:
    await session.execute(update(Pet).where(Pet.id == pet_id).values(inquiry_count=Pet.inquiry_count + 1))


async def mark_pending(session: AsyncSession, pet_id: uuid.UUID) -> bool:
    """Move an ``available`` pet to ``pending_adoption``.

    Any other status is left alone, so repeating the call is a no-op.

    Returns:
        True if the pet's status changed.
    """
    result = await session.execute(
        update(Pet)
        .where(Pet.id == pet_id, Pet.status == PetStatus.AVAILABLE)
        .values(status=PetStatus.PENDING_ADOPTION, updated_at=datetime.now(UTC))
    )
    changed = result.rowcount == 1
    if changed:
        logger.info(f"Pet {pet_id} marked pending adoption")
    return changed


async def mark_adopted(
    session: AsyncSession,
    pet_id: uuid.UUID,
    applicant_id: uuid.UUID,
    adopted_at: datetime | None = None,
) -> bool:
    """Record the adoption of ``pet_id`` by ``applicant_id``.

    Sets the pet's status, ``adopted_by`` and ``adoption_date`` and adds the
    pet to the applicant's adopted pets. Repeating the call for the same
    applicant changes nothing.

    Returns:
        True if the pet's record changed.

    Raises:
        PetNotFoundError: No such pet.
        PetUnavailableError: Another user has already adopted the pet.
    """
    adopted_at = adopted_at or datetime.now(UTC)
    result = await session.execute(
        update(Pet)
        .where(Pet.id == pet_id, Pet.deleted_at.is_(None), Pet.status != PetStatus.ADOPTED)
        .values(
            status=PetStatus.ADOPTED,
            adopted_by=applicant_id,
            adoption_date=adopted_at,
            updated_at=datetime.now(UTC),
        )
    )
    changed = result.rowcount == 1
    if not changed:
        pet = await get_pet(session, pet_id)
        if pet is None:
            raise PetNotFoundError(pet_id)
        if pet.adopted_by != applicant_id:
            raise PetUnavailableError(pet_id, pet.status)

    existing = await session.execute(
        select(user_adopted_pets.c.pet_id).where(
            user_adopted_pets.c.user_id == applicant_id,
            user_adopted_pets.c.pet_id == pet_id,
        )
    )
    if existing.first() is None:
        await session.execute(
            insert(user_adopted_pets).values(user_id=applicant_id, pet_id=pet_id, adopted_at=adopted_at)
        )

    if changed:
        logger.info(f"Pet {pet_id} marked adopted by user {applicant_id}")
    return changed


async def list_adopted_pet_ids(session: AsyncSession, user_id: uuid.UUID) -> list[uuid.UUID]:
    """IDs of the pets in a user's adopted-pets collection."""
    result = await session.execute(
        select(user_adopted_pets.c.pet_id)
        .where(user_adopted_pets.c.user_id == user_id)
        .order_by(user_adopted_pets.c.adopted_at)
    )
    return list(result.scalars().all())
