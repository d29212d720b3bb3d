"""ORM model registry: import all models so Alembic autogenerate discovers them."""

from pet_adoption_api.models.adoption_request import AdoptionCommunication, AdoptionRequest
from pet_adoption_api.models.audit_log import AuditLog
from pet_adoption_api.models.pet import Pet
from pet_adoption_api.models.user import User, user_adopted_pets

__all__ = [
    "AdoptionCommunication",
    "AdoptionRequest",
    "AuditLog",
    "Pet",
    "User",
    "user_adopted_pets",
]
