"""Guard library: authentication and authorization in front of the adoption workflow.

Public API:
    - verify_credential: Extract and verify a bearer JWT
    - TokenClaims: Decoded token claims
    - validate_account: Decide whether an identity may authenticate
    - is_token_still_valid: Reject tokens issued before a password change
    - AttemptLimiter: Sliding-window attempt limiter with lockout
    - LimiterRegistry: Named limiters, one per action
    - SessionGuard: Composition of the above for protected routes
    - authorize: Role → operation check
    - can_assign_role: Role grant/revoke rules
"""

from pet_adoption_api.lib.guard.account import (
    AccountCheck,
    InvalidReason,
    is_locked,
    is_token_still_valid,
    validate_account,
)
from pet_adoption_api.lib.guard.credentials import (
    CredentialFailure,
    TokenClaims,
    extract_bearer,
    has_jwt_structure,
    verify_credential,
)
from pet_adoption_api.lib.guard.limiter import AttemptLimiter, LimitDecision, LimiterRegistry
from pet_adoption_api.lib.guard.permissions import (
    ROLE_PERMISSIONS,
    Operation,
    authorize,
    can_assign_role,
    can_view,
    is_staff_or_above,
    role_rank,
)
from pet_adoption_api.lib.guard.session import SessionContext, SessionGuard

__all__ = [
    "ROLE_PERMISSIONS",
    "AccountCheck",
    "AttemptLimiter",
    "CredentialFailure",
    "InvalidReason",
    "LimitDecision",
    "LimiterRegistry",
    "Operation",
    "SessionContext",
    "SessionGuard",
    "TokenClaims",
    "authorize",
    "can_assign_role",
    "can_view",
    "extract_bearer",
    "has_jwt_structure",
    "is_locked",
    "is_staff_or_above",
    "is_token_still_valid",
    "role_rank",
    "validate_account",
    "verify_credential",
]
