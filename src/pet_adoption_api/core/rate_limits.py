"""Process-wide limiter registry built from settings.

Action names:
    login            failed password logins per client IP
    token            rejected bearer tokens per client IP
    register         account registrations per client IP
    adoption_create  adoption applications per applicant
    adoption_update  adoption status updates per reviewer
    general          all API requests per client IP (middleware)
"""

from pet_adoption_api.core.config import Settings
from pet_adoption_api.lib.guard.limiter import AttemptLimiter, LimiterRegistry

LOGIN = "login"
TOKEN = "token"
REGISTER = "register"
ADOPTION_CREATE = "adoption_create"
ADOPTION_UPDATE = "adoption_update"
GENERAL = "general"

_registry: LimiterRegistry | None = None


def build_limiters(settings: Settings) -> LimiterRegistry:
    """Create one limiter per action from the configured windows."""
    hour = 60 * 60
    return LimiterRegistry(
        {
            LOGIN: AttemptLimiter(
                LOGIN,
                window_seconds=settings.login_window_minutes * 60,
                max_attempts=settings.login_max_attempts,
                lockout_seconds=settings.login_lockout_minutes * 60,
            ),
            TOKEN: AttemptLimiter(
                TOKEN,
                window_seconds=settings.token_window_minutes * 60,
                max_attempts=settings.token_max_failures,
                lockout_seconds=settings.token_window_minutes * 60,
            ),
            REGISTER: AttemptLimiter(
                REGISTER,
                window_seconds=settings.register_window_minutes * 60,
                max_attempts=settings.register_max_attempts,
                lockout_seconds=settings.register_window_minutes * 60,
            ),
            ADOPTION_CREATE: AttemptLimiter(
                ADOPTION_CREATE,
                window_seconds=hour,
                max_attempts=settings.adoption_create_per_hour,
                lockout_seconds=hour,
            ),
            ADOPTION_UPDATE: AttemptLimiter(
                ADOPTION_UPDATE,
                window_seconds=hour,
                max_attempts=settings.adoption_update_per_hour,
                lockout_seconds=hour,
            ),
            GENERAL: AttemptLimiter(
                GENERAL,
                window_seconds=60,
                max_attempts=settings.rate_limit_per_minute,
                lockout_seconds=60,
            ),
        }
    )


def init_limiters(settings: Settings) -> LimiterRegistry:
    """Build and install the process-wide registry."""
    global _registry  # noqa: PLW0603
    _registry = build_limiters(settings)
    return _registry


def get_limiters() -> LimiterRegistry:
    """Return the installed registry, building one from settings on first use."""
    global _registry  # noqa: PLW0603
    if _registry is None:
        from pet_adoption_api.core.config import get_settings

        _registry = build_limiters(get_settings())
    return _registry


def reset_limiters() -> None:
    global _registry  # noqa: PLW0603
    _registry = None
