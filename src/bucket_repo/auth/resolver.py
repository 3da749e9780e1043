"""Resolve the caller's principal from the Authorization header.

The stored credential is the Basic token itself: the value after "Basic "
is matched verbatim against the credential store and never decoded.
Failed non-trivial attempts are answered after a random delay to slow down
credential enumeration.
"""

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from bucket_repo.auth.credentials import ANONYMOUS_TOKEN, CredentialStore, Principal, User
from bucket_repo.observability import emit_counter, get_logger

logger = get_logger(__name__)

BASIC = "Basic"
BASIC_AUTH = "BASIC"
DEFAULT_MAX_DELAY_MS = 2000


def is_secure_scheme(scheme: str) -> bool:
    """Whether the request arrived over encrypted transport."""
    return scheme == "https"


@dataclass(frozen=True)
class SecurityContext:
    """Security information attached to an authenticated request."""

    user: User | None
    secure: bool

    @property
    def principal(self) -> Principal | None:
        if self.user is None:
            return None
        return self.user.principal

    @property
    def is_secure(self) -> bool:
        return self.secure

    @property
    def authentication_scheme(self) -> str:
        return BASIC_AUTH

    def is_user_in_role(self, role: str) -> bool:
        """Check role membership; no user means no roles."""
        if self.user is None:
            return False
        return role in self.user.roles


class PrincipalResolver:
    """Maps an Authorization header value to an optional SecurityContext.

    Returns None when no principal can be established. Authorization
    decisions on a None context are left to the caller.
    """

    def __init__(
        self,
        store: CredentialStore,
        max_delay_ms: int = DEFAULT_MAX_DELAY_MS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            store: Credential store to look tokens up in
            max_delay_ms: Exclusive upper bound of the failed-attempt delay
            sleep: Coroutine used to suspend the request (seconds)
            rng: Random source for the delay
        """
        self.store = store
        self.max_delay_ms = max_delay_ms
        self._sleep = sleep
        self._rng = rng or random.SystemRandom()

    async def resolve(self, authorization: str | None, secure: bool) -> SecurityContext | None:
        """Resolve the security context for a request.

        Args:
            authorization: Raw Authorization header value, or None if absent
            secure: Whether the request came in over https

        Returns:
            SecurityContext for a matched user, otherwise None
        """
        user: User | None = None

        if authorization is None:
            user = self.store.lookup(ANONYMOUS_TOKEN)
        elif authorization.startswith(BASIC):
            token = authorization[len(BASIC) + 1:]
            user = self.store.lookup(token)
            if user is None and len(token) > 1:
                await self._delay()

        if user is None:
            return None
        return SecurityContext(user=user, secure=secure)

    async def _delay(self) -> None:
        """Suspend the current request for a random time in [0, max_delay_ms)."""
        emit_counter("auth.failed")
        delay_ms = self._rng.randrange(self.max_delay_ms) if self.max_delay_ms > 0 else 0
        logger.warning("Rejected credentials", context={"delay_ms": delay_ms})
        try:
            await self._sleep(delay_ms / 1000)
        except asyncio.CancelledError:
            logger.error("Interrupted during failed-login delay")
            raise
