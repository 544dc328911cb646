"""Cached bearer credentials for provider APIs."""

from collections.abc import Awaitable
from collections.abc import Callable
from collections.abc import Iterable
from dataclasses import dataclass
from logging import getLogger
from typing import Optional

from quotacache.exceptions import CacheConfigError
from quotacache.exceptions import UnknownIssuerError
from quotacache.keys import AUTH_TOKEN
from quotacache.store import CacheStore
from quotacache.store import Clock
from quotacache.types import TokenEntry
from quotacache.types import WriteResult

logger = getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000


@dataclass(frozen=True)
class TokenIssuer:
    """A provider that hands out bearer tokens.

    Args:
        name: Issuer name, used as the token slot key suffix
        authenticate: Coroutine function performing the login exchange and returning the token
        validity_window_ms: How long the issuer honours a token
        safety_margin_ms: How long before the end of the window the token is treated as expired
    """

    name: str
    authenticate: Callable[[], Awaitable[str]]
    validity_window_ms: int
    safety_margin_ms: int = 0

    def __post_init__(self) -> None:
        if not self.name:
            msg = "Token issuer name must not be empty"
            raise CacheConfigError(msg)
        if self.safety_margin_ms < 0:
            msg = f"Safety margin for {self.name} must not be negative"
            raise CacheConfigError(msg)
        if self.safety_margin_ms >= self.validity_window_ms:
            msg = f"Safety margin for {self.name} must be shorter than its validity window"
            raise CacheConfigError(msg)

    @property
    def lifetime_ms(self) -> int:
        return self.validity_window_ms - self.safety_margin_ms


class TokenCache:
    """One cached credential per issuer, refreshed when close to expiry.

    Tokens live under the PROTECTED `auth_token_` key space so eviction never
    drops a credential mid-session.
    """

    def __init__(
        self,
        store: CacheStore,
        issuers: Iterable[TokenIssuer] = (),
        clock: Optional[Clock] = None,
    ) -> None:
        self.store = store
        self.clock = clock or store.clock
        self._issuers: dict[str, TokenIssuer] = {}
        for issuer in issuers:
            self.register(issuer)

    def register(self, issuer: TokenIssuer) -> None:
        self._issuers[issuer.name] = issuer

    def _issuer(self, name: str) -> TokenIssuer:
        try:
            return self._issuers[name]
        except KeyError:
            msg = f"No token issuer registered under {name!r}"
            raise UnknownIssuerError(msg) from None

    @staticmethod
    def token_key(issuer_name: str) -> str:
        return AUTH_TOKEN.key(issuer_name)

    def cached_token(self, issuer_name: str) -> Optional[TokenEntry]:
        """Return the stored token entry if it is still usable."""
        entry = TokenEntry.from_dict(self.store.get(self.token_key(issuer_name)))
        if entry is None or not entry.is_valid(self.clock()):
            return None
        return entry

    async def get_token(self, issuer_name: str) -> str:
        """Return a usable bearer token, authenticating only when needed.

        Raises:
            UnknownIssuerError: If no issuer is registered under that name
            Exception: Any error from the issuer's authenticate call is propagated
        """
        issuer = self._issuer(issuer_name)

        entry = self.cached_token(issuer_name)
        if entry is not None:
            return entry.token

        logger.info("Authenticating with %s", issuer_name)
        token = await issuer.authenticate()
        issued_at = self.clock()
        entry = TokenEntry(
            token=token,
            issued_at=issued_at,
            expiry=issued_at + issuer.lifetime_ms,
        )

        result = self.store.set(
            self.token_key(issuer_name), entry.to_dict(), issuer.lifetime_ms
        )
        if result is not WriteResult.OK:
            logger.warning(
                "Could not cache %s token (%s); it will be requested again",
                issuer_name,
                result.value,
            )
        return token

    def invalidate(self, issuer_name: str) -> None:
        """Forget the stored token, e.g. after the provider rejected it."""
        self.store.remove_key(self.token_key(issuer_name))
