"""Client-side authentication state.

Holds the current identity and tells listeners about every sign-in and
sign-out. A listener registered while a user is signed in is called right
away with that identity, so late subscribers never miss the current state.

Used by in-process clients (see ``ProfileSyncEngine``). The HTTP API stays
stateless and authenticates each request from its bearer token instead.
"""

import inspect
from typing import Awaitable, Callable, Optional, Union

from libs.auth.models import Credentials, Identity
from libs.auth.provider import AuthProvider
from libs.common.logging import get_logger

logger = get_logger(__name__)

AuthListener = Callable[[Optional[Identity]], Union[None, Awaitable[None]]]
SignUpHook = Callable[[Identity, Credentials], Awaitable[None]]


class AuthSession:
    def __init__(self, provider: AuthProvider, after_sign_up: Optional[SignUpHook] = None):
        self.provider = provider
        self.identity: Optional[Identity] = None
        self._listeners: list[AuthListener] = []
        self._after_sign_up = after_sign_up

    async def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        """Register a listener and return a function that unregisters it."""
        self._listeners.append(listener)
        await self._call(listener, self.identity)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def sign_up(self, credentials: Credentials) -> Identity:
        identity = await self.provider.sign_up(credentials)
        if self._after_sign_up is not None:
            await self._after_sign_up(identity, credentials)
        await self._transition(identity)
        return identity

    async def sign_in(self, credentials: Credentials) -> Identity:
        # AuthError propagates to the form; current state is left untouched.
        identity = await self.provider.sign_in(credentials)
        await self._transition(identity)
        return identity

    async def sign_out(self) -> None:
        if self.identity is None:
            return
        await self.provider.sign_out(self.identity.access_token)
        await self._transition(None)

    async def _transition(self, identity: Optional[Identity]) -> None:
        self.identity = identity
        for listener in list(self._listeners):
            await self._call(listener, identity)

    @staticmethod
    async def _call(listener: AuthListener, identity: Optional[Identity]) -> None:
        try:
            result = listener(identity)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Auth state listener failed")
