"""
Authentication Provider Interface

The core never authenticates anyone itself. It asks an AuthProvider who the
current user is and listens for sign-in/sign-out so the repository can be
scoped to exactly one user at a time.
"""

import inspect
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, Union


AuthCallback = Callable[[Optional[str]], Union[None, Awaitable[Any]]]


class AuthProvider(ABC):
    """
    Abstract interface for the identity provider.

    Any implementation (OAuth, hosted auth service, static token, etc.)
    must implement these methods.
    """

    @abstractmethod
    def current_user(self) -> Optional[str]:
        """
        Get the signed-in user.

        Returns:
            The user id, or None when nobody is signed in
        """
        pass

    @abstractmethod
    def on_auth_change(self, callback: AuthCallback) -> Callable[[], None]:
        """
        Register a callback fired on sign-in and sign-out.

        The callback receives the new user id (None after sign-out) and may
        be a coroutine function.

        Returns:
            A function that unregisters the callback
        """
        pass


class InMemoryAuthProvider(AuthProvider):
    """
    Auth provider holding the current user in memory.

    Used for local single-user runs and in tests.
    """

    def __init__(self, user_id: Optional[str] = None):
        self._user_id = user_id
        self._callbacks: list[AuthCallback] = []

    def current_user(self) -> Optional[str]:
        return self._user_id

    def on_auth_change(self, callback: AuthCallback) -> Callable[[], None]:
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    async def sign_in(self, user_id: str) -> None:
        if not user_id:
            raise ValueError("user_id is required to sign in")
        self._user_id = user_id
        await self._notify()

    async def sign_out(self) -> None:
        self._user_id = None
        await self._notify()

    async def _notify(self) -> None:
        for callback in list(self._callbacks):
            result = callback(self._user_id)
            if inspect.isawaitable(result):
                await result
