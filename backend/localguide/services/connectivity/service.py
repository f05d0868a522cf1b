"""Connectivity monitoring and the protected-action gate.

Architecture:
- NetworkStatusProvider: where connectivity readings come from (HTTP
  probe in production, a static switch in tests)
- ConnectivityMonitor: current state, active re-check, change hooks
- ConnectivityGate: runs an action only when a fresh probe says we are
  online, otherwise returns False and optionally prompts the user

Connectivity failures are reported as ``False``, never as exceptions.
Errors raised by the action itself are not this layer's concern and
propagate to the caller.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal, Optional, Protocol, TypeVar, Union

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")

StatusListener = Callable[[Optional[bool]], None]


class NetworkStatusProvider(Protocol):
    """Source of connectivity readings."""

    async def fetch(self) -> Optional[bool]:
        """Return True/False, or None when the state is unknown."""
        ...

    def add_listener(self, callback: StatusListener) -> Callable[[], None]:
        """Register a change callback; returns an unsubscribe function."""
        ...


class _ListenerMixin:
    def __init__(self) -> None:
        self._listeners: list[StatusListener] = []

    def add_listener(self, callback: StatusListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self, state: Optional[bool]) -> None:
        for listener in list(self._listeners):
            listener(state)


class StaticNetworkStatusProvider(_ListenerMixin):
    """Provider whose state is set by hand."""

    def __init__(self, connected: Optional[bool] = True) -> None:
        super().__init__()
        self._connected = connected

    async def fetch(self) -> Optional[bool]:
        return self._connected

    def set_connected(self, connected: Optional[bool]) -> None:
        changed = connected != self._connected
        self._connected = connected
        if changed:
            self._notify(connected)


class HttpNetworkStatusProvider(_ListenerMixin):
    """Probes a well-known URL to decide whether the network is usable.

    Any HTTP answer below 500 counts as connected. Transport errors and
    timeouts count as disconnected. Listeners fire when a probe result
    differs from the previous one.
    """

    HEADERS = {"User-Agent": "LocalGuide/1.0 (connectivity probe)"}

    def __init__(self, probe_url: str, timeout: float = 3.0) -> None:
        super().__init__()
        self._probe_url = probe_url
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None
        self._last: Optional[bool] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout, headers=self.HEADERS)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def fetch(self) -> Optional[bool]:
        try:
            response = await self._get_client().head(self._probe_url)
            connected = response.status_code < 500
        except httpx.HTTPError as e:
            logger.debug(f"[NET] Probe failed: {type(e).__name__}: {e}")
            connected = False

        if connected != self._last:
            self._last = connected
            self._notify(connected)
        return connected


class ConnectivityMonitor:
    """Tracks whether the network is reachable.

    ``is_connected`` is optimistic (True) until the first reading
    arrives. ``on_offline`` / ``on_online`` run on state transitions
    reported by the provider; what they do is up to the caller.
    """

    def __init__(
        self,
        provider: NetworkStatusProvider,
        on_offline: Callable[[], None] | None = None,
        on_online: Callable[[], None] | None = None,
    ) -> None:
        self._provider = provider
        self._on_offline = on_offline
        self._on_online = on_online
        self._state: Optional[bool] = True
        self._checking = False
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def is_connected(self) -> bool:
        return self._state is True

    @property
    def is_checking(self) -> bool:
        return self._checking

    @property
    def provider(self) -> NetworkStatusProvider:
        return self._provider

    def set_hooks(
        self,
        on_offline: Callable[[], None] | None = None,
        on_online: Callable[[], None] | None = None,
    ) -> None:
        """Replace the transition hooks."""
        self._on_offline = on_offline
        self._on_online = on_online

    async def check_connectivity(self) -> bool:
        """Actively probe the provider and update state.

        A probe that raises is treated as disconnected.
        """
        self._checking = True
        try:
            state = await self._provider.fetch()
            self._state = state
            return state is True
        except Exception as e:
            logger.error(f"[NET] Error checking connectivity: {e}")
            self._state = False
            return False
        finally:
            self._checking = False

    async def start(self) -> None:
        """Subscribe to provider changes and run the initial check."""
        if self._unsubscribe is None:
            self._unsubscribe = self._provider.add_listener(self._handle_change)
        await self.check_connectivity()

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _handle_change(self, state: Optional[bool]) -> None:
        was_connected = self.is_connected
        self._state = state
        now_connected = self.is_connected

        if was_connected and not now_connected:
            logger.info("[NET] Connection lost")
            if self._on_offline:
                self._on_offline()
        elif not was_connected and now_connected:
            logger.info("[NET] Connection restored")
            if self._on_online:
                self._on_online()


@dataclass
class AlertButton:
    """One choice in a user prompt."""

    text: str
    style: Literal["default", "cancel"] = "default"
    on_press: Callable[[], Awaitable[Any]] | None = None


class AlertPresenter(Protocol):
    """Shows a blocking choice to the user."""

    def alert(self, title: str, message: str, buttons: list[AlertButton]) -> None:
        ...


class LoggingAlertPresenter:
    """Presenter for headless runs: logs the prompt and picks nothing."""

    def alert(self, title: str, message: str, buttons: list[AlertButton]) -> None:
        choices = ", ".join(button.text for button in buttons)
        logger.info(f"[ALERT] {title}: {message} [{choices}]")


@dataclass(frozen=True)
class ProtectedActionOptions:
    """How ``protected_action`` behaves when offline."""

    action_name: str = "This action"
    show_alert: bool = True
    retry: bool = True


OFFLINE_TITLE = "No Internet Connection"
CHECK_CONNECTION = "Please check your connection and try again."
RESTORED_TITLE = "Connection Restored"


class ConnectivityGate:
    """Wraps async actions with a connectivity check.

    Sits between the API routes and the services layer so that network
    guarding is defined once.
    """

    def __init__(
        self,
        monitor: ConnectivityMonitor,
        presenter: AlertPresenter | None = None,
    ) -> None:
        self._monitor = monitor
        self._presenter: AlertPresenter = presenter or LoggingAlertPresenter()

    @property
    def monitor(self) -> ConnectivityMonitor:
        return self._monitor

    @property
    def is_connected(self) -> bool:
        return self._monitor.is_connected

    async def protected_action(
        self,
        action: Callable[[], Awaitable[T]],
        options: ProtectedActionOptions | None = None,
    ) -> Union[T, Literal[False]]:
        """Run ``action`` if the network is reachable.

        Returns False without calling ``action`` when offline. The Retry
        button re-enters this method with the very same ``options``.
        """
        if options is None:
            options = ProtectedActionOptions()

        connected = await self._monitor.check_connectivity()

        if not connected:
            logger.info(f"[GATE] Blocked offline: {options.action_name}")
            if options.show_alert:
                self._show_offline_alert(action, options)
            return False

        try:
            return await action()
        except Exception:
            logger.exception(f"[GATE] Protected action failed: {options.action_name}")
            raise

    def _show_offline_alert(
        self,
        action: Callable[[], Awaitable[Any]],
        options: ProtectedActionOptions,
    ) -> None:
        if options.retry:
            buttons = [
                AlertButton(text="Cancel", style="cancel"),
                AlertButton(
                    text="Retry",
                    on_press=lambda: self.protected_action(action, options),
                ),
            ]
        else:
            buttons = [AlertButton(text="OK")]

        self._presenter.alert(
            OFFLINE_TITLE,
            f"{options.action_name} requires an internet connection. {CHECK_CONNECTION}",
            buttons,
        )

    def notify_connection_lost(self) -> None:
        """Tell the user the connection dropped. Wired to the monitor's ``on_offline``."""
        self._presenter.alert(OFFLINE_TITLE, CHECK_CONNECTION, [AlertButton(text="OK")])

    def notify_connection_restored(self) -> None:
        """Tell the user the connection is back. Wired to the monitor's ``on_online``."""
        self._presenter.alert(
            RESTORED_TITLE,
            "Your internet connection has been restored.",
            [AlertButton(text="OK")],
        )
