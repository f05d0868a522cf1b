"""Unit tests for the connectivity monitor and protected-action gate."""

import pytest

from localguide.services.connectivity import (
    AlertButton,
    ConnectivityGate,
    ConnectivityMonitor,
    ProtectedActionOptions,
    StaticNetworkStatusProvider,
)

CHECK = "Please check your connection and try again."


class RecordingPresenter:
    """Captures alerts instead of showing them."""

    def __init__(self) -> None:
        self.alerts: list[tuple[str, str, list[AlertButton]]] = []

    def alert(self, title: str, message: str, buttons: list[AlertButton]) -> None:
        self.alerts.append((title, message, buttons))


class ExplodingProvider(StaticNetworkStatusProvider):
    async def fetch(self):
        raise OSError("probe crashed")


class CountingAction:
    def __init__(self, result: str = "done", error: Exception | None = None) -> None:
        self.calls = 0
        self.result = result
        self.error = error

    async def __call__(self) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


class TestConnectivityMonitor:
    """Tests for ConnectivityMonitor state handling."""

    def test_optimistic_before_first_reading(self) -> None:
        monitor = ConnectivityMonitor(StaticNetworkStatusProvider(False))
        assert monitor.is_connected is True

    @pytest.mark.asyncio
    async def test_check_connectivity_updates_state(self) -> None:
        provider = StaticNetworkStatusProvider(False)
        monitor = ConnectivityMonitor(provider)

        assert await monitor.check_connectivity() is False
        assert monitor.is_connected is False

        provider.set_connected(True)
        assert await monitor.check_connectivity() is True

    @pytest.mark.asyncio
    async def test_unknown_state_is_not_connected(self) -> None:
        monitor = ConnectivityMonitor(StaticNetworkStatusProvider(None))
        assert await monitor.check_connectivity() is False
        assert monitor.is_connected is False

    @pytest.mark.asyncio
    async def test_probe_exception_reads_as_offline(self) -> None:
        monitor = ConnectivityMonitor(ExplodingProvider())
        assert await monitor.check_connectivity() is False
        assert monitor.is_connected is False
        assert monitor.is_checking is False

    @pytest.mark.asyncio
    async def test_transition_hooks(self) -> None:
        events: list[str] = []
        provider = StaticNetworkStatusProvider(True)
        monitor = ConnectivityMonitor(
            provider,
            on_offline=lambda: events.append("offline"),
            on_online=lambda: events.append("online"),
        )
        await monitor.start()

        provider.set_connected(False)
        provider.set_connected(False)
        provider.set_connected(True)

        assert events == ["offline", "online"]

    @pytest.mark.asyncio
    async def test_stop_unsubscribes(self) -> None:
        events: list[str] = []
        provider = StaticNetworkStatusProvider(True)
        monitor = ConnectivityMonitor(provider, on_offline=lambda: events.append("offline"))
        await monitor.start()
        monitor.stop()

        provider.set_connected(False)

        assert events == []


class TestProtectedAction:
    """Tests for ConnectivityGate.protected_action."""

    def setup_method(self) -> None:
        self.provider = StaticNetworkStatusProvider(True)
        self.presenter = RecordingPresenter()
        self.gate = ConnectivityGate(ConnectivityMonitor(self.provider), self.presenter)

    @pytest.mark.asyncio
    async def test_online_runs_action(self) -> None:
        action = CountingAction()
        assert await self.gate.protected_action(action) == "done"
        assert action.calls == 1
        assert self.presenter.alerts == []

    @pytest.mark.asyncio
    async def test_offline_returns_false_without_calling_action(self) -> None:
        self.provider.set_connected(False)
        action = CountingAction()

        result = await self.gate.protected_action(action)

        assert result is False
        assert action.calls == 0

    @pytest.mark.asyncio
    async def test_offline_alert_with_retry(self) -> None:
        self.provider.set_connected(False)
        await self.gate.protected_action(
            CountingAction(), ProtectedActionOptions(action_name="Posting a review")
        )

        title, message, buttons = self.presenter.alerts[0]
        assert title == "No Internet Connection"
        assert message == f"Posting a review requires an internet connection. {CHECK}"
        assert [b.text for b in buttons] == ["Cancel", "Retry"]
        assert buttons[0].style == "cancel"

    @pytest.mark.asyncio
    async def test_offline_alert_without_retry(self) -> None:
        self.provider.set_connected(False)
        await self.gate.protected_action(CountingAction(), ProtectedActionOptions(retry=False))

        _, message, buttons = self.presenter.alerts[0]
        assert message == f"This action requires an internet connection. {CHECK}"
        assert [b.text for b in buttons] == ["OK"]

    @pytest.mark.asyncio
    async def test_show_alert_false_is_silent(self) -> None:
        self.provider.set_connected(False)
        result = await self.gate.protected_action(
            CountingAction(), ProtectedActionOptions(show_alert=False)
        )
        assert result is False
        assert self.presenter.alerts == []

    @pytest.mark.asyncio
    async def test_retry_runs_action_once_connectivity_returns(self) -> None:
        self.provider.set_connected(False)
        action = CountingAction()
        options = ProtectedActionOptions(action_name="Loading")
        await self.gate.protected_action(action, options)
        retry = self.presenter.alerts[0][2][1]

        self.provider.set_connected(True)
        result = await retry.on_press()

        assert result == "done"
        assert action.calls == 1

    @pytest.mark.asyncio
    async def test_retry_while_still_offline_prompts_again_with_same_options(self) -> None:
        self.provider.set_connected(False)
        options = ProtectedActionOptions(action_name="Loading")
        await self.gate.protected_action(CountingAction(), options)
        retry = self.presenter.alerts[0][2][1]

        result = await retry.on_press()

        assert result is False
        assert len(self.presenter.alerts) == 2
        assert self.presenter.alerts[1][1] == f"Loading requires an internet connection. {CHECK}"

    @pytest.mark.asyncio
    async def test_action_errors_propagate(self) -> None:
        action = CountingAction(error=ValueError("bad input"))
        with pytest.raises(ValueError, match="bad input"):
            await self.gate.protected_action(action)

    @pytest.mark.asyncio
    async def test_probe_exception_blocks_action(self) -> None:
        gate = ConnectivityGate(ConnectivityMonitor(ExplodingProvider()), self.presenter)
        action = CountingAction()
        assert await gate.protected_action(action) is False
        assert action.calls == 0

    @pytest.mark.asyncio
    async def test_fresh_probe_overrides_optimistic_state(self) -> None:
        gate = ConnectivityGate(
            ConnectivityMonitor(StaticNetworkStatusProvider(False)), self.presenter
        )
        assert gate.is_connected is True
        action = CountingAction()
        assert await gate.protected_action(action) is False
        assert action.calls == 0

    def test_connection_restored_notice(self) -> None:
        self.gate.notify_connection_restored()
        title, _, buttons = self.presenter.alerts[0]
        assert title == "Connection Restored"
        assert [b.text for b in buttons] == ["OK"]

    def test_connection_lost_notice(self) -> None:
        self.gate.notify_connection_lost()
        title, message, buttons = self.presenter.alerts[0]
        assert title == "No Internet Connection"
        assert message == CHECK
        assert [b.text for b in buttons] == ["OK"]

    @pytest.mark.asyncio
    async def test_transition_notices_when_wired_to_monitor(self) -> None:
        self.gate.monitor.set_hooks(
            on_offline=self.gate.notify_connection_lost,
            on_online=self.gate.notify_connection_restored,
        )
        await self.gate.monitor.start()

        self.provider.set_connected(False)
        self.provider.set_connected(True)

        titles = [title for title, _, _ in self.presenter.alerts]
        assert titles == ["No Internet Connection", "Connection Restored"]
