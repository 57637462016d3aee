from __future__ import annotations

import asyncio
from unittest import mock

from sheetrelay.daemon import PollerDaemon


def test_tick_logs_failures_and_keeps_running(caplog):
    poller = mock.Mock()
    poller.run.side_effect = RuntimeError("listing failed")
    daemon = PollerDaemon(poller, interval_seconds=1, install_signal_handlers=False)

    assert asyncio.run(daemon.tick()) is False
    assert "Poll run 1 failed" in caplog.text

    poller.run.side_effect = None
    assert asyncio.run(daemon.tick()) is True
    assert poller.run.call_count == 2


def test_loop_runs_until_stopped():
    daemon = PollerDaemon(mock.Mock(), interval_seconds=1, install_signal_handlers=False)

    def run_and_stop():
        daemon.running = False

    daemon.poller.run.side_effect = run_and_stop

    async def scenario():
        await asyncio.wait_for(daemon.start(), timeout=5)
        await daemon.stop()

    asyncio.run(scenario())
    assert daemon.runs == 1
    assert daemon.running is False
