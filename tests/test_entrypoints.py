from __future__ import annotations

import asyncio
import importlib
import sys
from unittest import mock

import pytest

import sheetrelay.__main__ as local_main
from sheetrelay.config import ConfigurationError, ScheduledTrigger, SheetRelayConfig, TimerLoop

CLOUD_ENV = {
    "SHARED_FOLDER_ID": "folder-1",
    "PROCESSOR_FUNCTION_URL": "https://processor.example.com",
    "ASSETS_BUCKET_NAME": "assets",
    "FUNCTION_NAME": "poll-drive",
}


def _import_main(monkeypatch, tmp_path, env):
    monkeypatch.chdir(tmp_path)
    for key in (*CLOUD_ENV, "K_SERVICE", "SHEETRELAY_MODE", "LOCAL_URL", "CHECKPOINT_DIR"):
        monkeypatch.delenv(key, raising=False)
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    monkeypatch.delitem(sys.modules, "main", raising=False)
    return importlib.import_module("main")


@pytest.fixture()
def cloud_main(monkeypatch, tmp_path):
    module = _import_main(monkeypatch, tmp_path, CLOUD_ENV)
    poller = mock.Mock()
    factory = mock.Mock(return_value=poller)
    monkeypatch.setattr(module, "create_poller", factory)
    module.get_poller.cache_clear()
    yield module, factory, poller
    module.get_poller.cache_clear()


def test_missing_setting_fails_at_import(monkeypatch, tmp_path):
    env = {k: v for k, v in CLOUD_ENV.items() if k != "SHARED_FOLDER_ID"}
    with pytest.raises(ConfigurationError):
        _import_main(monkeypatch, tmp_path, env)


def test_config_is_loaded_at_import(cloud_main):
    module, factory, _ = cloud_main
    assert module.config.folder_id == "folder-1"
    assert isinstance(module.config.mode, ScheduledTrigger)
    factory.assert_not_called()


def test_poll_drive_runs_once_per_message(cloud_main):
    module, factory, poller = cloud_main

    module.poll_drive({"data": "ignored"}, mock.Mock(event_id="evt-1"))
    assert poller.run.call_count == 1

    module.poll_drive()
    assert poller.run.call_count == 2
    factory.assert_called_once_with(module.config)


def test_poll_drive_event_runs_once(cloud_main):
    module, _, poller = cloud_main
    module.poll_drive_event(mock.Mock())
    poller.run.assert_called_once_with()


def test_module_main_single_run_in_scheduled_mode(monkeypatch):
    config = SheetRelayConfig(
        folder_id="folder-1",
        mode=ScheduledTrigger(relay_url="https://processor.example.com"),
        bucket_name="assets",
    )
    poller = mock.Mock()
    daemon_cls = mock.Mock()
    monkeypatch.setattr(local_main, "load_config", mock.Mock(return_value=config))
    monkeypatch.setattr(local_main, "configure_logging", mock.Mock())
    monkeypatch.setattr(local_main, "create_poller", mock.Mock(return_value=poller))
    monkeypatch.setattr(local_main, "PollerDaemon", daemon_cls)

    asyncio.run(local_main.main())

    poller.run.assert_called_once_with()
    daemon_cls.assert_not_called()


def test_module_main_starts_timer_loop(monkeypatch):
    config = SheetRelayConfig(
        folder_id="folder-1",
        mode=TimerLoop(relay_url="http://localhost:8080", interval_seconds=5),
        bucket_name="assets",
    )
    poller = mock.Mock()
    daemon = mock.Mock()
    daemon.start = mock.AsyncMock()
    daemon.stop = mock.AsyncMock()
    daemon_cls = mock.Mock(return_value=daemon)
    monkeypatch.setattr(local_main, "load_config", mock.Mock(return_value=config))
    monkeypatch.setattr(local_main, "configure_logging", mock.Mock())
    monkeypatch.setattr(local_main, "create_poller", mock.Mock(return_value=poller))
    monkeypatch.setattr(local_main, "PollerDaemon", daemon_cls)

    asyncio.run(local_main.main())

    daemon_cls.assert_called_once_with(poller, 5)
    daemon.start.assert_awaited_once()
    daemon.stop.assert_awaited_once()
    poller.run.assert_not_called()
