"""Tests for the entry point's exit statuses."""

import asyncio
import os
import signal
from contextlib import asynccontextmanager

import pytest

import main
from incident_mirror.config import MirrorConfig
from incident_mirror.store import RunLock


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ("DISCORD_WEBHOOK_URL", "DISCORD_WEBHOOK_ID", "DISCORD_WEBHOOK_TOKEN", "MESSAGES_FILE", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def test_missing_webhook_exits_2():
    assert main.main([]) == 2


def test_concurrent_run_exits_quietly(monkeypatch, tmp_path):
    monkeypatch.setenv("DISCORD_WEBHOOK_URL", "https://discord.com/api/webhooks/1/abc")
    monkeypatch.setenv("MESSAGES_FILE", str(tmp_path / "messages.json"))

    with RunLock(tmp_path / "messages.json.lock"):
        assert main.main(["--once"]) == 0
    # nothing ran, so the map was never created
    assert not (tmp_path / "messages.json").exists()


def test_interval_and_once_are_exclusive():
    with pytest.raises(SystemExit):
        main.parse_args(["--once", "--interval", "60"])


@pytest.mark.asyncio
async def test_sigterm_stops_repeat_mode(monkeypatch):
    @asynccontextmanager
    async def fake_open_mirror(config):
        yield object()

    class SignalledWatcher:
        def __init__(self, mirror, interval_seconds, retry=None):
            pass

        async def run_forever(self):
            os.kill(os.getpid(), signal.SIGTERM)
            await asyncio.sleep(30)

    monkeypatch.setattr(main, "open_mirror", fake_open_mirror)
    monkeypatch.setattr(main, "IncidentWatcher", SignalledWatcher)
    config = MirrorConfig(webhook_url="https://discord.com/api/webhooks/1/abc", poll_interval_seconds=60)

    await asyncio.wait_for(main.run(config), timeout=5)
    asyncio.get_running_loop().remove_signal_handler(signal.SIGTERM)
    asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)
