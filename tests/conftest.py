"""
Shared test fixtures
====================

A transport that records outbound traffic and a helper to write
settings files into a temporary directory.
"""

import sys
import time
from pathlib import Path

import pytest
import yaml

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import load_settings
from rules.engine import Message, Sender, TargetContext
from services.transport import Transport


class RecordingTransport(Transport):
    """Transport that keeps everything the bot sends."""

    OWN_ID = 99

    def __init__(self):
        self.sent = []
        self.pokes = []
        self.disconnects = []

    def connect(self, settings):
        self.own_client_id = self.OWN_ID

    def send_text(self, target, text, client_id=None):
        self.sent.append((target, text, client_id))

    def poke(self, client_id, text):
        self.pokes.append((client_id, text))

    def disconnect(self, message):
        self.disconnects.append(message)
        self.own_client_id = None

    @property
    def replies(self):
        return [text for _, text, _ in self.sent] + [text for _, text in self.pokes]


def make_message(text, target=TargetContext.CHANNEL, sender_id=5, name="alice", uid=None):
    return Message(target, Sender(sender_id, name, uid), text)


def wait_for(predicate, timeout=5.0):
    """Poll until ``predicate()`` is true or the timeout passes."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def transport():
    transport = RecordingTransport()
    transport.connect(None)
    return transport


@pytest.fixture
def write_settings(tmp_path):
    """Write a settings file and load it. Rate limiting is relaxed."""

    def _write(actions=None, **values):
        data = {"rate_limit": 100, "rate_limit_window": 60}
        data.update(values)
        data["actions"] = actions or {}
        path = tmp_path / "settings.yaml"
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        return load_settings(str(path), load_env=False)

    return _write
