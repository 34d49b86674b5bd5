"""Shared fixtures for the xshare tests."""

import pytest

from xshare.models import Peer


class RecordingChannel:
    """Stands in for a gateway channel and records every emission."""

    def __init__(self):
        self.sent = []

    def emit(self, event, payload=None):
        self.sent.append((event, payload))

    def events(self):
        return [event for event, _ in self.sent]

    def payloads(self, event):
        return [payload for name, payload in self.sent if name == event]


@pytest.fixture
def make_peer():
    """Build a Peer with its own recording channel; pass file_name to make a sender."""

    def _make(peer_id, file_name=None, file_size=None):
        return Peer(id=peer_id, channel=RecordingChannel(), file_name=file_name, file_size=file_size)

    return _make


@pytest.fixture
def make_channel():
    return RecordingChannel
