import asyncio
import logging

logger = logging.getLogger(__name__)

# Seconds a peer may wait in a pool before it is told the pairing failed.
PAIR_TIMEOUT = 1.5


class WaitingEntry:
    __slots__ = ("peer", "timer")

    def __init__(self, peer, timer=None):
        self.peer = peer
        self.timer = timer


class WaitingPool:
    """
    Peers waiting to be paired for one role, keyed by identity.
    Every entry expires after `timeout` seconds unless it is removed first.
    Timers run on the current asyncio loop, so insert() must be called from it.
    """

    def __init__(self, name, timeout=PAIR_TIMEOUT):
        self.name = name
        self.timeout = timeout
        self._entries = {}  # {peer_id: WaitingEntry}

    def __len__(self):
        return len(self._entries)

    def __contains__(self, peer_id):
        return peer_id in self._entries

    def insert(self, peer, on_expire):
        """
        Add peer to the pool, replacing any previous entry for the same id.
        Args:
            peer: The Peer to park.
            on_expire: Called with the peer if it is still waiting when the timer fires.
        """
        self.remove(peer.id)

        entry = WaitingEntry(peer)
        loop = asyncio.get_running_loop()
        entry.timer = loop.call_later(self.timeout, self._expire, entry, on_expire)
        self._entries[peer.id] = entry
        logger.debug(f"[{self.name}] Peer {peer.id} waiting ({len(self._entries)} in pool)")

    def _expire(self, entry, on_expire):
        # A replaced or removed entry must never report expiry.
        if self._entries.get(entry.peer.id) is not entry:
            return
        del self._entries[entry.peer.id]
        logger.debug(f"[{self.name}] Peer {entry.peer.id} expired without a partner")
        on_expire(entry.peer)

    def remove(self, peer_id):
        entry = self._entries.pop(peer_id, None)
        if entry is None:
            return
        if entry.timer:
            entry.timer.cancel()
        logger.debug(f"[{self.name}] Peer {peer_id} removed")

    def pick_any(self):
        """Return one waiting peer (first available) or None. Does not remove it."""
        # TODO: rank candidates by distance once peers reliably report geolocation.
        entry = next(iter(self._entries.values()), None)
        return entry.peer if entry else None

    def identities(self):
        return list(self._entries)

    def clear(self):
        for peer_id in list(self._entries):
            self.remove(peer_id)
