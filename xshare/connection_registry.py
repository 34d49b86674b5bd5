import logging
from itertools import count

from .models import Connection

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """
    All paired connections that are not finished yet.
    Connections are stored by id; each participant id is indexed to the id of
    the single connection it currently belongs to.
    """

    def __init__(self):
        self._ids = count(1)
        self._connections = {}  # {connection_id: Connection}
        self._indices = {}  # {peer_id: connection_id}

    def __len__(self):
        return len(self._connections)

    # --- Lookups ---

    def get(self, connection_id):
        return self._connections.get(connection_id)

    def connection_id_for(self, peer_id):
        return self._indices.get(peer_id)

    def connection_for(self, peer_id):
        return self._connections.get(self._indices.get(peer_id))

    # --- State changes ---

    def add(self, sender, receiver):
        """
        Register a freshly paired sender and receiver.
        Any connection either of them was still part of is dropped, and the
        partner left behind in it is told it was betrayed.
        Returns:
            The new connection id.
        """
        for peer_id in (sender.id, receiver.id):
            stale = self._connections.get(self._indices.get(peer_id))
            if stale is None:
                continue
            logger.info(f"Connection {stale.id} superseded by a new pairing of peer {peer_id}")
            if stale.other(peer_id).id in (sender.id, receiver.id):
                # Same two peers paired again
                self.clear(stale.id)
            else:
                self.clear(
                    stale.id,
                    peer_id,
                    lambda other, stale=stale, peer_id=peer_id: stale.notify_betrayal(peer_id),
                )

        connection_id = next(self._ids)
        self._connections[connection_id] = Connection(connection_id, sender, receiver)
        self._indices[sender.id] = connection_id
        self._indices[receiver.id] = connection_id
        logger.info(f"Connection {connection_id} created: sender {sender.id} -> receiver {receiver.id}")
        return connection_id

    def confirm(self, connection_id, peer_id):
        """
        Mark one side of a connection as confirmed.
        Returns:
            True if both sides have now confirmed, False otherwise (including
            when the connection no longer exists).
        """
        con = self._connections.get(connection_id)
        if con is None:
            return False

        if peer_id == con.sender.id:
            con.sender_confirmed = True
        elif peer_id == con.receiver.id:
            con.receiver_confirmed = True
        else:
            logger.debug(f"Peer {peer_id} is not part of connection {connection_id}")
            return False

        return con.both_confirmed

    def clear(self, connection_id, abandoning_peer_id=None, on_abandon=None):
        """
        Remove a connection and its index entries.
        Args:
            connection_id: The connection to drop.
            abandoning_peer_id: The participant walking away, if any.
            on_abandon: Called with the other participant before removal.
        """
        con = self._connections.get(connection_id)
        if con is None:
            return

        if abandoning_peer_id is not None and on_abandon is not None:
            on_abandon(con.other(abandoning_peer_id))

        del self._connections[connection_id]
        for peer_id in con.participant_ids():
            if self._indices.get(peer_id) == connection_id:
                del self._indices[peer_id]
        logger.debug(f"Connection {connection_id} cleared")

    def describe(self):
        """For debugging, one summary dict per live connection."""
        return [
            {
                "connectionID": con.id,
                "senderID": con.sender.id,
                "receiverID": con.receiver.id,
                "status": con.status.value,
            }
            for con in self._connections.values()
        ]
