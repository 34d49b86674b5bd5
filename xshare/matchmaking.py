import logging

from .connection_registry import ConnectionRegistry
from .models import ConnectionStatus, GeoLocation, Peer
from .pairing import PairingEngine
from .waiting_pool import PAIR_TIMEOUT, WaitingPool

logger = logging.getLogger(__name__)


class MatchmakingService:
    """
    Owns the waiting pools and the connection registry for one server.
    The gateway calls one method per inbound event; nothing else mutates
    the pools or the connections.
    """

    def __init__(self, pair_timeout=PAIR_TIMEOUT):
        self.to_send = WaitingPool("toSend", timeout=pair_timeout)
        self.to_receive = WaitingPool("toReceive", timeout=pair_timeout)
        self.registry = ConnectionRegistry()
        self.engine = PairingEngine(self.to_send, self.to_receive, self.registry)
        logger.debug(f"MatchmakingService initialized (pair timeout {pair_timeout}s).")

    @staticmethod
    def _build_peer(peer_id, channel, address, data, file_info=None):
        ip, port = address if address else (None, None)
        peer = Peer(id=peer_id, channel=channel, ip=ip, port=port)
        peer.geo = GeoLocation.from_payload(data.get("geo"))
        if isinstance(file_info, dict):
            peer.file_name = file_info.get("name")
            peer.file_size = file_info.get("size")
        return peer

    # --- Inbound events ---

    def pair_to_receive(self, peer_id, channel, data, address=None):
        peer = self._build_peer(peer_id, channel, address, data)
        logger.debug(f"Peer {peer_id} asks to receive")
        return self.engine.request_receive(peer)

    def pair_to_send(self, peer_id, channel, data, address=None):
        peer = self._build_peer(peer_id, channel, address, data, data.get("fileInfo"))
        logger.debug(f"Peer {peer_id} asks to send '{peer.file_name}' ({peer.file_size} bytes)")
        return self.engine.request_send(peer)

    def confirm(self, my_id, partner_id):
        """
        One side accepts the pairing. When the second side accepts, the
        connection starts and both peers are told who sends to whom.
        """
        con = self.registry.connection_for(my_id)
        if con is None or partner_id not in con.participant_ids() or partner_id == my_id:
            logger.debug(f"Ignoring confirm from {my_id} for partner {partner_id}: no such connection")
            return False

        if not self.registry.confirm(con.id, my_id):
            return False
        if not con.start_sending():
            return False

        payload = {"senderID": con.sender.id, "receiverID": con.receiver.id}
        con.sender.emit("startSending", payload)
        con.receiver.emit("startSending", payload)
        logger.info(f"Connection {con.id} started: {con.sender.id} -> {con.receiver.id}")
        return True

    def _abandon(self, peer_id, reason):
        connection_id = self.registry.connection_id_for(peer_id)
        if connection_id is None:
            return
        con = self.registry.get(connection_id)

        def notify(other):
            con.notify_betrayal(peer_id)
            logger.info(f"Connection {connection_id} abandoned by {peer_id} ({reason}); told {other.id}")

        self.registry.clear(connection_id, peer_id, notify)

    def confirm_failed(self, my_id):
        self._abandon(my_id, "declined")

    def transfer_done(self, my_id):
        """Release a connection whose transfer has started and finished."""
        con = self.registry.connection_for(my_id)
        if con is None or con.status is not ConnectionStatus.SENDING:
            logger.debug(f"Ignoring transferDone from {my_id}: no started connection")
            return
        self.registry.clear(con.id)
        logger.info(f"Connection {con.id} finished")

    def disconnect(self, peer_id):
        self.to_send.remove(peer_id)
        self.to_receive.remove(peer_id)
        self._abandon(peer_id, "disconnected")

    # --- Diagnostics / lifecycle ---

    def snapshot(self):
        return {
            "toSend": self.to_send.identities(),
            "toReceive": self.to_receive.identities(),
            "connections": self.registry.describe(),
        }

    def shutdown(self):
        self.to_send.clear()
        self.to_receive.clear()
        logger.info("Waiting pools cleared.")
