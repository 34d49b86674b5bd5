import logging

logger = logging.getLogger(__name__)


class PairingEngine:
    """
    Pairs peers that want to send with peers that want to receive.
    A request either matches someone already waiting in the opposite pool or
    parks the peer in its own pool until it expires.
    """

    def __init__(self, to_send, to_receive, registry):
        self.to_send = to_send
        self.to_receive = to_receive
        self.registry = registry

    def _forget(self, peer_id):
        """Drop any earlier waiting entry so a retrying peer is not counted twice."""
        self.to_send.remove(peer_id)
        self.to_receive.remove(peer_id)

    @staticmethod
    def _on_expire(peer):
        logger.info(f"Pairing failed for peer {peer.id}: nobody showed up in time")
        peer.emit("pairFailed")

    def request_receive(self, peer):
        """
        A peer wants to receive a file.
        Returns:
            The new connection id if a sender was waiting, None if the peer was queued.
        """
        self._forget(peer.id)

        partner = self.to_send.pick_any()
        if partner is None:
            self.to_receive.insert(peer, self._on_expire)
            return None

        self.to_send.remove(partner.id)
        connection_id = self.registry.add(partner, peer)

        partner.emit("confirmSend", {
            "partnerID": peer.id,
            "fileName": partner.file_name,
            "fileSize": partner.file_size,
        })
        peer.emit("confirmReceive", {
            "partnerID": partner.id,
            "fileName": partner.file_name,
            "fileSize": partner.file_size,
        })
        logger.info(f"Receiver {peer.id} paired with waiting sender {partner.id}")
        return connection_id

    def request_send(self, peer):
        """
        A peer wants to send a file.
        Returns:
            The new connection id if a receiver was waiting, None if the peer was queued.
        """
        self._forget(peer.id)

        partner = self.to_receive.pick_any()
        if partner is None:
            self.to_send.insert(peer, self._on_expire)
            return None

        self.to_receive.remove(partner.id)
        connection_id = self.registry.add(peer, partner)

        partner.emit("receive", {
            "partnerID": peer.id,
            "fileName": peer.file_name,
            "fileSize": peer.file_size,
        })
        peer.emit("send", {
            "partnerID": partner.id,
            "fileName": peer.file_name,
            "fileSize": peer.file_size,
        })
        logger.info(f"Sender {peer.id} paired with waiting receiver {partner.id}")
        return connection_id
