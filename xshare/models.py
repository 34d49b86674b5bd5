import logging
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


class ConnectionStatus(Enum):
    INIT = "INIT"
    SENDING = "SENDING"


@dataclass
class GeoLocation:
    latitude: float
    longitude: float
    accuracy: float

    @classmethod
    def from_payload(cls, geo):
        """
        Build a GeoLocation from a client payload.
        Returns None unless latitude, longitude and accuracy are all present.
        """
        if not isinstance(geo, dict):
            return None
        try:
            return cls(geo["latitude"], geo["longitude"], geo["accuracy"])
        except KeyError:
            logger.debug(f"Ignoring partial geolocation payload: {geo}")
            return None


@dataclass
class Peer:
    """
    One endpoint of a potential transfer, built fresh for every pairing attempt.
    The channel belongs to the gateway session; the core only emits through it.
    """
    id: int
    channel: object
    ip: str = None
    port: int = None
    geo: GeoLocation = None
    file_name: str = None
    file_size: int = None

    def emit(self, event, payload=None):
        self.channel.emit(event, payload)


@dataclass
class Connection:
    id: int
    sender: Peer
    receiver: Peer
    sender_confirmed: bool = False
    receiver_confirmed: bool = False
    status: ConnectionStatus = field(default=ConnectionStatus.INIT)

    @property
    def both_confirmed(self):
        return self.sender_confirmed and self.receiver_confirmed

    def participant_ids(self):
        return (self.sender.id, self.receiver.id)

    def other(self, peer_id):
        """Return the participant that is not peer_id."""
        return self.receiver if peer_id == self.sender.id else self.sender

    def notify_betrayal(self, abandoning_peer_id):
        """Tell the participant left behind that its partner walked away."""
        other = self.other(abandoning_peer_id)
        if other is self.receiver:
            other.emit("betrayedSending", {"partnerID": abandoning_peer_id})
        else:
            other.emit("betrayedReceiving", {"partnerID": abandoning_peer_id})
        return other

    def start_sending(self):
        """
        Move INIT -> SENDING once both sides confirmed.
        Returns True only for the call that performed the transition.
        """
        if self.status is not ConnectionStatus.INIT or not self.both_confirmed:
            return False
        self.status = ConnectionStatus.SENDING
        return True
