import asyncio
import json
import logging
from http import HTTPStatus
from itertools import count

from websockets.asyncio.server import serve
from websockets.exceptions import ConnectionClosed, ConnectionClosedError

logger = logging.getLogger(__name__)

# Default port constant
DEFAULT_PORT = 8765


class InvalidFrame(ValueError):
    """A decoded frame whose fields cannot be used."""


def _identity(data, key, session_id):
    """
    Read a peer id from a payload, falling back to the session id when absent.
    Raises InvalidFrame for anything that is not a plain integer.
    """
    value = data.get(key, session_id)
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidFrame(f"{key} must be an integer, got {value!r}")
    return value


class WebSocketChannel:
    """
    Outbound side of one peer session.
    emit() never blocks: frames are queued and written in order by run().
    """

    def __init__(self, websocket, peer_id):
        self.websocket = websocket
        self.peer_id = peer_id
        self._outbox = asyncio.Queue()

    def emit(self, event, payload=None):
        self._outbox.put_nowait(json.dumps({"event": event, "data": payload}))

    async def run(self):
        while True:
            message = await self._outbox.get()
            try:
                await self.websocket.send(message)
            except ConnectionClosed as e:
                logger.debug(f"Dropping outbound frames for peer {self.peer_id}: {e}")
                return


class SessionGateway:
    """
    WebSocket front door of the matchmaking service.
    Every socket gets the next numeric id; JSON frames of the form
    {"event": ..., "data": {...}} are routed to the MatchmakingService.
    """

    def __init__(self, service, host="0.0.0.0", port=DEFAULT_PORT, **server_options):
        self.service = service
        self.host = host
        self.port = port
        self.server_options = server_options
        self._ids = count(1)
        self._server = None
        self._handlers = {
            "pairToReceive": self._on_pair_to_receive,
            "pairToSend": self._on_pair_to_send,
            "confirm": self._on_confirm,
            "confirmFailed": self._on_confirm_failed,
            "transferDone": self._on_transfer_done,
        }

    # --- Lifecycle ---

    async def start(self):
        self._server = await serve(
            self.handle_peer,
            self.host,
            self.port,
            process_request=self.process_request,
            **self.server_options,
        )
        # Port 0 binds an ephemeral port; report the real one.
        self.port = self._server.sockets[0].getsockname()[1]
        logger.info(f"WebSocket server started on {self.host}:{self.port}")
        return self._server

    async def stop(self):
        if self._server:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
            logger.info("WebSocket server stopped.")

    # --- HTTP ---

    def process_request(self, connection, request):
        """Serve the status page; let every other request continue the handshake."""
        if request.path == "/status":
            body = json.dumps(self.service.snapshot()) + "\n"
            return connection.respond(HTTPStatus.OK, body)
        return None

    # --- Sessions ---

    async def handle_peer(self, websocket):
        peer_id = next(self._ids)
        channel = WebSocketChannel(websocket, peer_id)
        writer = asyncio.create_task(channel.run(), name=f"Writer-{peer_id}")
        address = tuple(websocket.remote_address[:2]) if websocket.remote_address else None

        channel.emit("setID", peer_id)
        logger.info(f"New user connected.. [ID] {peer_id} assigned ({address})")

        try:
            async for message in websocket:
                self.dispatch(peer_id, channel, address, message)
        except ConnectionClosedError as e:
            logger.warning(f"Connection for peer {peer_id} closed with error: {e}")
        finally:
            self.service.disconnect(peer_id)
            writer.cancel()
            logger.info(f"User disconnected.. [ID] {peer_id}")

    def dispatch(self, peer_id, channel, address, message):
        """Decode one inbound frame and hand it to the matching event handler."""
        try:
            frame = json.loads(message)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Invalid JSON from peer {peer_id}: {e}")
            return

        if not isinstance(frame, dict):
            logger.warning(f"Ignoring non-object frame from peer {peer_id}")
            return

        event = frame.get("event")
        if not isinstance(event, str):
            logger.warning(f"Ignoring frame from peer {peer_id}: event name is not a string")
            return
        data = frame.get("data")
        if data is None:
            data = {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring '{event}' from peer {peer_id}: payload is not an object")
            return

        handler = self._handlers.get(event)
        if handler is None:
            logger.warning(f"Unknown event '{event}' from peer {peer_id}")
            return
        logger.debug(f"Peer {peer_id} -> {event} {data}")
        try:
            handler(peer_id, channel, address, data)
        except InvalidFrame as e:
            logger.warning(f"Ignoring '{event}' from peer {peer_id}: {e}")

    # --- Event handlers ---

    def _on_pair_to_receive(self, peer_id, channel, address, data):
        self.service.pair_to_receive(_identity(data, "id", peer_id), channel, data, address)

    def _on_pair_to_send(self, peer_id, channel, address, data):
        self.service.pair_to_send(_identity(data, "id", peer_id), channel, data, address)

    def _on_confirm(self, peer_id, channel, address, data):
        self.service.confirm(_identity(data, "myID", peer_id), data.get("partnerID"))

    def _on_confirm_failed(self, peer_id, channel, address, data):
        self.service.confirm_failed(_identity(data, "myID", peer_id))

    def _on_transfer_done(self, peer_id, channel, address, data):
        self.service.transfer_done(_identity(data, "myID", peer_id))
