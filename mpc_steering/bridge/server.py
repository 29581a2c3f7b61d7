"""
WebSocket bridge between the driving simulator and the controller.

Each connection gets its own ControlCycle. Messages on a connection are handled
one at a time: the reply to a telemetry frame is sent before the next frame is
read.
"""
import asyncio
import logging

import websockets
from websockets.exceptions import ConnectionClosed

from mpc_steering.bridge import protocol
from mpc_steering.config.params import BRIDGE
from mpc_steering.control.cycle import ControlCycle
from mpc_steering.errors import InvalidInputError

logger = logging.getLogger(__name__)


class TelemetryBridge:
    """
    Attributes:
        config: ControllerConfig used for every session
        host, port: listening address
        actuation_delay: pause before each reply, emulating actuation lag
        solver_factory: optional callable returning a solver per session
    """

    def __init__(self, config, host=BRIDGE["host"], port=BRIDGE["port"],
                 actuation_delay=BRIDGE["actuation_delay"], solver_factory=None):
        self.config = config
        self.host = host
        self.port = port
        self.actuation_delay = actuation_delay
        self.solver_factory = solver_factory

    def new_session(self):
        solver = self.solver_factory() if self.solver_factory else None
        return ControlCycle(self.config, solver=solver)

    def respond(self, cycle, message):
        """
        Reply for one inbound frame, or None when nothing should be sent.
        """
        if not isinstance(message, str) or not protocol.is_event(message):
            return None

        decoded = protocol.decode(message)
        if decoded is None:
            return protocol.encode_manual()

        event, payload = decoded
        if event != protocol.TELEMETRY:
            logger.debug("Ignoring event '%s'", event)
            return None

        try:
            telemetry = protocol.parse_telemetry(payload)
        except InvalidInputError as e:
            logger.warning("Malformed telemetry: %s", e)
            return protocol.encode_manual()

        output = cycle.run(telemetry)
        return protocol.encode_steer(output)

    async def handle(self, websocket):
        peer = getattr(websocket, "remote_address", None)
        logger.info("Connected %s", peer)
        cycle = self.new_session()
        try:
            async for message in websocket:
                reply = self.respond(cycle, message)
                if reply is None:
                    continue
                if self.actuation_delay > 0 and reply.startswith('42["steer"'):
                    await asyncio.sleep(self.actuation_delay)
                await websocket.send(reply)
        except ConnectionClosed:
            pass
        finally:
            logger.info("Disconnected %s", peer)

    async def serve(self, stop=None):
        """
        Listen until `stop` (an asyncio.Event) is set, or forever.
        """
        async with websockets.serve(self.handle, self.host, self.port):
            logger.info("Listening on %s:%d", self.host, self.port)
            if stop is None:
                await asyncio.Future()
            else:
                await stop.wait()


def run(config, host=BRIDGE["host"], port=BRIDGE["port"], actuation_delay=BRIDGE["actuation_delay"]):
    bridge = TelemetryBridge(config, host=host, port=port, actuation_delay=actuation_delay)
    try:
        asyncio.run(bridge.serve())
    except KeyboardInterrupt:
        logger.info("Exiting...")
