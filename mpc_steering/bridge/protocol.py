"""
Socket.IO framing used by the driving simulator.

Event frames arrive as text starting with "42": '4' marks a websocket message,
'2' an event. The body is a JSON array [event, payload].
"""
import json
import math

from mpc_steering.control.cycle import Telemetry
from mpc_steering.errors import InvalidInputError

EVENT_PREFIX = "42"
TELEMETRY = "telemetry"


def is_event(message):
    return len(message) > 2 and message.startswith(EVENT_PREFIX)


def has_data(message):
    """
    JSON body of an event frame, or "" when the frame carries no data.
    """
    if "null" in message:
        return ""
    b1 = message.find("[")
    b2 = message.rfind("}]")
    if b1 != -1 and b2 != -1:
        return message[b1:b2 + 2]
    return ""


def decode(message):
    """
    Returns:
        (event, payload), or None when the frame has no usable data
    """
    body = has_data(message)
    if not body:
        return None
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, list) or len(data) < 2 or not isinstance(data[0], str):
        return None
    return data[0], data[1]


def _number(payload, key):
    try:
        value = float(payload[key])
    except (KeyError, TypeError, ValueError):
        raise InvalidInputError(f"Telemetry field '{key}' missing or not a number") from None
    if not math.isfinite(value):
        raise InvalidInputError(f"Telemetry field '{key}' is not finite")
    return value


def _numbers(payload, key):
    values = payload.get(key)
    if not isinstance(values, list):
        raise InvalidInputError(f"Telemetry field '{key}' must be a list")
    try:
        return [float(v) for v in values]
    except (TypeError, ValueError):
        raise InvalidInputError(f"Telemetry field '{key}' holds non-numbers") from None


def parse_telemetry(payload):
    """Telemetry from a decoded payload; InvalidInputError when malformed."""
    if not isinstance(payload, dict):
        raise InvalidInputError("Telemetry payload must be an object")
    return Telemetry(
        ptsx=_numbers(payload, "ptsx"),
        ptsy=_numbers(payload, "ptsy"),
        x=_number(payload, "x"),
        y=_number(payload, "y"),
        psi=_number(payload, "psi"),
        speed=_number(payload, "speed"),
    )


def _frame(event, payload):
    return f'{EVENT_PREFIX}{json.dumps([event, payload], separators=(",", ":"))}'


def encode_steer(output):
    """Steer event for a CycleOutput."""
    return _frame("steer", {
        "steering_angle": output.command.steering,
        "throttle": output.command.throttle,
        "mpc_x": [float(v) for v in output.mpc_x],
        "mpc_y": [float(v) for v in output.mpc_y],
        "next_x": [float(v) for v in output.next_x],
        "next_y": [float(v) for v in output.next_y],
    })


def encode_manual():
    return _frame("manual", {})
