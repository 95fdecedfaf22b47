"""
UVC Extension Unit protocol layer for the Elgato 4K X.

The 4K X exposes XU #4 (GUID 961073c7-49f7-44f2-ab42-e940405940c2) on
interface 0 and uses it as an opaque byte channel with two registers:

  • selector 0x02 "trigger": announces the byte count of the next payload,
    and doubles as a status register after a command.
  • selector 0x01 "value": receives the payload, then holds the response.

Write (every setting change)::

    SET_CUR sel 2   u16 LE payload length
    SET_CUR sel 1   payload

Probe / read (observed in Windows captures)::

    SET_CUR sel 2   trigger
    SET_CUR sel 1   probe payload
    GET_LEN sel 2 + GET_CUR sel 2   status poll, result unused
    GET_LEN sel 1   current response length (changes after every SET_CUR)
    GET_CUR sel 1   response, read at exactly that length

The status poll is part of the sequence: skipping it gives the device no
time to prepare the response and GET_LEN comes back stale.
"""

from __future__ import annotations

import logging
import struct
from typing import Optional

from .at_command import build_at_frame, build_probe_frame
from .constants import (
    REQUEST_TYPE_CLASS_IN,
    REQUEST_TYPE_CLASS_OUT,
    USB_TIMEOUT_MS,
    UVC_ENTITY_ID,
    UVC_GET_CUR,
    UVC_GET_LEN,
    UVC_INTERFACE,
    UVC_SELECTOR_TRIGGER,
    UVC_SELECTOR_VALUE,
    UVC_SET_CUR,
)
from .errors import UvcTransferError
from .transport import UsbTransport

log = logging.getLogger(__name__)

# wIndex is the same for every request: entity in the high byte
_W_INDEX = (UVC_ENTITY_ID << 8) | UVC_INTERFACE


def _w_value(selector: int) -> int:
    return selector << 8


def length_trigger(payload: bytes) -> bytes:
    """Trigger announcing *payload*'s length as u16 LE."""
    return struct.pack('<H', len(payload))


class UvcExtensionUnit:
    """Extension Unit register access for the 4K X.

    Stateless apart from the transport: GET_LEN is re-queried before every
    GET_CUR.  Any failed step raises :class:`UvcTransferError` naming that
    step, with the backend error as ``__cause__``; nothing is retried.
    """

    def __init__(self, transport: UsbTransport, timeout_ms: int = USB_TIMEOUT_MS):
        self.transport = transport
        self.timeout_ms = timeout_ms

    # -- Low-level register access ---------------------------------------

    def _set_cur(self, selector: int, data: bytes, step: str) -> None:
        log.debug("SET_CUR sel=0x%02x len=%d: %s", selector, len(data), data.hex())
        try:
            self.transport.control_write(
                REQUEST_TYPE_CLASS_OUT, UVC_SET_CUR,
                _w_value(selector), _W_INDEX, data, self.timeout_ms,
            )
        except OSError as e:
            raise UvcTransferError(f"{step} SET_CUR failed: {e}") from e

    def _get_cur(self, selector: int, length: int, step: str) -> bytes:
        try:
            data = self.transport.control_read(
                REQUEST_TYPE_CLASS_IN, UVC_GET_CUR,
                _w_value(selector), _W_INDEX, length, self.timeout_ms,
            )
        except OSError as e:
            raise UvcTransferError(f"{step} GET_CUR failed: {e}") from e
        log.debug("GET_CUR sel=0x%02x want=%d got=%d", selector, length, len(data))
        return bytes(data[:length])

    def send_trigger(self, data: bytes) -> None:
        """SET_CUR on the trigger selector."""
        self._set_cur(UVC_SELECTOR_TRIGGER, data, "trigger")

    def send_payload(self, payload: bytes) -> None:
        """SET_CUR on the value selector."""
        self._set_cur(UVC_SELECTOR_VALUE, payload, "payload")

    def get_len(self, selector: int) -> int:
        """GET_LEN on *selector*: the response length the device holds now."""
        try:
            buf = self.transport.control_read(
                REQUEST_TYPE_CLASS_IN, UVC_GET_LEN,
                _w_value(selector), _W_INDEX, 2, self.timeout_ms,
            )
        except OSError as e:
            raise UvcTransferError(f"GET_LEN failed: {e}") from e
        if len(buf) < 2:
            raise UvcTransferError(f"GET_LEN returned {len(buf)} bytes")
        return struct.unpack('<H', bytes(buf[:2]))[0]

    def read_raw(self, length: int) -> bytes:
        """GET_CUR on the value selector with an explicit length."""
        return self._get_cur(UVC_SELECTOR_VALUE, length, "value")

    # -- Protocol sequences -------------------------------------------------

    def write(self, payload: bytes, trigger: Optional[bytes] = None) -> None:
        """Two-step write: trigger, then payload.

        The trigger defaults to the payload length (u16 LE), which is what
        the Windows driver sends for both ``a1`` setting payloads and AT
        commands.  A failed trigger aborts before the payload is sent.
        """
        self.send_trigger(length_trigger(payload) if trigger is None else trigger)
        self.send_payload(payload)

    def read_value(self) -> bytes:
        """GET_LEN then GET_CUR on the value selector."""
        return self.read_raw(self.get_len(UVC_SELECTOR_VALUE))

    def poll_status(self) -> bytes:
        """GET_LEN then GET_CUR on the trigger selector."""
        length = self.get_len(UVC_SELECTOR_TRIGGER)
        return self._get_cur(UVC_SELECTOR_TRIGGER, length, "status")

    def probe(self, payload: bytes) -> bytes:
        """Write *payload*, poll status, and read the response back."""
        self.write(payload)
        self.poll_status()
        return self.read_value()

    # -- AT commands -------------------------------------------------------

    def send_at_command(self, cmd_id: int, input_data: bytes = b'') -> bytes:
        """Send a framed AT command and return the device's response.

        The full probe runs, not just the write: the device does not
        commit some AT writes until the response has been read.
        """
        return self.probe(build_at_frame(cmd_id, input_data))

    def read_at_command(self, sub_cmd: int) -> bytes:
        """0x06-family status probe.  Response is typically 133 bytes."""
        return self.probe(build_probe_frame(sub_cmd))

    def read_at_command_param(self, sub_cmd: int, param: int) -> bytes:
        """0x07-family status probe with one parameter byte."""
        return self.probe(build_probe_frame(sub_cmd, param))
