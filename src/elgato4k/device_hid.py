"""
HID report protocol layer for the Elgato 4K S.

All communication uses 255-byte zero-padded reports with report id 0x06 on
interface 7.  Protocol details recovered from the decompiled
EGAVDeviceSupport.dll (CCamLinkSupport class).

Write packet::

    [06, 06, 06, 55, 02, sub_cmd, value, 0 × 248]      SET_REPORT (Output)

Settings other than EDID mode take effect only after a commit packet::

    [06, 06, 06, 55, 02, 13, 01, 0 × 248]

Read (ReadI2cData)::

    SET_REPORT (Output)  [06, 55, sub_cmd, data_len, 0 × 251]
    ~10 ms
    GET_REPORT (Input)   255 bytes, report id at [0], data after it
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from .constants import (
    HID_GET_REPORT,
    HID_INTER_PACKET_DELAY_S,
    HID_INTERFACE,
    HID_PACKET_SIZE,
    HID_READ_CMD,
    HID_READ_DELAY_S,
    HID_REPORT_ID,
    HID_REPORT_VALUE_INPUT,
    HID_REPORT_VALUE_OUTPUT,
    HID_SET_REPORT,
    REQUEST_TYPE_CLASS_IN,
    REQUEST_TYPE_CLASS_OUT,
    USB_TIMEOUT_MS,
)
from .errors import HidPacketSizeError, HidTransferError
from .transport import UsbTransport

log = logging.getLogger(__name__)


def build_read_request(cmd: int, sub_cmd: int, data_len: int) -> bytes:
    """Build the 255-byte read request ``[06, cmd, sub_cmd, data_len, 0…]``."""
    request = bytearray(HID_PACKET_SIZE)
    request[0] = HID_REPORT_ID
    request[1] = cmd
    request[2] = sub_cmd
    request[3] = data_len
    return bytes(request)


class HidReportDevice:
    """SET_REPORT / GET_REPORT access for the 4K S.

    Failed transfers raise :class:`HidTransferError` with the backend
    error as ``__cause__``; nothing is retried.
    """

    def __init__(self, transport: UsbTransport, timeout_ms: int = USB_TIMEOUT_MS):
        self.transport = transport
        self.timeout_ms = timeout_ms

    def _set_report(self, packet: bytes, step: str) -> None:
        log.debug("SET_REPORT %s: %s", step, packet[:8].hex())
        try:
            self.transport.control_write(
                REQUEST_TYPE_CLASS_OUT, HID_SET_REPORT,
                HID_REPORT_VALUE_OUTPUT, HID_INTERFACE, packet, self.timeout_ms,
            )
        except OSError as e:
            raise HidTransferError(f"{step} SET_REPORT failed: {e}") from e

    # -- Writes ------------------------------------------------------------

    def send_packet(self, packet: bytes) -> None:
        """Send one output report.  Must be exactly 255 bytes.

        Raises:
            HidPacketSizeError: Before any I/O, on a wrong-sized packet.
        """
        if len(packet) != HID_PACKET_SIZE:
            raise HidPacketSizeError(HID_PACKET_SIZE, len(packet))
        self._set_report(bytes(packet), "write")

    def send_two_packet(self, settings_pkt: bytes, commit_pkt: bytes) -> None:
        """Send a settings packet, wait, then the commit packet.

        If the first packet fails the commit is never sent.
        """
        self.send_packet(settings_pkt)
        time.sleep(HID_INTER_PACKET_DELAY_S)
        self.send_packet(commit_pkt)

    # -- Reads -------------------------------------------------------------

    def read_data(self, sub_cmd: int, data_len: int, cmd: int = HID_READ_CMD) -> bytes:
        """Request *data_len* bytes of *sub_cmd* and read them back.

        Returns the payload after the report id byte, truncated to what
        the device actually returned.  An empty result is "no data", not
        an error.
        """
        self._set_report(build_read_request(cmd, sub_cmd, data_len), "read request")

        time.sleep(HID_READ_DELAY_S)

        # Report id must already be in the buffer even though the transfer
        # is device-to-host.
        try:
            buf = self.transport.control_read(
                REQUEST_TYPE_CLASS_IN, HID_GET_REPORT,
                HID_REPORT_VALUE_INPUT, HID_INTERFACE, HID_PACKET_SIZE,
                self.timeout_ms, prefill=bytes([HID_REPORT_ID]),
            )
        except OSError as e:
            raise HidTransferError(f"GET_REPORT failed: {e}") from e

        log.debug("GET_REPORT sub=0x%02x got=%d", sub_cmd, len(buf))
        if len(buf) > 1:
            return bytes(buf[1:])
        return b''

    def read_byte(self, sub_cmd: int) -> Optional[int]:
        """Read a single-byte status field; None when the device sent nothing."""
        data = self.read_data(sub_cmd, 1)
        return data[0] if data else None
