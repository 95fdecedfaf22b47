"""
AT-command framing for the 4K X Extension Unit channel.

The ITE/Realtek bridge on the 4K X speaks "AT commands" internally.  Over
the Extension Unit every command, read or write, uses one framing
(CRosRTD2801Protocol::_sendATCommand in libRTK_IO)::

    [0xa1, length_indicator, 0x00, 0x00, cmd_id (u32 LE), input..., LRC]

    family byte       = cmd_type + 0xa0          (cmd_type 1 → 0xa1)
    length_indicator  = (len(cmd_id ‖ input) + 2) & 0x7f
    LRC               = two's complement of the sum of all preceding bytes

so every complete frame sums to zero modulo 256.

The short status probes are the same framing with a one-byte command id:
family 0x06 carries no input, family 0x07 carries one parameter byte.
The fixed setting payloads in :mod:`elgato4k.codec` are built here too.
"""

import struct
from typing import Optional

from .constants import XU_FAMILY_TAG

# Header bytes ahead of the command id: tag, length indicator, 2 reserved
AT_HEADER_SIZE = 4


def lrc_checksum(data: bytes) -> int:
    """Byte that makes ``sum(data + [lrc]) % 256 == 0``."""
    return (-sum(data)) & 0xFF


def verify_frame(frame: bytes) -> bool:
    """True when *frame* opens with the family tag and sums to zero."""
    return len(frame) > AT_HEADER_SIZE and frame[0] == XU_FAMILY_TAG \
        and sum(frame) & 0xFF == 0


def build_at_frame(cmd_id: int, input_data: bytes = b'') -> bytes:
    """Frame an AT command.

    Args:
        cmd_id: 32-bit command identifier, sent little-endian.
        input_data: Command input bytes (may be empty).

    Example, USB speed 10Gbps::

        build_at_frame(0x8e, bytes([1, 0, 0, 0, 3, 0, 0, 0]))
        → a1 0e 00 00 8e 00 00 00 01 00 00 00 03 00 00 00 LRC
    """
    if not 0 <= cmd_id <= 0xFFFFFFFF:
        raise ValueError(f"AT command id out of range: {cmd_id:#x}")
    data = struct.pack('<I', cmd_id) + bytes(input_data)
    length_indicator = (len(data) + 2) & 0x7F
    body = bytes([XU_FAMILY_TAG, length_indicator, 0x00, 0x00]) + data
    return body + bytes([lrc_checksum(body)])


def build_probe_frame(sub_cmd: int, param: Optional[int] = None) -> bytes:
    """Build a short status probe.

    Family 0x06 (9 bytes)::

        a1 06 00 00 sub 00 00 00 LRC

    Family 0x07 (10 bytes), when *param* is given::

        a1 07 00 00 sub 00 00 00 param LRC
    """
    if not 0 <= sub_cmd <= 0xFF:
        raise ValueError(f"probe sub-command out of range: {sub_cmd:#x}")
    if param is None:
        return build_at_frame(sub_cmd)
    return build_at_frame(sub_cmd, bytes([param & 0xFF]))
