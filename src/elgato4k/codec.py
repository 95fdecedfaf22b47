"""
Setting codec: abstract setting values → exact device payloads.

Pure and static.  Every payload is built once at import and looked up
afterwards, so the same value always yields the same bytes.

4K X (Extension Unit)
    Each setting payload is itself an AT frame (see :mod:`.at_command`),
    which is why the captured byte strings all sum to zero mod 256::

        HDR on        a1 07 00 00 1f 00 00 00 01 38
        range auto    a1 08 00 00 7c 00 00 00 01 00 da
        EDID display  a1 0a 00 00 4d 00 00 00 01 00 00 00 07
        custom EDID   a1 0a 00 00 54 00 00 00 00 01 80 00 80

    USB speed goes through the full AT command probe (cmd 0x8e).

4K S (HID)
    255-byte packet ``06 06 06 55 02 <sub> <value> 0…``.  All settings
    except EDID mode are followed by the commit packet.

The per-model capability table (``CAPABILITIES``) is the single place that
says which setting exists on which model.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .at_command import build_at_frame
from .constants import (
    AT_CMD_CUSTOM_EDID,
    AT_CMD_EDID_RANGE,
    AT_CMD_EDID_SOURCE,
    AT_CMD_HDR_TONEMAPPING,
    AT_CMD_SET_USB_SPEED,
    HID_PACKET_SIZE,
    HID_SUBCMD_AUDIO_INPUT,
    HID_SUBCMD_COLOR_RANGE,
    HID_SUBCMD_COMMIT,
    HID_SUBCMD_EDID_MODE,
    HID_SUBCMD_HDR_TONEMAPPING,
    HID_SUBCMD_VIDEO_SCALER,
    HID_WRITE_HEADER,
)
from .errors import UnsupportedFeatureError
from .settings import (
    AudioInput,
    CustomEdidMode,
    DeviceModel,
    EdidRangePolicy,
    EdidSource,
    HdrToneMapping,
    SettingKind,
    UsbSpeed,
    VideoScaler,
    kind_of,
)


class Delivery(Enum):
    """How a payload is put on the wire."""
    XU_WRITE = "xu-write"            # trigger + payload SET_CURs
    XU_AT_COMMAND = "xu-at-command"  # trigger + payload + poll + read back
    HID_SINGLE = "hid-single"        # one SET_REPORT
    HID_COMMIT = "hid-commit"        # settings packet, 1 ms, commit packet


@dataclass(frozen=True)
class Payload:
    """Encoded setting: the packets in send order and how to send them."""
    delivery: Delivery
    packets: tuple[bytes, ...]


# =========================================================================
# Value bytes
# =========================================================================

# 4K X: value byte inside the AT input
XU_COLOR_RANGE_VALUES = {
    EdidRangePolicy.AUTO: 0x00,
    EdidRangePolicy.EXPAND: 0x03,
    EdidRangePolicy.SHRINK: 0x04,
}
XU_EDID_SOURCE_VALUES = {
    EdidSource.DISPLAY: 0x01,
    EdidSource.MERGED: 0x04,
    EdidSource.INTERNAL: 0x00,
}
XU_HDR_VALUES = {HdrToneMapping.ON: 0x01, HdrToneMapping.OFF: 0x00}
XU_CUSTOM_EDID_VALUES = {CustomEdidMode.OFF: 0x00, CustomEdidMode.ON: 0x01}

# 4K S: value byte at packet[6]
HID_COLOR_RANGE_VALUES = {
    EdidRangePolicy.AUTO: 0x00,
    EdidRangePolicy.EXPAND: 0x01,
    EdidRangePolicy.SHRINK: 0x02,
}
HID_EDID_MODE_VALUES = {
    EdidSource.MERGED: 0x00,
    EdidSource.DISPLAY: 0x01,
    EdidSource.INTERNAL: 0x02,
}
HID_HDR_VALUES = {HdrToneMapping.ON: 0x01, HdrToneMapping.OFF: 0x00}
HID_AUDIO_INPUT_VALUES = {AudioInput.EMBEDDED: 0x00, AudioInput.ANALOG: 0x01}
HID_VIDEO_SCALER_VALUES = {VideoScaler.ON: 0x01, VideoScaler.OFF: 0x00}


def usb_speed_at_input(speed: UsbSpeed) -> bytes:
    """8-byte input of AT command 0x8e (AT_USB_Set_Force_Speed).

    Bytes 0-3 are the constant 1 (u32 LE), bytes 4-7 the speed (u32 LE):
    0x00 = 5Gbps, 0x03 = 10Gbps (``-(param_2 != 0) & 3`` in
    SetUseUSBSpeed10G).
    """
    speed_value = 0x03 if speed is UsbSpeed.TEN_GBPS else 0x00
    return bytes([0x01, 0x00, 0x00, 0x00, speed_value, 0x00, 0x00, 0x00])


# =========================================================================
# Packet builders
# =========================================================================

def hid_write_packet(sub_cmd: int, value: int) -> bytes:
    """``[06 06 06 55 02] [sub_cmd] [value]`` zero-padded to 255 bytes."""
    pkt = bytearray(HID_PACKET_SIZE)
    pkt[:len(HID_WRITE_HEADER)] = HID_WRITE_HEADER
    pkt[len(HID_WRITE_HEADER)] = sub_cmd
    pkt[len(HID_WRITE_HEADER) + 1] = value
    return bytes(pkt)


HID_COMMIT_PACKET = hid_write_packet(HID_SUBCMD_COMMIT, 0x01)


def _xu(cmd_id: int, input_data: bytes) -> Payload:
    return Payload(Delivery.XU_WRITE, (build_at_frame(cmd_id, input_data),))


def _hid_commit(sub_cmd: int, value: int) -> Payload:
    return Payload(Delivery.HID_COMMIT, (hid_write_packet(sub_cmd, value), HID_COMMIT_PACKET))


def _build_4kx_table() -> dict[Enum, Payload]:
    table: dict[Enum, Payload] = {}
    for policy, v in XU_COLOR_RANGE_VALUES.items():
        table[policy] = _xu(AT_CMD_EDID_RANGE, bytes([0x01, v]))
    for source, v in XU_EDID_SOURCE_VALUES.items():
        table[source] = _xu(AT_CMD_EDID_SOURCE, bytes([v, 0x00, 0x00, 0x00]))
    for mode, v in XU_HDR_VALUES.items():
        table[mode] = _xu(AT_CMD_HDR_TONEMAPPING, bytes([v]))
    for custom, v in XU_CUSTOM_EDID_VALUES.items():
        table[custom] = _xu(AT_CMD_CUSTOM_EDID, bytes([0x00, v, 0x80, 0x00]))
    for speed in UsbSpeed:
        frame = build_at_frame(AT_CMD_SET_USB_SPEED, usb_speed_at_input(speed))
        table[speed] = Payload(Delivery.XU_AT_COMMAND, (frame,))
    return table


def _build_4ks_table() -> dict[Enum, Payload]:
    table: dict[Enum, Payload] = {}
    for policy, v in HID_COLOR_RANGE_VALUES.items():
        table[policy] = _hid_commit(HID_SUBCMD_COLOR_RANGE, v)
    # EDID mode applies without a commit packet
    for source, v in HID_EDID_MODE_VALUES.items():
        table[source] = Payload(Delivery.HID_SINGLE, (hid_write_packet(HID_SUBCMD_EDID_MODE, v),))
    for mode, v in HID_HDR_VALUES.items():
        table[mode] = _hid_commit(HID_SUBCMD_HDR_TONEMAPPING, v)
    for source, v in HID_AUDIO_INPUT_VALUES.items():
        table[source] = _hid_commit(HID_SUBCMD_AUDIO_INPUT, v)
    for scaler, v in HID_VIDEO_SCALER_VALUES.items():
        table[scaler] = _hid_commit(HID_SUBCMD_VIDEO_SCALER, v)
    return table


PAYLOADS: dict[DeviceModel, dict[Enum, Payload]] = {
    DeviceModel.ELGATO_4KX: _build_4kx_table(),
    DeviceModel.ELGATO_4KS: _build_4ks_table(),
}

CAPABILITIES: dict[DeviceModel, frozenset[SettingKind]] = {
    model: frozenset(kind_of(value) for value in table)
    for model, table in PAYLOADS.items()
}


# =========================================================================
# Public API
# =========================================================================

def is_supported(model: DeviceModel, kind: SettingKind) -> bool:
    return kind in CAPABILITIES[model]


def check_supported(model: DeviceModel, kind: SettingKind) -> None:
    """Raise :class:`UnsupportedFeatureError` if *kind* is absent on *model*."""
    if not is_supported(model, kind):
        raise UnsupportedFeatureError(kind.value, str(model))


def encode(value: Enum, model: DeviceModel) -> Payload:
    """Payload for *value* on *model*.

    Raises:
        UnsupportedFeatureError: If the setting does not exist on *model*.
        TypeError: If *value* is not a setting value.
    """
    check_supported(model, kind_of(value))
    return PAYLOADS[model][value]
