"""
Status decoding for the Elgato 4K X and 4K S.

Raw responses are turned into ``ReadValue`` = ``Known(value)`` or
``Unknown(raw_byte)``.  A response that doesn't match the expected layout
decodes to ``None``; nothing here raises on device data.

4K X (Extension Unit)
    Probe responses open with ``a1 80 <type> 00``.  HDR (probe 0x90) and
    color range (probe 0x91/param 0x01) carry their value at byte 4.
    Firmware (probe 0x77, type 0x81) carries ``YYMMDD`` at byte 4, as ASCII
    digits on the captures we have and as packed BCD on older ones.

    The value register read without a preceding probe echoes the last
    EDID-related AT write; byte 4 (the AT command id) says which one::

        a1 0a 00 00 4d 00 00 00 <source> 00 00 00 LRC      EDID source
        a1 0a 00 00 54 00 00 00 00 <preset> 80 00 LRC      custom EDID

4K S (HID)
    ReadI2cData returns one byte per setting, decoded by a small table.
    Firmware is 8 bytes, BCD ``YY MM DD`` at bytes 3-5 (DateThreeBytes).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, Optional, TypeVar, Union

from .codec import (
    HID_COLOR_RANGE_VALUES,
    HID_EDID_MODE_VALUES,
    HID_HDR_VALUES,
    HID_VIDEO_SCALER_VALUES,
    XU_COLOR_RANGE_VALUES,
    XU_EDID_SOURCE_VALUES,
)
from .constants import (
    AT_CMD_CUSTOM_EDID,
    AT_CMD_EDID_SOURCE,
    BCD_MAX_DAY,
    BCD_MAX_MONTH,
    PIDS_4KX,
    XU_FAMILY_TAG,
    XU_FIRMWARE_RESPONSE_TYPE,
    XU_RESPONSE_FAMILY,
)
from .settings import (
    AudioInput,
    EdidRangePolicy,
    EdidSource,
    HdrToneMapping,
    VideoScaler,
)

T = TypeVar("T")


# =========================================================================
# Read values
# =========================================================================

@dataclass(frozen=True)
class Known(Generic[T]):
    """A recognized, typed value."""
    value: T

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Unknown:
    """A byte the decoder has no mapping for."""
    raw: int

    def __str__(self) -> str:
        return f"Unknown (0x{self.raw:02x})"


ReadValue = Union[Known[T], Unknown]


class UsbSpeedStatus(Enum):
    """USB link mode of the 4K X, derived from its product id."""
    USB2 = 0x009d
    FIVE_GBPS = 0x009c
    TEN_GBPS = 0x009b

    def __str__(self) -> str:
        return _USB_SPEED_LABELS[self]


_USB_SPEED_LABELS = {
    UsbSpeedStatus.USB2: "USB 2.0 (480 Mbps)",
    UsbSpeedStatus.FIVE_GBPS: "5Gbps (SuperSpeed)",
    UsbSpeedStatus.TEN_GBPS: "10Gbps (SuperSpeed+)",
}


def usb_speed_from_pid(pid: int) -> Optional[ReadValue[UsbSpeedStatus]]:
    """The 4K X re-enumerates with one PID per speed mode; None if not a 4K X."""
    if pid not in PIDS_4KX:
        return None
    return Known(UsbSpeedStatus(pid))


@dataclass(frozen=True)
class CustomEdidStatus:
    """Custom EDID preset state; ``preset_index`` is meaningful only when on."""
    enabled: bool
    preset_index: int = 0

    def __str__(self) -> str:
        if not self.enabled:
            return "Off"
        return f"On (preset index {self.preset_index})"


# =========================================================================
# Single-byte tables
# =========================================================================

def _inverse(table: dict) -> dict[int, Enum]:
    return {byte: value for value, byte in table.items()}


def _table_decoder(table: dict[int, Enum]) -> Callable[[int], ReadValue]:
    def decode(b: int) -> ReadValue:
        if b in table:
            return Known(table[b])
        return Unknown(b)
    return decode


# Read tables mirror the write tables, except audio: the firmware reports
# 0x00/0x01 for embedded and 0x03 for analog (GetAudioInputSelection).
HID_AUDIO_INPUT_READ = {
    0x00: AudioInput.EMBEDDED,
    0x01: AudioInput.EMBEDDED,
    0x03: AudioInput.ANALOG,
}

decode_hdr = _table_decoder(_inverse(HID_HDR_VALUES))
decode_color_range = _table_decoder(_inverse(HID_COLOR_RANGE_VALUES))
decode_edid_mode = _table_decoder(_inverse(HID_EDID_MODE_VALUES))
decode_audio_input = _table_decoder(HID_AUDIO_INPUT_READ)
decode_video_scaler = _table_decoder(_inverse(HID_VIDEO_SCALER_VALUES))

decode_xu_color_range_byte = _table_decoder(_inverse(XU_COLOR_RANGE_VALUES))
decode_xu_edid_source_byte = _table_decoder(_inverse(XU_EDID_SOURCE_VALUES))


# =========================================================================
# 4K X probe responses
# =========================================================================

# Offset of the value byte after the a1 80 <type> 00 header
XU_RESPONSE_VALUE_OFFSET = 4


def matches_response_header(data: bytes, response_type: Optional[int] = None) -> bool:
    """Whether *data* is an ``a1 80 …`` response, optionally of *response_type*."""
    if len(data) <= XU_RESPONSE_VALUE_OFFSET or data[1] != XU_RESPONSE_FAMILY:
        return False
    return response_type is None or data[2] == response_type


def decode_xu_hdr(data: bytes) -> Optional[ReadValue[HdrToneMapping]]:
    """Probe 0x90 response: 0x01 On, 0x00 Off at byte 4."""
    if not matches_response_header(data):
        return None
    return decode_hdr(data[XU_RESPONSE_VALUE_OFFSET])


def decode_xu_color_range(data: bytes) -> Optional[ReadValue[EdidRangePolicy]]:
    """Probe 0x91 response; byte 4 mirrors the value byte of the 0x7c write."""
    if not matches_response_header(data):
        return None
    return decode_xu_color_range_byte(data[XU_RESPONSE_VALUE_OFFSET])


# -- EDID readback ---------------------------------------------------------

@dataclass(frozen=True)
class EdidSourceReadback:
    source: ReadValue[EdidSource]


@dataclass(frozen=True)
class CustomEdidReadback:
    status: CustomEdidStatus


EdidReadback = Union[EdidSourceReadback, CustomEdidReadback]

_EDID_READBACK_LEN = 10
_EDID_CMD_OFFSET = 4
_EDID_SOURCE_OFFSET = 8
_CUSTOM_EDID_PRESET_OFFSET = 9


def decode_edid_readback(data: bytes) -> Optional[EdidReadback]:
    """Classify an EDID register echo by its command byte.

    The same read can return either layout, so the shape is decided by the
    data and not by the caller.
    """
    if len(data) < _EDID_READBACK_LEN or data[0] != XU_FAMILY_TAG:
        return None
    cmd = data[_EDID_CMD_OFFSET]
    if cmd == AT_CMD_EDID_SOURCE:
        return EdidSourceReadback(decode_xu_edid_source_byte(data[_EDID_SOURCE_OFFSET]))
    if cmd == AT_CMD_CUSTOM_EDID:
        preset = data[_CUSTOM_EDID_PRESET_OFFSET]
        return CustomEdidReadback(CustomEdidStatus(preset != 0, preset))
    return None


# =========================================================================
# Firmware versions
# =========================================================================

def _hex(data: bytes, limit: int) -> str:
    return data[:limit].hex(' ')


def _valid_bcd_date(mm: int, dd: int) -> bool:
    return 1 <= mm <= BCD_MAX_MONTH and 1 <= dd <= BCD_MAX_DAY


# Header plus YY MM DD (BCD) or "YYMMDD" (ASCII)
_FW_4KX_BCD_MIN_LEN = XU_RESPONSE_VALUE_OFFSET + 3
_FW_4KX_ASCII_MIN_LEN = XU_RESPONSE_VALUE_OFFSET + 6


def _ascii_date(digits: str) -> Optional[str]:
    version = int(digits)
    yy, mm, dd = version // 10000, (version // 100) % 100, version % 100
    if 1 <= mm <= 12 and 1 <= dd <= 31:
        return f"{yy:02d}.{mm:02d}.{dd:02d}"
    return None


def format_firmware_version_4kx(data: bytes) -> str:
    """Render the probe 0x77 response (``a1 80 81 00`` + version) as ``YY.MM.DD``.

    ASCII ``"250210"`` and packed BCD ``25 02 10`` both give ``25.02.10``.
    A BCD year of 0x30-0x39 also reads as an ASCII digit, so a failed ASCII
    parse falls through to BCD.  Anything that parses neither way comes back
    as a raw string, never an error.
    """
    if len(data) < _FW_4KX_BCD_MIN_LEN or not matches_response_header(data, XU_FIRMWARE_RESPONSE_TYPE):
        return f"Unexpected response ({len(data)} bytes): {_hex(data, 16)}"

    body = data[XU_RESPONSE_VALUE_OFFSET:]
    end = 0
    while end < len(body) and 0x30 <= body[end] <= 0x39:
        end += 1
    digits = body[:end].decode('ascii')
    has_digits = bool(digits) and digits != "0"

    if has_digits and len(data) >= _FW_4KX_ASCII_MIN_LEN:
        version = _ascii_date(digits)
        if version is not None:
            return version

    # Packed BCD layout
    yy, mm, dd = body[0], body[1], body[2]
    if yy == 0 and mm == 0 and dd == 0:
        return f"Unknown (raw: {_hex(data, 16)})"
    if _valid_bcd_date(mm, dd):
        return f"{yy:02x}.{mm:02x}.{dd:02x}"
    if has_digits:
        return f"Raw: {digits}"
    return f"Raw: {_hex(data, 16)}"


def format_firmware_version_4ks(data: bytes) -> str:
    """Render the 8-byte HID firmware response, BCD at bytes 3-5.

    >>> format_firmware_version_4ks(bytes([0, 0, 0, 0x25, 0x0c, 0x03, 0, 0]))
    '25.0c.03'
    """
    if len(data) < 6:
        return f"Unexpected response ({len(data)} bytes): {_hex(data, 8)}"
    yy, mm, dd = data[3], data[4], data[5]
    if yy == 0 and mm == 0 and dd == 0:
        return "Unknown (no version reported)"
    if _valid_bcd_date(mm, dd):
        return f"{yy:02x}.{mm:02x}.{dd:02x}"
    return f"Raw: {_hex(data, 8)}"


# =========================================================================
# Snapshot
# =========================================================================

@dataclass
class DeviceStatus:
    """Everything readable from the attached card.

    A field is None when the model doesn't have that setting or when the
    device's answer couldn't be read or matched.
    """
    firmware_version: str
    usb_speed: Optional[ReadValue[UsbSpeedStatus]] = None
    hdmi_color_range: Optional[ReadValue[EdidRangePolicy]] = None
    hdr_tone_mapping: Optional[ReadValue[HdrToneMapping]] = None
    edid_source: Optional[ReadValue[EdidSource]] = None
    custom_edid: Optional[CustomEdidStatus] = None
    audio_input: Optional[ReadValue[AudioInput]] = None
    video_scaler: Optional[ReadValue[VideoScaler]] = None

    def lines(self) -> list[str]:
        rows = [
            ("USB speed", self.usb_speed),
            ("HDMI color range", self.hdmi_color_range),
            ("HDR tone mapping", self.hdr_tone_mapping),
            ("EDID source", self.edid_source),
            ("Custom EDID", self.custom_edid),
            ("Audio input", self.audio_input),
            ("Video scaler", self.video_scaler),
        ]
        out = [f"Firmware version: {self.firmware_version}"]
        out.extend(f"{label}: {value}" for label, value in rows if value is not None)
        return out

    def __str__(self) -> str:
        return "\n".join(self.lines())
