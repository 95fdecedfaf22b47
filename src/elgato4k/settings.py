"""Device setting values for the Elgato 4K X and 4K S.

Each setting is a small closed enum.  ``str()`` gives the user-facing label,
``parse()`` accepts the canonical value plus the aliases the command line
understands.  Byte encodings live in :mod:`elgato4k.codec`.
"""

from __future__ import annotations

from enum import Enum
from typing import TypeVar


class _Labeled:
    """Mixin: render an enum member by its label."""

    def __str__(self) -> str:
        return LABELS.get(self, self.name)  # type: ignore[attr-defined]


class DeviceModel(Enum):
    """Hardware variant; fixed for the life of a session."""
    ELGATO_4KX = "4K X"   # UVC Extension Unit control surface
    ELGATO_4KS = "4K S"   # HID report control surface

    def __str__(self) -> str:
        return self.value


class EdidRangePolicy(_Labeled, Enum):
    """EDID range policy, labelled "HDMI Color Range" by the vendor UI."""
    EXPAND = "expand"   # full range 0-255
    SHRINK = "shrink"   # limited range 16-235
    AUTO = "auto"


class EdidSource(_Labeled, Enum):
    DISPLAY = "display"     # passthrough monitor's EDID
    MERGED = "merged"       # combined EDID from all displays
    INTERNAL = "internal"   # capture card's built-in EDID


class HdrToneMapping(_Labeled, Enum):
    ON = "on"
    OFF = "off"


class CustomEdidMode(_Labeled, Enum):
    """Custom EDID preset toggle (4K X only).  Selects a preset, no upload."""
    ON = "on"
    OFF = "off"


class AudioInput(_Labeled, Enum):
    """Audio input source (4K S only, CCamLinkSupport::SetAudioInputSelection)."""
    EMBEDDED = "embedded"   # HDMI embedded audio
    ANALOG = "analog"       # line-in


class VideoScaler(_Labeled, Enum):
    """Video scaler (4K S only, CCamLinkSupport::SetVideoScalerEnabled)."""
    ON = "on"
    OFF = "off"


class UsbSpeed(_Labeled, Enum):
    """Forced USB speed mode (4K X only).  The card re-enumerates afterwards."""
    FIVE_GBPS = "5g"
    TEN_GBPS = "10g"


class SettingKind(Enum):
    """Closed set of writable setting families."""
    COLOR_RANGE = "HDMI color range"
    EDID_SOURCE = "EDID source selection"
    HDR_TONEMAPPING = "HDR tone mapping"
    CUSTOM_EDID = "Custom EDID"
    AUDIO_INPUT = "Audio input selection"
    VIDEO_SCALER = "Video scaler"
    USB_SPEED = "USB speed switching"


LABELS: dict = {
    EdidRangePolicy.EXPAND: "Expand (Full)",
    EdidRangePolicy.SHRINK: "Shrink (Limited)",
    EdidRangePolicy.AUTO: "Auto",
    EdidSource.DISPLAY: "Display",
    EdidSource.MERGED: "Merged",
    EdidSource.INTERNAL: "Internal",
    HdrToneMapping.ON: "On",
    HdrToneMapping.OFF: "Off",
    CustomEdidMode.ON: "On",
    CustomEdidMode.OFF: "Off",
    AudioInput.EMBEDDED: "Embedded (HDMI)",
    AudioInput.ANALOG: "Analog (line-in)",
    VideoScaler.ON: "On",
    VideoScaler.OFF: "Off",
    UsbSpeed.FIVE_GBPS: "5Gbps",
    UsbSpeed.TEN_GBPS: "10Gbps",
}

_ON_OFF_ALIASES = {"true": "on", "1": "on", "false": "off", "0": "off"}

# Extra spellings accepted on the command line → canonical value
ALIASES: dict[type, dict[str, str]] = {
    EdidRangePolicy: {"full": "expand", "limited": "shrink"},
    EdidSource: {},
    HdrToneMapping: _ON_OFF_ALIASES,
    CustomEdidMode: _ON_OFF_ALIASES,
    VideoScaler: _ON_OFF_ALIASES,
    AudioInput: {"hdmi": "embedded", "digital": "embedded",
                 "line": "analog", "linein": "analog"},
    UsbSpeed: {"5gbps": "5g", "5": "5g", "10gbps": "10g", "10": "10g"},
}

SETTING_KINDS: dict[type, SettingKind] = {
    EdidRangePolicy: SettingKind.COLOR_RANGE,
    EdidSource: SettingKind.EDID_SOURCE,
    HdrToneMapping: SettingKind.HDR_TONEMAPPING,
    CustomEdidMode: SettingKind.CUSTOM_EDID,
    AudioInput: SettingKind.AUDIO_INPUT,
    VideoScaler: SettingKind.VIDEO_SCALER,
    UsbSpeed: SettingKind.USB_SPEED,
}

E = TypeVar("E", bound=Enum)


def parse(enum_cls: type[E], text: str) -> E:
    """Parse a case-insensitive value or alias into *enum_cls*.

    Raises:
        ValueError: If *text* names no member.
    """
    key = text.strip().lower()
    key = ALIASES.get(enum_cls, {}).get(key, key)
    return enum_cls(key)


def valid_values(enum_cls: type[Enum]) -> str:
    """Comma-separated canonical values, e.g. ``"expand, shrink, auto"``."""
    return ", ".join(m.value for m in enum_cls)


def kind_of(value: Enum) -> SettingKind:
    """Setting family of a value, e.g. ``HdrToneMapping.ON`` → HDR_TONEMAPPING."""
    try:
        return SETTING_KINDS[type(value)]
    except KeyError:
        raise TypeError(f"{value!r} is not a device setting value") from None
