"""
elgato4k - Elgato 4K X / 4K S controller for Linux

Changes capture card settings over USB control transfers, the way the
vendor's Windows software does:

- 4K X: UVC Extension Unit requests (interface 0), AT-command framing
- 4K S: HID SET_REPORT/GET_REPORT (interface 7), settings + commit packets

Usage:
    # As a library
    from elgato4k import CaptureCard, HdrToneMapping
    with CaptureCard.open() as card:
        card.set_hdr_mapping(HdrToneMapping.ON)
        print(card.read_status())

    # Command line
    sudo elgato4k --status
    sudo elgato4k --hdmi-range expand --hdr-map on
"""

from elgato4k.__version__ import __version__
from elgato4k.controller import CaptureCard
from elgato4k.errors import (
    DeviceNotFoundError,
    Elgato4kError,
    HidPacketSizeError,
    HidTransferError,
    InvalidArgumentError,
    TransportError,
    UnsupportedFeatureError,
    UvcTransferError,
)
from elgato4k.settings import (
    AudioInput,
    CustomEdidMode,
    DeviceModel,
    EdidRangePolicy,
    EdidSource,
    HdrToneMapping,
    SettingKind,
    UsbSpeed,
    VideoScaler,
)
from elgato4k.status import (
    CustomEdidStatus,
    DeviceStatus,
    Known,
    Unknown,
    UsbSpeedStatus,
)

__all__ = [
    "__version__",
    "CaptureCard",
    "DeviceModel",
    "EdidRangePolicy",
    "EdidSource",
    "HdrToneMapping",
    "CustomEdidMode",
    "AudioInput",
    "VideoScaler",
    "UsbSpeed",
    "SettingKind",
    "DeviceStatus",
    "CustomEdidStatus",
    "UsbSpeedStatus",
    "Known",
    "Unknown",
    "Elgato4kError",
    "DeviceNotFoundError",
    "TransportError",
    "UvcTransferError",
    "HidTransferError",
    "HidPacketSizeError",
    "UnsupportedFeatureError",
    "InvalidArgumentError",
]
