"""
Capture card session: one open device, one operation per setting.

``CaptureCard`` owns the transport for its lifetime and picks the protocol
layer by model: the Extension Unit for the 4K X, HID reports for the 4K S.
Which setting exists on which model is answered by the codec's capability
table before anything is put on the wire.

Usage::

    with CaptureCard.open() as card:
        card.set_hdr_mapping(HdrToneMapping.ON)
        print(card.read_status())

Not thread-safe: callers share one card between threads at their own risk.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable, Iterable, Optional, TypeVar

from .codec import Delivery, Payload, check_supported, encode
from .constants import (
    HID_FIRMWARE_READ_LEN,
    HID_SUBCMD_AUDIO_INPUT,
    HID_SUBCMD_COLOR_RANGE,
    HID_SUBCMD_EDID_MODE,
    HID_SUBCMD_FIRMWARE_VERSION,
    HID_SUBCMD_HDR_TONEMAPPING,
    HID_SUBCMD_VIDEO_SCALER,
    PIDS_4KS,
    PIDS_4KX,
    SETTING_APPLY_DELAY_S,
    USB_TIMEOUT_MS,
    VENDOR_ID,
    XU_EDID_RANGE_READ_PARAM,
    XU_SUBCMD_EDID_RANGE_READ,
    XU_SUBCMD_FIRMWARE_VERSION,
    XU_SUBCMD_HDR_READ,
)
from .device_hid import HidReportDevice
from .device_uvc import UvcExtensionUnit
from .errors import TransportError, UnsupportedFeatureError
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
from .status import (
    CustomEdidReadback,
    DeviceStatus,
    EdidReadback,
    EdidSourceReadback,
    ReadValue,
    decode_audio_input,
    decode_color_range,
    decode_edid_mode,
    decode_edid_readback,
    decode_hdr,
    decode_video_scaler,
    decode_xu_color_range,
    decode_xu_hdr,
    format_firmware_version_4ks,
    format_firmware_version_4kx,
    usb_speed_from_pid,
)
from .transport import PyUsbTransport, UsbTransport, find_capture_card

log = logging.getLogger(__name__)

R = TypeVar("R")


class CaptureCard:
    """An open Elgato 4K X or 4K S.

    Args:
        transport: Opened control transport for the card's interface.
        model: Hardware variant, fixed for the session.
        pid: USB product id (on the 4K X it also tells the link speed).
        timeout_ms: Bound on every control transfer.
    """

    def __init__(self, transport: UsbTransport, model: DeviceModel, pid: int,
                 timeout_ms: int = USB_TIMEOUT_MS):
        self.transport = transport
        self.model = model
        self.pid = pid
        self._uvc: Optional[UvcExtensionUnit] = None
        self._hid: Optional[HidReportDevice] = None
        if model is DeviceModel.ELGATO_4KX:
            self._uvc = UvcExtensionUnit(transport, timeout_ms)
        else:
            self._hid = HidReportDevice(transport, timeout_ms)

    @classmethod
    def open(cls, timeout_ms: int = USB_TIMEOUT_MS) -> CaptureCard:
        """Find the first supported card on the bus and claim it.

        Raises:
            DeviceNotFoundError: No known card is connected.
        """
        found = find_capture_card()
        transport = PyUsbTransport(VENDOR_ID, found.pid, found.interface)
        transport.open()
        log.info("Opened Elgato %s (%s)", found.model, found.speed_desc)
        return cls(transport, found.model, found.pid, timeout_ms)

    def close(self) -> None:
        self.transport.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    @property
    def speed_desc(self) -> str:
        return {**PIDS_4KX, **PIDS_4KS}.get(self.pid, "unknown")

    # =====================================================================
    # Writes
    # =====================================================================

    def apply(self, value: Enum) -> None:
        """Write one setting value to the card.

        Raises:
            UnsupportedFeatureError: The setting doesn't exist on this model.
                Raised before any transfer.
            TransportError: A control transfer failed.  The message names
                the setting, ``__cause__`` is the backend error.
        """
        payload = encode(value, self.model)
        name = kind_of(value).value
        log.info("Setting %s: %s", name, value)

        try:
            self._send(payload)
        except TransportError as e:
            raise type(e)(f"{name}: {e}") from e.__cause__

    def _send(self, payload: Payload) -> None:
        if payload.delivery is Delivery.XU_WRITE:
            assert self._uvc is not None
            self._uvc.write(payload.packets[0])
        elif payload.delivery is Delivery.XU_AT_COMMAND:
            assert self._uvc is not None
            self._uvc.probe(payload.packets[0])
        elif payload.delivery is Delivery.HID_SINGLE:
            assert self._hid is not None
            self._hid.send_packet(payload.packets[0])
        else:
            assert self._hid is not None
            self._hid.send_two_packet(*payload.packets)

    def apply_all(self, values: Iterable[Enum],
                  announce: Optional[Callable[[Enum], None]] = None) -> None:
        """Apply several settings in order, spaced by the settle delay.

        Every value is checked against the model first, so an unsupported
        one fails the whole call before the first transfer.  *announce* is
        called with each value just before it is written.
        """
        values = list(values)
        for value in values:
            check_supported(self.model, kind_of(value))
        for i, value in enumerate(values):
            if i:
                time.sleep(SETTING_APPLY_DELAY_S)
            if announce is not None:
                announce(value)
            self.apply(value)

    def _apply_kind(self, kind: SettingKind, value: Enum) -> None:
        if kind_of(value) is not kind:
            raise TypeError(f"{value!r} is not a {kind.value} value")
        self.apply(value)

    def set_hdmi_range(self, policy: EdidRangePolicy) -> None:
        self._apply_kind(SettingKind.COLOR_RANGE, policy)

    def set_edid_source(self, source: EdidSource) -> None:
        self._apply_kind(SettingKind.EDID_SOURCE, source)

    def set_hdr_mapping(self, mode: HdrToneMapping) -> None:
        self._apply_kind(SettingKind.HDR_TONEMAPPING, mode)

    def set_custom_edid(self, mode: CustomEdidMode) -> None:
        """Toggle the custom EDID preset (4K X only)."""
        self._apply_kind(SettingKind.CUSTOM_EDID, mode)

    def set_audio_input(self, source: AudioInput) -> None:
        """Select the audio input (4K S only)."""
        self._apply_kind(SettingKind.AUDIO_INPUT, source)

    def set_video_scaler(self, mode: VideoScaler) -> None:
        """Enable or disable the video scaler (4K S only)."""
        self._apply_kind(SettingKind.VIDEO_SCALER, mode)

    def set_usb_speed(self, speed: UsbSpeed) -> None:
        """Force the USB link speed (4K X only).

        The card drops off the bus and re-enumerates with another PID, so
        this session is no longer usable afterwards.
        """
        self._apply_kind(SettingKind.USB_SPEED, speed)
        log.info("Device will re-enumerate; reconnect to continue")

    # =====================================================================
    # Reads
    # =====================================================================

    def read_firmware_version(self) -> str:
        """Firmware version as ``YY.MM.DD``, or a raw fallback string.

        Raises:
            TransportError: The read itself failed.
        """
        if self._uvc is not None:
            data = self._uvc.read_at_command(XU_SUBCMD_FIRMWARE_VERSION)
            log.debug("Firmware response: %s", data[:16].hex())
            return format_firmware_version_4kx(data)
        assert self._hid is not None
        data = self._hid.read_data(HID_SUBCMD_FIRMWARE_VERSION, HID_FIRMWARE_READ_LEN)
        log.debug("Firmware response: %s", data.hex())
        return format_firmware_version_4ks(data)

    def read_edid_state(self) -> Optional[EdidReadback]:
        """Read back the EDID register of the 4K X.

        Returns an ``EdidSourceReadback`` or ``CustomEdidReadback`` depending
        on what the device echoes, or None if the echo isn't recognized.
        """
        if self._uvc is None:
            raise UnsupportedFeatureError("EDID readback", str(self.model))
        return decode_edid_readback(self._uvc.read_value())

    def read_status(self) -> DeviceStatus:
        """Snapshot every readable setting.

        A field whose read fails is left as None and logged; only the
        firmware read propagates its error.
        """
        edid = None
        if self._uvc is not None:
            # Every probe overwrites the value register, so its EDID echo
            # is read before the first one.
            edid = self._read_field("EDID state", self.read_edid_state)

        status = DeviceStatus(firmware_version=self.read_firmware_version())
        if self._uvc is not None:
            self._read_status_4kx(status, edid)
        else:
            self._read_status_4ks(status)
        return status

    def _read_field(self, name: str, read: Callable[[], R]) -> Optional[R]:
        try:
            return read()
        except TransportError as e:
            log.warning("Could not read %s: %s", name, e)
            return None

    def _read_status_4kx(self, status: DeviceStatus, edid: Optional[EdidReadback]) -> None:
        uvc = self._uvc
        assert uvc is not None
        status.usb_speed = usb_speed_from_pid(self.pid)
        if isinstance(edid, EdidSourceReadback):
            status.edid_source = edid.source
        elif isinstance(edid, CustomEdidReadback):
            status.custom_edid = edid.status

        status.hdmi_color_range = self._read_field(
            "HDMI color range",
            lambda: decode_xu_color_range(uvc.read_at_command_param(
                XU_SUBCMD_EDID_RANGE_READ, XU_EDID_RANGE_READ_PARAM)))
        status.hdr_tone_mapping = self._read_field(
            "HDR tone mapping",
            lambda: decode_xu_hdr(uvc.read_at_command(XU_SUBCMD_HDR_READ)))

    def _read_hid_field(self, name: str, sub_cmd: int,
                        decode: Callable[[int], ReadValue]) -> Optional[ReadValue]:
        hid = self._hid
        assert hid is not None

        def read() -> Optional[ReadValue]:
            b = hid.read_byte(sub_cmd)
            return None if b is None else decode(b)
        return self._read_field(name, read)

    def _read_status_4ks(self, status: DeviceStatus) -> None:
        status.hdr_tone_mapping = self._read_hid_field(
            "HDR tone mapping", HID_SUBCMD_HDR_TONEMAPPING, decode_hdr)
        status.hdmi_color_range = self._read_hid_field(
            "HDMI color range", HID_SUBCMD_COLOR_RANGE, decode_color_range)
        status.edid_source = self._read_hid_field(
            "EDID source", HID_SUBCMD_EDID_MODE, decode_edid_mode)
        status.audio_input = self._read_hid_field(
            "audio input", HID_SUBCMD_AUDIO_INPUT, decode_audio_input)
        status.video_scaler = self._read_hid_field(
            "video scaler", HID_SUBCMD_VIDEO_SCALER, decode_video_scaler)
