"""
USB control-transfer transport for the Elgato 4K X / 4K S.

Both capture cards are driven exclusively through EP0 control transfers:
the 4K X through UVC Extension Unit requests on interface 0, the 4K S
through HID SET_REPORT/GET_REPORT on interface 7.

The ``UsbTransport`` ABC abstracts the raw USB I/O so that:
  • Tests can inject a mock transport (no real hardware needed).
  • ``PyUsbTransport`` provides real USB via pyusb (libusb backend).

Linux dependency:
  • pyusb:  ``pip install pyusb``  (needs libusb1, ``apt install libusb-1.0-0``)
"""

from __future__ import annotations

import array
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import usb.core
import usb.util

from .constants import (
    HID_INTERFACE,
    PIDS_4KS,
    PIDS_4KX,
    USB_TIMEOUT_MS,
    UVC_INTERFACE,
    VENDOR_ID,
)
from .errors import DeviceNotFoundError, TransportError
from .settings import DeviceModel

log = logging.getLogger(__name__)


# =========================================================================
# Abstract control transport
# =========================================================================

class UsbTransport(ABC):
    """Abstract synchronous control transport, mockable for testing.

    Implementations never retry.  Failures surface as the backend's own
    exception (``usb.core.USBError`` for pyusb); the protocol layers wrap
    them with the name of the step that failed.
    """

    @abstractmethod
    def open(self) -> None:
        """Open the USB device and claim the control interface."""

    @abstractmethod
    def close(self) -> None:
        """Release the interface and close."""

    @abstractmethod
    def control_write(self, request_type: int, request: int, value: int,
                      index: int, data: bytes,
                      timeout: int = USB_TIMEOUT_MS) -> int:
        """Host-to-device control transfer.  Returns bytes transferred."""

    @abstractmethod
    def control_read(self, request_type: int, request: int, value: int,
                     index: int, length: int,
                     timeout: int = USB_TIMEOUT_MS,
                     prefill: bytes = b'') -> bytes:
        """Device-to-host control transfer.  Returns the bytes received.

        *prefill* seeds the start of the receive buffer (HID GET_REPORT
        expects the report id there).
        """

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether the device is currently open."""


# =========================================================================
# Device discovery
# =========================================================================

@dataclass
class FoundDevice:
    """A supported capture card located on the bus."""
    model: DeviceModel
    pid: int
    speed_desc: str

    @property
    def interface(self) -> int:
        return UVC_INTERFACE if self.model is DeviceModel.ELGATO_4KX else HID_INTERFACE


def classify_pid(pid: int) -> Optional[FoundDevice]:
    """Map an Elgato product id to its model, or None if unknown."""
    if pid in PIDS_4KX:
        return FoundDevice(DeviceModel.ELGATO_4KX, pid, PIDS_4KX[pid])
    if pid in PIDS_4KS:
        return FoundDevice(DeviceModel.ELGATO_4KS, pid, PIDS_4KS[pid])
    return None


def find_capture_card() -> FoundDevice:
    """Return the first supported capture card on the bus.

    Raises:
        DeviceNotFoundError: If no known PID is present.
    """
    for dev in usb.core.find(find_all=True, idVendor=VENDOR_ID) or []:
        found = classify_pid(dev.idProduct)
        if found is not None:
            log.debug("Found %s (%04x:%04x, %s)",
                      found.model, VENDOR_ID, found.pid, found.speed_desc)
            return found
    raise DeviceNotFoundError()


# =========================================================================
# Real transport: PyUSB  (libusb backend)
# =========================================================================

class PyUsbTransport(UsbTransport):
    """Real control transport using pyusb (libusb backend).

    Open sequence:
    1. Find device by VID/PID
    2. Detach the kernel driver from the interface if one is bound
    3. Claim the interface

    Close releases the interface and re-binds the kernel driver when one
    was detached on open.

    Requires: ``pip install pyusb`` + ``apt install libusb-1.0-0``
    """

    def __init__(self, vid: int, pid: int, interface: int):
        self._vid = vid
        self._pid = pid
        self._interface = interface
        self._device: Any = None
        self._is_open = False
        self._reattach = False

    def open(self) -> None:
        """Find USB device and claim the interface."""
        self._device = usb.core.find(idVendor=self._vid, idProduct=self._pid)
        if self._device is None:
            raise DeviceNotFoundError(
                f"USB device not found: VID={self._vid:#06x} PID={self._pid:#06x}"
            )

        try:
            if self._device.is_kernel_driver_active(self._interface):
                self._device.detach_kernel_driver(self._interface)
                self._reattach = True
                log.info("Temporarily detached kernel driver from interface %d",
                         self._interface)

            usb.util.claim_interface(self._device, self._interface)
        except usb.core.USBError as e:
            self.close()
            raise TransportError(
                f"Failed to claim interface {self._interface}: {e} "
                "(try running with sudo)"
            ) from e
        log.debug("Claimed interface %d", self._interface)
        self._is_open = True

    def close(self) -> None:
        """Release interface and re-attach the kernel driver."""
        if self._device is not None:
            try:
                usb.util.release_interface(self._device, self._interface)
            except usb.core.USBError as e:
                log.warning("Failed to release interface %d: %s", self._interface, e)
            if self._reattach:
                # Fails on platforms without kernel drivers
                try:
                    self._device.attach_kernel_driver(self._interface)
                except usb.core.USBError as e:
                    log.debug("Kernel driver reattach: %s", e)
            usb.util.dispose_resources(self._device)
            self._device = None
        self._reattach = False
        self._is_open = False

    def control_write(self, request_type: int, request: int, value: int,
                      index: int, data: bytes,
                      timeout: int = USB_TIMEOUT_MS) -> int:
        if not self._is_open or self._device is None:
            raise RuntimeError("Transport not open")
        return self._device.ctrl_transfer(
            request_type, request, value, index, data, timeout)

    def control_read(self, request_type: int, request: int, value: int,
                     index: int, length: int,
                     timeout: int = USB_TIMEOUT_MS,
                     prefill: bytes = b'') -> bytes:
        if not self._is_open or self._device is None:
            raise RuntimeError("Transport not open")
        if not prefill:
            data = self._device.ctrl_transfer(
                request_type, request, value, index, length, timeout)
            return bytes(data)
        buf = array.array('B', prefill[:length].ljust(length, b'\x00'))
        received = self._device.ctrl_transfer(
            request_type, request, value, index, buf, timeout)
        return bytes(buf[:received])

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def pid(self) -> int:
        return self._pid

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *exc):
        self.close()
