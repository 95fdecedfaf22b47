"""
Tests for transport -- device discovery and the pyusb control transport.

Tests cover:
- classify_pid() for every known PID
- find_capture_card() bus scan with mocked usb.core.find
- PyUsbTransport open/close: kernel driver detach/reattach, claim/release
- control_write / control_read pass-through, report-id prefill
- Use before open
"""

import array
import unittest
from unittest.mock import MagicMock, patch

import usb.core

from elgato4k.errors import DeviceNotFoundError, TransportError
from elgato4k.settings import DeviceModel
from elgato4k.transport import PyUsbTransport, classify_pid, find_capture_card


def _usb_dev(pid, kernel_driver=False):
    dev = MagicMock()
    dev.idProduct = pid
    dev.is_kernel_driver_active.return_value = kernel_driver
    return dev


class TestClassifyPid(unittest.TestCase):

    def test_4kx(self):
        for pid in (0x009b, 0x009c, 0x009d):
            found = classify_pid(pid)
            self.assertIs(found.model, DeviceModel.ELGATO_4KX)
            self.assertEqual(found.interface, 0)

    def test_4ks(self):
        for pid in (0x00ae, 0x00af):
            found = classify_pid(pid)
            self.assertIs(found.model, DeviceModel.ELGATO_4KS)
            self.assertEqual(found.interface, 7)

    def test_unknown(self):
        self.assertIsNone(classify_pid(0x1234))


class TestFindCaptureCard(unittest.TestCase):

    @patch('usb.core.find')
    def test_skips_unknown_pids(self, mock_find):
        mock_find.return_value = [_usb_dev(0x0066), _usb_dev(0x00af)]
        found = find_capture_card()
        self.assertEqual(found.pid, 0x00af)
        self.assertEqual(found.speed_desc, "USB 3.0")
        mock_find.assert_called_once_with(find_all=True, idVendor=0x0fd9)

    @patch('usb.core.find')
    def test_not_found(self, mock_find):
        mock_find.return_value = []
        with self.assertRaises(DeviceNotFoundError) as ctx:
            find_capture_card()
        self.assertIn("Known PIDs", str(ctx.exception))


class TestPyUsbTransport(unittest.TestCase):

    def setUp(self):
        patches = {
            'find': patch('usb.core.find'),
            'claim': patch('usb.util.claim_interface'),
            'release': patch('usb.util.release_interface'),
            'dispose': patch('usb.util.dispose_resources'),
        }
        self.mocks = {name: p.start() for name, p in patches.items()}
        for p in patches.values():
            self.addCleanup(p.stop)

    def _open(self, kernel_driver=False):
        dev = _usb_dev(0x009b, kernel_driver)
        self.mocks['find'].return_value = dev
        t = PyUsbTransport(0x0fd9, 0x009b, 0)
        t.open()
        return t, dev

    def test_open_claims_interface(self):
        t, dev = self._open()
        self.assertTrue(t.is_open)
        self.mocks['claim'].assert_called_once_with(dev, 0)
        dev.detach_kernel_driver.assert_not_called()

    def test_kernel_driver_detached_and_reattached(self):
        t, dev = self._open(kernel_driver=True)
        dev.detach_kernel_driver.assert_called_once_with(0)
        t.close()
        self.mocks['release'].assert_called_once_with(dev, 0)
        dev.attach_kernel_driver.assert_called_once_with(0)
        self.mocks['dispose'].assert_called_once_with(dev)
        self.assertFalse(t.is_open)

    def test_no_reattach_without_detach(self):
        t, dev = self._open()
        t.close()
        dev.attach_kernel_driver.assert_not_called()

    def test_release_failure_logged(self):
        t, dev = self._open()
        self.mocks['release'].side_effect = usb.core.USBError("busy")
        with self.assertLogs('elgato4k.transport', level='WARNING'):
            t.close()
        self.mocks['dispose'].assert_called_once_with(dev)

    def test_device_missing(self):
        self.mocks['find'].return_value = None
        with self.assertRaises(DeviceNotFoundError):
            PyUsbTransport(0x0fd9, 0x009b, 0).open()

    def test_claim_failure(self):
        dev = _usb_dev(0x00af, kernel_driver=True)
        self.mocks['find'].return_value = dev
        self.mocks['claim'].side_effect = usb.core.USBError("Access denied")
        t = PyUsbTransport(0x0fd9, 0x00af, 7)
        with self.assertRaises(TransportError) as ctx:
            t.open()
        self.assertIsInstance(ctx.exception.__cause__, usb.core.USBError)
        dev.attach_kernel_driver.assert_called_once_with(7)
        self.assertFalse(t.is_open)

    def test_control_write(self):
        t, dev = self._open()
        dev.ctrl_transfer.return_value = 2
        self.assertEqual(t.control_write(0x21, 0x01, 0x0200, 0x0400, b'\x0b\x00', 1000), 2)
        dev.ctrl_transfer.assert_called_once_with(0x21, 0x01, 0x0200, 0x0400, b'\x0b\x00', 1000)

    def test_control_read(self):
        t, dev = self._open()
        dev.ctrl_transfer.return_value = array.array('B', [0x85, 0x00])
        self.assertEqual(t.control_read(0xA1, 0x85, 0x0100, 0x0400, 2, 1000), b'\x85\x00')
        dev.ctrl_transfer.assert_called_once_with(0xA1, 0x85, 0x0100, 0x0400, 2, 1000)

    def test_control_read_prefill(self):
        t, dev = self._open()
        seen = {}

        def fake_transfer(request_type, request, value, index, buf, timeout):
            seen['first'] = buf[0]
            seen['len'] = len(buf)
            buf[1] = 0x01
            return 2
        dev.ctrl_transfer.side_effect = fake_transfer

        data = t.control_read(0xA1, 0x01, 0x0106, 7, 255, 1000, prefill=b'\x06')

        self.assertEqual(data, b'\x06\x01')
        self.assertEqual(seen, {'first': 0x06, 'len': 255})

    def test_use_before_open(self):
        t = PyUsbTransport(0x0fd9, 0x009b, 0)
        with self.assertRaises(RuntimeError):
            t.control_write(0x21, 0x01, 0, 0, b'')
        with self.assertRaises(RuntimeError):
            t.control_read(0xA1, 0x81, 0, 0, 2)

    def test_context_manager(self):
        dev = _usb_dev(0x009b)
        self.mocks['find'].return_value = dev
        with PyUsbTransport(0x0fd9, 0x009b, 0) as t:
            self.assertTrue(t.is_open)
        self.assertFalse(t.is_open)


if __name__ == '__main__':
    unittest.main()
