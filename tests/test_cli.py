"""
Tests for cli -- elgato4k command-line argument parsing and dispatch.

Tests cover:
- main() with no args (prints help, returns 0)
- --version flag
- Setting options collected in command-line order, --edid-range alias
- Value parsing errors → InvalidArgumentError, exit code 1
- --status / --firmware-version dispatch
- Device errors printed to stderr with exit code 1
- Update check skipped with --no-update-check
- Logging level from -v count
"""

import io
import logging
import unittest
from unittest.mock import MagicMock, patch

from elgato4k.cli import build_parser, main, parse_settings, setup_logging
from elgato4k.controller import CaptureCard
from elgato4k.errors import DeviceNotFoundError, InvalidArgumentError, UnsupportedFeatureError
from elgato4k.settings import (
    AudioInput,
    DeviceModel,
    EdidRangePolicy,
    EdidSource,
    HdrToneMapping,
    UsbSpeed,
)
from elgato4k.status import DeviceStatus, Known

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _mock_card(model=DeviceModel.ELGATO_4KX, pid=0x009b):
    """Create a mock CaptureCard usable as a context manager."""
    card = MagicMock(spec=CaptureCard)
    card.model = model
    card.pid = pid
    card.speed_desc = "10Gbps / SuperSpeed+"
    card.__enter__.return_value = card
    return card


class _CliTest(unittest.TestCase):
    """Silence the update check and capture stdout/stderr."""

    def setUp(self):
        self.stdout = io.StringIO()
        self.stderr = io.StringIO()
        for p in (patch('elgato4k.cli._report_update'),
                  patch('sys.stdout', self.stdout),
                  patch('sys.stderr', self.stderr),
                  patch('elgato4k.conf.get_usb_timeout_ms', return_value=1000)):
            p.start()
            self.addCleanup(p.stop)

    def _run(self, *argv, card=None):
        card = card or _mock_card()
        with patch.object(CaptureCard, 'open', return_value=card) as mock_open:
            rc = main(list(argv))
        return rc, card, mock_open


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

class TestParser(unittest.TestCase):

    def test_settings_keep_order(self):
        args = build_parser().parse_args(['--hdr-map', 'on', '--hdmi-range', 'full', '--edid-source', 'display'])
        self.assertEqual(parse_settings(args.settings),
                         [HdrToneMapping.ON, EdidRangePolicy.EXPAND, EdidSource.DISPLAY])

    def test_edid_range_alias(self):
        args = build_parser().parse_args(['--edid-range', 'shrink'])
        self.assertEqual(parse_settings(args.settings), [EdidRangePolicy.SHRINK])

    def test_no_settings(self):
        args = build_parser().parse_args([])
        self.assertEqual(args.settings, [])

    def test_invalid_value(self):
        args = build_parser().parse_args(['--edid-range', 'invalid'])
        with self.assertRaises(InvalidArgumentError) as ctx:
            parse_settings(args.settings)
        self.assertEqual(ctx.exception.arg, '--hdmi-range')
        self.assertEqual(str(ctx.exception),
                         "Invalid value 'invalid' for --hdmi-range.\nValid values: expand, shrink, auto")

    def test_status_and_firmware_exclusive(self):
        with patch('sys.stderr', io.StringIO()), self.assertRaises(SystemExit):
            build_parser().parse_args(['--status', '--firmware-version'])

    def test_missing_value(self):
        with patch('sys.stderr', io.StringIO()), self.assertRaises(SystemExit):
            build_parser().parse_args(['--hdr-map'])


# ---------------------------------------------------------------------------
# main()
# ---------------------------------------------------------------------------

class TestMain(_CliTest):

    def test_no_args_prints_help(self):
        rc, _, mock_open = self._run()
        self.assertEqual(rc, 0)
        self.assertIn("usage: elgato4k", self.stdout.getvalue())
        mock_open.assert_not_called()

    def test_version_flag(self):
        with self.assertRaises(SystemExit) as ctx:
            main(['--version'])
        self.assertEqual(ctx.exception.code, 0)

    def test_apply_settings(self):
        rc, card, _ = self._run('--hdmi-range', 'expand', '--hdr-map', 'on')
        self.assertEqual(rc, 0)
        values = card.apply_all.call_args[0][0]
        self.assertEqual(values, [EdidRangePolicy.EXPAND, HdrToneMapping.ON])
        card.__exit__.assert_called_once()
        self.assertIn("All settings applied successfully!", self.stdout.getvalue())

    def test_announce_output(self):
        card = _mock_card()
        card.apply_all.side_effect = lambda values, announce: [announce(v) for v in values]
        self._run('--usb-speed', '10g', card=card)
        out = self.stdout.getvalue()
        self.assertIn("Setting USB speed to 10Gbps", out)
        self.assertIn("WARNING: Device will disconnect", out)

    def test_invalid_value_before_open(self):
        rc, _, mock_open = self._run('--audio-input', 'optical')
        self.assertEqual(rc, 1)
        self.assertIn("Error: Invalid value 'optical' for --audio-input", self.stderr.getvalue())
        mock_open.assert_not_called()

    def test_status(self):
        card = _mock_card()
        card.read_status.return_value = DeviceStatus(
            firmware_version="25.02.10", hdr_tone_mapping=Known(HdrToneMapping.ON))
        rc, _, _ = self._run('--status', card=card)
        self.assertEqual(rc, 0)
        out = self.stdout.getvalue()
        self.assertIn("Firmware version: 25.02.10", out)
        self.assertIn("HDR tone mapping: On", out)
        card.apply_all.assert_not_called()

    def test_firmware_version(self):
        card = _mock_card(DeviceModel.ELGATO_4KS, 0x00af)
        card.read_firmware_version.return_value = "25.0c.03"
        rc, _, _ = self._run('--firmware-version', card=card)
        self.assertEqual(rc, 0)
        self.assertIn("Firmware version: 25.0c.03", self.stdout.getvalue())

    def test_device_not_found(self):
        with patch.object(CaptureCard, 'open', side_effect=DeviceNotFoundError()):
            rc = main(['--status'])
        self.assertEqual(rc, 1)
        self.assertIn("Error: Elgato 4K X or 4K S not found", self.stderr.getvalue())

    def test_unsupported_feature(self):
        card = _mock_card()
        card.apply_all.side_effect = UnsupportedFeatureError("Audio input selection", "4K X")
        rc, _, _ = self._run('--audio-input', 'analog', card=card)
        self.assertEqual(rc, 1)
        self.assertIn("Error: Audio input selection is not supported on 4K X", self.stderr.getvalue())
        self.assertEqual(card.apply_all.call_args[0][0], [AudioInput.ANALOG])

    def test_timeout_from_config(self):
        with patch('elgato4k.conf.get_usb_timeout_ms', return_value=2500):
            _, _, mock_open = self._run('--usb-speed', '5g')
        mock_open.assert_called_once_with(timeout_ms=2500)

    def test_update_check_runs(self):
        import elgato4k.cli as cli
        self._run('--hdr-map', 'off')
        cli._report_update.assert_called_once()

    def test_update_check_disabled(self):
        import elgato4k.cli as cli
        self._run('--hdr-map', 'off', '--no-update-check')
        cli._report_update.assert_not_called()

    def test_usb_speed_value(self):
        _, card, _ = self._run('--usb-speed', '5gbps')
        self.assertEqual(card.apply_all.call_args[0][0], [UsbSpeed.FIVE_GBPS])


class TestSetupLogging(unittest.TestCase):

    @patch('logging.basicConfig')
    def test_levels(self, mock_config):
        setup_logging(0)
        self.assertEqual(mock_config.call_args[1]['level'], logging.WARNING)
        setup_logging(1)
        self.assertEqual(mock_config.call_args[1]['level'], logging.INFO)
        setup_logging(2)
        self.assertEqual(mock_config.call_args[1]['level'], logging.DEBUG)
        self.assertEqual(logging.getLogger('usb').level, logging.WARNING)


if __name__ == '__main__':
    unittest.main()
