#!/usr/bin/env python3
"""
Elgato 4K X/S Controller - Command Line Interface

Entry point for the elgato4k-linux package.  Settings given on the command
line are applied in the order they appear.
"""

import argparse
import logging
import sys

from .__version__ import __version__
from .errors import Elgato4kError, InvalidArgumentError
from .settings import (
    AudioInput,
    CustomEdidMode,
    EdidRangePolicy,
    EdidSource,
    HdrToneMapping,
    SettingKind,
    UsbSpeed,
    VideoScaler,
    kind_of,
    parse,
    valid_values,
)

EPILOG = """
Examples:
    sudo elgato4k --status
    sudo elgato4k --firmware-version
    sudo elgato4k --hdr-map on
    sudo elgato4k --hdmi-range expand --hdr-map on
    sudo elgato4k --edid-source display --hdmi-range auto
    sudo elgato4k --custom-edid on
    sudo elgato4k --audio-input analog  # 4K S only
    sudo elgato4k --video-scaler on     # 4K S only
    sudo elgato4k --usb-speed 10g       # 4K X only

Supported devices:
    Elgato 4K X:  0fd9:009b (10Gbps), 0fd9:009c (5Gbps), 0fd9:009d (USB 2.0)
    Elgato 4K S:  0fd9:00af (USB 3.0), 0fd9:00ae (USB 2.0)
"""

# Wording used in "Setting <name> to <value>"
SETTING_NAMES = {
    SettingKind.COLOR_RANGE: "HDMI color range",
    SettingKind.EDID_SOURCE: "EDID source",
    SettingKind.HDR_TONEMAPPING: "HDR tone mapping",
    SettingKind.CUSTOM_EDID: "custom EDID",
    SettingKind.AUDIO_INPUT: "audio input",
    SettingKind.VIDEO_SCALER: "video scaler",
    SettingKind.USB_SPEED: "USB speed",
}


class _SettingAction(argparse.Action):
    """Collect ``(option, enum class, raw value)`` in command-line order."""

    def __init__(self, option_strings, dest, enum_cls=None, **kwargs):
        self.enum_cls = enum_cls
        super().__init__(option_strings, dest, **kwargs)

    def __call__(self, parser, namespace, values, option_string=None):
        pending = list(getattr(namespace, self.dest, None) or [])
        pending.append((self.option_strings[0], self.enum_cls, values))
        setattr(namespace, self.dest, pending)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="elgato4k",
        description="Elgato 4K X/S Controller - USB Control Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EPILOG,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v, -vv)"
    )
    parser.add_argument("--no-update-check", action="store_true",
                        help="Don't check GitHub for a newer release")

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--status", action="store_true", help="Read current device settings")
    mode.add_argument("--firmware-version", action="store_true", help="Read firmware version")

    def setting(flags, enum_cls, help_text):
        parser.add_argument(
            *flags, dest="settings", action=_SettingAction, enum_cls=enum_cls,
            metavar="VALUE",
            help=f"{help_text} ({valid_values(enum_cls)})",
        )

    setting(("--hdmi-range", "--edid-range"), EdidRangePolicy,
            "Set HDMI color range; expand = Full, shrink = Limited")
    setting(("--edid-source",), EdidSource, "Set EDID source selection")
    setting(("--hdr-map",), HdrToneMapping, "Set HDR tone mapping")
    setting(("--custom-edid",), CustomEdidMode,
            "Set custom EDID preset, 4K X only; selects a preset, no upload")
    setting(("--audio-input",), AudioInput, "Set audio input source, 4K S only")
    setting(("--video-scaler",), VideoScaler, "Enable/disable video scaler, 4K S only")
    setting(("--usb-speed",), UsbSpeed,
            "Set USB speed mode, 4K X only; the device re-enumerates")
    parser.set_defaults(settings=[])
    return parser


def setup_logging(verbose: int = 0):
    """Configure logging from the -v count (filter out pyusb chatter)."""
    if verbose >= 2:
        logging.basicConfig(level=logging.DEBUG, format='[%(levelname)s] %(name)s: %(message)s')
    elif verbose == 1:
        logging.basicConfig(level=logging.INFO, format='[%(levelname)s] %(message)s')
    else:
        logging.basicConfig(level=logging.WARNING)
    logging.getLogger('usb').setLevel(logging.WARNING)


def parse_settings(pending) -> list:
    """Turn collected raw values into setting enums.

    Raises:
        InvalidArgumentError: On the first value that doesn't parse.
    """
    values = []
    for option, enum_cls, text in pending:
        try:
            values.append(parse(enum_cls, text))
        except ValueError:
            raise InvalidArgumentError(option, text, valid_values(enum_cls)) from None
    return values


def _announce(value):
    print(f"Setting {SETTING_NAMES[kind_of(value)]} to {value}")
    if isinstance(value, UsbSpeed):
        print("WARNING: Device will disconnect and re-enumerate with a different PID!")


def run(args) -> int:
    """Open the card and carry out the requested action."""
    from .conf import get_usb_timeout_ms
    from .controller import CaptureCard

    values = parse_settings(args.settings)

    with CaptureCard.open(timeout_ms=get_usb_timeout_ms()) as card:
        print(f"Found Elgato {card.model} (PID: 0x{card.pid:04x}, {card.speed_desc})")

        if args.status:
            print("Reading current settings...\n")
            print(card.read_status())
            return 0

        if args.firmware_version:
            print(f"Firmware version: {card.read_firmware_version()}")
            return 0

        card.apply_all(values, announce=_announce)

    print("\nAll settings applied successfully!")
    return 0


def _report_update():
    from .conf import get_update_check_enabled
    from .update_check import RELEASES_PAGE, check_for_update

    if not get_update_check_enabled():
        return
    latest = check_for_update()
    if latest:
        print(f"\nUpdate available: v{__version__} -> v{latest}")
        print(f"   {RELEASES_PAGE}")


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if not (args.status or args.firmware_version or args.settings):
        parser.print_help()
        return 0

    try:
        rc = run(args)
    except Elgato4kError as e:
        print(f"Error: {e}", file=sys.stderr)
        rc = 1

    if not args.no_update_check:
        _report_update()
    return rc


if __name__ == "__main__":
    sys.exit(main())
