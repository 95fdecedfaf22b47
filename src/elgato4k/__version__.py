"""elgato4k version information."""

__version__ = "0.3.0"
__version_info__ = tuple(int(x) for x in __version__.split("."))

# Version history:
# 0.1.0 - 4K X: HDMI color range, EDID source, HDR tone mapping, custom EDID
# 0.2.0 - 4K S support over HID (audio input, video scaler), --status,
#         --firmware-version
# 0.3.0 - USB speed switching via AT command 0x8e, 4K X HDR/color range
#         readback, release check on exit
