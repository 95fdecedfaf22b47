"""Protocol constants for the Elgato 4K X (UVC XU) and 4K S (HID) capture cards.

Byte layouts, request codes and timings were recovered from USB captures of
the Windows software and from decompiled EGAVDeviceSupport.dll /
RTICE_SDK_X64 / libRTK_IO builds.  Every magic number lives here so the
protocol modules reference names instead of raw hex.
"""

# =========================================================================
# USB identifiers
# =========================================================================

VENDOR_ID = 0x0fd9   # Elgato (Corsair)

# 4K X re-enumerates with a different PID per USB speed mode
PIDS_4KX: dict[int, str] = {
    0x009b: "10Gbps / SuperSpeed+",
    0x009c: "5Gbps / SuperSpeed",
    0x009d: "USB 2.0",
}

PIDS_4KS: dict[int, str] = {
    0x00af: "USB 3.0",
    0x00ae: "USB 2.0",
}

# =========================================================================
# Control-transfer basics
# =========================================================================

REQUEST_TYPE_CLASS_OUT = 0x21   # host-to-device, class, interface
REQUEST_TYPE_CLASS_IN = 0xA1    # device-to-host, class, interface

# Bound on every control transfer.  No transfer is retried.
USB_TIMEOUT_MS = 1000

# =========================================================================
# UVC Extension Unit (4K X): XU #4, GUID 961073c7-49f7-44f2-ab42-e940405940c2
# =========================================================================

UVC_SET_CUR = 0x01
UVC_GET_CUR = 0x81
# Current descriptor length of a selector.  The device rewrites it after
# every SET_CUR, so it is queried before each GET_CUR and never cached.
UVC_GET_LEN = 0x85

UVC_INTERFACE = 0
UVC_ENTITY_ID = 4

UVC_SELECTOR_VALUE = 0x01     # payload / response register
UVC_SELECTOR_TRIGGER = 0x02   # length announcement / status register

# Tag byte opening every XU payload (AT cmd_type 1 + 0xa0)
XU_FAMILY_TAG = 0xa1
# Responses carry a1 80 <type> 00 ...
XU_RESPONSE_FAMILY = 0x80

# Short probe families (length indicator of a bare/one-parameter AT frame)
XU_PROBE_FAMILY = 0x06
XU_PROBE_PARAM_FAMILY = 0x07

# Sub-commands for probe reads
XU_SUBCMD_FIRMWARE_VERSION = 0x77   # AT_Get_Customer_Ver
XU_SUBCMD_HDR_READ = 0x90
XU_SUBCMD_EDID_RANGE_READ = 0x91    # 0x07 family, param 0x01
XU_EDID_RANGE_READ_PARAM = 0x01

# Secondary type byte (offset 2) of the firmware response
XU_FIRMWARE_RESPONSE_TYPE = 0x81

# AT command ids used for setting writes
AT_CMD_HDR_TONEMAPPING = 0x1f
AT_CMD_EDID_SOURCE = 0x4d
AT_CMD_CUSTOM_EDID = 0x54
AT_CMD_EDID_RANGE = 0x7c
# AT_USB_Set_Force_Speed: rtk_sendATCommand(0x8e, &local_418, local_218, 8)
AT_CMD_SET_USB_SPEED = 0x8e

# =========================================================================
# HID reports (4K S): SET_REPORT / GET_REPORT on interface 7
# =========================================================================

HID_SET_REPORT = 0x09
HID_GET_REPORT = 0x01
HID_REPORT_ID = 0x06
HID_REPORT_VALUE_OUTPUT = 0x0200 | HID_REPORT_ID   # type Output, id 6
HID_REPORT_VALUE_INPUT = 0x0100 | HID_REPORT_ID    # type Input, id 6
HID_INTERFACE = 7
HID_PACKET_SIZE = 255

# [report_id, 0x06, 0x06, 0x55 (settings class), 0x02 (write)]
HID_WRITE_HEADER = bytes([HID_REPORT_ID, 0x06, 0x06, 0x55, 0x02])
HID_READ_CMD = 0x55

# Sub-command ids (CCamLinkSupport Get*/Set* pairs)
HID_SUBCMD_FIRMWARE_VERSION = 0x02   # 8 bytes
HID_SUBCMD_AUDIO_INPUT = 0x08
HID_SUBCMD_HDR_TONEMAPPING = 0x0a
HID_SUBCMD_COLOR_RANGE = 0x0b
HID_SUBCMD_EDID_MODE = 0x12
HID_SUBCMD_COMMIT = 0x13
HID_SUBCMD_VIDEO_SCALER = 0x19

HID_FIRMWARE_READ_LEN = 8

# =========================================================================
# Timing: observed in captures of the vendor software, not documented.
# Shorter values have not been tested against hardware.
# =========================================================================

# Between the settings packet and the commit packet; without it the
# commit is dropped.
HID_INTER_PACKET_DELAY_S = 0.001
# Between the HID read request and GET_REPORT; the response is not
# ready earlier.
HID_READ_DELAY_S = 0.010
# Between two independently applied settings.
SETTING_APPLY_DELAY_S = 0.100

# =========================================================================
# Firmware version decoding
# =========================================================================

BCD_MAX_MONTH = 0x12
BCD_MAX_DAY = 0x31
