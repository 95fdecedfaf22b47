"""Domain-specific errors for elgato4k."""


class Elgato4kError(Exception):
    """Base error for elgato4k."""


class DeviceNotFoundError(Elgato4kError):
    """Raised when no supported capture card is on the bus."""

    def __init__(self, message: str = ""):
        super().__init__(
            message
            or "Elgato 4K X or 4K S not found. Make sure it's connected.\n"
            "Known PIDs: 4K X (009b, 009c, 009d), 4K S (00ae, 00af)"
        )


class TransportError(Elgato4kError):
    """Base error for a failed control transfer."""


class UvcTransferError(TransportError):
    """Raised when an Extension Unit SET_CUR/GET_CUR/GET_LEN step fails."""


class HidTransferError(TransportError):
    """Raised when a HID SET_REPORT or GET_REPORT fails."""


class HidPacketSizeError(Elgato4kError, ValueError):
    """Raised when a HID packet is not exactly the report size."""

    def __init__(self, expected: int, got: int):
        super().__init__(f"HID packet must be exactly {expected} bytes, got {got}")
        self.expected = expected
        self.got = got


class UnsupportedFeatureError(Elgato4kError):
    """Raised when a setting is not available on the attached model."""

    def __init__(self, feature: str, model: str):
        super().__init__(f"{feature} is not supported on {model}")
        self.feature = feature
        self.model = model


class InvalidArgumentError(Elgato4kError, ValueError):
    """Raised when a command-line value cannot be parsed."""

    def __init__(self, arg: str, value: str, valid: str):
        super().__init__(f"Invalid value '{value}' for {arg}.\nValid values: {valid}")
        self.arg = arg
        self.value = value
        self.valid = valid
