"""Tests for AT-command framing (4K X Extension Unit channel).

Frames checked byte-for-byte against payloads captured from the Windows
software.
"""

import pytest

from elgato4k.at_command import (
    AT_HEADER_SIZE,
    build_at_frame,
    build_probe_frame,
    lrc_checksum,
    verify_frame,
)


# =========================================================================
# LRC
# =========================================================================

class TestLrcChecksum:

    def test_empty(self):
        assert lrc_checksum(b'') == 0x00

    def test_single_byte(self):
        assert lrc_checksum(b'\x01') == 0xFF

    def test_wraps_modulo_256(self):
        # 0xa1 + 0x07 + 0x1f + 0x01 = 0xc8
        assert lrc_checksum(bytes([0xa1, 0x07, 0x00, 0x00, 0x1f, 0x00, 0x00, 0x00, 0x01])) == 0x38

    def test_sum_is_zero_after_appending(self):
        data = bytes(range(50))
        assert (sum(data) + lrc_checksum(data)) % 256 == 0


# =========================================================================
# Frames
# =========================================================================

class TestBuildAtFrame:

    def test_hdr_on_capture(self):
        assert build_at_frame(0x1f, b'\x01') == bytes.fromhex('a1 07 00 00 1f 00 00 00 01 38')

    def test_usb_speed_10g(self):
        frame = build_at_frame(0x8e, bytes([1, 0, 0, 0, 3, 0, 0, 0]))
        assert frame == bytes.fromhex('a1 0e 00 00 8e 00 00 00 01 00 00 00 03 00 00 00 bf')

    def test_usb_speed_5g(self):
        frame = build_at_frame(0x8e, bytes([1, 0, 0, 0, 0, 0, 0, 0]))
        assert frame == bytes.fromhex('a1 0e 00 00 8e 00 00 00 01 00 00 00 00 00 00 00 c2')

    def test_command_id_little_endian(self):
        frame = build_at_frame(0x12345678)
        assert frame[AT_HEADER_SIZE:AT_HEADER_SIZE + 4] == bytes([0x78, 0x56, 0x34, 0x12])

    def test_length_indicator(self):
        # cmd id (4) + input (3) + 2
        assert build_at_frame(0x01, b'abc')[1] == 9

    def test_length_indicator_masked_to_7_bits(self):
        frame = build_at_frame(0x01, bytes(130))
        assert frame[1] == (4 + 130 + 2) & 0x7F

    def test_reserved_bytes_zero(self):
        frame = build_at_frame(0x4d, b'\x01\x00\x00\x00')
        assert frame[2] == 0 and frame[3] == 0

    def test_frame_length(self):
        assert len(build_at_frame(0x7c, b'\x01\x00')) == AT_HEADER_SIZE + 4 + 2 + 1

    @pytest.mark.parametrize("cmd_id", [0x00, 0x1f, 0x4d, 0x54, 0x7c, 0x8e, 0xFF, 0xFFFF, 0xFFFFFFFF])
    def test_checksum_invariant(self, cmd_id):
        for input_len in (0, 1, 4, 8, 33):
            frame = build_at_frame(cmd_id, bytes((cmd_id + i * 37) & 0xFF for i in range(input_len)))
            assert sum(frame) % 256 == 0
            assert frame[0] == 0xa1

    def test_command_id_out_of_range(self):
        with pytest.raises(ValueError):
            build_at_frame(0x1_0000_0000)
        with pytest.raises(ValueError):
            build_at_frame(-1)


class TestBuildProbeFrame:

    def test_firmware_probe(self):
        frame = build_probe_frame(0x77)
        assert frame == bytes.fromhex('a1 06 00 00 77 00 00 00 e2')
        assert len(frame) == 9

    def test_hdr_probe(self):
        assert build_probe_frame(0x90) == bytes.fromhex('a1 06 00 00 90 00 00 00 c9')

    def test_param_probe(self):
        frame = build_probe_frame(0x91, 0x01)
        assert frame == bytes.fromhex('a1 07 00 00 91 00 00 00 01 c6')
        assert len(frame) == 10

    def test_sub_command_out_of_range(self):
        with pytest.raises(ValueError):
            build_probe_frame(0x100)


class TestVerifyFrame:

    def test_valid(self):
        assert verify_frame(build_at_frame(0x54, b'\x00\x01\x80\x00'))

    def test_bad_checksum(self):
        frame = bytearray(build_at_frame(0x1f, b'\x01'))
        frame[-1] ^= 0x01
        assert not verify_frame(bytes(frame))

    def test_wrong_tag(self):
        frame = bytearray(build_at_frame(0x1f, b'\x01'))
        frame[0] = 0xa2
        frame[-1] = (frame[-1] - 1) & 0xFF
        assert not verify_frame(bytes(frame))

    def test_too_short(self):
        assert not verify_frame(b'')
        assert not verify_frame(bytes([0xa1, 0x5f]))
