"""Tests for the RGBA pixel buffer."""

import numpy as np
import pytest

from pixelveil.core.buffer import InvalidInputError, PixelBuffer


class TestConstruction:
    def test_from_bytes_layout(self):
        data = bytes(range(16))
        buf = PixelBuffer.from_bytes(data, 2, 2)
        assert buf.width == 2
        assert buf.height == 2
        np.testing.assert_array_equal(buf.pixels[0, 1], [4, 5, 6, 7])
        np.testing.assert_array_equal(buf.pixels[1, 0], [8, 9, 10, 11])

    def test_to_bytes_round_trip(self):
        data = bytes(range(24))
        assert PixelBuffer.from_bytes(data, 3, 2).to_bytes() == data

    def test_from_int_list(self):
        buf = PixelBuffer.from_bytes([255, 0, 0, 255], 1, 1)
        np.testing.assert_array_equal(buf.pixels[0, 0], [255, 0, 0, 255])

    def test_length_mismatch(self):
        with pytest.raises(InvalidInputError):
            PixelBuffer.from_bytes(bytes(15), 2, 2)

    @pytest.mark.parametrize("width,height", [(0, 4), (4, 0), (-1, 2)])
    def test_non_positive_dimensions(self, width, height):
        with pytest.raises(InvalidInputError):
            PixelBuffer.from_bytes(b"", width, height)

    def test_out_of_range_values(self):
        with pytest.raises(InvalidInputError):
            PixelBuffer.from_bytes([0, 0, 300, 255], 1, 1)

    def test_wrong_channel_count(self):
        with pytest.raises(InvalidInputError):
            PixelBuffer(np.zeros((4, 4, 3), dtype=np.uint8))

    def test_wrong_dtype(self):
        with pytest.raises(InvalidInputError):
            PixelBuffer(np.zeros((4, 4, 4), dtype=np.float32))

    def test_invalid_input_is_value_error(self):
        assert issubclass(InvalidInputError, ValueError)

    def test_blank(self):
        buf = PixelBuffer.blank(3, 2, (1, 2, 3, 4))
        assert buf.pixels.shape == (2, 3, 4)
        assert (buf.pixels == [1, 2, 3, 4]).all()


class TestBehaviour:
    def test_snapshot_is_independent(self, photo):
        snap = photo.snapshot()
        photo.pixels[0, 0] = [1, 2, 3, 4]
        assert not np.array_equal(snap.pixels[0, 0], [1, 2, 3, 4])

    def test_opaque_mask(self, holed_photo):
        mask = holed_photo.opaque_mask()
        assert mask.shape == (24, 32)
        assert not mask[0, 0]
        assert not mask[10, 12]
        assert mask[1, 1]

    def test_equality(self, photo):
        assert photo == photo.snapshot()
        other = photo.snapshot()
        other.pixels[3, 3, 0] ^= 1
        assert photo != other
