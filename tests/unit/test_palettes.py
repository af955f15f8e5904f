"""Test fixed palettes and palette helpers."""

from rasterkit.models.enums import PixelFormat
from rasterkit.palettes import (
    BLACK_AND_WHITE,
    GRAYSCALE_256,
    HALFTONE_8,
    flatten_palette,
    get_palette_for_format,
    grayscale_palette,
    is_grayscale,
    palette_from_flat,
)


class TestPalettes:
    """Test canonical palettes."""

    def test_grayscale(self):
        palette = grayscale_palette()
        assert len(palette) == 256
        assert palette[0] == (0, 0, 0)
        assert palette[200] == (200, 200, 200)
        assert palette == GRAYSCALE_256

    def test_defaults_per_format(self):
        assert get_palette_for_format(PixelFormat.INDEXED_1) == BLACK_AND_WHITE
        assert get_palette_for_format(PixelFormat.INDEXED_4) == HALFTONE_8
        assert get_palette_for_format(PixelFormat.RGB24) is None

    def test_is_grayscale(self):
        assert is_grayscale(BLACK_AND_WHITE)
        assert not is_grayscale(HALFTONE_8)
        assert not is_grayscale(None)

    def test_flat_round_trip(self):
        flat = flatten_palette(HALFTONE_8)
        assert flat[:6] == [0, 0, 0, 128, 0, 0]
        assert palette_from_flat(flat) == HALFTONE_8
        assert palette_from_flat([]) is None

    def test_halftone_levels(self):
        """Only white uses full intensity; every other entry mixes 0 and 128."""
        assert len(HALFTONE_8) == 8
        assert HALFTONE_8[0] == (0, 0, 0)
        assert HALFTONE_8[-1] == (255, 255, 255)
        for entry in HALFTONE_8[1:-1]:
            assert set(entry) == {0, 128}
