"""Test ImagePipeline state handling and delegation."""

from __future__ import annotations

import io

import pytest

from rasterkit import ImagePipeline
from rasterkit.exceptions import (
    InvalidParameterError,
    NotLoadedError,
    RasterKitError,
    UnsupportedFormatError,
)
from rasterkit.models.enums import ContainerFormat, FlipAxis, PixelFormat, ResampleMode
from rasterkit.models.settings import PipelineSettings
from rasterkit.palettes import BLACK_AND_WHITE, grayscale_palette
from rasterkit.transforms import photometric

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


@pytest.fixture
def pipeline(fake_backend) -> ImagePipeline:
    return ImagePipeline(backend=fake_backend)


@pytest.fixture
def loaded(pipeline) -> ImagePipeline:
    pipeline.load(PNG_MAGIC + b"payload")
    return pipeline


class TestEmptyState:
    """Test behaviour before anything is loaded."""

    def test_properties(self, pipeline):
        assert not pipeline.is_loaded
        assert pipeline.working is None
        assert pipeline.original is None
        assert pipeline.pixel_format is None
        assert pipeline.size == (0, 0)
        assert pipeline.original_size == (0, 0)
        assert pipeline.bytes_per_pixel == 0.0
        assert pipeline.detected_format == ContainerFormat.RAW

    @pytest.mark.parametrize(
        ("method", "args"),
        [
            ("grayscale", ()),
            ("grayscale_8bpp", ()),
            ("contrast", (10,)),
            ("brightness", (10,)),
            ("reduce_1bpp", ()),
            ("resize", (50,)),
            ("crop", (0, 0, 1, 1)),
            ("rotate90", ()),
            ("flip_vertical", ()),
            ("rotate", (45,)),
            ("encode_png", ()),
            ("save", ()),
            ("image_data", ()),
        ],
    )
    def test_transforms_require_image(self, pipeline, method, args):
        with pytest.raises(NotLoadedError) as exc_info:
            getattr(pipeline, method)(*args)
        assert exc_info.value.operation == method

    def test_reset_is_noop(self, pipeline):
        pipeline.reset()
        assert not pipeline.is_loaded

    def test_set_resample_mode_allowed(self, pipeline):
        pipeline.set_resample_mode(ResampleMode.BILINEAR)
        assert pipeline.resample_mode == ResampleMode.BILINEAR


class TestLoadAndCreate:
    """Test entering the loaded state."""

    def test_load_sniffs_format(self, loaded, fake_backend):
        assert loaded.is_loaded
        assert loaded.detected_format == ContainerFormat.PNG
        assert loaded.pixel_format == PixelFormat.RGB24
        assert loaded.size == (4, 2)
        assert fake_backend.calls == [("decode",)]

    def test_original_and_working_independent(self, loaded):
        assert loaded.working == loaded.original
        assert loaded.working is not loaded.original

        loaded.working.data[0] = 77
        assert loaded.original.data[0] == 0

    def test_load_stream(self, pipeline):
        pipeline.load(io.BytesIO(b"GIF89a"))
        assert pipeline.detected_format == ContainerFormat.GIF

    def test_load_pixel_buffer(self, pipeline, rgb24_buffer):
        pipeline.load(rgb24_buffer)

        assert pipeline.detected_format == ContainerFormat.RAW
        assert pipeline.working == rgb24_buffer
        assert pipeline.working is not rgb24_buffer

    def test_create(self, pipeline):
        pipeline.create(5, 3)

        assert pipeline.size == (5, 3)
        assert pipeline.pixel_format == PixelFormat.ARGB32
        assert pipeline.bytes_per_pixel == 4.0
        assert pipeline.detected_format == ContainerFormat.RAW
        assert not any(pipeline.working.data)

    def test_create_indexed_attaches_palette(self, pipeline):
        pipeline.create(9, 1, PixelFormat.INDEXED_1)
        assert pipeline.working.palette == BLACK_AND_WHITE
        assert pipeline.bytes_per_pixel == 0.125

    def test_create_invalid_size(self, pipeline):
        with pytest.raises(InvalidParameterError) as exc_info:
            pipeline.create(0, 3)
        assert exc_info.value.operation == "create"

    def test_load_replaces_previous(self, loaded, rgb24_buffer):
        loaded.load(rgb24_buffer)
        assert loaded.original_size == (3, 2)


class TestReset:
    """Test discarding transforms."""

    def test_reset_restores_working_bit_for_bit(self, pipeline, rgb24_buffer):
        pipeline.load(rgb24_buffer)
        pipeline.grayscale()
        pipeline.contrast(50)
        pipeline.reduce_1bpp()
        assert pipeline.pixel_format == PixelFormat.INDEXED_1

        pipeline.reset()

        assert pipeline.working == rgb24_buffer
        assert pipeline.working is not pipeline.original


class TestPhotometric:
    """Test core transforms applied to the working buffer."""

    def test_grayscale(self, pipeline, make_buffer):
        pipeline.load(make_buffer([[(30, 20, 10)] * 4] * 4))
        pipeline.grayscale()

        assert (pipeline.working.to_pixel_array() == 20).all()
        assert pipeline.original.to_pixel_array()[3, 3].tolist() == [30, 20, 10]

    def test_grayscale_8bpp(self, pipeline, rgb24_buffer):
        pipeline.load(rgb24_buffer)
        pipeline.grayscale_8bpp()

        assert pipeline.pixel_format == PixelFormat.INDEXED_8
        assert pipeline.working.palette == grayscale_palette()

    def test_reduce_1bpp_uses_configured_default(self, fake_backend, rgb24_buffer, monkeypatch):
        thresholds = []

        def fake_reduce(buffer, threshold):
            thresholds.append(threshold)
            return buffer.clone()

        monkeypatch.setattr(photometric, "reduce_1bpp", fake_reduce)
        pipeline = ImagePipeline(
            backend=fake_backend, settings=PipelineSettings(default_threshold_percent=50)
        )
        pipeline.load(rgb24_buffer)

        pipeline.reduce_1bpp()
        pipeline.reduce_1bpp(-1)
        pipeline.reduce_1bpp(0)

        assert thresholds == [128, 128, 0]

    def test_brightness_delegates_multiplier(self, loaded, fake_backend):
        loaded.brightness(50)
        loaded.brightness(150)

        assert fake_backend.calls[-2:] == [
            ("apply_channel_scale", 1.5),
            ("apply_channel_scale", 1.0),
        ]

    def test_unsupported_format_tagged(self, pipeline):
        pipeline.create(2, 2, PixelFormat.RGB16_565)
        with pytest.raises(UnsupportedFormatError) as exc_info:
            pipeline.contrast(10)
        assert exc_info.value.operation == "contrast"


class TestGeometric:
    """Test delegation of geometric operations."""

    def test_resize_relative_to_original(self, loaded, fake_backend):
        loaded.resize(50)
        loaded.resize(50)
        loaded.resize(75)

        scaled = [call for call in fake_backend.calls if call[0] == "draw_scaled"]
        assert [call[1:3] for call in scaled] == [(2, 1), (2, 1), (3, 1)]
        assert loaded.size == (3, 1)
        assert loaded.original_size == (4, 2)

    def test_resample_mode_forwarded(self, loaded, fake_backend):
        loaded.set_resample_mode(ResampleMode.BICUBIC)
        loaded.resize_to(10, 20)
        loaded.rotate(30)

        assert fake_backend.calls[-2] == ("draw_scaled", 10, 20, ResampleMode.BICUBIC)
        assert fake_backend.calls[-1] == ("draw_rotated", 30, ResampleMode.BICUBIC)

    def test_default_resample_mode_from_settings(self, fake_backend):
        pipeline = ImagePipeline(
            backend=fake_backend, settings=PipelineSettings(resample_mode=ResampleMode.BILINEAR)
        )
        assert pipeline.resample_mode == ResampleMode.BILINEAR

    def test_invalid_resample_mode(self, pipeline):
        with pytest.raises(InvalidParameterError):
            pipeline.set_resample_mode(7)

    def test_quadrant_rotations(self, loaded, fake_backend):
        loaded.rotate90()
        assert loaded.size == (2, 4)
        loaded.rotate180()
        loaded.rotate270()

        turns = [call[1] for call in fake_backend.calls if call[0] == "rotate_quadrant"]
        assert turns == [90, 180, 270]

    def test_flips(self, loaded, fake_backend):
        loaded.flip_vertical()
        loaded.flip_horizontal()

        assert fake_backend.calls[-2:] == [
            ("flip", FlipAxis.VERTICAL),
            ("flip", FlipAxis.HORIZONTAL),
        ]

    def test_crop(self, pipeline, rgb24_buffer):
        pipeline.load(rgb24_buffer)
        pipeline.crop(1, 0, 2, 2)
        assert pipeline.size == (2, 2)

    def test_crop_outside_rejected(self, loaded):
        with pytest.raises(InvalidParameterError) as exc_info:
            loaded.crop(3, 0, 2, 2)
        assert exc_info.value.operation == "crop"

    def test_foreign_error_wrapped(self, loaded, fake_backend, monkeypatch):
        def broken_flip(src, axis):
            raise RuntimeError("backend exploded")

        monkeypatch.setattr(fake_backend, "flip", broken_flip)

        with pytest.raises(RasterKitError) as exc_info:
            loaded.flip_horizontal()
        assert exc_info.value.operation == "flip_horizontal"
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert str(exc_info.value) == "flip_horizontal: RuntimeError: backend exploded"


class TestOutput:
    """Test raw access and encoding."""

    def test_image_data(self, pipeline, rgb24_buffer):
        pipeline.load(rgb24_buffer)
        data, stride = pipeline.image_data()

        assert stride == 12
        assert data == bytes(rgb24_buffer.data)
        assert not pipeline.working.locked

    def test_encode_named_formats(self, loaded):
        assert loaded.encode_png() == b"encoded:PNG"
        assert loaded.encode_bmp() == b"encoded:BMP"
        assert loaded.encode("image/jpeg") == b"encoded:JPEG"

    def test_encode_jpeg_quality(self, fake_backend, rgb24_buffer):
        pipeline = ImagePipeline(backend=fake_backend, settings=PipelineSettings(jpeg_quality=70))
        pipeline.load(rgb24_buffer)

        pipeline.encode_jpeg()
        pipeline.encode_jpeg(15)

        assert [call["codec_options"].quality for call in fake_backend.encoded] == [70, 15]

    def test_legacy_containers_need_indexed(self, loaded):
        with pytest.raises(UnsupportedFormatError):
            loaded.encode_gif()

        loaded.reduce_1bpp()
        assert loaded.encode_gif() == b"encoded:GIF"
        assert loaded.encode_tiff() == b"encoded:TIFF"

    def test_save_uses_detected_format(self, loaded):
        assert loaded.save() == b"encoded:PNG"
        assert loaded.save("bmp") == b"encoded:BMP"

    def test_save_without_detected_format_writes_bmp(self, pipeline, rgb24_buffer):
        """Created images and decoded buffers have no container; save() picks BMP."""
        pipeline.create(2, 2)
        assert pipeline.save() == b"encoded:BMP"

        pipeline.load(rgb24_buffer)
        assert pipeline.save() == b"encoded:BMP"
        assert pipeline.save("png") == b"encoded:PNG"

    def test_save_explicit_raw_rejected(self, pipeline):
        pipeline.create(2, 2)
        with pytest.raises(UnsupportedFormatError):
            pipeline.save(ContainerFormat.RAW)

    def test_context_manager_closes(self, fake_backend):
        with ImagePipeline(backend=fake_backend) as pipeline:
            pipeline.create(1, 1)
            assert pipeline.is_loaded
        assert not pipeline.is_loaded


class TestPillowRoundTrip:
    """End-to-end tests with the default Pillow backend."""

    def test_grayscale_8bpp_png_round_trip(self):
        with ImagePipeline() as pipeline:
            pipeline.create(10, 10)
            pipeline.grayscale_8bpp()
            png = pipeline.encode_png()

        with ImagePipeline() as decoded:
            decoded.load(png)
            assert decoded.detected_format == ContainerFormat.PNG
            assert decoded.pixel_format == PixelFormat.INDEXED_8
            assert decoded.working.palette == grayscale_palette()
            assert decoded.size == (10, 10)

    def test_load_png(self, png_bytes):
        pipeline = ImagePipeline()
        pipeline.load(png_bytes)

        assert pipeline.pixel_format == PixelFormat.RGB24
        assert pipeline.working.data[:3] == bytearray([30, 20, 10])

    def test_jpeg_output_sniffs_as_jpeg(self, png_bytes):
        pipeline = ImagePipeline()
        pipeline.load(png_bytes)
        pipeline.resize(50)

        jpeg = pipeline.encode_jpeg(80)

        reloaded = ImagePipeline()
        reloaded.load(jpeg)
        assert reloaded.detected_format == ContainerFormat.JPEG
        assert reloaded.size == (2, 1)

    def test_tiff_one_bit_round_trip(self, png_bytes):
        pipeline = ImagePipeline()
        pipeline.load(png_bytes)
        pipeline.reduce_1bpp(0)

        reloaded = ImagePipeline()
        reloaded.load(pipeline.encode_tiff())
        assert reloaded.detected_format == ContainerFormat.TIFF
        assert reloaded.pixel_format == PixelFormat.INDEXED_1
        assert reloaded.working.data == pipeline.working.data

    def test_decode_failure(self):
        pipeline = ImagePipeline()
        with pytest.raises(RasterKitError) as exc_info:
            pipeline.load(PNG_MAGIC + b"not really a png")
        assert exc_info.value.operation == "load"
        assert not pipeline.is_loaded
