"""Tests for decoding, encoding and file helpers."""

from __future__ import annotations

import io

import piexif
import pytest
from PIL import Image

from src.transform import io_utils
from src.transform.errors import (
    DecodeFailed,
    EncodingFailed,
    InputTooLarge,
    UnsupportedFormat,
)
from src.transform.io_utils import (
    decode_image,
    encode_image,
    generate_filename,
    iter_image_paths,
    load_image_with_exif,
    map_resample,
    normalize_format,
    save_image,
)


def _bytes(image, fmt, **params):
    buf = io.BytesIO()
    image.save(buf, format=fmt, **params)
    return buf.getvalue()


@pytest.mark.parametrize("fmt", ["png", "jpeg", "webp"])
def test_encoded_output_decodes_to_same_size(gradient, fmt):
    result = encode_image(gradient, fmt, quality=0.9)
    assert result.fmt == fmt
    decoded = decode_image(result.data)
    assert decoded.size == gradient.size


def test_png_keeps_pixels_exactly(quadrants):
    result = encode_image(quadrants, "png")
    assert result.quality is None
    assert decode_image(result.data, "image/png").tobytes() == quadrants.tobytes()


def test_jpeg_flattens_alpha_onto_white():
    src = Image.new("RGBA", (20, 20), (0, 0, 0, 0))
    decoded = decode_image(encode_image(src, "jpg", quality=1.0).data)
    assert decoded.mode == "RGB"
    r, g, b = decoded.getpixel((10, 10))
    assert min(r, g, b) >= 250


def test_webp_keeps_alpha():
    src = Image.new("RGBA", (20, 20), (0, 0, 255, 0))
    decoded = decode_image(encode_image(src, "webp").data)
    assert decoded.mode == "RGBA"


def test_garbage_bytes_fail_to_decode():
    with pytest.raises(DecodeFailed):
        decode_image(b"definitely not an image")


def test_truncated_jpeg_fails_to_decode(gradient):
    data = _bytes(gradient, "JPEG")
    with pytest.raises(DecodeFailed):
        decode_image(data[: len(data) // 3])


def test_unsupported_media_type(gradient):
    with pytest.raises(UnsupportedFormat):
        decode_image(_bytes(gradient, "PNG"), "image/gif")


def test_unsupported_sniffed_format(gradient):
    with pytest.raises(UnsupportedFormat):
        decode_image(_bytes(gradient, "BMP"))


def test_input_size_limit(monkeypatch, gradient):
    monkeypatch.setattr(io_utils, "MAX_FILE_SIZE", 10)
    with pytest.raises(InputTooLarge):
        decode_image(_bytes(gradient, "PNG"))


def test_exif_orientation_is_applied_and_reset(tmp_path):
    exif = piexif.dump({"0th": {piexif.ImageIFD.Orientation: 6}})
    src = tmp_path / "rotated.jpg"
    src.write_bytes(_bytes(Image.new("RGB", (40, 20), (0, 128, 0)), "JPEG", exif=exif))

    image, raw_exif = load_image_with_exif(src)
    assert image.size == (20, 40)
    assert raw_exif

    dest = tmp_path / "out" / "upright.jpg"
    save_image(image, dest, keep_metadata=True, original_exif=raw_exif)
    assert piexif.load(str(dest))["0th"][piexif.ImageIFD.Orientation] == 1
    with Image.open(dest) as reloaded:
        assert reloaded.size == (20, 40)


def test_save_without_metadata(tmp_path):
    exif = piexif.dump({"0th": {piexif.ImageIFD.Make: b"Camera"}})
    dest = tmp_path / "plain.png"
    result = save_image(Image.new("RGB", (8, 8)), dest, keep_metadata=False, original_exif=exif)
    assert dest.read_bytes() == result.data
    with Image.open(dest) as reloaded:
        assert "exif" not in reloaded.info


def test_unreadable_exif_is_dropped(tmp_path):
    dest = tmp_path / "out.jpg"
    save_image(Image.new("RGB", (8, 8)), dest, original_exif=b"Exif\x00\x00garbage")
    with Image.open(dest) as reloaded:
        assert reloaded.size == (8, 8)


def test_format_names():
    assert normalize_format("JPG") == "jpeg"
    assert normalize_format(".webp") == "webp"
    with pytest.raises(UnsupportedFormat):
        normalize_format("gif")
    with pytest.raises(UnsupportedFormat):
        save_image(Image.new("RGB", (4, 4)), "out.tiff")


@pytest.mark.parametrize("quality", [0, -0.2, 1.01])
def test_quality_out_of_range(gradient, quality):
    with pytest.raises(EncodingFailed):
        encode_image(gradient, "jpeg", quality=quality)


def test_generate_filename():
    assert generate_filename("photo.heic", "jpeg", "cropped") == "photo-cropped.jpg"
    assert generate_filename("scan.JPG", "png", "a4") == "scan-a4.png"


def test_iter_image_paths(tmp_path):
    (tmp_path / "nested").mkdir()
    for name in ("b.PNG", "a.jpg", "nested/c.heic", "notes.txt"):
        (tmp_path / name).write_bytes(b"")
    found = [p.relative_to(tmp_path).as_posix() for p in iter_image_paths(tmp_path)]
    assert found == ["a.jpg", "b.PNG", "nested/c.heic"]
    assert list(iter_image_paths(tmp_path / "notes.txt")) == []


def test_heif_opener_is_registered():
    assert ".heic" in Image.registered_extensions()


def test_map_resample():
    assert map_resample("nearest") == Image.NEAREST
    assert map_resample("BICUBIC") == Image.BICUBIC
    assert map_resample("unknown") == Image.LANCZOS
