import io

import pytest
from PIL import Image

from src.domain.entities.image import SourceFile
from src.domain.errors import ConversionError
from src.domain.services.format_converter import FormatConverter, detect_kind
from tests.conftest import make_image_bytes


def test_detect_kind():
    assert detect_kind(SourceFile(b"", "image/heic", "a.heic")) == "heic"
    assert detect_kind(SourceFile(b"", "image/heif", "a")) == "heic"
    # some pickers leave HEIC without a type
    assert detect_kind(SourceFile(b"", "", "IMG_0001.HEIC")) == "heic"
    assert detect_kind(SourceFile(b"", "image/webp", "a.webp")) == "webp"
    assert detect_kind(SourceFile(b"", "", "a.webp")) == "webp"
    assert detect_kind(SourceFile(b"", "image/jpeg", "a.jpg")) is None
    assert detect_kind(SourceFile(b"", "image/png", "a.png")) is None


def test_webp_with_transparency_becomes_jpeg_on_white(transparent_webp_bytes):
    conv = FormatConverter(use_heif_decoder=False)
    out = conv.to_jpeg(SourceFile(transparent_webp_bytes, "image/webp", "p.webp"), "webp")
    assert out[:2] == b"\xff\xd8"
    with Image.open(io.BytesIO(out)) as img:
        assert img.format == "JPEG"
        assert img.size == (40, 20)
        left = img.convert("RGB").getpixel((2, 10))
        right = img.convert("RGB").getpixel((37, 10))
    assert all(c > 240 for c in left)
    assert right[2] > 200 and right[0] < 50


def test_undecodable_webp_is_returned_unchanged():
    conv = FormatConverter(use_heif_decoder=False)
    data = b"RIFF....WEBPbroken"
    assert conv.to_jpeg(SourceFile(data, "image/webp", "x.webp"), "webp") == data


def test_heic_without_any_decoder_raises_conversion_error():
    conv = FormatConverter(use_heif_decoder=False)
    with pytest.raises(ConversionError) as err:
        conv.to_jpeg(SourceFile(b"\x00\x00\x00\x18ftypheic", "image/heic", "x.heic"), "heic")
    assert err.value.code == "heic-conversion"
    assert str(err.value) == "HEIC format not supported - please use JPEG or PNG"


def test_heic_uses_dedicated_decoder(monkeypatch):
    monkeypatch.setattr(
        FormatConverter,
        "_decode_heif",
        staticmethod(lambda data: Image.new("RGB", (16, 12), (255, 0, 0))),
    )
    conv = FormatConverter()
    conv.use_heif_decoder = True
    out = conv.to_jpeg(SourceFile(b"heic-bytes", "image/heic", "x.heic"), "heic")
    with Image.open(io.BytesIO(out)) as img:
        assert img.format == "JPEG"
        assert img.size == (16, 12)


def test_heic_falls_back_to_native_decode_when_decoder_fails(monkeypatch):
    def boom(data):
        raise RuntimeError("decoder crashed")

    monkeypatch.setattr(FormatConverter, "_decode_heif", staticmethod(boom))
    conv = FormatConverter()
    conv.use_heif_decoder = True
    # Pillow can read this payload natively even though it is labelled HEIC
    png = make_image_bytes(10, 8, fmt="PNG")
    out = conv.to_jpeg(SourceFile(png, "image/heic", "x.heic"), "heic")
    with Image.open(io.BytesIO(out)) as img:
        assert img.format == "JPEG"
        assert img.size == (10, 8)


def test_unknown_kind_rejected():
    with pytest.raises(ValueError):
        FormatConverter(use_heif_decoder=False).to_jpeg(SourceFile(b"", "", "x"), "gif")
