import io
import os
import numpy as np
import pytest
from PIL import Image
from core.errors import DecodeError, EmptySequenceError
from core.frames import Frame, FrameSequence
from io_utils.file_utils import human_file_size, make_result_filename, sniff_file_mime, sniff_mime
from io_utils.image_handler import (
    decode_image, decode_sequence, detect_format, encode_image, encode_sequence, read_image, save_image,
)


def _png_bytes(arr):
    buf = io.BytesIO()
    Image.fromarray(arr).save(buf, format="PNG")
    return buf.getvalue()


def _gif_bytes(colors, duration=100, loop=0):
    frames = [Image.new("RGB", (6, 4), c) for c in colors]
    buf = io.BytesIO()
    frames[0].save(buf, format="GIF", save_all=True, append_images=frames[1:], duration=duration, loop=loop)
    return buf.getvalue()


def test_human_file_size():
    assert human_file_size(0) == "0 B"
    assert human_file_size(1023) == "1023 B"
    assert human_file_size(1024) == "1.00 KB"
    assert human_file_size(1536) == "1.50 KB"
    assert human_file_size(5 * 1024 ** 2) == "5.00 MB"
    assert human_file_size(1024 ** 3) == "1.00 GB"


def test_sniff_mime():
    assert sniff_mime(b"\x89PNG\r\n\x1a\n" + b"\x00" * 8) == "image/png"
    assert sniff_mime(b"GIF89a....") == "image/gif"
    assert sniff_mime(b"\xff\xd8\xff\xe0") == "image/jpeg"
    assert sniff_mime(b"RIFF\x00\x00\x00\x00WEBPVP8 ") == "image/webp"
    assert sniff_mime(b"\x00\x00\x00\x1cftypavif") == "image/avif"
    assert sniff_mime(b"hello world\n") == "text/plain; charset=utf-8"
    assert sniff_mime(b"\x00\x01\x02garbage") == "application/octet-stream"


def test_sniff_file_mime_unreadable(tmp_path):
    assert sniff_file_mime(str(tmp_path / "missing.bin")) == "application/octet-stream"


def test_make_result_filename(tmp_path):
    out = make_result_filename("data/cat.png", "blurple", ext="gif", outdir=str(tmp_path / "res"))
    name = os.path.basename(out)
    assert name.startswith("cat_blurple_") and name.endswith(".gif")
    assert os.path.isdir(tmp_path / "res")


def test_detect_and_decode_png():
    arr = np.zeros((5, 7, 4), dtype=np.uint8)
    arr[..., 1] = 90
    arr[..., 3] = 255
    data = _png_bytes(arr)
    assert detect_format(data) == "png"
    rgba, fmt = decode_image(data)
    assert fmt == "png"
    assert rgba.shape == (5, 7, 4)
    assert np.array_equal(rgba, arr)
    rgba[0, 0] = 0  # writable


def test_decode_rejects_non_image():
    with pytest.raises(DecodeError):
        decode_image(b"definitely not an image")
    with pytest.raises(DecodeError):
        detect_format(b"")


@pytest.mark.parametrize("fmt, content_type, pil_format", [
    ("jpeg", "image/jpeg", "JPEG"),
    ("png", "image/png", "PNG"),
    ("webp", "image/webp", "WEBP"),
    ("mpo", "image/jpeg", "JPEG"),
    ("bmp", "image/png", "PNG"),
    ("", "image/png", "PNG"),
])
def test_encode_image_format_selection(fmt, content_type, pil_format):
    arr = np.full((4, 4, 4), 128, dtype=np.uint8)
    body, ctype = encode_image(arr, fmt)
    assert ctype == content_type
    assert Image.open(io.BytesIO(body)).format == pil_format


def test_webp_is_lossless():
    rng = np.random.default_rng(3)
    arr = rng.integers(0, 256, size=(8, 8, 4), dtype=np.uint8)
    arr[..., 3] = 255
    body, _ = encode_image(arr, "webp")
    rgba, fmt = decode_image(body)
    assert fmt == "webp"
    assert np.array_equal(rgba, arr)


def test_decode_sequence_reads_timing():
    seq = decode_sequence(_gif_bytes([(255, 0, 0), (0, 0, 255)], duration=120))
    assert len(seq) == 2
    assert seq.size == (6, 4)
    assert seq.delays == [120, 120]
    assert seq.loop == 0
    assert seq.frames[0].image.mode == "RGBA"


def test_decode_sequence_without_loop_extension():
    frames = [Image.new("RGB", (4, 4), c) for c in [(255, 0, 0), (0, 255, 0)]]
    buf = io.BytesIO()
    frames[0].save(buf, format="GIF", save_all=True, append_images=frames[1:], duration=50)
    seq = decode_sequence(buf.getvalue())
    assert seq.loop is None


def test_encode_sequence_empty_raises():
    with pytest.raises(EmptySequenceError):
        encode_sequence(FrameSequence(frames=[], size=(1, 1)))


def test_encode_sequence_writes_gif():
    frames = [Frame(Image.new("P", (4, 4), i)) for i in (1, 2)]
    for f in frames:
        f.image.putpalette(bytes(range(256)) * 3)
    data = encode_sequence(FrameSequence(frames=frames, size=(4, 4), delays=[30, 60], loop=0))
    assert data[:6] == b"GIF89a"
    back = decode_sequence(data)
    assert len(back) == 2
    assert back.delays == [30, 60]


def test_save_and_read_roundtrip(tmp_path):
    arr = np.arange(100).reshape(10, 10).astype(np.uint8)
    p = tmp_path / "test.png"
    save_image(str(p), arr)
    out, meta = read_image(str(p))
    assert out.shape == (10, 10, 4)
    assert out.dtype == np.uint8
    assert np.array_equal(out[..., 0], arr)
    assert meta["format"] == "png"
    assert meta["n_frames"] == 1


def _reference_frame(color=(200, 40, 40, 255), size=(4, 4)):
    from core.palette import quantize_with_transparency
    rgba = np.zeros((size[1], size[0], 4), dtype=np.uint8)
    rgba[...] = color
    return Frame(quantize_with_transparency(rgba))


def test_encode_sequence_keeps_identical_frames():
    seq = FrameSequence(frames=[_reference_frame() for _ in range(4)], size=(4, 4), delays=[10, 20, 30, 40], loop=0)
    back = decode_sequence(encode_sequence(seq))
    assert len(back) == 4
    assert back.delays == [10, 20, 30, 40]
    assert back.loop == 0


def test_encode_sequence_without_loop():
    seq = FrameSequence(frames=[_reference_frame(), _reference_frame((0, 0, 200, 255))], size=(4, 4))
    assert decode_sequence(encode_sequence(seq)).loop is None


def test_encode_sequence_uses_canvas_size_and_offsets():
    small = _reference_frame((0, 0, 200, 255), size=(2, 2))
    small.offset = (2, 1)
    seq = FrameSequence(frames=[_reference_frame(), small], size=(4, 4), delays=[10, 10])
    back = decode_sequence(encode_sequence(seq))
    assert back.size == (4, 4)
    second = np.asarray(back.frames[1].image)
    assert second[1, 2, 2] > second[1, 2, 0]  # blue patch drawn at its offset
    assert second[0, 0, 0] > second[0, 0, 2]  # first frame kept around it


def test_encode_sequence_requantizes_rgba_frames():
    rgba = Image.new("RGBA", (4, 4), (0, 0, 0, 0))
    rgba.paste(Image.new("RGBA", (2, 4), (255, 255, 255, 255)), (2, 0))
    data = encode_sequence(FrameSequence(frames=[Frame(rgba), Frame(rgba.copy())], size=(4, 4)))
    first = Image.open(io.BytesIO(data))
    assert first.info["transparency"] == 0
    assert np.all(np.asarray(first)[:, :2] == 0)
