"""
Tests for image decoding and batch input iteration.
"""

import cv2
import numpy as np
import pytest

from privacy_redaction.input_handler import (
    ImageReadError,
    InputHandler,
    decode_image,
    maybe_resize,
    read_image,
)


def _write_image(path, height=40, width=60):
    assert cv2.imwrite(str(path), np.full((height, width, 3), 90, dtype=np.uint8))
    return path


def test_decode_image():
    ok, encoded = cv2.imencode(".png", np.zeros((20, 30, 3), dtype=np.uint8))
    assert ok
    assert decode_image(encoded.tobytes()).shape == (20, 30, 3)


def test_decode_rejects_garbage():
    with pytest.raises(ImageReadError):
        decode_image(b"")
    with pytest.raises(ImageReadError):
        decode_image(b"\x00\x01\x02 not an image")


def test_image_read_error_is_value_error(tmp_path):
    with pytest.raises(ValueError):
        read_image(tmp_path / "missing.png")


def test_maybe_resize():
    frame = np.zeros((100, 400, 3), dtype=np.uint8)
    assert maybe_resize(frame, None) is frame
    assert maybe_resize(frame, 800) is frame
    assert maybe_resize(frame, 200).shape == (50, 200, 3)


def test_directory_iteration_skips_unreadable(tmp_path):
    _write_image(tmp_path / "b.png")
    _write_image(tmp_path / "a.jpg")
    (tmp_path / "broken.png").write_bytes(b"not a png")
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")

    handler = InputHandler(tmp_path)
    assert len(handler) == 3

    names = [name for name, frame in handler]
    assert names == ["a.jpg", "b.png"]


def test_single_image_with_resize(tmp_path):
    path = _write_image(tmp_path / "photo.png", height=100, width=200)
    frames = list(InputHandler(path, resize_width=100))

    assert len(frames) == 1
    assert frames[0][0] == "photo.png"
    assert frames[0][1].shape == (50, 100, 3)


def test_invalid_sources(tmp_path):
    with pytest.raises(FileNotFoundError):
        InputHandler(tmp_path / "nowhere")

    with pytest.raises(ValueError, match="No image files"):
        InputHandler(tmp_path)

    video = tmp_path / "clip.mp4"
    video.write_bytes(b"")
    with pytest.raises(ValueError, match="Unrecognized file extension"):
        InputHandler(video)


def test_same_stem_different_extension(tmp_path):
    _write_image(tmp_path / "photo.jpg")
    _write_image(tmp_path / "photo.png")

    names = [name for name, frame in InputHandler(tmp_path)]
    assert names == ["photo.jpg", "photo.png"]
