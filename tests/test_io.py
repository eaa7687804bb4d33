import json

import numpy as np
import pytest

from fingermatch.utils.io import (
    discover_images,
    load_candidates,
    load_image,
    save_image,
    save_json
)


def test_save_and_load_roundtrip(tmp_path):
    image = np.arange(64, dtype=np.uint8).reshape(8, 8)
    path = save_image(image, tmp_path / "sub" / "a.png")

    assert np.array_equal(load_image(path, grayscale=True), image)
    assert load_image(path).shape == (8, 8, 3)


def test_float_images_are_scaled(tmp_path):
    path = save_image(np.ones((4, 4), dtype=np.float32), tmp_path / "f.png")
    assert np.all(load_image(path, grayscale=True) == 255)


def test_missing_image_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_image(tmp_path / "nope.png")


def test_undecodable_image_raises(tmp_path):
    path = tmp_path / "bad.png"
    path.write_bytes(b"not an image")
    with pytest.raises(ValueError):
        load_image(path)


def test_discover_images_filters_extensions(tmp_path):
    image = np.zeros((4, 4), dtype=np.uint8)
    save_image(image, tmp_path / "b.png")
    save_image(image, tmp_path / "a.bmp")
    (tmp_path / "notes.txt").write_text("x")

    assert [p.name for p in discover_images(tmp_path)] == ["a.bmp", "b.png"]


def test_load_candidates_uses_stems(tmp_path):
    image = np.zeros((4, 4), dtype=np.uint8)
    save_image(image, tmp_path / "gallery" / "alice.png")
    save_image(image, tmp_path / "gallery" / "bob.png")
    single = save_image(image, tmp_path / "other" / "alice.png")

    candidates = load_candidates([tmp_path / "gallery", single])

    assert set(candidates) == {"alice", "bob", "other/alice"}


def test_save_json(tmp_path):
    path = save_json({"score": 1.5}, tmp_path / "out" / "r.json")
    assert json.loads(path.read_text()) == {"score": 1.5}


def test_load_candidates_keeps_every_file_with_a_shared_stem(tmp_path):
    image = np.zeros((4, 4), dtype=np.uint8)
    for suffix in (".png", ".jpg", ".bmp"):
        save_image(image, tmp_path / "a" / f"x{suffix}")
    save_image(image, tmp_path / "b" / "a" / "x.png")

    candidates = load_candidates([tmp_path / "a", tmp_path / "b" / "a"])

    assert set(candidates) == {"x", "a/x", "a/x.png", "a/x.png#2"}
