import struct
from pathlib import Path

import pytest
from PIL import Image

from gsgraph import AlreadyExistsError, FormatError, InvalidSizeError, Palette, read_cv2, read_cv2_header
from gsgraph.batch import (
    ConvertOptions,
    convert_images,
    export_palette_swatch,
    import_palette_swatch,
    restore_images,
)


def _palette() -> Palette:
    entries = [((i * 8) & 0xF8, i & 0xF8, (255 - i) & 0xF8, 255) for i in range(256)]
    entries[0] = (255, 255, 255, 0)
    return Palette(tuple(entries), 0)


def _write_png(path: Path, pixels, size) -> Path:
    image = Image.new("RGBA", size)
    image.putdata(pixels)
    image.save(path)
    return path


def test_convert_directory_with_palette(tmp_path: Path) -> None:
    palette = _palette()
    colors = [palette.entries[3], palette.entries[40], (1, 2, 3, 255), palette.entries[255]]
    _write_png(tmp_path / "a.png", colors, (2, 2))
    _write_png(tmp_path / "b.png", colors[:2], (2, 1))
    (tmp_path / "notes.txt").write_text("ignored")

    report = convert_images([tmp_path], [], ConvertOptions(palette=palette))

    assert report.ok
    assert report.written == [tmp_path / "a.cv2", tmp_path / "b.cv2"]
    assert report.directory_counts == {tmp_path: 2}
    assert read_cv2_header((tmp_path / "a.cv2").read_bytes()).bit_depth == 8
    assert (tmp_path / "a.cv2").read_bytes()[17:] == bytes([3, 40, 0, 255])
    decoded = read_cv2(tmp_path / "a.cv2", palette)
    assert decoded.pixels == [colors[0], colors[1], palette.entries[0], colors[3]]


def test_convert_without_palette_writes_32bit(tmp_path: Path) -> None:
    source = _write_png(tmp_path / "photo.png", [(9, 8, 7, 255)], (1, 1))

    report = convert_images([], [source], ConvertOptions())

    assert report.written == [tmp_path / "photo.cv2"]
    data = (tmp_path / "photo.cv2").read_bytes()
    assert data[0] == 32
    assert data[17:] == bytes([7, 8, 9, 255])


def test_existing_outputs_are_reported_and_kept(tmp_path: Path) -> None:
    source = _write_png(tmp_path / "a.png", [(9, 8, 7, 255)], (1, 1))
    existing = tmp_path / "a.cv2"
    existing.write_bytes(b"keep me")

    report = convert_images([], [source], ConvertOptions())

    assert report.written == []
    assert len(report.failures) == 1
    assert report.failures[0][0] == source
    assert isinstance(report.failures[0][1], AlreadyExistsError)
    assert existing.read_bytes() == b"keep me"


def test_batch_continues_after_failure(tmp_path: Path) -> None:
    (tmp_path / "broken.png").write_bytes(b"garbage")
    _write_png(tmp_path / "good.png", [(1, 1, 1, 255)], (1, 1))

    report = convert_images([tmp_path], [], ConvertOptions(jobs=2))

    assert report.written == [tmp_path / "good.cv2"]
    assert [path for path, _ in report.failures] == [tmp_path / "broken.png"]
    assert isinstance(report.failures[0][1], FormatError)
    assert not (tmp_path / "broken.cv2").exists()
    assert report.directory_counts == {tmp_path: 1}


def test_missing_directory_is_reported(tmp_path: Path) -> None:
    report = convert_images([tmp_path / "nope"], [], ConvertOptions())

    assert not report.ok
    assert report.failures[0][0] == tmp_path / "nope"


def test_unsupported_file_warns(tmp_path: Path) -> None:
    other = tmp_path / "image.gif"
    other.write_bytes(b"")

    with pytest.warns(RuntimeWarning):
        report = convert_images([], [other], ConvertOptions())

    assert report.written == []
    assert report.ok


def test_restore_cv2_to_png(tmp_path: Path) -> None:
    palette = _palette()
    colors = [palette.entries[1], palette.entries[2], palette.entries[3]]
    source = _write_png(tmp_path / "sprite.png", colors, (3, 1))
    convert_images([], [source], ConvertOptions(palette=palette))
    source.unlink()

    report = restore_images([tmp_path], [], ConvertOptions(palette=palette))

    assert report.written == [tmp_path / "sprite.png"]
    with Image.open(tmp_path / "sprite.png") as image:
        restored = image.convert("RGBA")
        assert restored.size == (3, 1)
        assert [restored.getpixel((x, 0)) for x in range(3)] == colors


def test_restore_8bit_without_palette_fails(tmp_path: Path) -> None:
    palette = _palette()
    source = _write_png(tmp_path / "sprite.png", [palette.entries[1]], (1, 1))
    convert_images([], [source], ConvertOptions(palette=palette))
    source.unlink()

    report = restore_images([], [tmp_path / "sprite.cv2"], ConvertOptions())

    assert report.written == []
    assert not (tmp_path / "sprite.png").exists()


def test_export_palette_swatch(tmp_path: Path) -> None:
    palette = _palette()
    pal_path = tmp_path / "palette000.pal"
    palette.save(pal_path)

    target = export_palette_swatch(pal_path)

    assert target == tmp_path / "palette000.bmp"
    with Image.open(target) as image:
        rgba = image.convert("RGBA")
        assert rgba.size == (32, 32)
        assert rgba.getpixel((2, 0))[:3] == palette.entries[1][:3]
        assert rgba.getpixel((3, 3))[:3] == palette.entries[17][:3]
    with pytest.raises(AlreadyExistsError):
        export_palette_swatch(pal_path)


def test_import_palette_swatch(tmp_path: Path) -> None:
    palette = _palette()
    swatch = palette.to_swatch(1)
    bitmap = _write_png(tmp_path / "colors.png", swatch.pixels, (16, 16))

    target = import_palette_swatch(bitmap)

    assert target == tmp_path / "colors.pal"
    loaded = Palette.load(target)
    assert loaded.entries[1:] == palette.entries[1:]
    # Forced transparent entry, stored at 5-bit precision.
    assert loaded.entries[0] == (248, 248, 248, 0)
    assert loaded.transparent_index == 0


def test_import_palette_swatch_rejects_wrong_size(tmp_path: Path) -> None:
    bitmap = _write_png(tmp_path / "wide.png", [(0, 0, 0, 255)] * 32, (16, 2))

    with pytest.raises(InvalidSizeError):
        import_palette_swatch(bitmap)
    assert not (tmp_path / "wide.pal").exists()


def test_malformed_cv2_does_not_stop_batch(tmp_path: Path) -> None:
    bad = tmp_path / "a_bad.cv2"
    bad.write_bytes(struct.pack("<Biiii", 32, 2**31 - 1, 2**31 - 1, 0, 0))
    _write_png(tmp_path / "b_good.png", [(1, 2, 3, 255)], (1, 1))
    convert_images([], [tmp_path / "b_good.png"], ConvertOptions())
    (tmp_path / "b_good.png").unlink()

    report = restore_images([tmp_path], [], ConvertOptions())

    assert report.written == [tmp_path / "b_good.png"]
    assert [path for path, _ in report.failures] == [bad]
    assert isinstance(report.failures[0][1], FormatError)
    assert not (tmp_path / "a_bad.png").exists()


def test_oversized_image_does_not_stop_batch(tmp_path: Path, monkeypatch) -> None:
    _write_png(tmp_path / "a_big.png", [(0, 0, 0, 255)] * 100, (10, 10))
    _write_png(tmp_path / "b_small.png", [(0, 0, 0, 255)], (1, 1))
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)

    report = convert_images([tmp_path], [], ConvertOptions())

    assert report.written == [tmp_path / "b_small.cv2"]
    assert [path for path, _ in report.failures] == [tmp_path / "a_big.png"]
    assert isinstance(report.failures[0][1], FormatError)
