"""Tests for the epx command-line tool."""

import pytest

from epx.bmp import read_header
from epx.cli import build_parser, main
from epx.converter import DEFAULT_HEIGHT, DEFAULT_WIDTH
from epx.fingerprint import fingerprint, from_base64


@pytest.fixture
def image_path(tmp_path, gradient_png):
    path = tmp_path / "photo.png"
    path.write_bytes(gradient_png)
    return path


def test_convert(tmp_path, image_path, capsys):
    out = tmp_path / "out" / "screen.bmp"
    b64 = tmp_path / "out" / "screen.txt"
    code = main(["convert", str(image_path), "-o", str(out), "-W", "24", "-H", "16", "--base64", str(b64)])
    assert code == 0

    data = out.read_bytes()
    header = read_header(data)
    assert (header.width, header.height) == (24, 16)
    assert from_base64(b64.read_text()) == data
    assert fingerprint(data) in capsys.readouterr().out


def test_convert_default_output_path(image_path):
    assert main(["convert", str(image_path), "-W", "8", "-H", "8"]) == 0
    assert image_path.with_suffix(".bmp").exists()


def test_convert_defaults_to_panel_size():
    args = build_parser().parse_args(["convert", "photo.png"])
    assert (args.width, args.height) == (DEFAULT_WIDTH, DEFAULT_HEIGHT)


def test_convert_rejects_bad_size(image_path, capsys):
    assert main(["convert", str(image_path), "-W", "0"]) == 1
    assert "positive" in capsys.readouterr().err


def test_convert_rejects_garbage(tmp_path, capsys):
    path = tmp_path / "junk.png"
    path.write_bytes(b"definitely not a png")
    assert main(["convert", str(path)]) == 1
    assert "error:" in capsys.readouterr().err


def test_convert_missing_file(tmp_path):
    assert main(["convert", str(tmp_path / "missing.png")]) == 1


def test_info(tmp_path, image_path, capsys):
    out = tmp_path / "screen.bmp"
    main(["convert", str(image_path), "-o", str(out), "-W", "10", "-H", "3"])
    capsys.readouterr()
    assert main(["info", str(out)]) == 0
    text = capsys.readouterr().out
    assert "10x3 (top-down)" in text
    assert "Row stride:  4 bytes" in text
    assert "#000000, #ffffff" in text


def test_info_rejects_non_bitmap(image_path):
    assert main(["info", str(image_path)]) == 1


def test_preview(tmp_path, image_path):
    bmp = tmp_path / "screen.bmp"
    png = tmp_path / "screen_preview.png"
    main(["convert", str(image_path), "-o", str(bmp), "-W", "16", "-H", "12"])
    assert main(["preview", str(bmp), "-o", str(png), "--scale", "2"]) == 0
    assert png.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"


def test_fingerprint(image_path, capsys):
    assert main(["fingerprint", str(image_path)]) == 0
    assert capsys.readouterr().out.startswith(fingerprint(image_path.read_bytes()))


def test_no_command(capsys):
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out
