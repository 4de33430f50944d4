"""Tests for src.retrieval.screenshots: README image extraction and URL mapping.

Run with:
    pytest tests/test_screenshots.py --maxfail=1 -v --cov=src.retrieval.screenshots --cov-report=term-missing
"""

import pytest

from src.retrieval import screenshots

RAW = "https://raw.githubusercontent.com"


def test_extract_first_image_takes_the_first_match():
    text = "# T\n![one](a.png) text ![two](b.png)"
    assert screenshots.extract_first_image(text) == "a.png"
    assert screenshots.extract_first_image('![t](img/x.png "Title")') == "img/x.png"
    assert screenshots.extract_first_image("no images, just [a link](x)") is None
    assert screenshots.extract_first_image(None) is None


@pytest.mark.parametrize(
    "url, expected",
    [
        ("assets/screenshots/demo.png", f"{RAW}/bob/foo/main/assets/screenshots/demo.png"),
        ("./assets/demo.png", f"{RAW}/bob/foo/main/assets/demo.png"),
        ("images/a.jpg", f"{RAW}/bob/foo/main/images/a.jpg"),
        ("./images/a.jpg", f"{RAW}/bob/foo/main/images/a.jpg"),
        ("docs/shot.webp", f"{RAW}/bob/foo/main/docs/shot.webp"),
        ("/static/shot.png", f"{RAW}/bob/foo/main/static/shot.png"),
        ("https://example.com/x.png", "https://example.com/x.png"),
        ("//cdn.example.com/x.png", "https://cdn.example.com/x.png"),
        ("data:image/png;base64,AAAA", None),
    ],
)
def test_resolve_image_url(url, expected):
    assert screenshots.resolve_image_url(url, "bob", "foo") == expected


def test_local_path_only_for_raw_content_urls():
    assert screenshots.to_local_screenshot_path(f"{RAW}/bob/foo/main/a/demo.png", "foo") == "/images/repos/foo.png"
    assert screenshots.to_local_screenshot_path(
        f"{RAW}/bob/foo/main/Screenshot%20Portfolio.JPG?raw=1", "foo"
    ) == "/images/repos/foo.JPG"
    assert screenshots.to_local_screenshot_path(f"{RAW}/bob/foo/main/noext", "foo") == "/images/repos/foo.png"
    assert screenshots.to_local_screenshot_path("https://example.com/x.gif", "foo") == "https://example.com/x.gif"
    assert screenshots.to_local_screenshot_path(None, "foo") is None


def test_screenshot_from_readme_returns_local_and_source():
    local, source = screenshots.screenshot_from_readme("![Photo](assets/screenshots/demo.png)", "bob", "foo")
    assert local == "/images/repos/foo.png"
    assert source == f"{RAW}/bob/foo/main/assets/screenshots/demo.png"
    assert screenshots.screenshot_from_readme("![x](data:image/png;base64,AAAA)", "bob", "foo") == (None, None)
    assert screenshots.screenshot_from_readme("plain text", "bob", "foo") == (None, None)


def test_rewrite_readme_images_touches_only_relative_links():
    text = "![a](./img/a.png)\n![b](https://x.io/b.png)\n![c](data:image/png;base64,AA)"
    rewritten = screenshots.rewrite_readme_images(text, "bob", "foo")
    assert f"![a]({RAW}/bob/foo/main/img/a.png)" in rewritten
    assert "![b](https://x.io/b.png)" in rewritten
    assert "![c](data:image/png;base64,AA)" in rewritten


def test_find_local_screenshot_prefers_strict_then_flexible_then_partial(tmp_path):
    for name in ["tool-demo.png", "Screenshot other.jpg", "my project banner.webp", "notes.txt"]:
        (tmp_path / name).write_bytes(b"x")
    assert screenshots.find_local_screenshot("tool", tmp_path) == "assets/screenshots/tool-demo.png"
    assert screenshots.find_local_screenshot("other", tmp_path) == "assets/screenshots/Screenshot other.jpg"
    assert screenshots.find_local_screenshot("my-project", tmp_path) == "assets/screenshots/my project banner.webp"
    assert screenshots.find_local_screenshot("zzz", tmp_path) is None


def test_find_local_screenshot_without_directory(tmp_path):
    assert screenshots.find_local_screenshot("tool", None) is None
    assert screenshots.find_local_screenshot("tool", tmp_path / "missing") is None
