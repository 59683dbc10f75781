"""Unit tests for URL path to content root resolution."""

from pathlib import Path

import pytest

from resolver import PathResolver


def _resolver(tmp_path: Path) -> PathResolver:
    return PathResolver(tmp_path)


def test_root_path_maps_to_default_document(tmp_path: Path) -> None:
    resolved = _resolver(tmp_path).resolve("/")

    assert resolved == tmp_path.resolve() / "index.html"



def test_extensionless_path_gets_html_suffix(tmp_path: Path) -> None:
    resolved = _resolver(tmp_path).resolve("/blog/post")

    assert resolved == tmp_path.resolve() / "blog" / "post.html"



def test_existing_extension_is_kept(tmp_path: Path) -> None:
    resolved = _resolver(tmp_path).resolve("/css/site.CSS")

    assert resolved == tmp_path.resolve() / "css" / "site.CSS"



def test_missing_file_still_resolves(tmp_path: Path) -> None:
    resolved = _resolver(tmp_path).resolve("/nothing-here.txt")

    assert resolved is not None
    assert not resolved.exists()



def test_percent_encoded_names_are_decoded(tmp_path: Path) -> None:
    resolved = _resolver(tmp_path).resolve("/my%20page")

    assert resolved == tmp_path.resolve() / "my page.html"



def test_trailing_slash_is_literal(tmp_path: Path) -> None:
    resolved = _resolver(tmp_path).resolve("/about/")

    assert resolved == tmp_path.resolve() / "about" / ".html"



def test_inner_parent_segments_inside_root_are_allowed(tmp_path: Path) -> None:
    resolved = _resolver(tmp_path).resolve("/a/../b.css")

    assert resolved == tmp_path.resolve() / "b.css"



@pytest.mark.parametrize(
    "url_path",
    [
        "/../etc/passwd",
        "/a/../../etc/passwd",
        "/%2e%2e/%2e%2e/etc/passwd",
        "/..%2F..%2Fetc%2Fpasswd",
        "/..",
    ],
)
def test_paths_escaping_root_return_none(tmp_path: Path, url_path: str) -> None:
    root = tmp_path / "root"
    root.mkdir()

    assert PathResolver(root).resolve(url_path) is None



def test_nul_byte_returns_none(tmp_path: Path) -> None:
    assert _resolver(tmp_path).resolve("/index%00.html") is None



def test_relative_target_returns_none(tmp_path: Path) -> None:
    assert _resolver(tmp_path).resolve("index.html") is None



def test_custom_default_document(tmp_path: Path) -> None:
    resolver = PathResolver(tmp_path, default_document="home.htm")

    assert resolver.resolve("/") == tmp_path.resolve() / "home.htm"



def test_rejects_invalid_default_extension(tmp_path: Path) -> None:
    try:
        PathResolver(tmp_path, default_extension="html")
    except ValueError as exc:
        assert "must start with" in str(exc)
    else:
        raise AssertionError("Expected ValueError for extension without dot")



@pytest.mark.parametrize(
    ("url_path", "relative"),
    [
        ("//sub/style.css", "sub/style.css"),
        ("//a/b", "a/b.html"),
        ("/a//b.css", "a/b.css"),
        ("///index.html", "index.html"),
    ],
)
def test_repeated_slashes_stay_under_root(tmp_path: Path, url_path: str, relative: str) -> None:
    resolved = _resolver(tmp_path).resolve(url_path)

    assert resolved == tmp_path.resolve() / relative



def test_symlinked_page_keeps_requested_name(tmp_path: Path) -> None:
    (tmp_path / "content.txt").write_text("x")
    (tmp_path / "page.html").symlink_to(tmp_path / "content.txt")

    resolved = _resolver(tmp_path).resolve("/page")

    assert resolved == tmp_path.resolve() / "page.html"
