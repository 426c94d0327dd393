from __future__ import annotations

"""
Unit tests for the tree builder: walking, dirfile promotion and the content
state machine.
"""

from pathlib import Path, PurePosixPath

import pytest

from markup_tokens import MarkupParser
from site_errors import ContentPhaseError, FileSystemError, PathError
from site_tree import Parsed, Rendered, build_tree, describe_tree


def _directory(tree, rel: str):
    return next(d for d in tree.directories if d.relpath == PurePosixPath(rel))


def test_index_is_promoted_to_dirfile(write_tree, out_root: Path) -> None:
    root = write_tree({"foo/index.md": "# Foo", "foo/bar.md": "bar"})
    tree = build_tree(root, out_root)

    foo = _directory(tree, "foo")
    assert foo.dirfile is not None
    assert foo.dirfile.relpath == PurePosixPath("foo/index.md")
    assert [f.relpath for f in foo.files] == [PurePosixPath("foo/bar.md")]


def test_file_named_after_directory_is_promoted(write_tree, out_root: Path) -> None:
    root = write_tree({"blog/blog.md": "blog", "blog/other.md": "other"})
    blog = _directory(build_tree(root, out_root), "blog")

    assert blog.dirfile.relpath == PurePosixPath("blog/blog.md")
    assert [f.stem for f in blog.files] == ["other"]


def test_index_wins_over_directory_name(write_tree, out_root: Path) -> None:
    root = write_tree({"blog/blog.md": "blog", "blog/index.md": "index"})
    blog = _directory(build_tree(root, out_root), "blog")

    assert blog.dirfile.stem == "index"
    assert [f.stem for f in blog.files] == ["blog"]


def test_hidden_entries_are_skipped(write_tree, out_root: Path) -> None:
    root = write_tree({".git/config": "x", ".draft.md": "x", "page.md": "page"})
    tree = build_tree(root, out_root)

    assert [d.relpath for d in tree.directories] == [PurePosixPath(".")]
    assert [f.relpath for f in tree.documents] == [PurePosixPath("page.md")]


def test_output_paths_mirror_input(write_tree, out_root: Path) -> None:
    root = write_tree({"docs/page.md": "page", "notes.txt": "notes"})
    tree = build_tree(root, out_root)
    by_rel = {str(f.relpath): f for f in tree.documents}

    page = by_rel["docs/page.md"]
    assert page.outpath == out_root / "docs" / "page.html"
    assert page.out_relpath == PurePosixPath("docs/page.html")
    assert page.search_path == PurePosixPath("docs/page")
    assert by_rel["notes.txt"].outpath == out_root / "notes.html"


def test_children_come_before_parents(write_tree, out_root: Path) -> None:
    root = write_tree({"a/b/deep.md": "x", "a/mid.md": "x", "top.md": "x"})
    tree = build_tree(root, out_root)

    assert [str(d.relpath) for d in tree.directories] == ["a/b", "a", "."]
    assert [str(d.relpath) for d in tree.directories_by_depth()] == [".", "a", "a/b"]
    assert [d.name for d in _directory(tree, "a").subdirs] == ["b"]


def test_documents_arena_ids(write_tree, out_root: Path) -> None:
    root = write_tree({"x/one.md": "1", "two.md": "2", "x/three.md": "3"})
    tree = build_tree(root, out_root)

    assert [doc.id for doc in tree.documents] == list(range(3))
    assert all(isinstance(doc.content, Parsed) for doc in tree.documents)


def test_missing_input_root(tmp_path: Path) -> None:
    with pytest.raises(FileSystemError):
        build_tree(tmp_path / "nope", tmp_path / "out")


def test_unreadable_file(write_tree, out_root: Path) -> None:
    root = write_tree({})
    (root / "binary.md").write_bytes(b"\xff\xfe\xfa")
    with pytest.raises(FileSystemError):
        build_tree(root, out_root)


def test_colliding_outputs(write_tree, out_root: Path) -> None:
    root = write_tree({"page.md": "a", "page.txt": "b"})
    with pytest.raises(PathError):
        build_tree(root, out_root)


def test_content_transitions_are_one_way(write_tree, out_root: Path) -> None:
    root = write_tree({"page.md": "hello"})
    page = build_tree(root, out_root).documents[0]

    with pytest.raises(ContentPhaseError):
        page.parse(MarkupParser())
    with pytest.raises(ContentPhaseError):
        page.html

    page.render("<p>hello</p>")
    assert isinstance(page.content, Rendered)
    assert page.html == "<p>hello</p>"
    with pytest.raises(ContentPhaseError):
        page.render("again")


def test_describe_tree(write_tree, out_root: Path) -> None:
    root = write_tree({"docs/index.md": "x", "docs/page.md": "y"})
    lines = describe_tree(build_tree(root, out_root))

    assert lines[0] == f"{root} -> {out_root}"
    assert any(line.endswith("index.html (dirfile)") for line in lines)
