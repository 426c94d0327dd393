from __future__ import annotations

"""
Unit tests for friend computation, backlink deduplication and page writing.
"""

from pathlib import Path, PurePosixPath

import pytest

from assemble_output import assemble, backlink_label, dedup_backlinks, friends_of, prepare_output
from page_template import PageTemplate
from render_links import render
from site_errors import TemplateSlotMissing
from site_tree import build_tree


def _site(write_tree, out_root: Path, files):
    tree = build_tree(write_tree(files), out_root)
    render(tree)
    return tree


def _page(out_root: Path, rel: str):
    content, backlinks, friends = (out_root / rel).read_text(encoding="utf-8").split("|")
    return content, [e for e in backlinks.split(";") if e], [e for e in friends.split(";") if e]


def test_end_to_end_backlink(write_tree, out_root: Path, flat_template: PageTemplate) -> None:
    tree = _site(write_tree, out_root, {"a.md": "[[b]]", "b.md": "bee"})
    assemble(tree, flat_template)

    content, backlinks, friends = _page(out_root, "a.html")
    assert '<a href="b.html">' in content
    assert friends == ["b.html=b"]

    _, backlinks, _ = _page(out_root, "b.html")
    assert backlinks == ["a.html=a"]


def test_backlinks_are_deduplicated(write_tree, out_root: Path, flat_template: PageTemplate) -> None:
    tree = _site(write_tree, out_root, {"a.md": "[[b]] [[b]]", "c.md": "[[b]]", "b.md": "bee"})
    assemble(tree, flat_template)

    _, backlinks, _ = _page(out_root, "b.html")
    assert backlinks == ["a.html=a", "c.html=c"]


def test_dedup_keeps_first_occurrence_order() -> None:
    paths = [PurePosixPath(p) for p in ("b.html", "a.html", "b.html", "a.html")]
    assert dedup_backlinks(paths) == [PurePosixPath("b.html"), PurePosixPath("a.html")]


def test_self_backlink_is_labelled_with_own_stem(write_tree, out_root: Path) -> None:
    tree = _site(write_tree, out_root, {"page.md": "[[page]]"})
    page = tree.documents[0]

    assert page.backlinks == [PurePosixPath(".")]
    assert backlink_label(PurePosixPath("."), page) == "page"
    assert backlink_label(PurePosixPath("../x/other.html"), page) == "other"


def test_friends_include_directory_index(write_tree, out_root: Path, flat_template: PageTemplate) -> None:
    tree = _site(write_tree, out_root, {"docs/index.md": "docs", "docs/page.md": "page"})
    assemble(tree, flat_template)

    _, _, friends = _page(out_root, "docs/page.html")
    assert friends == ["index.html=docs"]
    _, _, friends = _page(out_root, "docs/index.html")
    assert friends == ["page.html=page"]


def test_friends_reach_direct_child_dirfiles_only(write_tree, out_root: Path) -> None:
    tree = _site(
        write_tree,
        out_root,
        {
            "index.md": "home",
            "about.md": "about",
            "blog/blog.md": "blog",
            "blog/2024/index.md": "year",
            "misc/loose.md": "no dirfile here",
        },
    )
    root = next(d for d in tree.directories if not d.relpath.parts)

    labels = [(str(doc.relpath), label) for doc, label in friends_of(root)]
    assert labels == [("about.md", "about"), ("index.md", "index"), ("blog/blog.md", "blog")]


def test_friend_hrefs_are_relative(write_tree, out_root: Path, flat_template: PageTemplate) -> None:
    tree = _site(write_tree, out_root, {"docs/index.md": "d", "docs/sub/index.md": "s", "docs/a.md": "a"})
    assemble(tree, flat_template)

    _, _, friends = _page(out_root, "docs/a.html")
    assert friends == ["index.html=docs", "sub/index.html=sub"]


def test_output_directories_are_created(write_tree, out_root: Path, flat_template: PageTemplate) -> None:
    tree = _site(write_tree, out_root, {"a/b/c/deep.md": "deep", "top.md": "top"})
    assemble(tree, flat_template)

    assert (out_root / "a" / "b" / "c" / "deep.html").is_file()
    assert (out_root / "top.html").is_file()
    depths = [len(d.outpath.parts) for d in tree.directories_by_depth()]
    assert depths == sorted(depths)


def test_existing_files_are_overwritten(write_tree, out_root: Path, flat_template: PageTemplate) -> None:
    tree = _site(write_tree, out_root, {"a.md": "fresh"})
    out_root.mkdir()
    (out_root / "a.html").write_text("stale", encoding="utf-8")
    assemble(tree, flat_template)

    assert (out_root / "a.html").read_text(encoding="utf-8").startswith("<p>fresh</p>")


def test_prepare_output_only_creates_directories(write_tree, out_root: Path) -> None:
    tree = _site(write_tree, out_root, {"x/y.md": "y"})
    prepare_output(tree)

    assert (out_root / "x").is_dir()
    assert not (out_root / "x" / "y.html").exists()


def test_template_error_writes_nothing(write_tree, out_root: Path, flat_template_source: str) -> None:
    tree = _site(write_tree, out_root, {"a.md": "a"})
    template = PageTemplate(flat_template_source + "{{ footer }}")

    with pytest.raises(TemplateSlotMissing):
        assemble(tree, template)
    assert not out_root.exists()
