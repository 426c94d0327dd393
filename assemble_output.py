"""Fill the page template for every rendered document and write the output tree."""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import List, Tuple

from page_template import PageTemplate
from site_errors import FileSystemError
from site_paths import CURRENT_DIR, relativize
from site_tree import Directory, File, SiteTree

logger = logging.getLogger(__name__)


def friends_of(directory: Directory) -> List[Tuple[File, str]]:
    """(document, label) for the siblings, the dirfile and the child directories' dirfiles.

    Only direct children contribute, so an index page links to its immediate
    sub-index pages and not to deeper ones.
    """
    friends = [(document, document.stem) for document in directory.files]
    if directory.dirfile is not None:
        # the root's dirfile has no directory name worth showing
        label = directory.name if directory.relpath.parts else directory.dirfile.stem
        friends.append((directory.dirfile, label))
    for sub in directory.subdirs:
        if sub.dirfile is not None:
            friends.append((sub.dirfile, sub.name))
    return friends


def dedup_backlinks(backlinks: List[PurePosixPath]) -> List[PurePosixPath]:
    return list(dict.fromkeys(backlinks))


def backlink_label(path: PurePosixPath, document: File) -> str:
    if path == CURRENT_DIR:
        return document.stem
    return path.stem


def compose_page(document: File, template: PageTemplate, friends: List[Tuple[File, str]]) -> str:
    document.backlinks = dedup_backlinks(document.backlinks)
    backlinks = [(str(path), backlink_label(path, document)) for path in document.backlinks]
    friend_entries = [
        (str(relativize(document.out_relpath, friend.out_relpath)), label)
        for friend, label in friends
        if friend is not document
    ]
    return template.render(document.html, backlinks, friend_entries, title=document.stem)


def prepare_output(tree: SiteTree) -> None:
    """Create every output directory, parents before children."""
    for directory in tree.directories_by_depth():
        try:
            directory.outpath.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FileSystemError(f"cannot create {directory.outpath}: {exc}") from exc


def write_page(path: Path, text: str) -> None:
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise FileSystemError(f"cannot write {path}: {exc}") from exc


def assemble(tree: SiteTree, template: PageTemplate) -> None:
    """Compose every page, then create directories and write them all.

    Pages are composed first so a template error leaves nothing half written.
    """
    pages: List[Tuple[File, str]] = []
    for directory in tree.directories:
        friends = friends_of(directory)
        for document in directory.documents:
            pages.append((document, compose_page(document, template, friends)))

    prepare_output(tree)
    for document, text in pages:
        write_page(document.outpath, text)
        logger.debug("Wrote %s", document.outpath)
