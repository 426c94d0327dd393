"""In-memory model of the input tree and its mirrored output tree.

Features:
- Depth-first walk of the input directory, hidden entries skipped
- One Directory per folder, holding its documents and at most one dirfile
  (the document standing for the folder itself: ``index`` or ``<folder>``)
- Every document lives in a flat arena (``SiteTree.documents``) and is
  addressed by its integer id, so any page's rendering pass can record a
  backlink on any other page
- Document content is a one-way state machine: Unparsed -> Parsed -> Rendered
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional, Union

from markup_tokens import Block, MarkupParser
from site_errors import ContentPhaseError, FileSystemError, PathError
from site_paths import relative_to_root

logger = logging.getLogger(__name__)

OUTPUT_SUFFIX = ".html"
DIRFILE_STEM = "index"


# -- content phases --
@dataclass
class Unparsed:
    text: str


@dataclass
class Parsed:
    tokens: List[Block]
    references: Dict[str, str]


@dataclass
class Rendered:
    html: str


Content = Union[Unparsed, Parsed, Rendered]


# -- data structures --
@dataclass(eq=False)
class File:
    """One document. ``id`` is its index in ``SiteTree.documents``."""

    id: int
    inpath: Path
    outpath: Path
    relpath: PurePosixPath
    out_relpath: PurePosixPath
    content: Content
    backlinks: List[PurePosixPath] = field(default_factory=list)

    @property
    def stem(self) -> str:
        return self.out_relpath.stem

    @property
    def search_path(self) -> PurePosixPath:
        """Input relative path without its extension; what interlinks are matched against."""
        return self.relpath.with_suffix("")

    def parse(self, parser: MarkupParser) -> Parsed:
        if not isinstance(self.content, Unparsed):
            raise ContentPhaseError(f"{self.relpath} is already parsed")
        document = parser.parse(self.content.text)
        self.content = Parsed(document.tokens, document.references)
        return self.content

    def render(self, html: str) -> Rendered:
        if not isinstance(self.content, Parsed):
            raise ContentPhaseError(f"{self.relpath} is not in the parsed phase")
        self.content = Rendered(html)
        return self.content

    @property
    def html(self) -> str:
        if not isinstance(self.content, Rendered):
            raise ContentPhaseError(f"{self.relpath} has not been rendered")
        return self.content.html


@dataclass(eq=False)
class Directory:
    inpath: Path
    outpath: Path
    relpath: PurePosixPath
    files: List[File] = field(default_factory=list)
    dirfile: Optional[File] = None
    subdirs: List["Directory"] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.inpath.name

    @property
    def documents(self) -> List[File]:
        """Member files followed by the dirfile."""
        return self.files + ([self.dirfile] if self.dirfile is not None else [])


@dataclass
class SiteTree:
    input_root: Path
    output_root: Path
    directories: List[Directory] = field(default_factory=list)
    documents: List[File] = field(default_factory=list)

    def directories_by_depth(self) -> List[Directory]:
        """Directories sorted shallow-to-deep by output path (stable)."""
        return sorted(self.directories, key=lambda d: len(d.outpath.parts))


# -- content loading --
def load_document(document: File, parser: MarkupParser) -> Parsed:
    """Read a document as UTF-8 and parse it."""
    try:
        text = document.inpath.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise FileSystemError(f"cannot read {document.inpath}: {exc}") from exc
    document.content = Unparsed(text)
    return document.parse(parser)


# -- tree building --
def _promote_dirfile(directory: Directory) -> None:
    """Move the document standing for the directory out of its member list."""
    for stem in (DIRFILE_STEM, directory.name):
        for document in directory.files:
            if document.relpath.stem == stem:
                directory.dirfile = document
                directory.files.remove(document)
                return


def _gather_dir(inpath: Path, tree: SiteTree, parser: MarkupParser) -> Directory:
    relpath = relative_to_root(inpath, tree.input_root)
    directory = Directory(
        inpath=inpath,
        outpath=tree.output_root.joinpath(*relpath.parts),
        relpath=relpath,
    )

    try:
        entries = sorted(os.scandir(inpath), key=lambda e: e.name)
    except OSError as exc:
        raise FileSystemError(f"cannot list {inpath}: {exc}") from exc

    outputs: Dict[Path, Path] = {}
    for entry in entries:
        # hidden entries: .git, .obsidian, editor folders
        if entry.name.startswith("."):
            logger.debug("Skipping %s", entry.path)
            continue

        path = Path(entry.path)
        if entry.is_dir():
            directory.subdirs.append(_gather_dir(path, tree, parser))
        elif entry.is_file():
            outpath = (directory.outpath / entry.name).with_suffix(OUTPUT_SUFFIX)
            if outpath in outputs:
                raise PathError(f"{outputs[outpath]} and {path} both map to {outpath}")
            outputs[outpath] = path

            document = File(
                id=len(tree.documents),
                inpath=path,
                outpath=outpath,
                relpath=relative_to_root(path, tree.input_root),
                out_relpath=relative_to_root(outpath, tree.output_root),
                content=Unparsed(""),
            )
            load_document(document, parser)
            tree.documents.append(document)
            directory.files.append(document)

    _promote_dirfile(directory)
    tree.directories.append(directory)
    return directory


def build_tree(input_root: Path, output_root: Path, parser: Optional[MarkupParser] = None) -> SiteTree:
    """Walk input_root and build the SiteTree mirrored under output_root. Nothing is written."""
    input_root = Path(input_root)
    output_root = Path(output_root)
    if not input_root.is_dir():
        raise FileSystemError(f"Input directory not found: {input_root}")

    tree = SiteTree(input_root=input_root, output_root=output_root)
    _gather_dir(input_root, tree, parser or MarkupParser())
    return tree


def describe_tree(tree: SiteTree) -> List[str]:
    """``input -> output`` lines for every directory and its documents."""
    lines: List[str] = []
    for directory in tree.directories_by_depth():
        lines.append(f"{directory.inpath} -> {directory.outpath}")
        for document in directory.documents:
            marker = " (dirfile)" if document is directory.dirfile else ""
            lines.append(f"\t{document.inpath} -> {document.outpath}{marker}")
    return lines
