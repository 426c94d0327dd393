"""Render parsed documents to HTML, resolving interlinks against the whole tree.

Every interlink that resolves also records a backlink on its target, so
backlinks are complete once every document has been rendered and no second
pass over the tokens is needed.
"""

from __future__ import annotations

import logging
from typing import Dict, List

from markup_tokens import (
    Block,
    Break,
    Code,
    CodeBlock,
    Header,
    Inline,
    Interlink,
    Link,
    Markup,
    Paragraph,
    Plain,
    ReferenceLink,
    Section,
    Styled,
    Text,
    Verbatim,
)
from site_errors import ContentPhaseError, LinkAmbiguityError, UnresolvedLink
from site_paths import path_endswith, relativize
from site_tree import File, Parsed, SiteTree

logger = logging.getLogger(__name__)


def resolve_reference(tree: SiteTree, location: str) -> List[File]:
    """Every document whose extensionless input path ends with ``location``.

    A dirfile also matches on its directory's path, so ``[[blog]]`` reaches
    ``blog/index.md``.
    """
    matches: List[File] = []
    for directory in tree.directories:
        for document in directory.documents:
            if path_endswith(document.search_path, location) or (
                document is directory.dirfile and path_endswith(directory.relpath, location)
            ):
                matches.append(document)
    return matches


def lookup_reference(references: Dict[str, str], label: str) -> str:
    try:
        return references[label]
    except KeyError:
        raise UnresolvedLink(label, kind="reference link") from None


class LinkRenderer:
    def __init__(self, tree: SiteTree):
        self.tree = tree

    def render_all(self) -> None:
        for document in self.tree.documents:
            document.render(self.render_document(document))

    def render_document(self, document: File) -> str:
        content = document.content
        if not isinstance(content, Parsed):
            raise ContentPhaseError(f"{document.relpath} is not in the parsed phase")
        return "".join(self._block(document, content.references, token) for token in content.tokens)

    def resolve(self, location: str, source: File) -> File:
        matches = resolve_reference(self.tree, location)
        if len(matches) > 1:
            raise LinkAmbiguityError(location, [str(m.relpath) for m in matches], str(source.relpath))
        if not matches:
            raise UnresolvedLink(location)
        return matches[0]

    # -- blocks --
    def _block(self, document: File, references: Dict[str, str], token: Block) -> str:
        if isinstance(token, Header):
            inner = self._inlines(document, references, token.inner).strip()
            return f"<h{token.level}>{inner}</h{token.level}>"
        if isinstance(token, Paragraph):
            return f"<p>{self._inlines(document, references, token.inner)}</p>"
        if isinstance(token, CodeBlock):
            lang = f' class="language-{token.lang}"' if token.lang else ""
            return f"<pre><code{lang}>{token.code}</code></pre>"
        if isinstance(token, Section):
            attrs = "".join(f' {key}="{value}"' for key, value in token.attrs.items())
            inner = "".join(self._block(document, references, child) for child in token.blocks)
            return f"<{token.tag}{attrs}>{inner}</{token.tag}>"
        if isinstance(token, Plain):
            return self._inlines(document, references, token.inner)
        if isinstance(token, Verbatim):
            return token.html
        raise TypeError(f"unknown block token {token!r}")

    # -- inlines --
    def _inlines(self, document: File, references: Dict[str, str], inlines: List[Inline]) -> str:
        return "".join(self._inline(document, references, token) for token in inlines)

    def _inline(self, document: File, references: Dict[str, str], token: Inline) -> str:
        if isinstance(token, Break):
            return "<br>"
        if isinstance(token, Text):
            return token.text
        if isinstance(token, Code):
            return f"<code>{token.code}</code>"
        if isinstance(token, Link):
            name = token.name if token.name is not None else token.location
            return f'<a href="{token.location}">{name}</a>'
        if isinstance(token, ReferenceLink):
            return self._reference_link(document, references, token)
        if isinstance(token, Interlink):
            return self._interlink(document, token)
        if isinstance(token, Styled):
            return f"<{token.tag}>{self._inlines(document, references, token.inner)}</{token.tag}>"
        if isinstance(token, Markup):
            return token.html
        raise TypeError(f"unknown inline token {token!r}")

    def _reference_link(self, document: File, references: Dict[str, str], token: ReferenceLink) -> str:
        label = token.location.strip()
        try:
            location = lookup_reference(references, label)
        except UnresolvedLink as exc:
            logger.warning("%s in %s, using the label as location", exc, document.relpath)
            location = label
        name = token.name if token.name is not None else token.location
        return f'<a href="{location}">{name}</a>'

    def _interlink(self, document: File, token: Interlink) -> str:
        location = token.location.strip()
        try:
            target = self.resolve(location, document)
        except UnresolvedLink as exc:
            logger.warning("%s in %s", exc, document.relpath)
            return str(token)

        reflink_path = relativize(document.out_relpath, target.out_relpath)
        backlink_path = relativize(target.out_relpath, document.out_relpath)
        self.tree.documents[target.id].backlinks.append(backlink_path)

        name = token.name if token.name is not None else location
        return f'<a href="{reflink_path}">{name}</a>'


def render(tree: SiteTree) -> None:
    """Move every document of the tree from Parsed to Rendered."""
    LinkRenderer(tree).render_all()
