"""Markdown to token stream, built on Python-Markdown.

Python-Markdown normally goes straight from text to HTML. Here its pipeline is
stopped after the tree processors and the resulting ElementTree is walked into
plain token objects, so the site renderer can resolve links against the whole
document tree before any HTML is produced.

Syntax added on top of Markdown:
- ``[[location]]`` and ``[[location|name]]`` are interlinks
- ``[name][label]`` is always kept as a reference link token, defined or not;
  the renderer does the lookup and the fallback
"""

from __future__ import annotations

import copy
import re
import xml.etree.ElementTree as etree
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Union

import markdown
from markdown.extensions import Extension
from markdown.inlinepatterns import REFERENCE_RE, InlineProcessor, ReferenceInlineProcessor
from markdown.serializers import to_html_string
from markdown.util import AMP_SUBSTITUTE, HTML_PLACEHOLDER_RE

DEFAULT_EXTENSIONS = ["fenced_code", "tables"]

INTERLINK_RE = r"\[\[([^\]\|\n]+)(?:\|([^\]\n]+))?\]\]"

_HEADINGS = {f"h{level}": level for level in range(1, 7)}
_STYLED = {"em", "strong"}
_HTML_TAG_RE = re.compile(r"<\/?([^ >]+)")
_FENCED_RE = re.compile(
    r'<pre[^>]*><code(?:\s+class="language-([^"\s]+)[^"]*")?[^>]*>(.*)</code></pre>',
    re.DOTALL,
)


# -- inline tokens --
@dataclass
class Break:
    pass


@dataclass
class Text:
    text: str


@dataclass
class Code:
    code: str


@dataclass
class Link:
    location: str
    name: Optional[str] = None


@dataclass
class Interlink:
    location: str
    name: Optional[str] = None

    def __str__(self) -> str:
        # the literal source syntax, shown in place of links that don't resolve
        if self.name is None:
            return f"[[{self.location}]]"
        return f"[[{self.location}|{self.name}]]"


@dataclass
class ReferenceLink:
    location: str
    name: Optional[str] = None


@dataclass
class Styled:
    tag: str
    inner: List["Inline"]


@dataclass
class Markup:
    html: str


Inline = Union[Break, Text, Code, Link, Interlink, ReferenceLink, Styled, Markup]


# -- block tokens --
@dataclass
class Header:
    level: int
    inner: List[Inline]


@dataclass
class Paragraph:
    inner: List[Inline]


@dataclass
class CodeBlock:
    code: str
    lang: Optional[str] = None


@dataclass
class Plain:
    """Inline content sitting directly in a container, e.g. a tight list item."""

    inner: List[Inline]


@dataclass
class Section:
    tag: str
    blocks: List["Block"]
    attrs: Dict[str, str] = field(default_factory=dict)


@dataclass
class Verbatim:
    html: str


Block = Union[Header, Paragraph, CodeBlock, Plain, Section, Verbatim]


@dataclass
class ParsedDocument:
    tokens: List[Block]
    references: Dict[str, str]


# -- Python-Markdown extension --
class InterlinkInlineProcessor(InlineProcessor):
    def handleMatch(self, m, data):
        el = etree.Element("interlink")
        # escapes and code spans ran first and left placeholders behind
        el.set("location", self.unescape(m.group(1)))
        if m.group(2):
            el.set("name", self.unescape(m.group(2)))
        return el, m.start(0), m.end(0)


class ReflinkInlineProcessor(ReferenceInlineProcessor):
    """Emit ``[name][label]`` as a ``reflink`` element without resolving it."""

    require_definition = False

    def handleMatch(self, m, data):
        text, index, handled = self.getText(data, m.end(0))
        if not handled:
            return None, None, None
        label, end, handled = self.evalId(data, index, text)
        if not handled:
            return None, None, None
        label = self.NEWLINE_CLEANUP_RE.sub(" ", label)
        if self.require_definition and label not in self.md.references:
            return None, m.start(0), end

        el = etree.Element("reflink")
        el.set("label", self.unescape(label))
        el.set("name", self.unescape(text))
        return el, m.start(0), end


class ShortReflinkInlineProcessor(ReflinkInlineProcessor):
    """``[label]`` alone only counts as a link when the label is defined."""

    require_definition = True

    def evalId(self, data, index, text):
        return text.lower(), index, True


class InterlinkExtension(Extension):
    def extendMarkdown(self, md):
        md.inlinePatterns.register(InterlinkInlineProcessor(INTERLINK_RE, md), "interlink", 175)
        md.inlinePatterns.register(ReflinkInlineProcessor(REFERENCE_RE, md), "reference", 170)
        md.inlinePatterns.register(ShortReflinkInlineProcessor(REFERENCE_RE, md), "short_reference", 130)


# -- helpers --
def _serialize(el: etree.Element) -> str:
    clone = copy.copy(el)
    clone.tail = None
    return to_html_string(clone)


def _language(css_class: Optional[str]) -> Optional[str]:
    for name in (css_class or "").split():
        if name.startswith("language-"):
            return name[len("language-"):]
    return None


# -- parser --
class MarkupParser:
    """Turn Markdown text into a ParsedDocument.

    One Python-Markdown instance is reused and reset for every document.
    """

    def __init__(self, extensions: Optional[Sequence] = None):
        extensions = list(DEFAULT_EXTENSIONS if extensions is None else extensions)
        self.md = markdown.Markdown(extensions=extensions + [InterlinkExtension()])

    def parse(self, text: str) -> ParsedDocument:
        md = self.md.reset()
        if not text.strip():
            return ParsedDocument(tokens=[], references={})

        root = self._element_tree(text)
        tokens = [self._block(el) for el in root]
        references = {label: href for label, (href, _title) in md.references.items()}
        return ParsedDocument(tokens=tokens, references=references)

    def _element_tree(self, text: str) -> etree.Element:
        # Markdown.convert() up to (and excluding) serialization
        md = self.md
        md.lines = text.split("\n")
        for prep in md.preprocessors:
            md.lines = prep.run(md.lines)
        root = md.parser.parseDocument(md.lines).getroot()
        for treeprocessor in md.treeprocessors:
            new_root = treeprocessor.run(root)
            if new_root is not None:
                root = new_root
        return root

    def _stash(self, index: int) -> str:
        raw = self.md.htmlStash.rawHtmlBlocks[index]
        return raw if isinstance(raw, str) else _serialize(raw)

    def _unstash(self, text: str) -> str:
        text = HTML_PLACEHOLDER_RE.sub(lambda m: self._stash(int(m.group(1))), text)
        return text.replace(AMP_SUBSTITUTE, "&")

    # blocks
    def _block(self, el: etree.Element) -> Block:
        tag = el.tag
        if tag in _HEADINGS:
            return Header(_HEADINGS[tag], self._inlines(el.text, el))
        if tag == "p":
            stashed = self._stashed_block(el)
            if stashed is not None:
                return stashed
            return Paragraph(self._inlines(el.text, el))
        if tag == "pre" and len(el) and el[0].tag == "code":
            code = el[0]
            return CodeBlock(code.text or "", _language(code.get("class")))
        if not len(el) and not (el.text or "").strip():
            return Verbatim(_serialize(el))
        return Section(tag, self._contents(el), dict(el.attrib))

    def _stashed_block(self, el: etree.Element) -> Optional[Block]:
        """Raw HTML and fenced code come back from the stash as a lone placeholder paragraph.

        Only block-level HTML drops the paragraph; an inline tag such as
        ``<img>`` stays wrapped, as Python-Markdown itself does.
        """
        if len(el) or not el.text:
            return None
        m = HTML_PLACEHOLDER_RE.fullmatch(el.text.strip())
        if not m:
            return None
        html = self._stash(int(m.group(1)))
        if not self._is_block_html(html):
            return None
        fenced = _FENCED_RE.fullmatch(html.strip())
        if fenced:
            return CodeBlock(fenced.group(2), fenced.group(1))
        return Verbatim(html)

    def _is_block_html(self, html: str) -> bool:
        m = _HTML_TAG_RE.match(html.strip())
        if not m:
            return False
        # comments, doctypes, processing instructions
        if m.group(1)[0] in "!?@%":
            return True
        return self.md.is_block_level(m.group(1))

    def _contents(self, el: etree.Element) -> List[Block]:
        blocks: List[Block] = []
        pending_text, pending = el.text, []
        for child in el:
            if self.md.is_block_level(child.tag):
                blocks.extend(self._plain(pending_text, pending))
                blocks.append(self._block(child))
                pending_text, pending = child.tail, []
            else:
                pending.append(child)
        blocks.extend(self._plain(pending_text, pending))
        return blocks

    def _plain(self, text: Optional[str], children: List[etree.Element]) -> List[Block]:
        if not children and not (text or "").strip():
            return []
        return [Plain(self._inlines(text, children))]

    # inlines
    def _inlines(self, text: Optional[str], children: Iterable[etree.Element]) -> List[Inline]:
        out: List[Inline] = []
        if text:
            out.append(Text(self._unstash(text)))
        for child in children:
            out.append(self._inline(child))
            if child.tail:
                out.append(Text(self._unstash(child.tail)))
        return out

    def _inline(self, el: etree.Element) -> Inline:
        tag = el.tag
        if tag == "br":
            return Break()
        if tag == "code":
            return Code(el.text or "")
        if tag == "interlink":
            return Interlink(el.get("location", ""), el.get("name"))
        if tag == "reflink":
            return ReferenceLink(el.get("label", ""), el.get("name") or None)
        if tag == "a":
            name = self._unstash("".join(el.itertext()))
            return Link(self._unstash(el.get("href", "")), name or None)
        if tag in _STYLED:
            return Styled(tag, self._inlines(el.text, el))
        return Markup(self._unstash(_serialize(el)))
