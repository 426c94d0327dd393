"""Page templates: Jinja2 with configurable slot names.

A template receives one scalar slot (the rendered content) and two repeated
patterns (backlinks and friends), each a list of dicts keyed by the pattern's
two sub-slot names. Slot names come from the job config, so a template written
for ``{{ body }}`` and ``{% for l in inbound %}{{ l.url }}`` works as long as
the config says so.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Set, Tuple

from jinja2 import BaseLoader, Environment, StrictUndefined, TemplateSyntaxError, UndefinedError, meta, nodes

from site_errors import ConfigError, FileSystemError, TemplateSlotMissing

# (href, label) pairs
Entries = List[Tuple[str, str]]


@dataclass(frozen=True)
class TemplateSlots:
    content_key: str = "content"
    backlink_pattern: str = "backlinks"
    backlink_key: str = "href"
    backlink_name_key: str = "name"
    friend_pattern: str = "friends"
    friend_key: str = "href"
    friend_name_key: str = "name"

    @property
    def variables(self) -> Tuple[str, str, str]:
        return (self.content_key, self.backlink_pattern, self.friend_pattern)


def _loop_fields(ast: nodes.Template, pattern: str) -> Set[str]:
    """Keys read off the loop variable of every ``{% for x in pattern %}`` body."""
    found: Set[str] = set()
    for loop in ast.find_all(nodes.For):
        if not (isinstance(loop.iter, nodes.Name) and loop.iter.name == pattern):
            continue
        if not isinstance(loop.target, nodes.Name):
            continue
        var = loop.target.name
        for child in loop.body:
            for node in child.find_all((nodes.Getattr, nodes.Getitem)):
                if not (isinstance(node.node, nodes.Name) and node.node.name == var):
                    continue
                if isinstance(node, nodes.Getattr):
                    found.add(node.attr)
                elif isinstance(node.arg, nodes.Const):
                    found.add(node.arg.value)
    return found


class PageTemplate:
    """A compiled page template whose required slots have been checked."""

    def __init__(self, source: str, slots: TemplateSlots = TemplateSlots(), name: str = "<template>"):
        self.slots = slots
        self.name = name
        # no autoescape: content arrives as finished HTML
        self._env = Environment(loader=BaseLoader(), autoescape=False, undefined=StrictUndefined, keep_trailing_newline=True)
        try:
            ast = self._env.parse(source)
        except TemplateSyntaxError as exc:
            raise ConfigError(f"{name}: invalid template: {exc}") from exc
        self._check_slots(ast)
        self._template = self._env.from_string(ast)

    @classmethod
    def from_file(cls, path: Path, slots: TemplateSlots = TemplateSlots()) -> "PageTemplate":
        try:
            source = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise FileSystemError(f"cannot read template {path}: {exc}") from exc
        return cls(source, slots, name=str(path))

    @classmethod
    def default(cls, slots: TemplateSlots = TemplateSlots()) -> "PageTemplate":
        return cls(DEFAULT_TEMPLATE, slots, name="<default template>")

    def _check_slots(self, ast: nodes.Template) -> None:
        slots = self.slots
        declared = meta.find_undeclared_variables(ast)
        missing = [slot for slot in slots.variables if slot not in declared]
        for pattern, keys in (
            (slots.backlink_pattern, (slots.backlink_key, slots.backlink_name_key)),
            (slots.friend_pattern, (slots.friend_key, slots.friend_name_key)),
        ):
            accessed = _loop_fields(ast, pattern)
            missing += [f"{pattern}.{key}" for key in keys if key not in accessed]
        if missing:
            raise TemplateSlotMissing(f"{self.name} lacks slot(s): {', '.join(dict.fromkeys(missing))}")

    def render(self, content: str, backlinks: Entries, friends: Entries, **extra: Any) -> str:
        """Fill the slots and return the page text."""
        slots = self.slots
        context = dict(extra)
        context[slots.content_key] = content
        context[slots.backlink_pattern] = [
            {slots.backlink_key: href, slots.backlink_name_key: label} for href, label in backlinks
        ]
        context[slots.friend_pattern] = [
            {slots.friend_key: href, slots.friend_name_key: label} for href, label in friends
        ]
        try:
            return self._template.render(context)
        except UndefinedError as exc:
            raise TemplateSlotMissing(f"{self.name}: {exc}") from exc


DEFAULT_TEMPLATE = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <title>{{ title }}</title>
    <link href="https://cdn.jsdelivr.net/npm/bootstrap@5.3.3/dist/css/bootstrap.min.css" rel="stylesheet" integrity="sha384-QWTKZyjpPEjISv5WaRU9OFeRpok6YctnYmDr5pNlyT2bRjXh0JMhjY6hW+ALEwIH" crossorigin="anonymous">
    <style>
      :root {
        --cm-body-bg: #fcfcfc;
        --cm-text: #222;
        --cm-muted: #6c757d;
        --cm-border: #e5e5e5;
      }
      body {
        background: var(--cm-body-bg);
        color: var(--cm-text);
      }
      .layout-container {
        display: grid;
        grid-template-columns: 220px 1fr 240px;
        column-gap: 2.25rem;
        min-height: 100vh;
      }
      .sidebar {
        border-right: 1px solid var(--cm-border);
        position: sticky;
        top: 0;
        height: 100vh;
        overflow: auto;
        background: #fafafa;
        padding: 1.25rem;
      }
      .content {
        padding: 3rem 4rem;
        max-width: 980px;
        line-height: 1.7;
        background: white;
        border: 1px solid var(--cm-border);
        border-radius: 8px;
        margin: 2.5rem 0 5rem 0;
      }
      .content pre {
        background: #f7f7f7;
        border: 1px solid var(--cm-border);
        border-radius: 6px;
        padding: .75rem 1rem;
      }
      .rightbar {
        margin: 2.5rem 0 5rem 0;
        padding: 2rem 1.5rem;
      }
      .rightbar h2, .sidebar h2 {
        font-size: .9rem;
        text-transform: uppercase;
        letter-spacing: .06em;
        color: var(--cm-muted);
      }
    </style>
  </head>
  <body>
    <div class="layout-container">
      <aside class="sidebar">
        <h2>Nearby</h2>
        <ul class="list-unstyled">
        {% for friend in friends %}
          <li><a class="nav-link" href="{{ friend.href }}">{{ friend.name }}</a></li>
        {% endfor %}
        </ul>
      </aside>
      <main class="content">
        {{ content }}
      </main>
      <aside class="rightbar">
        <h2>Linked from</h2>
        <ul class="list-unstyled">
        {% for backlink in backlinks %}
          <li><a href="{{ backlink.href }}">{{ backlink.name }}</a></li>
        {% endfor %}
        </ul>
      </aside>
    </div>
  </body>
</html>
"""
