"""Errors raised while building a site.

Every fatal error derives from SiteError so the CLI can stop a job with a
single except clause. UnresolvedLink is the one recovered kind: the renderer
catches it, logs it and degrades the affected inline element.
"""

from __future__ import annotations

from typing import List


class SiteError(Exception):
    """Base class for errors that abort a job."""


class ConfigError(SiteError):
    pass


class FileSystemError(SiteError):
    """A path could not be listed, read, created or written."""


class PathError(SiteError):
    """A path is outside its expected root or cannot be made relative."""


class TemplateSlotMissing(SiteError):
    pass


class LinkAmbiguityError(SiteError):
    """An interlink matched more than one document."""

    def __init__(self, location: str, candidates: List[str], source: str = ""):
        self.location = location
        self.candidates = candidates
        self.source = source
        where = f" (in {source})" if source else ""
        super().__init__(
            f"interlink {location!r}{where} resolved to multiple files: {', '.join(candidates)}"
        )


class UnresolvedLink(SiteError):
    """A link matched nothing. Recovered: logged, never propagated out of rendering."""

    def __init__(self, location: str, kind: str = "interlink"):
        self.location = location
        self.kind = kind
        super().__init__(f"{kind} {location!r} didn't match anything")


class ContentPhaseError(RuntimeError):
    """A content transition was requested from the wrong phase."""
