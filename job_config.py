"""Job configuration.

A config file holds one or more jobs; each names an input tree, an output
tree and the page template with its slot names::

    {
      "jobs": [
        {
          "name": "site",
          "in": "content",
          "out": "public",
          "template": {"path": "template.html", "content_key": "content"}
        }
      ]
    }

Relative paths are resolved against the directory holding the config file.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from page_template import PageTemplate, TemplateSlots
from site_errors import ConfigError

DEFAULT_CONFIG_NAME = "warmsite.json"

_ALLOWED_TOP_LEVEL_KEYS = {"jobs", "job"}
_ALLOWED_JOB_KEYS = {"name", "in", "out", "template"}
_SLOT_KEYS = {f.name for f in fields(TemplateSlots)}
_ALLOWED_TEMPLATE_KEYS = {"path"} | _SLOT_KEYS


@dataclass
class Job:
    name: str
    indir: Path
    outdir: Path
    template_path: Optional[Path] = None
    slots: TemplateSlots = field(default_factory=TemplateSlots)

    def load_template(self) -> PageTemplate:
        if self.template_path is None:
            return PageTemplate.default(self.slots)
        return PageTemplate.from_file(self.template_path, self.slots)


@dataclass
class SiteConfig:
    jobs: List[Job]
    path: Optional[Path] = None

    def job(self, name: str) -> Job:
        for job in self.jobs:
            if job.name == name:
                return job
        known = ", ".join(job.name for job in self.jobs)
        raise ConfigError(f"no job named {name!r} (known: {known})")


def _resolve(base: Path, value: Any, what: str) -> Path:
    if not isinstance(value, str) or not value:
        raise ConfigError(f"{what} must be a non-empty string")
    path = Path(value).expanduser()
    return path if path.is_absolute() else base / path


def _check_keys(payload: Dict[str, Any], allowed: set, what: str) -> None:
    unknown = sorted(set(payload) - allowed)
    if unknown:
        raise ConfigError(f"unknown {what} key(s): {', '.join(unknown)}")


def _parse_template(payload: Any, base: Path) -> Tuple[Optional[Path], TemplateSlots]:
    if payload is None:
        return None, TemplateSlots()
    if isinstance(payload, str):
        return _resolve(base, payload, "template"), TemplateSlots()
    if not isinstance(payload, dict):
        raise ConfigError("template must be a path or an object")

    _check_keys(payload, _ALLOWED_TEMPLATE_KEYS, "template")
    names = {}
    for key in _SLOT_KEYS & set(payload):
        value = payload[key]
        if not isinstance(value, str) or not value:
            raise ConfigError(f"template.{key} must be a non-empty string")
        names[key] = value
    path = _resolve(base, payload["path"], "template.path") if "path" in payload else None
    return path, TemplateSlots(**names)


def _parse_job(payload: Any, base: Path) -> Job:
    if not isinstance(payload, dict):
        raise ConfigError("each job must be an object")
    _check_keys(payload, _ALLOWED_JOB_KEYS, "job")
    for key in ("in", "out"):
        if key not in payload:
            raise ConfigError(f"job is missing {key!r}")

    indir = _resolve(base, payload["in"], "in")
    outdir = _resolve(base, payload["out"], "out")
    name = payload.get("name", indir.name)
    if not isinstance(name, str) or not name:
        raise ConfigError("job name must be a non-empty string")
    template_path, slots = _parse_template(payload.get("template"), base)
    return Job(name=name, indir=indir, outdir=outdir, template_path=template_path, slots=slots)


def parse_config(payload: Any, base: Path, path: Optional[Path] = None) -> SiteConfig:
    if not isinstance(payload, dict):
        raise ConfigError("config must be a JSON object")
    _check_keys(payload, _ALLOWED_TOP_LEVEL_KEYS, "top-level")

    if "jobs" in payload and "job" in payload:
        raise ConfigError("use either 'jobs' or 'job', not both")
    if "job" in payload:
        raw_jobs = [payload["job"]]
    else:
        raw_jobs = payload.get("jobs")
        if not isinstance(raw_jobs, list) or not raw_jobs:
            raise ConfigError("'jobs' must be a non-empty list")

    jobs = [_parse_job(raw, base) for raw in raw_jobs]
    seen = set()
    for job in jobs:
        if job.name in seen:
            raise ConfigError(f"duplicate job name {job.name!r}")
        seen.add(job.name)
    return SiteConfig(jobs=jobs, path=path)


def load_config(path: Path) -> SiteConfig:
    path = Path(path)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"cannot read config {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"invalid JSON in {path}: {exc}") from exc
    return parse_config(payload, base=path.parent.resolve(), path=path)
