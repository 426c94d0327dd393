#!/usr/bin/env python3
"""
Static site generator for a folder of interlinked Markdown notes.

Features:
- Converts every file under the input directory to .html in the output directory
- Preserves directory structure; hidden files and folders are skipped
- [[wikilinks]] resolve by path suffix against the whole tree, so [[todo]]
  and [[notes/todo]] both reach notes/todo.md as long as they are unambiguous
- Each page lists the pages linking to it (backlinks) and its neighbours
  (friends: siblings, the folder's index page, sub-folder index pages)
- Pages are filled into a Jinja2 template; the slot names are configurable

Usage:
  python build_static_site.py --config warmsite.json
  python build_static_site.py --input ./content --output ./site

Notes:
- Requires the "markdown" and "Jinja2" packages
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from assemble_output import assemble
from job_config import DEFAULT_CONFIG_NAME, Job, load_config
from markup_tokens import MarkupParser
from page_template import TemplateSlots
from render_links import render
from site_errors import ConfigError, SiteError
from site_tree import SiteTree, build_tree, describe_tree

logger = logging.getLogger("warmsite")


# -- pipeline --
def build_site(job: Job, parser: Optional[MarkupParser] = None) -> SiteTree:
    """Run one job: build the tree, render every page, then write the output.

    The template is loaded first so a missing slot stops the job before any
    input is read.
    """
    template = job.load_template()
    tree = build_tree(job.indir, job.outdir, parser or MarkupParser())
    logger.info("Loaded %d documents in %d directories", len(tree.documents), len(tree.directories))
    render(tree)
    assemble(tree, template)
    return tree


def jobs_from_args(args: argparse.Namespace) -> List[Job]:
    if args.input or args.output:
        if not (args.input and args.output):
            raise ConfigError("--input and --output must be given together")
        input_root: Path = args.input.expanduser().resolve()
        return [
            Job(
                name=input_root.name,
                indir=input_root,
                outdir=args.output.expanduser().resolve(),
                template_path=args.template,
                slots=TemplateSlots(),
            )
        ]
    if args.template:
        raise ConfigError("--template only applies together with --input/--output")

    config = load_config(args.config)
    if args.job:
        return [config.job(args.job)]
    return config.jobs


# -- CLI --
def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a static site from a folder of interlinked Markdown notes.")
    parser.add_argument(
        "--config",
        type=Path,
        default=Path(DEFAULT_CONFIG_NAME),
        help=f"JSON job configuration (default: ./{DEFAULT_CONFIG_NAME})",
    )
    parser.add_argument("--job", type=str, default=None, help="Run only the job with this name")
    parser.add_argument("--input", type=Path, default=None, help="Input folder (ad-hoc job, no config file)")
    parser.add_argument("--output", type=Path, default=None, help="Output folder for the ad-hoc job")
    parser.add_argument("--template", type=Path, default=None, help="Template for the ad-hoc job (default: built-in)")
    parser.add_argument("--list", action="store_true", help="Print the input -> output mapping and exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        for job in jobs_from_args(args):
            if args.list:
                for line in describe_tree(build_tree(job.indir, job.outdir)):
                    print(line)
                continue

            logger.info("Running job %s", job.name)
            build_site(job)
            print(f"Site generated at: {job.outdir}")
    except SiteError as exc:
        raise SystemExit(f"error: {exc}") from exc


if __name__ == "__main__":
    main()
