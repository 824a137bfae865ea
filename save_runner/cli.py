"""
`save-runner` command line.

Commands
--------
save-runner edits OLD NEW                 -- edits turning file OLD into file NEW
save-runner edits OLD NEW --coalesce      -- same, delete+insert pairs as replaces
save-runner patch DIFF                    -- edits for every file in a unified diff
save-runner patch DIFF --apply --root DIR -- apply the diff to files under DIR
save-runner run FILE [FILE ...]           -- run the configured filters on files
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional

import yaml

from .config import Config
from .editing.appliers import apply_via_workspace
from .editing.document import TextDocument, WorkspaceApplyError, WorkspaceEdit
from .editing.edits import coalesce_replacements, compute_edits, parse_patch_text
from .runner import FilterError, SaveRunner

logger = logging.getLogger(__name__)

_CLEAR_SCREEN = "\033[2J\033[H"


def _read_text(path: str) -> str:
    """Read a file (or stdin for ``-``) without newline translation."""
    if path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def _emit(data, fmt: str) -> None:
    if fmt == "yaml":
        sys.stdout.write(yaml.safe_dump(data, sort_keys=False, allow_unicode=True))
    else:
        sys.stdout.write(json.dumps(data, indent=2, ensure_ascii=False) + "\n")


# ---------------------------------------------------------------------------
# Sub-command handlers
# ---------------------------------------------------------------------------

def _cmd_edits(args: argparse.Namespace, config: Config) -> int:
    try:
        old_text = _read_text(args.old)
        new_text = _read_text(args.new)
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    patch = compute_edits(
        args.name or args.old, old_text, new_text,
        eol_policy=config.EOL_POLICY,
        context_lines=config.CONTEXT_LINES,
    )
    if args.coalesce:
        patch = coalesce_replacements(patch)
    _emit(patch.to_dict(), args.format)
    return 0


def _cmd_patch(args: argparse.Namespace, config: Config) -> int:
    try:
        diff_text = _read_text(args.diff)
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    patches = parse_patch_text(diff_text)
    if not args.apply:
        _emit([patch.to_dict() for patch in patches], args.format)
        return 0

    if not patches:
        print("No file sections found in diff", file=sys.stderr)
        return 1

    workspace_edit = WorkspaceEdit()
    for patch in patches:
        for edit in patch.edits:
            apply_via_workspace(edit, workspace_edit, patch.file_name)

    try:
        written = workspace_edit.apply_to_disk(args.root, progress=not args.no_progress)
    except WorkspaceApplyError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    for path in written:
        print(f"patched {path}")
    return 0


def _cmd_run(args: argparse.Namespace, config: Config) -> int:
    if config.AUTO_CLEAR_CONSOLE:
        sys.stdout.write(_CLEAR_SCREEN)

    runner = SaveRunner(config)
    failures = 0
    for path in args.files:
        try:
            document = TextDocument.from_file(path)
            patch = runner.run_before_save(document)
            if patch.edits:
                document.save()
            print(f"{path}: {len(patch.edits)} edit(s)")
            for output in runner.run_after_save(path):
                if output.strip():
                    print(output.rstrip("\n"))
        except (OSError, FilterError) as exc:
            failures += 1
            print(f"{path}: {exc}", file=sys.stderr)

    return 1 if failures else 0


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="save-runner",
        description="Turn text transformations and unified diffs into minimal line edits",
    )
    parser.add_argument("--config", default=None,
                        help="Path to a .saverunner.yaml config file")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command")

    # --- edits ---
    edits_p = subparsers.add_parser(
        "edits", help="Compute the edits between two files"
    )
    edits_p.add_argument("old", help="Original file ('-' for stdin)")
    edits_p.add_argument("new", help="Transformed file")
    edits_p.add_argument("--name", default=None,
                         help="File identifier for the patch (default: OLD)")
    edits_p.add_argument("--coalesce", action="store_true",
                         help="Merge delete+insert pairs into replace edits")
    edits_p.add_argument("--format", choices=["json", "yaml"], default="json")
    edits_p.set_defaults(func=_cmd_edits)

    # --- patch ---
    patch_p = subparsers.add_parser(
        "patch", help="Convert a unified diff into edits"
    )
    patch_p.add_argument("diff", help="Unified diff file ('-' for stdin)")
    patch_p.add_argument("--apply", action="store_true",
                         help="Apply the edits to the files instead of printing them")
    patch_p.add_argument("--root", default=".",
                         help="Directory the diff's file names are relative to")
    patch_p.add_argument("--no-progress", dest="no_progress", action="store_true",
                         help="Hide the progress bar when applying")
    patch_p.add_argument("--format", choices=["json", "yaml"], default="json")
    patch_p.set_defaults(func=_cmd_patch)

    # --- run ---
    run_p = subparsers.add_parser(
        "run", help="Run the configured filter commands on files"
    )
    run_p.add_argument("files", nargs="+", help="Files to filter in place")
    run_p.set_defaults(func=_cmd_run)

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the ``save-runner`` console script."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # Configure logging if not already configured
    if not logging.root.handlers:
        logging.basicConfig(
            level=logging.DEBUG if args.verbose else logging.WARNING,
            format="%(levelname)s  %(name)s  %(message)s",
        )

    if not hasattr(args, "func"):
        parser.print_help()
        return 2

    config = Config.load(args.config)
    return args.func(args, config)


if __name__ == "__main__":
    sys.exit(main())
