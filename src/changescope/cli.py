"""
Command-line interface for changescope
"""
from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape as rich_escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from changescope import __version__
from changescope.diagnostics import AnalysisWarnings
from changescope.exceptions import NotInWorkTreeError
from changescope.logging_config import setup_logging
from changescope.provider import ScmProvider

# Create a console instance for all output
console = Console()

EXIT_OK = 0
EXIT_CONFIGURATION_ERROR = 1
EXIT_UNAVAILABLE = 2


def _display_path(path: Path, base_dir: Optional[Path]) -> str:
    """Path relative to base_dir when possible, for compact output."""
    if base_dir is not None and path.is_relative_to(base_dir):
        return str(path.relative_to(base_dir))
    return str(path)


def _format_line_ranges(lines: set[int]) -> str:
    """Collapse {1, 2, 3, 7} into "1-3, 7"."""
    if not lines:
        return "-"
    ranges = []
    ordered = sorted(lines)
    start = prev = ordered[0]
    for number in ordered[1:]:
        if number == prev + 1:
            prev = number
            continue
        ranges.append(f"{start}-{prev}" if start != prev else str(start))
        start = prev = number
    ranges.append(f"{start}-{prev}" if start != prev else str(start))
    return ", ".join(ranges)


def print_warnings(warnings: AnalysisWarnings) -> None:
    for message in warnings.messages:
        console.print(f"[bold yellow]Warning:[/] {rich_escape(message)}")


def print_unavailable(what: str) -> None:
    console.print(f"[yellow]{rich_escape(what)} is not available[/]")


def cmd_files(provider: ScmProvider, args: argparse.Namespace) -> int:
    root = args.directory.resolve()
    files = provider.branch_changed_files(args.target, root)
    if files is None:
        print_unavailable("Changed files")
        return EXIT_UNAVAILABLE

    summary = Text()
    summary.append("Target: ", style="bold")
    summary.append(f"{args.target}\n", style="cyan bold")
    summary.append("Changed files: ", style="bold")
    summary.append(str(len(files)), style="green bold")
    console.print(Panel(summary, title="[bold blue]Branch Changes[/]", border_style="blue"))

    for path in sorted(files):
        console.print(f"  [dim]•[/] [green]{rich_escape(_display_path(path, root))}[/]")
    return EXIT_OK


def cmd_lines(provider: ScmProvider, args: argparse.Namespace) -> int:
    root = args.root.resolve()
    paths = [p if p.is_absolute() else Path.cwd() / p for p in args.paths]
    changed = provider.branch_changed_lines(args.target, root, paths)
    if changed is None:
        print_unavailable("Changed lines")
        return EXIT_UNAVAILABLE

    table = Table(title="Changed Lines", show_header=True, header_style="bold magenta")
    table.add_column("File", style="cyan")
    table.add_column("Lines", style="bold")
    table.add_column("Count", justify="right")

    for path in sorted(changed):
        lines = changed[path]
        table.add_row(
            rich_escape(_display_path(path, root)),
            _format_line_ranges(lines),
            str(len(lines)),
        )

    console.print(table)
    return EXIT_OK


def cmd_fork_date(provider: ScmProvider, args: argparse.Namespace) -> int:
    date = provider.fork_date(args.target, args.directory.resolve())
    if date is None:
        print_unavailable("Fork date")
        return EXIT_UNAVAILABLE
    console.print(date.isoformat())
    return EXIT_OK


def cmd_revision(provider: ScmProvider, args: argparse.Namespace) -> int:
    revision = provider.revision_id(args.directory.resolve())
    if revision is None:
        print_unavailable("Revision")
        return EXIT_UNAVAILABLE
    console.print(revision)
    return EXIT_OK


def cmd_blame(provider: ScmProvider, args: argparse.Namespace) -> int:
    table = Table(title=rich_escape(str(args.path)), show_header=True, header_style="bold magenta")
    table.add_column("Line", justify="right", style="dim")
    table.add_column("Revision", style="yellow")
    table.add_column("Author", style="cyan")
    table.add_column("Date")

    count = 0
    for line in provider.blame(args.path.resolve()):
        table.add_row(
            str(line.line),
            line.revision[:8],
            rich_escape(line.author_email or line.author),
            line.date.strftime("%Y-%m-%d"),
        )
        count += 1

    if count == 0:
        print_unavailable("Blame")
        return EXIT_UNAVAILABLE
    console.print(table)
    return EXIT_OK


def cmd_ignored(provider: ScmProvider, args: argparse.Namespace) -> int:
    for path in args.paths:
        if provider.is_ignored(path.resolve()):
            console.print(f"  [red]ignored[/]  {rich_escape(str(path))}")
        else:
            console.print(f"  [green]tracked[/]  {rich_escape(str(path))}")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="changescope",
        description="Find the files and lines changed on a branch since it forked"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show debug logging"
    )
    verbosity.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Only show errors"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    files = subparsers.add_parser("files", help="List files changed since the fork point")
    files.add_argument("target", help="Target branch, e.g. 'main' or 'upstream/main'")
    files.add_argument("directory", type=Path, nargs="?", default=Path("."), help="Project directory")
    files.set_defaults(handler=cmd_files)

    lines = subparsers.add_parser("lines", help="Show changed line numbers of files")
    lines.add_argument("target", help="Target branch")
    lines.add_argument("paths", type=Path, nargs="+", help="Files to inspect")
    lines.add_argument("--root", type=Path, default=Path("."), help="Project directory (default: .)")
    lines.set_defaults(handler=cmd_lines)

    fork_date = subparsers.add_parser("fork-date", help="Show the date of the fork point")
    fork_date.add_argument("target", help="Target branch")
    fork_date.add_argument("directory", type=Path, nargs="?", default=Path("."), help="Project directory")
    fork_date.set_defaults(handler=cmd_fork_date)

    revision = subparsers.add_parser("revision", help="Show the commit id of HEAD")
    revision.add_argument("directory", type=Path, nargs="?", default=Path("."), help="Project directory")
    revision.set_defaults(handler=cmd_revision)

    blame = subparsers.add_parser("blame", help="Attribute each line of a file to a commit")
    blame.add_argument("path", type=Path, help="File to blame")
    blame.set_defaults(handler=cmd_blame)

    ignored = subparsers.add_parser("ignored", help="Check paths against ignore rules")
    ignored.add_argument("paths", type=Path, nargs="+", help="Paths to check")
    ignored.set_defaults(handler=cmd_ignored)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, quiet=args.quiet)

    warnings = AnalysisWarnings()
    provider = ScmProvider(warnings=warnings)

    try:
        status = args.handler(provider, args)
    except NotInWorkTreeError as e:
        console.print(f"[bold red]Error:[/] {rich_escape(str(e))}")
        return EXIT_CONFIGURATION_ERROR

    print_warnings(warnings)
    return status


if __name__ == "__main__":
    exit(main())
