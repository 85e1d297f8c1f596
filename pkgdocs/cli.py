"""CLI entrypoints for pkgdocs commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .installer import InstallError, layout_from_legacy_toggle
from .logging import configure_logging
from .models import ConflictPolicy, DocumentationLayout, DocumentSelection, HostKind
from .packages import PackageNotFoundError
from .pipeline import DocumentationPipeline
from .render import ConsoleRenderer
from .stores.token_store import TokenStore, TokenStoreError, tokens_from_environment

_SELECTION_FLAGS = (
    ("readme", DocumentSelection.README),
    ("changelog", DocumentSelection.CHANGELOG),
    ("license", DocumentSelection.LICENSE),
    ("intro", DocumentSelection.INTRO),
    ("upgrade", DocumentSelection.UPGRADE),
    ("all", DocumentSelection.ALL),
)


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_package_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "name",
        nargs="?",
        help="Installed package name.",
    )
    parser.add_argument(
        "--path",
        help="Package directory to use instead of looking up an installed package.",
    )
    parser.add_argument(
        "--required-version",
        help="Only accept this installed version of the package.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pkgdocs",
        description="Show or install documentation bundled with installed packages.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only report warnings and errors.",
    )
    parser.add_argument(
        "--log-file",
        help="Also write debug logs to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    show_parser = subparsers.add_parser(
        "show",
        help="Render README, CHANGELOG, LICENSE, Intro or Upgrade content.",
    )
    _add_verbose_option(show_parser, suppress_default=True)
    _add_package_arguments(show_parser)
    for flag, selection in _SELECTION_FLAGS:
        show_parser.add_argument(
            f"--{flag}",
            dest="selections",
            action="append_const",
            const=selection,
            help=f"Include {selection.value} content.",
        )
    show_parser.add_argument(
        "--type",
        dest="type_selection",
        choices=[selection.value for selection in DocumentSelection],
        help="Show a single document type (overrides individual flags).",
    )
    show_parser.add_argument(
        "--prefer-internals",
        action="store_true",
        help="Prefer copies in the Internals folder over root files.",
    )
    show_parser.add_argument(
        "--offline",
        action="store_true",
        help="Never fall back to the remote repository.",
    )
    show_parser.add_argument("--project-uri", help="Override the repository URL.")
    show_parser.add_argument("--branch", help="Repository branch for remote fallback.")
    show_parser.add_argument(
        "--repository-path",
        dest="repository_paths",
        action="append",
        default=[],
        help="Extra repository folder to search remotely (repeatable).",
    )
    show_parser.add_argument("--token", help="Access token for this request only.")
    show_parser.add_argument("--file", help="Show one specific file from the package.")
    show_parser.add_argument(
        "--links",
        action="store_true",
        help="Append the package's important links.",
    )
    show_parser.add_argument(
        "--raw",
        action="store_true",
        help="Print content without title banners.",
    )
    show_parser.add_argument(
        "--list",
        action="store_true",
        help="List candidate documentation files instead of rendering them.",
    )

    install_parser = subparsers.add_parser(
        "install",
        help="Copy bundled documentation into a folder.",
    )
    _add_verbose_option(install_parser, suppress_default=True)
    _add_package_arguments(install_parser)
    install_parser.add_argument(
        "--destination",
        required=True,
        help="Base folder to install documentation into.",
    )
    install_parser.add_argument(
        "--layout",
        choices=[layout.value for layout in DocumentationLayout],
        default=None,
        help="Destination shape (default: module-and-version).",
    )
    install_parser.add_argument(
        "--version-subfolder",
        dest="version_subfolder",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Legacy toggle mapping to module-and-version or direct layouts.",
    )
    install_parser.add_argument(
        "--on-exists",
        choices=[policy.value for policy in ConflictPolicy],
        default=ConflictPolicy.MERGE.value,
        help="What to do when the destination already has files.",
    )
    install_parser.add_argument(
        "--force",
        action="store_true",
        help="With --on-exists merge, replace files that already exist.",
    )
    install_parser.add_argument(
        "--list-only",
        action="store_true",
        help="Print the destination without copying anything.",
    )
    install_parser.add_argument(
        "--no-intro",
        action="store_true",
        help="Leave intro content out of the copy.",
    )
    install_parser.add_argument(
        "--open",
        action="store_true",
        help="Open the installed README afterwards.",
    )

    token_parser = subparsers.add_parser(
        "token",
        help="Store or clear repository access tokens.",
    )
    _add_verbose_option(token_parser, suppress_default=True)
    token_subparsers = token_parser.add_subparsers(dest="token_command", required=True)
    set_parser = token_subparsers.add_parser("set", help="Store tokens for private repositories.")
    set_parser.add_argument("--github-token", help="GitHub token (repo scope).")
    set_parser.add_argument("--azure-devops-pat", help="Azure DevOps PAT (Code read scope).")
    set_parser.add_argument(
        "--from-environment",
        action="store_true",
        help="Read PKGDOCS_GITHUB_TOKEN/GITHUB_TOKEN and PKGDOCS_AZDO_PAT/AZURE_DEVOPS_EXT_PAT.",
    )
    token_subparsers.add_parser("clear", help="Remove all stored tokens.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for pkgdocs commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=bool(args.verbose),
        quiet=args.quiet,
        log_file=Path(args.log_file).expanduser() if args.log_file else None,
    )

    if args.command == "token":
        _run_token(parser, args, TokenStore())
        return

    pipeline = DocumentationPipeline()
    try:
        bases = pipeline.resolve(args.name, path=args.path, version=args.required_version)
    except (PackageNotFoundError, FileNotFoundError, ValueError) as exc:
        parser.exit(1, f"{exc}\n")

    if args.command == "show":
        if args.list:
            for candidate in pipeline.list_files(bases):
                print(f"{candidate.area}\t{candidate.name}\t{candidate.path}")
            return
        items = pipeline.documents(
            bases,
            _selections(args),
            prefer_internals=args.prefer_internals,
            allow_remote=not args.offline,
            project_uri=args.project_uri,
            branch=args.branch,
            repository_paths=args.repository_paths,
            token=args.token,
            single_file=args.file,
            include_links=args.links,
        )
        if not items:
            parser.exit(1, "No documentation found.\n")
        ConsoleRenderer().show(items, raw=args.raw)
    elif args.command == "install":
        try:
            destination = pipeline.install(
                bases,
                Path(args.destination),
                layout=_layout(args),
                conflict_policy=ConflictPolicy(args.on_exists),
                force=args.force,
                open_after=args.open,
                exclude_intro=args.no_intro,
                list_only=args.list_only,
            )
        except InstallError as exc:
            parser.exit(1, f"pkgdocs install failed: {exc}\n")
        except OSError as exc:
            parser.exit(1, f"pkgdocs install failed: {exc}\nRun with --verbose for more details.\n")
        print(_relativize(destination))
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _run_token(parser: argparse.ArgumentParser, args: argparse.Namespace, store: TokenStore) -> None:
    if args.token_command == "clear":
        store.clear()
        print("Stored tokens cleared.")
        return

    github_token = args.github_token
    azure_token = args.azure_devops_pat
    if args.from_environment:
        env_tokens = tokens_from_environment()
        github_token = github_token or env_tokens[HostKind.GITHUB]
        azure_token = azure_token or env_tokens[HostKind.AZURE_DEVOPS]
    try:
        store.save(github_token, azure_token)
    except TokenStoreError as exc:
        parser.exit(1, f"{exc}\n")
    if github_token:
        print("GitHub token stored.")
    if azure_token:
        print("Azure DevOps PAT stored.")


def _selections(args: argparse.Namespace) -> list[DocumentSelection]:
    if args.type_selection:
        return [DocumentSelection(args.type_selection)]
    return list(args.selections or [])


def _layout(args: argparse.Namespace) -> DocumentationLayout:
    if args.layout is not None:
        return DocumentationLayout(args.layout)
    if args.version_subfolder is not None:
        return layout_from_legacy_toggle(args.version_subfolder)
    return DocumentationLayout.MODULE_AND_VERSION


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
