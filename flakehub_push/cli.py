"""Command-line entry point for pushing a flake release to FlakeHub."""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
import typing as typ

from flakehub_push.config import DEFAULT_HOST, PushConfig, env_option, parse_bool
from flakehub_push.environment import ExecutionEnvironment, classify
from flakehub_push.errors import PushError
from flakehub_push.github.actions import format_error_annotation
from flakehub_push.logging import configure_logging, get_logger, log_info, log_warning
from flakehub_push.push import push_release

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = get_logger(__name__)

_BOOLEAN_OPTIONS = (
    ("--rolling", "ROLLING", "Publish a rolling release versioned by commit count"),
    ("--mirror", "MIRROR", "Mark the release as a mirror of another repository"),
    (
        "--error-on-conflict",
        "ERROR_ON_CONFLICT",
        "Fail when the release already exists instead of succeeding",
    ),
    (
        "--include-output-paths",
        "INCLUDE_OUTPUT_PATHS",
        "Keep store paths in the published output graph",
    ),
    (
        "--disable-rename-subgroups",
        "DISABLE_RENAME_SUBGROUPS",
        "Reject nested subgroups instead of joining them with `-`",
    ),
)

_STRING_OPTIONS = (
    ("--tag", "TAG", "Version tag, such as v1.2.3"),
    ("--rev", "REV", "Revision to release; defaults to the checked-out HEAD"),
    ("--rolling-minor", "ROLLING_MINOR", "Minor version for rolling releases"),
    ("--github-token", "GITHUB_TOKEN", "Token for GitHub's GraphQL API"),
    ("--name", "NAME", "Upload name formatted like `owner/flake`"),
    ("--repository", "REPOSITORY", "Repository formatted like `owner/repo`"),
    ("--directory", "DIRECTORY", "Flake directory, relative to the git root"),
    ("--git-root", "GIT_ROOT", "Root of the git work tree"),
    ("--extra-labels", "EXTRA_LABELS", "Comma separated labels"),
    ("--extra-tags", "EXTRA_TAGS", "Deprecated alias of --extra-labels"),
    ("--spdx-expression", "SPDX_EXPRESSION", "SPDX licence expression"),
    ("--jwt-issuer-uri", "JWT_ISSUER_URI", "Development JWT issuer for local runs"),
    ("--log-level", "LOG_LEVEL", "Log level, such as DEBUG or INFO"),
)


def build_parser(environ: cabc.Mapping[str, str]) -> argparse.ArgumentParser:
    """Build the argument parser with ``FLAKEHUB_PUSH_*`` defaults.

    Raises
    ------
    ConfigurationError
        If a boolean environment default is not a recognised boolean.

    """
    parser = argparse.ArgumentParser(prog="flakehub-push", description=__doc__)
    parser.add_argument(
        "--host",
        default=env_option(environ, "HOST") or DEFAULT_HOST,
        help="FlakeHub API base URL",
    )
    parser.add_argument(
        "--visibility",
        default=env_option(environ, "VISIBILITY")
        or env_option(environ, "VISIBLITY"),
        help="Release visibility: public, unlisted, hidden or private",
    )
    for flag, env_name, help_text in _STRING_OPTIONS:
        parser.add_argument(flag, default=env_option(environ, env_name), help=help_text)
    for flag, env_name, help_text in _BOOLEAN_OPTIONS:
        parser.add_argument(
            flag,
            action=argparse.BooleanOptionalAction,
            default=parse_bool(
                env_option(environ, env_name), option=flag.removeprefix("--")
            ),
            help=help_text,
        )
    return parser


def report_error(exc: PushError, environment: ExecutionEnvironment) -> None:
    """Print a push failure to stderr.

    Registry rejections also print an ``::error`` workflow command to stdout
    on GitHub Actions so the failure shows up as an annotation.
    """
    print(f"Error: {exc}", file=sys.stderr)
    if environment is ExecutionEnvironment.GITHUB and exc.annotate:
        print(format_error_annotation(str(exc), title=type(exc).__name__))


def main(
    argv: list[str] | None = None,
    *,
    environ: cabc.Mapping[str, str] | None = None,
) -> int:
    """Push a release and return the process exit code.

    Parameters
    ----------
    argv : list[str] | None, optional
        Command-line arguments. ``None`` defaults to ``sys.argv``.
    environ : Mapping[str, str] | None, optional
        Process environment. ``None`` defaults to ``os.environ``.

    Returns
    -------
    int
        Exit code: 0 on success, 1 when the push fails.

    """
    env = os.environ if environ is None else environ
    environment = classify(env)
    try:
        args = build_parser(env).parse_args(argv)

        normalized_level, invalid_level = configure_logging(args.log_level)
        if invalid_level and args.log_level is not None:
            log_warning(
                logger,
                "Invalid FLAKEHUB_PUSH_LOG_LEVEL %r, falling back to %s",
                args.log_level,
                normalized_level,
            )

        config = PushConfig.from_namespace(args)
        outcome = asyncio.run(push_release(config, environ=env))
    except PushError as exc:
        report_error(exc, environment)
        return 1

    if outcome.already_published:
        log_info(
            logger,
            "%s/%s was already published",
            outcome.upload_name,
            outcome.version,
        )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
