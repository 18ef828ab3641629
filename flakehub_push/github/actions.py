"""GitHub Actions workflow commands and step outputs."""

from __future__ import annotations

import os
import typing as typ
import uuid
from pathlib import Path

from .errors import GitHubOutputError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

GITHUB_OUTPUT_VAR = "GITHUB_OUTPUT"


def escape_data(value: str) -> str:
    """Escape a workflow command message.

    Examples
    --------
    >>> escape_data("50%\\ndone")
    '50%25%0Adone'

    """
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def escape_property(value: str) -> str:
    """Escape a workflow command property value."""
    return escape_data(value).replace(":", "%3A").replace(",", "%2C")


def format_error_annotation(message: str, *, title: str | None = None) -> str:
    """Render a single-line ``::error`` workflow command."""
    properties = f" title={escape_property(title)}" if title else ""
    return f"::error{properties}::{escape_data(message)}"


def format_output(name: str, value: str, *, delimiter: str | None = None) -> str:
    """Render a step output using the multiline delimiter syntax.

    Parameters
    ----------
    name
        Output name.
    value
        Output value; may span several lines.
    delimiter
        Heredoc delimiter; a random ``ghadelimiter_`` token when omitted.

    Raises
    ------
    GitHubOutputError
        If the name or value contains the delimiter.

    """
    delimiter = delimiter or f"ghadelimiter_{uuid.uuid4()}"
    if delimiter in name:
        raise GitHubOutputError.key_contains_delimiter()
    if delimiter in value:
        raise GitHubOutputError.value_contains_delimiter()
    return f"{name}<<{delimiter}\n{value}\n{delimiter}\n"


def set_outputs(
    outputs: cabc.Mapping[str, str],
    *,
    environ: cabc.Mapping[str, str] | None = None,
) -> None:
    """Append step outputs to the file named by ``GITHUB_OUTPUT``."""
    env = os.environ if environ is None else environ
    output_path = env.get(GITHUB_OUTPUT_VAR)
    if not output_path:
        raise GitHubOutputError.output_unset()

    rendered = "".join(format_output(name, value) for name, value in outputs.items())
    try:
        with Path(output_path).open("a", encoding="utf-8") as handle:
            handle.write(rendered)
    except OSError as exc:
        raise GitHubOutputError.write_failed(output_path, exc) from exc


def release_outputs(upload_name: str, version: str) -> dict[str, str]:
    """Return the step outputs describing a pushed release."""
    return {
        "flake_name": upload_name,
        "flake_version": version,
        "flakeref_exact": f"{upload_name}/={version}",
        "flakeref_at_least": f"{upload_name}/{version}",
    }


__all__ = [
    "GITHUB_OUTPUT_VAR",
    "escape_data",
    "escape_property",
    "format_error_annotation",
    "format_output",
    "release_outputs",
    "set_outputs",
]
