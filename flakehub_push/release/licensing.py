"""SPDX licence expression validation."""

from __future__ import annotations

import functools
import typing as typ

from license_expression import get_spdx_licensing

from flakehub_push.errors import ConfigurationError

if typ.TYPE_CHECKING:
    from license_expression import Licensing


@functools.cache
def _spdx_licensing() -> Licensing:
    return get_spdx_licensing()


def spdx_problems(expression: str) -> str | None:
    """Describe why ``expression`` is not valid SPDX, or return ``None``.

    Examples
    --------
    >>> spdx_problems("MIT OR Apache-2.0") is None
    True

    """
    info = _spdx_licensing().validate(expression)
    if not info.errors:
        return None
    return "; ".join(info.errors)


def validate_spdx_expression(expression: str) -> str:
    """Return ``expression`` unchanged once it validates as SPDX.

    Raises
    ------
    ConfigurationError
        If the expression is malformed or names unknown licences.

    """
    problems = spdx_problems(expression)
    if problems is not None:
        raise ConfigurationError.invalid_spdx_expression(expression, problems)
    return expression


__all__ = ["spdx_problems", "validate_spdx_expression"]
