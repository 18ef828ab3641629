"""Unit tests for SPDX licence expression validation."""

from __future__ import annotations

import pytest

from flakehub_push.errors import ConfigurationError
from flakehub_push.release.licensing import spdx_problems, validate_spdx_expression


@pytest.mark.parametrize(
    "expression",
    ["MIT", "Apache-2.0", "MIT OR Apache-2.0", "(MIT AND BSD-3-Clause) OR LGPL-2.1"],
)
def test_valid_expressions_have_no_problems(expression: str) -> None:
    """Known licence identifiers and operators validate."""
    assert spdx_problems(expression) is None
    assert validate_spdx_expression(expression) == expression


@pytest.mark.parametrize(
    "expression", ["MIT AND OR", "not-a-real-licence-id", "(MIT"]
)
def test_invalid_expressions_are_described(expression: str) -> None:
    """Syntax errors and unknown identifiers are reported."""
    assert spdx_problems(expression)


def test_validate_raises_configuration_error() -> None:
    """The error names the offending expression."""
    with pytest.raises(ConfigurationError, match="not-a-real-licence-id"):
        validate_spdx_expression("not-a-real-licence-id")
