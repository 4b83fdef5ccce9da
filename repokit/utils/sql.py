"""
SQL text helpers.
"""

from typing import Any, Sequence, Union


def quote(value: Union[Any, Sequence[Any]]) -> str:
    """
    Wrap a scalar, or each item of a list, in single quotes.

    Lists are joined with commas, so ``quote(["x", "y"])`` gives ``'x','y'``.

    Warning:
        Embedded quote characters are NOT escaped. The output is only safe
        for trusted values; use bound parameters for anything user supplied.

    Args:
        value: Scalar value or list/tuple of scalars

    Returns:
        Quoted SQL literal text
    """
    if isinstance(value, (list, tuple)):
        return ",".join(quote(item) for item in value)

    return f"'{value}'"
