"""Regex parser for hunkguard.

Lets a custom provider describe its output with a regular expression whose
first group captures the file path and second group the complete proposed
content of that file.
"""

import re
from functools import partial

from hunkguard.diff.selection import DiffModel
from hunkguard.exceptions import ParseError
from hunkguard.parsers.base import ParseContext, build_model


def compile_pattern(pattern: str) -> re.Pattern:
    """Compile a user-supplied pattern, checking it captures path and content.

    Raises:
        ParseError: If the pattern is invalid or has fewer than two groups
    """
    try:
        compiled = re.compile(pattern, re.DOTALL | re.MULTILINE)
    except re.error as e:
        raise ParseError(f"Invalid regex pattern {pattern!r}: {e}")
    if compiled.groups < 2:
        raise ParseError(
            f"Regex pattern {pattern!r} must capture the path and the content (2 groups)"
        )
    return compiled


def parse_with_regex(raw: str, context: ParseContext, pattern: str) -> DiffModel:
    """Parse provider output with a custom pattern into a DiffModel."""
    compiled = compile_pattern(pattern)
    proposals = [
        (match.group(1), match.group(2))
        for match in compiled.finditer(raw)
    ]
    return build_model(proposals, context)


def make_regex_parser(pattern: str):
    """Bind a pattern, giving a function with the standard parse signature."""
    compile_pattern(pattern)
    return partial(parse_with_regex, pattern=pattern)
