"""Markdown code block parser for hunkguard.

Parses responses where each changed file is a fenced code block whose first
line names the file in a comment, e.g.:

    ```python
    # file: src/app.py
    print("hello")
    ```

The block body is the file's complete proposed content.
"""

import re

from hunkguard.diff.selection import DiffModel
from hunkguard.parsers.base import ParseContext, build_model

_CODE_BLOCK_RE = re.compile(
    r"```[\w+-]*[ \t]*\n"
    r"[ \t]*(?://|#|<!--|--|;)[ \t]*(?:file:|path:)?[ \t]*(?P<path>[^\s]+?)[ \t]*(?:-->)?[ \t]*\n"
    r"(?P<content>.*?)"
    r"^```",
    re.DOTALL | re.MULTILINE,
)


def parse_code_blocks(raw: str, context: ParseContext) -> DiffModel:
    """Parse annotated markdown code blocks into a DiffModel.

    Raises:
        ParseError: If no annotated block is found or a path is invalid
    """
    proposals = [
        (match.group("path"), match.group("content"))
        for match in _CODE_BLOCK_RE.finditer(raw)
    ]
    return build_model(proposals, context)
