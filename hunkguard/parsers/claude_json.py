"""Parser for the JSON envelope printed by the claude CLI in print mode.

The envelope's "result" text narrates edits as "Editing `path`" followed by
a fenced block with the file's complete new content.
"""

import json
import re

from hunkguard.diff.selection import DiffModel
from hunkguard.exceptions import ParseError
from hunkguard.parsers.base import ParseContext, build_model

_EDIT_RE = re.compile(r"Editing\s+`?([^`\n]+?)`?\s*[:.]?\s*\n.*?```[\w+-]*\n(.*?)```", re.DOTALL)


def parse_claude_json(raw: str, context: ParseContext) -> DiffModel:
    """Parse the claude CLI JSON envelope into a DiffModel.

    Raises:
        ParseError: If the envelope is not JSON or has no "result" text
    """
    try:
        envelope = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ParseError(f"Failed to parse claude JSON response: {e}")

    result = envelope.get("result") if isinstance(envelope, dict) else None
    if not isinstance(result, str):
        raise ParseError("claude JSON response has no 'result' text")

    proposals = [(match.group(1), match.group(2)) for match in _EDIT_RE.finditer(result)]
    return build_model(proposals, context)
