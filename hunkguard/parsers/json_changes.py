"""JSON changes parser for hunkguard.

Parses a JSON array of whole-file proposals:

    [{"path": "src/app.py", "content": "..."}, {"path": "old.py", "delete": true}]

An object with a "changes" key holding such an array is accepted too.
"""

import json
from typing import Optional

from pydantic import BaseModel, ValidationError, model_validator

from hunkguard.diff.selection import DiffModel
from hunkguard.exceptions import ParseError
from hunkguard.parsers.base import ParseContext, build_model, strip_code_fences


class ProposedChange(BaseModel):
    """A single whole-file proposal."""

    path: str
    content: Optional[str] = None
    delete: bool = False

    @model_validator(mode="after")
    def require_content_or_delete(self) -> "ProposedChange":
        """A proposal either carries new content or asks for deletion, never both."""
        if self.delete and self.content is not None:
            raise ValueError(f"{self.path}: 'content' and 'delete' are mutually exclusive")
        if not self.delete and self.content is None:
            raise ValueError(f"{self.path}: 'content' is required unless 'delete' is true")
        return self


def parse_json_changes(raw: str, context: ParseContext) -> DiffModel:
    """Parse a JSON list of file proposals into a DiffModel.

    Raises:
        ParseError: If the JSON is malformed or does not match the schema
    """
    cleaned = strip_code_fences(raw)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ParseError(f"Failed to parse provider output as JSON: {e}")

    if isinstance(data, dict):
        data = data.get("changes")
    if not isinstance(data, list):
        raise ParseError("Expected a JSON array of changes")

    try:
        changes = [ProposedChange(**item) if isinstance(item, dict) else None for item in data]
    except ValidationError as e:
        raise ParseError(f"Provider output does not match the changes schema: {e}")
    if any(change is None for change in changes):
        raise ParseError("Every change must be a JSON object")

    proposals = [
        (change.path, None if change.delete else change.content)
        for change in changes
    ]
    return build_model(proposals, context)
