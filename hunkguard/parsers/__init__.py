"""Provider output parsers for hunkguard.

Each supported output format is a ParserSpec value holding a parse function
that turns raw provider output into a DiffModel. The active format is picked
by name from the workspace configuration.
"""

from typing import Optional

from hunkguard.config import WorkspaceConfig
from hunkguard.exceptions import ParseError
from hunkguard.parsers.base import ParseContext, ParserSpec
from hunkguard.parsers.claude_json import parse_claude_json
from hunkguard.parsers.code_blocks import parse_code_blocks
from hunkguard.parsers.json_changes import parse_json_changes
from hunkguard.parsers.regex import make_regex_parser
from hunkguard.parsers.unified_diff import parse_unified_diff


PARSER_DESCRIPTIONS = {
    "unified_diff": "Unified diff (git diff, aider, patch)",
    "code_blocks": "Markdown code blocks annotated with a file path comment",
    "json_changes": "JSON array of {path, content} or {path, delete} objects",
    "claude_json": "JSON envelope printed by the claude CLI",
    "regex": "Custom regex capturing (path, content); needs regex_pattern",
}


def get_parser(name: str, regex_pattern: Optional[str] = None) -> ParserSpec:
    """Get the parser for an output format.

    Args:
        name: Format name (see PARSER_DESCRIPTIONS)
        regex_pattern: Pattern for the "regex" format

    Returns:
        ParserSpec for the format

    Raises:
        ParseError: If the format is unknown or the regex pattern is missing/invalid
    """
    description = PARSER_DESCRIPTIONS.get(name)
    if description is None:
        raise ParseError(f"Unsupported parser: {name}")

    if name == "unified_diff":
        return ParserSpec(name, description, parse_unified_diff)

    elif name == "code_blocks":
        return ParserSpec(name, description, parse_code_blocks)

    elif name == "json_changes":
        return ParserSpec(name, description, parse_json_changes)

    elif name == "claude_json":
        return ParserSpec(name, description, parse_claude_json)

    else:
        if not regex_pattern:
            raise ParseError("The regex parser needs 'regex_pattern' to be configured")
        return ParserSpec(name, description, make_regex_parser(regex_pattern))


def get_configured_parser(config: WorkspaceConfig) -> ParserSpec:
    """Get the parser selected by the workspace configuration."""
    return get_parser(config.parser, regex_pattern=config.regex_pattern)


__all__ = [
    "PARSER_DESCRIPTIONS",
    "ParseContext",
    "ParserSpec",
    "get_configured_parser",
    "get_parser",
    "parse_claude_json",
    "parse_code_blocks",
    "parse_json_changes",
    "parse_unified_diff",
]
