"""Error formatting for CLI output."""

from modinspect.modfile import ModFileParseError


def pretty_print_parse_error(error: ModFileParseError) -> str:
    """Format a ModFileParseError with the offending line and a marker.

    Example output:
        unknown directive: requre
          --> go.mod:5

        4 |
        5 | requre example.com/a v1.0.0
          | ^^^^^^^^^^^^^^^^^^^^^^^^^^^
    """
    message_parts = [error.message]

    if error.filename and error.line:
        try:
            with open(error.filename, "r") as f:
                lines = f.readlines()
        except OSError:
            lines = []

        if 0 < error.line <= len(lines):
            start = max(1, error.line - 1)
            width = len(str(error.line))
            location = f"  --> {error.filename}:{error.line}\n\n"
            for lineno in range(start, error.line + 1):
                content = lines[lineno - 1].rstrip()
                location += f"{lineno:>{width}} | {content}\n"
                if lineno == error.line:
                    indent = len(content) - len(content.lstrip())
                    marker = " " * indent + "^" * max(1, len(content.strip()))
                    location += f"{' ' * width} | {marker}\n"
            message_parts.append(location)
        else:
            message_parts.append(f"  File: {error.filename}\n  Line: {error.line}\n")

    return "\n".join(message_parts)
