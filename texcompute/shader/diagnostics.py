"""
Turn free-form shader compiler output into something a human can act on.

Compiler logs refer to source lines by number only, and kernel sources are
usually inline multi-line strings without visible line numbers. The functions
here parse the log and render the source with line numbers, placing each
message right below the line it refers to. There is no device dependency.

Two log styles are understood:

* GLSL-style tokens: ``ERROR: <column>:<line>: <message>``.
* Naga-style (wgpu) locations: ``wgsl:<line>:<column>``, with the message on a
  preceding line that contains "error".

Line numbers in logs are 1-based; a ``Diagnostic`` stores them 0-based.
"""

import re
from collections import namedtuple


Diagnostic = namedtuple("Diagnostic", ["line", "column", "message"])
Diagnostic.__doc__ = """A single message from a compiler log.

``line`` is 0-based.
"""

re_glsl_error = re.compile(r"ERROR:\s*(\d+):(\d+):")
re_naga_location = re.compile(r"wgsl:(\d+):(\d+)")
re_error_word = re.compile(r"error", re.IGNORECASE)

LINE_NUMBER_WIDTH = 5
MARKER = "^^^ "


def parse_diagnostics(log):
    """Parse a compiler log into a list of Diagnostic objects."""
    log = log or ""
    diagnostics = []

    # GLSL-style: the message runs until the next token (or end of log)
    matches = list(re_glsl_error.finditer(log))
    for i, m in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(log)
        message = log[m.start() : end].strip()
        line = int(m.group(2)) - 1
        diagnostics.append(Diagnostic(max(line, 0), int(m.group(1)), message))

    # Naga-style: the location follows the message
    log_lines = log.splitlines()
    message = None
    for log_line in log_lines:
        m = re_naga_location.search(log_line)
        if m:
            line = int(m.group(1)) - 1
            column = int(m.group(2))
            diagnostics.append(
                Diagnostic(max(line, 0), column, message or log_line.strip())
            )
            message = None
        elif re_error_word.search(log_line) and not re_glsl_error.search(log_line):
            message = log_line.strip()

    return diagnostics


def add_line_numbers(source):
    """Prefix each line of the source with its (1-based) line number."""
    return "\n".join(
        f"{i + 1:{LINE_NUMBER_WIDTH}d}: {line}"
        for i, line in enumerate(source.splitlines())
    )


def annotate_source(source, log):
    """Render the source with line numbers, and the log's messages below
    the lines they refer to.

    Source lines are kept verbatim. Messages that refer to a line beyond the end
    of the source are listed at the end.
    """
    source_lines = source.splitlines()
    per_line = {}
    unplaced = []
    for diagnostic in parse_diagnostics(log):
        if diagnostic.line < len(source_lines):
            per_line.setdefault(diagnostic.line, []).append(diagnostic.message)
        else:
            unplaced.append(diagnostic.message)

    indent = " " * (LINE_NUMBER_WIDTH + 2)
    lines = []
    for i, line in enumerate(source_lines):
        lines.append(f"{i + 1:{LINE_NUMBER_WIDTH}d}: {line}")
        for message in per_line.get(i, ()):
            lines.append(indent + MARKER + message)
    for message in unplaced:
        lines.append(indent + MARKER + message)

    return "\n".join(lines)
