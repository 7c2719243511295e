class Span:
    def __init__(self, start, end, line=1, column=1):
        self.start = start    # character offset, inclusive
        self.end = end        # character offset, exclusive
        self.line = line      # 1-based
        self.column = column  # 1-based

    def __repr__(self):
        return f"Span({self.start}..{self.end} @ {self.line}:{self.column})"

    def __eq__(self, other):
        if not isinstance(other, Span):
            return NotImplemented
        return (self.start, self.end) == (other.start, other.end)


class Diagnostic:
    def __init__(self, message, span=None, expected=(), found=None, severity="error"):
        self.message = message
        self.span = span
        self.expected = tuple(expected)  # only set for syntax errors
        self.found = found
        self.severity = severity  # "error" | "warning"

    def __repr__(self):
        return f"Diagnostic({self.severity}: {self.message!r})"


class DesmoscriptError(Exception):
    pass


class ParseError(DesmoscriptError):
    def __init__(self, diagnostics):
        self.diagnostics = list(diagnostics)
        first = self.diagnostics[0].message if self.diagnostics else "syntax error"
        super().__init__(first)


class CompileError(DesmoscriptError):
    def __init__(self, message, span=None):
        super().__init__(message)
        self.message = message
        self.span = span

    def to_diagnostic(self):
        return Diagnostic(self.message, span=self.span)


class DocumentError(DesmoscriptError):
    pass


def syntax_message(expected, found):
    # "Expected one of '(', identifier, but found ';'!"
    if not expected:
        return f"Unexpected {found}!"
    if len(expected) == 1:
        return f"Expected {expected[0]}, but found {found}!"
    return f"Expected one of {', '.join(expected)}, but found {found}!"


def format_diagnostic(diag, source=None, path="<input>"):
    span = diag.span
    if span is None:
        return f"{path}: {diag.severity}: {diag.message}"

    lines = [f"{path}:{span.line}:{span.column}: {diag.severity}: {diag.message}"]
    if source is None:
        return lines[0]

    src_lines = source.splitlines()
    if 0 < span.line <= len(src_lines):
        text = src_lines[span.line - 1]
        gutter = f"{span.line} | "
        lines.append(gutter + text)
        # caret covers the span, clipped to this line
        width = max(1, min(span.end - span.start, len(text) - span.column + 1))
        lines.append(" " * (len(gutter) + span.column - 1) + "^" * width + " found here")
    return "\n".join(lines)
