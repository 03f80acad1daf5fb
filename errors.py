class AnalysisError(Exception):
    """Base class for every error raised by the analysis pipeline."""


class ProgramSyntaxError(AnalysisError):
    """Malformed statement or expression in the program text."""

    def __init__(self, message, line=None, lineno=None):
        self.message = message
        self.line = line
        self.lineno = lineno
        where = f"line {lineno}: " if lineno is not None else ""
        text = f"{where}{message}"
        if line is not None:
            text = f"{text} -> {line.strip()!r}"
        super().__init__(text)


class InternalError(AnalysisError):
    """A node of an unknown kind reached a traversal."""


class EncodingMismatch(AnalysisError):
    """The two programs of an equivalence check expose different output counts."""

    def __init__(self, outputs1, outputs2):
        self.outputs1 = list(outputs1)
        self.outputs2 = list(outputs2)
        super().__init__(
            f"output count mismatch: {len(self.outputs1)} vs {len(self.outputs2)} "
            f"({', '.join(self.outputs1) or '-'} / {', '.join(self.outputs2) or '-'})"
        )
