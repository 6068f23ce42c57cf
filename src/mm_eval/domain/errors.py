# domain/errors.py


class MapMatchEvalError(Exception):
    """Base class for errors raised by mm_eval."""


class ParseError(MapMatchEvalError, ValueError):
    """A line or file could not be parsed. Carries the offending location."""

    def __init__(
        self,
        msg: str,
        *,
        path: str | None = None,
        line_no: int | None = None,
        line: str | None = None,
    ):
        self.path, self.line_no, self.line = path, line_no, line
        where = []
        if path is not None:
            where.append(str(path))
        if line_no is not None:
            where.append(f"line {line_no}")
        prefix = ":".join(where)
        text = f"{prefix}: {msg}" if prefix else msg
        if line is not None:
            text += f" -> {line!r}"
        super().__init__(text)


class MalformedGraph(MapMatchEvalError):
    """Way references an unknown node, or an ID is registered twice."""


class PathNotFound(MapMatchEvalError, FileNotFoundError):
    pass


class InvariantViolation(MapMatchEvalError, RuntimeError):
    """Node/way back-references disagree. Always a programming error."""
