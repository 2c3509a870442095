"""Extraction error types."""

from coderef.core.errors import ErrorCode


class ExtractionError(Exception):
    """Base error for snippet extraction."""

    error_code = ErrorCode.INTERNAL_ERROR


class SourceFileNotFoundError(ExtractionError):
    """File content is unavailable from the content provider."""

    error_code = ErrorCode.FILE_NOT_FOUND

    def __init__(self, file_path: str, ref: str | None = None) -> None:
        where = f" at {ref}" if ref else ""
        super().__init__(f"File not found: {file_path}{where}")
        self.file_path = file_path
        self.ref = ref


class FunctionNotFoundError(ExtractionError):
    """No declaration matches the requested function name."""

    error_code = ErrorCode.FUNCTION_NOT_FOUND

    def __init__(self, file_path: str, function_name: str) -> None:
        super().__init__(f"Function {function_name} not found in {file_path}")
        self.file_path = file_path
        self.function_name = function_name


class LineOutOfRangeError(ExtractionError):
    """Requested line lies outside the file."""

    error_code = ErrorCode.LINE_OUT_OF_RANGE

    def __init__(self, line: int, total_lines: int) -> None:
        super().__init__(f"Line number {line} is out of range (file has {total_lines} lines)")
        self.line = line
        self.total_lines = total_lines
