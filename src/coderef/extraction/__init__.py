"""Code snippet extraction from repository file content."""

from coderef.extraction.errors import (
    ExtractionError,
    FunctionNotFoundError,
    LineOutOfRangeError,
    SourceFileNotFoundError,
)
from coderef.extraction.extractor import (
    CodeExtractor,
    extract_function,
    extract_line,
    extract_range,
    language_for_path,
)
from coderef.extraction.models import (
    FileContent,
    FileContentProvider,
    FunctionExtraction,
    FunctionSignature,
    LineExtraction,
)
from coderef.extraction.signatures import detect_function_signature

__all__ = [
    # Extraction
    "CodeExtractor",
    "extract_line",
    "extract_range",
    "extract_function",
    "detect_function_signature",
    "language_for_path",
    # Models
    "FileContent",
    "FileContentProvider",
    "FunctionExtraction",
    "FunctionSignature",
    "LineExtraction",
    # Errors
    "ExtractionError",
    "FunctionNotFoundError",
    "LineOutOfRangeError",
    "SourceFileNotFoundError",
]
