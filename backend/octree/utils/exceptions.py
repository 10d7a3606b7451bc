"""
Custom exception classes for the Octree editor backend.
"""

from typing import List, Optional


class OctreeException(Exception):
    """Base exception for all Octree errors."""

    def __init__(self, message: str, detail: Optional[str] = None):
        self.message = message
        self.detail = detail
        super().__init__(self.message)


class DiffParseError(OctreeException):
    """Raised for a single malformed latex-diff block. Never escapes the parser."""

    def __init__(self, message: str, header: Optional[str] = None):
        super().__init__(f"Could not parse diff block: {message}", header)
        self.header = header


class BoundsError(OctreeException):
    """Raised when a suggestion's line range no longer fits the buffer."""

    def __init__(self, suggestion_id: str, start_line: int, end_line: int, line_count: int):
        super().__init__(
            f"Suggestion {suggestion_id} lines [{start_line}-{end_line}] are out of bounds "
            f"for buffer line count {line_count}"
        )
        self.suggestion_id = suggestion_id
        self.start_line = start_line
        self.end_line = end_line
        self.line_count = line_count


class AnchorMismatchError(OctreeException):
    """Raised when the text at a suggestion's range differs from its recorded original."""

    def __init__(self, suggestion_id: str, start_line: int, end_line: int, current_text: str):
        super().__init__(
            f"Suggestion {suggestion_id} original text no longer matches lines [{start_line}-{end_line}]"
        )
        self.suggestion_id = suggestion_id
        self.start_line = start_line
        self.end_line = end_line
        self.current_text = current_text


class LimitExceededError(OctreeException):
    """Raised when the edit-limit gate denies an edit."""

    def __init__(
        self,
        message: str = "You have reached your free edit limit. Please upgrade to Pro for unlimited edits.",
        detail: Optional[str] = None,
    ):
        super().__init__(message, detail)


class ApplyError(OctreeException):
    """Raised when mutating the buffer fails."""

    def __init__(self, suggestion_id: str, detail: Optional[str] = None):
        super().__init__(f"Failed to apply suggestion {suggestion_id}", detail)
        self.suggestion_id = suggestion_id


class ConflictResolutionError(OctreeException):
    """Raised when the AI re-query for a stale suggestion fails."""

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(f"Conflict resolution failed: {message}", detail)


class PersistenceError(OctreeException):
    """Raised when saving a document fails."""

    def __init__(self, document_id: str, detail: Optional[str] = None):
        super().__init__(f"Failed to save document {document_id}", detail)
        self.document_id = document_id


class CompilationError(OctreeException):
    """Raised when the LaTeX compiler fails or times out."""

    def __init__(
        self,
        message: str,
        log: Optional[str] = None,
        stdout: Optional[str] = None,
        stderr: Optional[str] = None,
        exit_code: Optional[int] = None,
    ):
        super().__init__(message, log)
        self.log = log
        self.stdout = stdout
        self.stderr = stderr
        self.exit_code = exit_code


class LatexSafetyError(CompilationError):
    """Raised when safe mode refuses a LaTeX source."""

    def __init__(self, message: str, violations: Optional[List[str]] = None):
        super().__init__(message, log="\n".join(violations or []))
        self.violations = violations or []


class LLMServiceError(OctreeException):
    """Raised when LLM service operations fail."""

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(f"LLM service error: {message}", detail)


class DocumentNotFoundError(OctreeException):
    """Raised when a document is not found."""

    def __init__(self, document_id: str, detail: Optional[str] = None):
        super().__init__(f"Document not found: {document_id}", detail)
        self.document_id = document_id


class SessionNotFoundError(OctreeException):
    """Raised when an editor session is not found."""

    def __init__(self, session_id: str):
        super().__init__(f"Editor session not found: {session_id}")
        self.session_id = session_id


class SuggestionNotFoundError(OctreeException):
    """Raised when a suggestion is not displayed in the session."""

    def __init__(self, suggestion_id: str):
        super().__init__(f"Suggestion not found: {suggestion_id}")
        self.suggestion_id = suggestion_id


class ValidationError(OctreeException):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: Optional[str] = None, detail: Optional[str] = None):
        if field:
            message = f"Validation error for field '{field}': {message}"
        super().__init__(message, detail)
        self.field = field
