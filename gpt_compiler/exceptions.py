"""
Custom Exceptions for GPT Compiler
==================================

Every failure a document can hit on its way to an artifact has its own type,
so the pipeline can turn it into a failure outcome and the CLI can decide
what is fatal.

Usage:
    from gpt_compiler.exceptions import ServiceError, EmptyArtifactError

    try:
        code = await client.compile(instructions, "python")
    except ServiceError as e:
        logger.error(f"Generation service failed: {e}")
        raise
"""

from typing import Optional, Any, Dict


class GptCompilerError(Exception):
    """Base exception for all GPT Compiler errors"""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Configuration Errors (fatal at startup)
# ============================================

class ConfigError(GptCompilerError):
    """Configuration is missing or invalid"""

    def __init__(self, message: str, setting: Optional[str] = None):
        details = {"setting": setting} if setting else {}
        super().__init__(message, code="CONFIG_ERROR", details=details)


# ============================================
# Document I/O Errors
# ============================================

class DocumentReadError(GptCompilerError):
    """Document could not be read"""

    def __init__(self, path: str, reason: str = "Read failed"):
        super().__init__(
            f"Failed to read document {path}: {reason}",
            code="READ_ERROR",
            details={"path": path}
        )


class ArtifactWriteError(GptCompilerError):
    """Generated artifact could not be written"""

    def __init__(self, path: str, reason: str = "Write failed"):
        super().__init__(
            f"Failed to write artifact {path}: {reason}",
            code="WRITE_ERROR",
            details={"path": path}
        )


class DocumentExistsError(GptCompilerError):
    """Refusing to overwrite an existing document"""

    def __init__(self, path: str):
        super().__init__(
            f"File already exists: {path}",
            code="DOCUMENT_EXISTS",
            details={"path": path}
        )


# ============================================
# Generation Service Errors
# ============================================

class ServiceError(GptCompilerError):
    """Generation service returned a non-success status or was unreachable"""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message, code="SERVICE_ERROR")
        self.status_code = status_code
        self.body = body
        self.details = {"status_code": status_code, "body": body}


class ResponseShapeError(GptCompilerError):
    """Response payload matched none of the known shapes"""

    def __init__(self, message: str = "No recognized content format in the response",
                 keys: Optional[list] = None):
        super().__init__(message, code="RESPONSE_SHAPE_ERROR")
        if keys is not None:
            self.details["keys"] = keys


class EmptyArtifactError(GptCompilerError):
    """Service answered but the generated code is empty"""

    def __init__(self, language: Optional[str] = None):
        super().__init__("Empty code was generated", code="EMPTY_ARTIFACT")
        if language:
            self.details["language"] = language


# ============================================
# Watcher Errors
# ============================================

class WatcherStateError(GptCompilerError):
    """Illegal watch loop state transition"""

    def __init__(self, current: str, action: str):
        super().__init__(
            f"Cannot {action} watcher in state '{current}'",
            code="WATCHER_STATE",
            details={"state": current, "action": action}
        )
