"""
errors.py

Cortex error taxonomy
---------------------

Every failure raised by the engine is a CortexError carrying:
    code    : CortexErrorCode member
    stage   : 'encoding' | 'processing' | 'decoding'
    context : optional dict with diagnostic payload (offending token, input, ...)

Parse, serialize and validate failures raise InvalidStructure. The
orchestrator wraps anything that is not already a CortexError into
ProcessingFailed, and never wraps twice.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class CortexErrorCode(str, Enum):
    ENCODING_FAILED = "CORTEX_ENCODING_FAILED"
    PROCESSING_FAILED = "CORTEX_PROCESSING_FAILED"
    DECODING_FAILED = "CORTEX_DECODING_FAILED"
    INVALID_STRUCTURE = "CORTEX_INVALID_STRUCTURE"
    UNSUPPORTED_PRIMITIVE = "CORTEX_UNSUPPORTED_PRIMITIVE"
    REFERENCE_NOT_FOUND = "CORTEX_REFERENCE_NOT_FOUND"
    SEMANTIC_VALIDATION_FAILED = "CORTEX_SEMANTIC_VALIDATION_FAILED"
    CACHE_ERROR = "CORTEX_CACHE_ERROR"
    CONFIGURATION_ERROR = "CORTEX_CONFIGURATION_ERROR"
    TIMEOUT_ERROR = "CORTEX_TIMEOUT_ERROR"


class CortexError(Exception):
    """Base class for all Cortex-domain errors."""

    def __init__(
        self,
        code: CortexErrorCode,
        message: str,
        stage: str = "processing",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.stage = stage
        self.context = context or {}

    def __str__(self):
        return f"[{self.code.value}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "stage": self.stage,
            "context": self.context,
        }


class InvalidStructure(CortexError):
    """Raised when notation text or a frame is structurally malformed."""

    def __init__(self, message: str, stage: str = "encoding", context: Optional[Dict[str, Any]] = None):
        super().__init__(CortexErrorCode.INVALID_STRUCTURE, message, stage, context)


class ProcessingFailed(CortexError):
    """Raised when orchestration fails for a reason that is not Cortex-typed."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(CortexErrorCode.PROCESSING_FAILED, message, "processing", context)


class ReferenceNotFound(CortexError):
    """Raised by strict reference resolution when a $path has no target."""

    def __init__(self, reference: str, context: Optional[Dict[str, Any]] = None):
        ctx = {"reference": reference}
        ctx.update(context or {})
        super().__init__(
            CortexErrorCode.REFERENCE_NOT_FOUND,
            f"Reference {reference} cannot be resolved in current context",
            "processing",
            ctx,
        )
        self.reference = reference
