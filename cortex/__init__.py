"""
Cortex - semantic encoding engine for compact LLM-facing frame notation.

Public API:
- parse_cortex_string / serialize_frame: notation <-> Frame
- validate_frame: structural and semantic validation
- resolve_reference / resolve_all_references: $path references
- calculate_semantic_similarity: 0..1 fidelity score between frames
- CortexCore: cached processing orchestrator (compression / answer generation)
"""

from .analysis import FrameAnalysis, analyze_frame, describe_frame, frame_hash, prettify_frame
from .cache import ProcessingCache
from .compression import compress_frame
from .config import CortexConfig, configure_logging
from .cortex_core import CortexCore, ProcessingRequest, ProcessingResult
from .cortex_parser import parse_cortex_string
from .cortex_validator import ValidationResult, validate_frame
from .errors import CortexError, CortexErrorCode, InvalidStructure, ProcessingFailed, ReferenceNotFound
from .frame import FRAME_TYPES, Frame
from .references import extract_references, resolve_all_references, resolve_reference
from .reply_parser import parse_model_reply
from .serializer import serialize_frame
from .similarity import calculate_semantic_integrity, calculate_semantic_similarity

# Derive version from package metadata
try:
    from importlib.metadata import PackageNotFoundError, version
    __version__ = version("cortex-engine")
except PackageNotFoundError:
    __version__ = "1.0.0"

__all__ = [
    "Frame",
    "FRAME_TYPES",
    "parse_cortex_string",
    "serialize_frame",
    "validate_frame",
    "ValidationResult",
    "extract_references",
    "resolve_reference",
    "resolve_all_references",
    "calculate_semantic_similarity",
    "calculate_semantic_integrity",
    "compress_frame",
    "analyze_frame",
    "describe_frame",
    "prettify_frame",
    "frame_hash",
    "FrameAnalysis",
    "parse_model_reply",
    "ProcessingCache",
    "CortexConfig",
    "configure_logging",
    "CortexCore",
    "ProcessingRequest",
    "ProcessingResult",
    "CortexError",
    "CortexErrorCode",
    "InvalidStructure",
    "ProcessingFailed",
    "ReferenceNotFound",
]
