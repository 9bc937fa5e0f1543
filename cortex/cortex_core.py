"""
cortex_core.py

CortexCore: the processing orchestrator.

Every request runs the same state machine:

    RECEIVED -> CACHE_CHECK -> CACHE_HIT  -> DONE
                            -> CACHE_MISS -> EXECUTING -> SUCCESS -> CACHE_STORE -> DONE
                                                       -> FAILURE -> DONE

EXECUTING is delegated to a mode strategy picked from the request operation:

    answer                              AnswerGenerationStrategy
    compress / optimize / analyze /     CompressionStrategy
    transform

Errors already typed as CortexError propagate unchanged; anything else is
wrapped once into ProcessingFailed carrying the operation and input. A failed
request never writes to the cache.

Collaborators (config, cache, model invoker, clock) are passed in; there is no
module-level engine instance.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Protocol

from .cache import ProcessingCache
from .canonical import canonical_json, content_hash
from .compression import compress_frame
from .config import CortexConfig, configure_logging
from .errors import CortexError, InvalidStructure, ProcessingFailed
from .frame import Frame
from .reply_parser import parse_model_reply
from .serializer import serialize_frame
from .similarity import calculate_semantic_integrity

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4
COMPRESSION_CONFIDENCE = 0.8

ANSWER_PROMPT_TEMPLATE = (
    "You are answering a request written in Cortex notation.\n"
    "Reply with exactly one Cortex answer frame, for example:\n"
    '(answer: content:"..." summary:"...")\n\n'
    "Request:\n{notation}"
)


class ModelInvoker(Protocol):
    def invoke(self, prompt: str, model: str) -> str:
        ...


# ==========================================
# REQUEST / RESULT TYPES
# ==========================================

@dataclass
class ProcessingRequest:
    input: Frame
    operation: str = "compress"
    options: Optional[Dict[str, Any]] = None
    prompt: Optional[str] = None


@dataclass(frozen=True)
class OptimizationRecord:
    type: str
    description: str
    tokens_saved: int
    reduction_percentage: float
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "description": self.description,
            "savings": {
                "tokensSaved": self.tokens_saved,
                "reductionPercentage": self.reduction_percentage,
            },
            "confidence": self.confidence,
        }


@dataclass
class ProcessingResult:
    output: Frame
    optimizations: List[OptimizationRecord]
    processing_time: float  # milliseconds
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def from_cache(self) -> bool:
        return bool(self.metadata.get("from_cache"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "output": self.output.to_dict(),
            "optimizations": [o.to_dict() for o in self.optimizations],
            "processingTime": self.processing_time,
            "metadata": dict(self.metadata),
        }


@dataclass
class ProcessingStats:
    total_processed: int = 0
    successful: int = 0
    failed: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    average_processing_time: float = 0.0
    average_compression_ratio: float = 0.0
    total_tokens_saved: int = 0

    @property
    def cache_hit_rate(self) -> float:
        lookups = self.cache_hits + self.cache_misses
        return self.cache_hits / lookups if lookups else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalProcessed": self.total_processed,
            "successful": self.successful,
            "failed": self.failed,
            "cacheHits": self.cache_hits,
            "cacheMisses": self.cache_misses,
            "cacheHitRate": self.cache_hit_rate,
            "averageProcessingTime": self.average_processing_time,
            "averageCompressionRatio": self.average_compression_ratio,
            "totalTokensSaved": self.total_tokens_saved,
        }


# ==========================================
# MODE STRATEGIES
# ==========================================

@dataclass
class StrategyOutcome:
    output: Frame
    semantic_integrity: Optional[float] = None
    details: Dict[str, Any] = field(default_factory=dict)


class CompressionStrategy:
    """Local structural compression, no model call."""

    name = "compress"

    def __init__(self, min_semantic_integrity: float = 0.0):
        self.min_semantic_integrity = min_semantic_integrity

    def execute(self, request: ProcessingRequest, model: str) -> StrategyOutcome:
        compressed = compress_frame(request.input)
        integrity = calculate_semantic_integrity(request.input, compressed)

        if integrity < self.min_semantic_integrity:
            logger.warning(
                "Compression rejected below semantic integrity threshold",
                extra={"context": {
                    "integrity": integrity,
                    "threshold": self.min_semantic_integrity,
                    "frame_type": request.input.frame_type,
                }},
            )
            return StrategyOutcome(request.input, 1.0, {"compression_rejected": True})

        return StrategyOutcome(compressed, integrity)


class AnswerGenerationStrategy:
    """Send the frame to the model and parse its reply into an answer frame."""

    name = "answer"

    def __init__(self, invoker: Optional[ModelInvoker]):
        self.invoker = invoker

    def build_prompt(self, request: ProcessingRequest) -> str:
        notation = serialize_frame(request.input)
        if request.prompt:
            return f"{request.prompt}\n\n{notation}"
        return ANSWER_PROMPT_TEMPLATE.format(notation=notation)

    def execute(self, request: ProcessingRequest, model: str) -> StrategyOutcome:
        if self.invoker is None:
            raise ProcessingFailed(
                "Answer generation requires a model invoker",
                context={"operation": request.operation},
            )
        reply = self.invoker.invoke(self.build_prompt(request), model)
        outcome = parse_model_reply(reply)
        details: Dict[str, Any] = {"parse_error": not outcome.ok}
        if outcome.issue is not None:
            details["parse_issue"] = outcome.issue.kind
        return StrategyOutcome(outcome.frame, None, details)


COMPRESSION_OPERATIONS = ("compress", "optimize", "analyze", "transform")


# ==========================================
# ORCHESTRATOR
# ==========================================

class CortexCore:
    def __init__(
        self,
        config: Optional[CortexConfig] = None,
        invoker: Optional[ModelInvoker] = None,
        cache: Optional[ProcessingCache] = None,
        *,
        time_fn: Callable[[], float] = time.perf_counter,
    ):
        self.config = config or CortexConfig.from_env()
        if self.config.debug:
            configure_logging(self.config)

        if cache is None:
            cache = ProcessingCache(self.config.cache_max_entries, self.config.cache_ttl_seconds)
        self._cache = cache
        self._time_fn = time_fn
        self._stats = ProcessingStats()
        self._stats_lock = threading.Lock()

        compression = CompressionStrategy(self.config.min_semantic_integrity)
        self._strategies = {op: compression for op in COMPRESSION_OPERATIONS}
        self._strategies["answer"] = AnswerGenerationStrategy(invoker)

    # --- Keys ---

    @staticmethod
    def cache_key(request: ProcessingRequest) -> str:
        input_hash = content_hash(serialize_frame(request.input))
        options_hash = content_hash(canonical_json(request.options)) if request.options else "default"
        return f"{request.operation}:{input_hash}_{options_hash}"

    def _strategy_for(self, operation: str):
        strategy = self._strategies.get(operation)
        if strategy is None:
            raise ProcessingFailed(
                f"Unsupported operation: {operation}",
                context={"operation": operation, "supported": sorted(self._strategies)},
            )
        return strategy

    # --- Processing ---

    def process(self, request: ProcessingRequest) -> ProcessingResult:
        start = self._time_fn()

        try:
            if not isinstance(request.input, Frame):
                raise InvalidStructure(
                    f"Processing input must be a Frame, got {type(request.input).__name__}",
                    stage="processing",
                )
            strategy = self._strategy_for(request.operation)
            key = self.cache_key(request)

            logger.info(
                "Starting Cortex core processing",
                extra={"context": {
                    "operation": request.operation,
                    "frame_type": request.input.frame_type,
                    "has_options": bool(request.options),
                }},
            )

            if self.config.cache_enabled:
                entry = self._cache.get(key)
                if entry is None:
                    self._record_miss()
                else:
                    elapsed = self._elapsed_ms(start)
                    self._record_hit(elapsed)
                    logger.info("Using cached core processing result", extra={"context": {"key": key}})
                    return ProcessingResult(
                        output=entry.output_frame,
                        optimizations=list(entry.optimizations),
                        processing_time=elapsed,
                        metadata={
                            "core_model": "cache",
                            "operation": request.operation,
                            "operations_applied": [o.type for o in entry.optimizations],
                            "semantic_integrity": entry.confidence,
                            "from_cache": True,
                            "hit_count": entry.hit_count,
                        },
                    )

            outcome = strategy.execute(request, self.config.core_model)
            optimizations = self._measure_savings(request, outcome, strategy.name)
            elapsed = self._elapsed_ms(start)

            result = ProcessingResult(
                output=outcome.output,
                optimizations=optimizations,
                processing_time=elapsed,
                metadata={
                    "core_model": self.config.core_model if strategy.name == "answer" else "local",
                    "operation": request.operation,
                    "operations_applied": [request.operation],
                    "semantic_integrity": outcome.semantic_integrity,
                    "from_cache": False,
                    **outcome.details,
                },
            )

            if self.config.cache_enabled:
                self._cache.put(key, outcome.output, optimizations, outcome.semantic_integrity)

            self._record_success(elapsed, optimizations)
            logger.info(
                "Cortex core processing completed",
                extra={"context": {
                    "operation": request.operation,
                    "processing_time_ms": elapsed,
                    "optimizations_applied": len(optimizations),
                }},
            )
            return result

        except CortexError as e:
            self._record_failure(self._elapsed_ms(start))
            logger.error(
                "Cortex core processing failed",
                extra={"context": {"operation": request.operation, "error": str(e)}},
            )
            raise
        except Exception as e:
            self._record_failure(self._elapsed_ms(start))
            logger.error(
                "Cortex core processing failed",
                extra={"context": {"operation": request.operation, "error": str(e)}},
            )
            raise ProcessingFailed(
                f"Core processing failed: {e}",
                context={"operation": request.operation, "input": _describe_input(request.input)},
            ) from e

    def compress(self, frame: Frame, options: Optional[Dict[str, Any]] = None) -> ProcessingResult:
        return self.process(ProcessingRequest(frame, "compress", options))

    def answer(self, frame: Frame, prompt: Optional[str] = None) -> ProcessingResult:
        return self.process(ProcessingRequest(frame, "answer", prompt=prompt))

    def _elapsed_ms(self, start: float) -> float:
        return max(0.0, (self._time_fn() - start) * 1000.0)

    def _measure_savings(
        self, request: ProcessingRequest, outcome: StrategyOutcome, mode: str
    ) -> List[OptimizationRecord]:
        if mode != CompressionStrategy.name or outcome.output is request.input:
            return []
        original_size = len(serialize_frame(request.input))
        output_size = len(serialize_frame(outcome.output))
        if original_size <= output_size:
            return []
        saved = original_size - output_size
        return [OptimizationRecord(
            type="semantic_compression",
            description="Applied structural compression",
            tokens_saved=math.ceil(saved / CHARS_PER_TOKEN),
            reduction_percentage=saved / original_size * 100.0,
            confidence=COMPRESSION_CONFIDENCE,
        )]

    # --- Statistics ---

    def _record_time(self, elapsed: float):
        # Incremental mean over every finished request
        s = self._stats
        s.total_processed += 1
        s.average_processing_time += (elapsed - s.average_processing_time) / s.total_processed

    def _record_hit(self, elapsed: float):
        with self._stats_lock:
            self._stats.cache_hits += 1
            self._stats.successful += 1
            self._record_time(elapsed)

    def _record_miss(self):
        with self._stats_lock:
            self._stats.cache_misses += 1

    def _record_success(self, elapsed: float, optimizations: List[OptimizationRecord]):
        with self._stats_lock:
            s = self._stats
            executed = s.successful - s.cache_hits
            ratio = sum(o.reduction_percentage for o in optimizations) / max(len(optimizations), 1)
            s.average_compression_ratio += (ratio - s.average_compression_ratio) / (executed + 1)
            s.successful += 1
            s.total_tokens_saved += sum(o.tokens_saved for o in optimizations)
            self._record_time(elapsed)

    def _record_failure(self, elapsed: float):
        with self._stats_lock:
            self._stats.failed += 1
            self._record_time(elapsed)

    # --- Inspection ---

    def get_stats(self) -> ProcessingStats:
        with self._stats_lock:
            return replace(self._stats)

    def get_cache_info(self) -> Dict[str, Any]:
        return self._cache.info()

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("Cortex core processing cache cleared")


def _describe_input(value: Any) -> Any:
    if isinstance(value, Frame):
        return value.to_dict()
    return repr(value)
