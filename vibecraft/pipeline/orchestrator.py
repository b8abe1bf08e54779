"""
Processing orchestrator.

Drives each image through uploaded -> analyzing -> analyzed ->
processing -> processed. A single evaluator, on_state_change, looks at
the persisted record and applies whichever transition rule matches
until none does, so it can be called after every event (upload, retry,
restart) without repeating work. Every write to the record store is
read back before the next step runs.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError, as_completed
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..analysis.models import AnalysisResult
from ..analysis.quality_assessor import QualityAssessor
from ..analysis.vision_llm_analyzer import ContentAnalyzer
from ..errors import (
    AnalysisError,
    AnalysisErrorKind,
    DecodeError,
    EnhancementTimeout,
    InvalidParameterError,
    StorageConsistencyError,
    StorageError,
    StorageNotFoundError,
)
from ..processing.config_generator import ConfigurationGenerator, default_config
from ..processing.enhancement_engine import EnhancementEngine
from ..processing.models import EditingConfig
from ..storage.abstract import BlobStore, RecordStore
from ..utils.caching import TTLCache, content_hash
from ..utils.logging import StructuredLogger
from .models import ImageRecord, ImageStatus

logger = logging.getLogger(__name__)

_EXTENSIONS = {'PNG': 'png', 'JPEG': 'jpg', 'JPG': 'jpg', 'WEBP': 'webp', 'BMP': 'bmp'}


@dataclass
class BatchOutcome:
    """Final state of one image in a batch, or the error that stopped it."""
    image_id: str
    record: Optional[ImageRecord] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.record is not None and self.record.status == ImageStatus.PROCESSED


def error_kind(error: Exception) -> str:
    """Short machine-readable label stored on failed records."""
    if isinstance(error, AnalysisError):
        return error.kind.value
    if isinstance(error, EnhancementTimeout):
        return 'timeout'
    if isinstance(error, DecodeError):
        return 'decode'
    if isinstance(error, InvalidParameterError):
        return 'invalid_parameter'
    if isinstance(error, StorageError):
        return 'storage'
    return 'unexpected'


class ProcessingOrchestrator:
    """
    Event-driven state machine over persisted image records.

    Collaborators are injected; engine, generator, assessor and cache get
    defaults built from the configuration when omitted.
    """

    def __init__(self, record_store: RecordStore, blob_store: BlobStore,
                 analyzer: ContentAnalyzer,
                 engine: Optional[EnhancementEngine] = None,
                 config_generator: Optional[ConfigurationGenerator] = None,
                 quality_assessor: Optional[QualityAssessor] = None,
                 cache: Optional[TTLCache] = None,
                 config: Optional[Dict] = None,
                 clock: Callable[[], float] = time.time,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Args:
            record_store: Persistent image records
            blob_store: Original and processed image bytes
            analyzer: Content analysis collaborator
            engine: Enhancement engine
            config_generator: Editing config generator
            quality_assessor: Before/after quality scoring
            cache: Shared analysis/config cache (None disables caching)
            config: Full application config (enhancement, analysis, storage sections)
            clock: Wall-clock source in epoch seconds
            sleep: Used between read-back confirm attempts
        """
        self.config = config or {}
        enhancement_config = self.config.get('enhancement', {})
        analysis_config = self.config.get('analysis', {})
        storage_config = self.config.get('storage', {})

        self.record_store = record_store
        self.blob_store = blob_store
        self.analyzer = analyzer
        self.engine = engine or EnhancementEngine(config=enhancement_config)
        self.config_generator = config_generator or ConfigurationGenerator(self.config)
        self.quality_assessor = quality_assessor or QualityAssessor(self.config.get('quality'))
        self.cache = cache
        self.clock = clock
        self.sleep = sleep

        self.enhancement_timeout = enhancement_config.get('timeout_seconds', 30.0)
        self.output_format = enhancement_config.get('output_format', 'PNG').upper()
        self.output_quality = enhancement_config.get('output_quality', 92)
        self.max_workers = enhancement_config.get('max_workers', 4)
        self.analysis_timeout = analysis_config.get('timeout_seconds', 60.0)
        self.rate_limit_backoff = analysis_config.get('rate_limit_backoff_seconds', 60.0)
        self.max_transient_retries = analysis_config.get('max_transient_retries', 3)
        self.confirm_attempts = storage_config.get('confirm_attempts', 3)
        self.confirm_delay = storage_config.get('confirm_delay_seconds', 0.05)

        # Worker threads for timed collaborator calls; a call that times out
        # keeps its thread until it returns and its result is discarded.
        self._executor_size = max(2, self.max_workers)
        self._executor = ThreadPoolExecutor(max_workers=self._executor_size,
                                            thread_name_prefix='vibecraft-call')
        self._executor_lock = threading.Lock()
        self._guards: Dict[str, threading.Lock] = {}
        self._guards_lock = threading.Lock()
        self.log = StructuredLogger(__name__)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()

    def shutdown(self, wait: bool = False):
        self._executor.shutdown(wait=wait)

    def _reserve_call_workers(self, count: int):
        """Grow the call executor so count evaluations can run their calls at once."""
        with self._executor_lock:
            if count <= self._executor_size:
                return
            old = self._executor
            self._executor_size = count
            self._executor = ThreadPoolExecutor(max_workers=count,
                                                thread_name_prefix='vibecraft-call')
            old.shutdown(wait=False)

    # Records

    def register(self, image_id: str, image_bytes: Optional[bytes] = None,
                 original_locator: Optional[str] = None) -> ImageRecord:
        """
        Register a new upload.

        Args:
            image_id: Caller-chosen unique id
            image_bytes: Original bytes, saved to the blob store
            original_locator: Locator of bytes already in the blob store

        Returns:
            The persisted record in state uploaded (or the existing record
            when the id is already registered)
        """
        if image_bytes is None and original_locator is None:
            raise ValueError("register() needs image_bytes or original_locator")

        existing = self.record_store.get(image_id)
        if existing is not None:
            logger.info(f"Image {image_id} already registered")
            return ImageRecord.from_dict(existing)

        digest = None
        if image_bytes is not None:
            original_locator = self.blob_store.save(f"{image_id}-original", image_bytes)
            digest = content_hash(image_bytes)

        record = ImageRecord(image_id=image_id, original_locator=original_locator,
                             content_hash=digest)
        self._commit(record)
        self.log.info("Image registered", image_id=image_id, locator=original_locator)
        return record

    def get_status(self, image_id: str) -> ImageRecord:
        """
        Raises:
            StorageNotFoundError: If the image was never registered
        """
        return self._load(image_id)

    def get_remaining_quota(self) -> Dict[str, int]:
        return self.analyzer.get_remaining_quota()

    def _load(self, image_id: str) -> ImageRecord:
        data = self.record_store.get(image_id)
        if data is None:
            raise StorageNotFoundError(f"No record for image {image_id}")
        return ImageRecord.from_dict(data)

    def _commit(self, record: ImageRecord):
        """Persist a record and read it back until the write is visible."""
        record.revision += 1
        record.updated_at = datetime.now().isoformat()
        self.record_store.put(record.image_id, record.to_dict())

        for attempt in range(self.confirm_attempts):
            stored = self.record_store.get(record.image_id)
            if (stored is not None and stored.get('revision') == record.revision
                    and stored.get('status') == record.status.value):
                return
            logger.debug(f"Write for {record.image_id} not visible yet (attempt {attempt + 1})")
            self.sleep(self.confirm_delay)

        raise StorageConsistencyError(
            f"Could not confirm write of {record.image_id} "
            f"(status={record.status.value}, revision={record.revision})")

    def _guard(self, image_id: str) -> threading.Lock:
        with self._guards_lock:
            return self._guards.setdefault(image_id, threading.Lock())

    # Transitions

    def on_state_change(self, image_id: str) -> ImageRecord:
        """
        Evaluate the transition rules for one image until none applies.

        A concurrent call for the same image waits for the one in progress
        and then sees its result.

        Returns:
            The record after evaluation
        """
        with self._guard(image_id):
            record = self._load(image_id)
            while self._step(record):
                record = self._load(image_id)
            return record

    def _step(self, record: ImageRecord) -> bool:
        """Apply one rule. Returns True if the record changed and rules should run again."""
        if record.status == ImageStatus.UPLOADED:
            return self._analyze(record)
        if record.status == ImageStatus.ANALYZED:
            if record.editing_config is None:
                self._configure(record)
                return True
            if record.processed_locator is None:
                self._enhance(record)
                return True
        # in flight elsewhere, or terminal
        return False

    def _analyze(self, record: ImageRecord) -> bool:
        now = self.clock()
        if record.retry_after is not None and now < record.retry_after:
            self.log.debug("Analysis deferred", image_id=record.image_id,
                           retry_in=round(record.retry_after - now, 1))
            return False

        record.status = ImageStatus.ANALYZING
        record.retry_after = None
        self._commit(record)

        try:
            image_bytes = self.blob_store.load(record.original_locator)
        except StorageError as e:
            self._fail(record, e)
            return False

        if record.content_hash is None:
            record.content_hash = content_hash(image_bytes)

        analysis = None
        if self.cache is not None:
            analysis = self.cache.get_analysis_result(record.content_hash)
        if analysis is not None:
            self.log.debug("Analysis cache hit", image_id=record.image_id)
        else:
            try:
                analysis = self._analyze_with_retries(record, image_bytes)
            except AnalysisError as e:
                if e.kind == AnalysisErrorKind.UNRECOVERABLE:
                    self._fail(record, e)
                else:
                    self._defer(record, e)
                return False
            except Exception as e:
                self._fail(record, e)
                return False
            if self.cache is not None:
                self.cache.set_analysis_result(record.content_hash, analysis)

        record.analysis = analysis
        record.status = ImageStatus.ANALYZED
        record.error_message = None
        record.error_kind = None
        self._commit(record)
        self.log.info("Image analyzed", image_id=record.image_id,
                      image_type=analysis.image_type, mood=analysis.mood)
        return True

    def _analyze_with_retries(self, record: ImageRecord, image_bytes: bytes) -> AnalysisResult:
        retries = 0
        while True:
            try:
                return self._call_with_timeout('analysis', self.analysis_timeout,
                                               self.analyzer.analyze, image_bytes)
            except AnalysisError as e:
                if e.kind != AnalysisErrorKind.TRANSIENT or retries >= self.max_transient_retries:
                    raise
                retries += 1
                self.log.warning("Transient analysis error, retrying", image_id=record.image_id,
                                 attempt=retries, error=str(e))

    def _defer(self, record: ImageRecord, error: AnalysisError):
        """Return a record to uploaded after a retryable analysis error."""
        record.status = ImageStatus.UPLOADED
        record.error_message = str(error)
        record.error_kind = error.kind.value
        if error.kind == AnalysisErrorKind.RATE_LIMITED:
            backoff = error.retry_after if error.retry_after is not None else self.rate_limit_backoff
            record.retry_after = self.clock() + backoff
        else:
            record.retry_after = None
        self._commit(record)
        self.log.warning("Analysis deferred", image_id=record.image_id,
                         kind=error.kind.value, retry_after=record.retry_after)

    def _configure(self, record: ImageRecord):
        config = None
        if self.cache is not None and record.content_hash:
            cached = self.cache.get_config(record.content_hash)
            if cached is not None:
                config = EditingConfig.from_dict(cached)

        if config is None:
            try:
                config = self.config_generator.generate(record.analysis)
            except Exception as e:
                logger.warning(f"Config generation failed for {record.image_id}, using default: {e}")
                config = default_config()
            if self.cache is not None and record.content_hash:
                self.cache.set_config(record.content_hash, config.to_dict())

        record.editing_config = config
        self._commit(record)
        self.log.info("Editing config ready", image_id=record.image_id,
                      algorithms=[a.name for a in config.ordered_algorithms()],
                      strength=config.strength)

    def _enhance(self, record: ImageRecord):
        record.status = ImageStatus.PROCESSING
        self._commit(record)

        try:
            original = self.blob_store.load(record.original_locator)
            before = self.engine.load_pixels(original)
            enhanced = self._call_with_timeout(
                'enhancement', self.enhancement_timeout,
                self.engine.enhance, before, record.analysis, record.editing_config)
            encoded = enhanced.encode(self.engine.codec, self.output_format, self.output_quality)
            extension = _EXTENSIONS.get(self.output_format, self.output_format.lower())
            locator = self.blob_store.save(
                f"{record.image_id}-processed-{record.attempt}.{extension}", encoded)
            comparison = self.quality_assessor.compare(before, enhanced.pixels,
                                                       record.editing_config)
        except Exception as e:
            self._fail(record, e)
            return

        record.processed_locator = locator
        record.quality = comparison.to_dict()
        record.status = ImageStatus.PROCESSED
        self._commit(record)
        self.log.info("Image processed", image_id=record.image_id, locator=locator,
                      improvement=round(comparison.overall_improvement, 3))

    def _fail(self, record: ImageRecord, error: Exception):
        record.status = ImageStatus.FAILED
        record.error_message = str(error)
        record.error_kind = error_kind(error)
        record.retry_after = None
        self._commit(record)
        self.log.error("Image failed", image_id=record.image_id,
                       kind=record.error_kind, error=str(error))

    def _call_with_timeout(self, operation: str, timeout: float, fn, *args) -> Any:
        """Run fn on the call executor; the timeout counts from when it starts running."""
        started = threading.Event()

        def run():
            started.set()
            return fn(*args)

        with self._executor_lock:
            future = self._executor.submit(run)
        started.wait()
        try:
            return future.result(timeout=timeout)
        except FuturesTimeoutError:
            future.cancel()
            raise EnhancementTimeout(operation, timeout)

    # Operator actions

    def retry(self, image_id: str) -> ImageRecord:
        """
        Reset an image to uploaded so the next evaluation starts over.

        Clears analysis, config, quality and error, deletes the processed
        blob, drops cached results for the content and bumps the attempt
        counter.
        """
        with self._guard(image_id):
            record = self._load(image_id)

            if record.processed_locator and self.blob_store.exists(record.processed_locator):
                self.blob_store.delete(record.processed_locator)
            if self.cache is not None and record.content_hash:
                self.cache.delete('analysis', record.content_hash)
                self.cache.delete('config', record.content_hash)

            record.status = ImageStatus.UPLOADED
            record.analysis = None
            record.editing_config = None
            record.processed_locator = None
            record.quality = None
            record.error_message = None
            record.error_kind = None
            record.retry_after = None
            record.attempt += 1
            self._commit(record)

        self.log.info("Image reset for retry", image_id=image_id, attempt=record.attempt)
        return record

    def process_batch(self, image_ids: Sequence[str],
                      max_workers: Optional[int] = None,
                      progress_callback: Optional[Callable[[BatchOutcome], None]] = None
                      ) -> List[BatchOutcome]:
        """
        Evaluate many images concurrently.

        Args:
            image_ids: Registered image ids
            max_workers: Parallel evaluations (defaults to enhancement.max_workers)
            progress_callback: Called once per finished image

        Returns:
            One BatchOutcome per id, in input order
        """
        workers = max_workers or self.max_workers
        self._reserve_call_workers(workers)
        outcomes: List[Optional[BatchOutcome]] = [None] * len(image_ids)

        def run(image_id: str) -> BatchOutcome:
            try:
                return BatchOutcome(image_id=image_id, record=self.on_state_change(image_id))
            except Exception as e:
                logger.error(f"Evaluation of {image_id} failed: {e}")
                return BatchOutcome(image_id=image_id, error=str(e))

        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {pool.submit(run, image_id): index
                       for index, image_id in enumerate(image_ids)}
            for future in as_completed(futures):
                outcome = future.result()
                outcomes[futures[future]] = outcome
                if progress_callback:
                    progress_callback(outcome)

        succeeded = sum(1 for o in outcomes if o.success)
        logger.info(f"Batch complete: {succeeded}/{len(image_ids)} processed")
        return outcomes
