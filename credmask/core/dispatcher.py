from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Dict, List, Optional, Union

from tqdm import tqdm

from .classifier import classify
from .config import SUCCESS, MaskerConfig
from .errors import MaskerError
from .models import CancelToken, FileGroup, FileKind, FileResult, FileStatus, Finding, MaskReport
from .utils import is_within
from ..handlers.binary import BinaryHandler
from ..handlers.text import TextHandler
from ..strategies.base import ReplacementStrategy


DEFAULT_LOGGER_NAME = "credmask"
POLL_INTERVAL_SECONDS = 0.1
SLOW_FILE_THRESHOLD_SECONDS = 2.0

logging.addLevelName(SUCCESS, "SUCCESS")


def configure_logging(
    verbose: bool = False,
    level: Union[str, int, None] = None,
    logger_name: str = DEFAULT_LOGGER_NAME,
) -> logging.Logger:
    """Configure and return the tool's logger.

    ``level`` accepts a level name (``DEBUG``, ``INFO``, ``SUCCESS``,
    ``WARNING``, ``ERROR``) or number. Without one, ``verbose`` picks INFO and
    the default is SUCCESS so per-file outcomes still show up.
    """

    logger = logging.getLogger(logger_name)
    if level is None:
        resolved = logging.INFO if verbose else SUCCESS
    elif isinstance(level, int):
        resolved = level
    else:
        resolved = logging.getLevelName(level.strip().upper())
        if not isinstance(resolved, int):
            raise ValueError(f"unknown log level: {level}")
        if verbose:
            resolved = min(resolved, logging.INFO)
    logger.setLevel(resolved)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s - %(message)s")
        )
        logger.addHandler(handler)

    return logger


class _ResultCollector:
    """Single place where worker threads publish their outcome."""

    def __init__(self, report: MaskReport, progress_bar=None) -> None:
        self._report = report
        self._progress_bar = progress_bar
        self._lock = threading.Lock()
        self._completed = 0

    def add(self, result: FileResult) -> int:
        with self._lock:
            self._completed += 1
            self._report.results[result.path] = result
            if self._progress_bar is not None:
                self._progress_bar.update(1)
            return self._completed


class FileDispatcher:
    def __init__(
        self,
        config: MaskerConfig,
        strategy: ReplacementStrategy,
        *,
        logger: Optional[logging.Logger] = None,
        show_progress: bool = False,
        progress_desc: str = "Masking files",
    ) -> None:
        self.config = config
        self.strategy = strategy
        self.workers = config.worker_count
        base_logger = logger or logging.getLogger(DEFAULT_LOGGER_NAME)
        self.logger = base_logger.getChild(self.__class__.__name__.lower())
        self.show_progress = bool(show_progress)
        self.progress_desc = progress_desc
        self.binary_handler = BinaryHandler(logger=base_logger)
        self.text_handler = TextHandler(config, strategy, logger=base_logger)
        self._slow_log_threshold = SLOW_FILE_THRESHOLD_SECONDS

    def dispatch(self, groups: FileGroup, cancel: Optional[CancelToken] = None) -> MaskReport:
        """Mask every file group, at most ``workers`` files at a time.

        Returns once every launched file has finished, or once cancellation
        has been observed and the grace period ran out. Results of files that
        finished are always kept.
        """

        cancel = cancel or CancelToken()
        report = MaskReport(groups=groups)
        total = len(groups)
        if not total:
            return report

        self.logger.info("Masking %d file(s) with %d worker(s)", total, self.workers)

        progress_bar = None
        if self.show_progress:
            progress_bar = tqdm(total=total, desc=self.progress_desc, unit="file")

        collector = _ResultCollector(report, progress_bar)
        slots = threading.BoundedSemaphore(self.workers)
        futures: Dict[Future, str] = {}
        executor = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="credmask")
        try:
            for launch_index, (path, findings) in enumerate(groups.items(), start=1):
                if not self._acquire_slot(slots, cancel):
                    self.logger.warning("Cancellation requested; not starting %d remaining file(s)", total - launch_index + 1)
                    break
                try:
                    future = executor.submit(
                        self._run_task, path, findings, cancel, collector, slots, launch_index, total
                    )
                except BaseException:
                    slots.release()
                    raise
                futures[future] = path
            self._wait(futures, report, cancel)
        finally:
            executor.shutdown(wait=not report.timed_out, cancel_futures=True)
            if progress_bar is not None:
                progress_bar.close()

        report.interrupted = cancel.is_set()
        return report

    def _acquire_slot(self, slots: threading.BoundedSemaphore, cancel: CancelToken) -> bool:
        while not cancel.is_set():
            if slots.acquire(timeout=POLL_INTERVAL_SECONDS):
                if cancel.is_set():
                    slots.release()
                    return False
                return True
        return False

    def _wait(self, futures: Dict[Future, str], report: MaskReport, cancel: CancelToken) -> None:
        pending = set(futures)
        deadline: Optional[float] = None
        while pending:
            _, pending = wait(pending, timeout=POLL_INTERVAL_SECONDS, return_when=FIRST_COMPLETED)
            if not pending or not cancel.is_set():
                continue
            if deadline is None:
                self.logger.warning(
                    "Shutdown requested, waiting up to %.1fs for %d file(s) in flight",
                    self.config.shutdown_timeout,
                    len(pending),
                )
                deadline = time.monotonic() + self.config.shutdown_timeout
            if time.monotonic() >= deadline:
                report.timed_out = True
                self.logger.error(
                    "Shutdown timeout exceeded with %d file(s) still in flight: %s",
                    len(pending),
                    ", ".join(sorted(futures[f] for f in pending)),
                )
                return

    def _run_task(
        self,
        path: str,
        findings: List[Finding],
        cancel: CancelToken,
        collector: _ResultCollector,
        slots: threading.BoundedSemaphore,
        launch_index: int,
        total: int,
    ) -> FileResult:
        try:
            self.logger.info("[%d/%d] Checking findings in %s", launch_index, total, path)
            start_time = time.perf_counter()
            result = self.process_file(path, findings, cancel)
            index = collector.add(result)
            self._log_result(result, index, total)
            self._maybe_log_slow_file(path, time.perf_counter() - start_time, len(findings))
            return result
        finally:
            slots.release()

    def process_file(self, path: str, findings: List[Finding], cancel: Optional[CancelToken] = None) -> FileResult:
        """Classify one file and run its handler. Never raises."""

        cancel = cancel or CancelToken()
        if not findings:
            return FileResult(path=path, status=FileStatus.DONE, kind=FileKind.NONE)

        kind: Optional[FileKind] = None
        try:
            cancel.raise_if_set()
            if not is_within(path, self.config.target_dir):
                raise MaskerError(f"{path} is outside the target directory {self.config.target_dir}")

            classification = classify(Path(path), findings, self.logger)
            kind = classification.kind
            if kind is FileKind.EMPTY:
                return FileResult(path=path, status=FileStatus.DONE, kind=kind)
            if kind is FileKind.BINARY:
                self.binary_handler.handle(Path(path), classification.reason)
                handled = len(findings)
            else:
                handled = self.text_handler.handle(Path(path), classification.text or "", findings, cancel)
            return FileResult(path=path, status=FileStatus.DONE, kind=kind, handled=handled)
        except (MaskerError, OSError) as exc:
            return FileResult(path=path, status=FileStatus.FAILED, kind=kind, error=str(exc))
        except Exception as exc:
            self.logger.exception("Unexpected error while masking %s", path)
            return FileResult(path=path, status=FileStatus.FAILED, kind=kind, error=f"unexpected error: {exc!r}")

    def _log_result(self, result: FileResult, index: int, total: int) -> None:
        if not result.ok:
            self.logger.error("[%d/%d] Error handling %s: %s", index, total, result.path, result.error)
        elif result.kind is FileKind.NONE:
            self.logger.log(SUCCESS, "[%d/%d] Nothing to do. %s has no findings.", index, total, result.path)
        elif result.kind is FileKind.EMPTY:
            self.logger.log(SUCCESS, "[%d/%d] Nothing to do. %s is empty.", index, total, result.path)
        else:
            self.logger.log(
                SUCCESS,
                "[%d/%d] Handled %d finding(s) in %s (%s)",
                index,
                total,
                result.handled,
                result.path,
                result.kind.value if result.kind else "unknown",
            )

    def _maybe_log_slow_file(self, path: str, duration: float, finding_count: int) -> None:
        if not self.logger.isEnabledFor(logging.DEBUG):
            return
        if duration < self._slow_log_threshold:
            return
        self.logger.debug("Slow file %s took %.2fs (%d finding(s))", path, duration, finding_count)
