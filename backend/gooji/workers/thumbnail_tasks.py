"""Background thumbnail generation.

Thumbnails are produced after an upload has already been answered. Jobs run
on a small thread pool with in-memory status tracking per video id.

Shutdown policy: pending jobs are discarded unless the queue is drained
explicitly. A discarded job leaves its video without a thumbnail, which
can be regenerated later with ``gooji thumbnail <id>``.
"""

import logging
import threading
from collections import OrderedDict
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from typing import Callable

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_RUNNING = "running"
STATUS_COMPLETE = "complete"
STATUS_ERROR = "error"
STATUS_DROPPED = "dropped"
STATUS_DISCARDED = "discarded"


class ThumbnailQueue:
    """Bounded worker pool for fire-and-forget thumbnail jobs."""

    def __init__(self, workers: int = 2, max_pending: int = 64, max_status: int = 1024):
        self.max_pending = max_pending
        self.max_status = max_status
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="thumbnail")
        self._lock = threading.RLock()
        self._futures: dict[str, Future] = {}
        self._closed = False
        # In-memory progress per video id, lost on restart; oldest entries evicted
        self.status: OrderedDict[str, dict] = OrderedDict()

    def submit(self, video_id: str, job: Callable[[], object]) -> bool:
        """Schedule ``job`` for ``video_id`` without waiting for it.

        Returns:
            False if the queue is closed or full and the job was dropped.
        """
        with self._lock:
            if self._closed:
                logger.warning(f"Thumbnail queue closed, dropping job for {video_id}")
                self._set_status(video_id, {"status": STATUS_DROPPED, "error": "queue closed"})
                return False
            if len(self._futures) >= self.max_pending:
                logger.warning(
                    f"Thumbnail queue full ({self.max_pending} pending), dropping job for {video_id}"
                )
                self._set_status(video_id, {"status": STATUS_DROPPED, "error": "queue full"})
                return False

            self._set_status(video_id, {"status": STATUS_PENDING})
            future = self._executor.submit(self._run, video_id, job)
            self._futures[video_id] = future

        future.add_done_callback(lambda f, vid=video_id: self._finished(vid, f))
        return True

    def _run(self, video_id: str, job: Callable[[], object]) -> None:
        self._set_status(video_id, {"status": STATUS_RUNNING})
        try:
            job()
        except Exception as e:
            logger.error(f"Thumbnail generation failed for {video_id}: {e}", exc_info=True)
            self._set_status(video_id, {"status": STATUS_ERROR, "error": str(e)})
            return
        self._set_status(video_id, {"status": STATUS_COMPLETE})
        logger.info(f"Thumbnail generated for {video_id}")

    def _finished(self, video_id: str, future: Future) -> None:
        with self._lock:
            if self._futures.get(video_id) is future:
                del self._futures[video_id]
        try:
            future.result()
        except CancelledError:
            self._set_status(video_id, {"status": STATUS_DISCARDED})

    def _set_status(self, video_id: str, entry: dict) -> None:
        with self._lock:
            self.status[video_id] = entry
            self.status.move_to_end(video_id)
            while len(self.status) > self.max_status:
                self.status.popitem(last=False)

    def forget(self, video_id: str) -> None:
        """Drop the status entry of a deleted video."""
        with self._lock:
            self.status.pop(video_id, None)

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._futures)

    def stats(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        with self._lock:
            entries = list(self.status.values())
        for entry in entries:
            counts[entry["status"]] = counts.get(entry["status"], 0) + 1
        counts["in_flight"] = self.pending
        return counts

    def shutdown(self, wait: bool = False) -> int:
        """Stop accepting jobs.

        Args:
            wait: Drain queued and running jobs first. When False, jobs that
                have not started are cancelled; running ones finish in the
                background.

        Returns:
            Number of queued jobs discarded.
        """
        with self._lock:
            self._closed = True
            queued = [vid for vid, f in self._futures.items() if not f.running() and not f.done()]

        discarded = 0 if wait else len(queued)
        if discarded:
            logger.warning(f"Discarding {discarded} pending thumbnail job(s) on shutdown")
        self._executor.shutdown(wait=wait, cancel_futures=not wait)
        return discarded
