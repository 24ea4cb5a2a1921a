"""
Background workers for the image management dialog.

Each worker owns one daemon thread that drains a job queue strictly in
order, so uploads never overlap and gallery mutations are applied in the
order the user requested them. Results reach the UI thread through Qt
signals, which are queued across threads.
"""

import queue
import threading
from typing import Any, Callable, List, Optional

from PyQt6.QtCore import QObject, pyqtSignal

from atelier.core.image_management import ImageManagementSession
from atelier.core.models import UploadFile
from atelier.utils.logger import log


class _QueueWorker(QObject):
    """Runs queued jobs one at a time on a dedicated daemon thread."""

    thread_name = "QueueWorker"
    log_category = "ui"

    def __init__(self):
        super().__init__()
        self.queue: queue.Queue = queue.Queue()
        self.running = True
        self.thread = threading.Thread(target=self._process_jobs, daemon=True, name=self.thread_name)
        self.thread.start()

    def _submit(self, name: str, func: Callable[..., Any], *args) -> None:
        if not self.running:
            log(f"{self.thread_name} stopped, dropping job '{name}'", level="debug", category=self.log_category)
            return
        self.queue.put((name, func, args))

    def _process_jobs(self) -> None:
        while self.running:
            try:
                job = self.queue.get(timeout=1.0)
            except queue.Empty:
                continue

            if job is None:
                # Shutdown signal
                self.queue.task_done()
                break

            name, func, args = job
            try:
                self._run_job(name, func, args)
            except Exception as e:
                log(f"{self.thread_name} job '{name}' failed: {e}", level="error", category=self.log_category)
            finally:
                self.queue.task_done()

    def _run_job(self, name: str, func: Callable[..., Any], args: tuple) -> None:
        func(*args)

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the worker thread after the job in progress.

        Args:
            timeout: Maximum time to wait for the thread to stop (in seconds)
        """
        self.running = False
        self.queue.put(None)
        if self.thread.is_alive() and self.thread is not threading.current_thread():
            self.thread.join(timeout=timeout)

    def is_running(self) -> bool:
        return self.running and self.thread.is_alive()

    def queue_size(self) -> int:
        return self.queue.qsize()

    def wait_idle(self) -> None:
        """Block until every queued job has run."""
        self.queue.join()


class UploadQueueWorker(_QueueWorker):
    """Feeds file batches and retries to the session's upload queue."""

    tasks_changed = pyqtSignal(list)   # List[UploadTask] snapshot
    batch_finished = pyqtSignal(int)   # images uploaded in the batch

    thread_name = "UploadQueueWorker"
    log_category = "uploads"

    def __init__(self, session: ImageManagementSession):
        super().__init__()
        self.session = session
        session.queue.on_tasks_changed = self.tasks_changed.emit

    def queue_files(self, files: List[UploadFile]) -> None:
        self._submit("upload", self._upload_batch, list(files))

    def queue_retry(self, upload_file: UploadFile) -> None:
        self._submit("retry", self.session.queue.retry, upload_file)

    def dismiss(self, upload_file: UploadFile) -> None:
        # Only hides the row; runs on the caller's thread
        self.session.queue.dismiss(upload_file)

    def _upload_batch(self, files: List[UploadFile]) -> None:
        uploaded = self.session.handle_files(files)
        self.batch_finished.emit(len(uploaded))

    def stop(self, timeout: float = 5.0) -> None:
        self.session.queue.shutdown()
        super().stop(timeout)


class GalleryActionWorker(_QueueWorker):
    """Runs gallery loads and mutations off the UI thread."""

    action_finished = pyqtSignal(str, bool)   # action name, succeeded

    thread_name = "GalleryActionWorker"
    log_category = "gallery"

    def __init__(self, session: ImageManagementSession):
        super().__init__()
        self.session = session

    def reload(self) -> None:
        self._submit("load", self.session.open)

    def set_primary(self, image_id: str) -> None:
        self._submit("set_primary", self.session.gallery.set_primary, image_id)

    def delete(self, image_id: str) -> None:
        if not self.running:
            log(f"{self.thread_name} stopped, dropping delete of {image_id}",
                level="debug", category=self.log_category)
            return
        # Reserved on the caller's thread so the row is busy before the job runs
        if self.session.gallery.begin_delete(image_id):
            self._submit("delete", self.session.gallery.complete_delete, image_id)

    def confirm_delete(self) -> None:
        image = self.session.gallery.take_pending_delete()
        if image is not None:
            self.delete(image.id)

    def commit_reorder(self) -> None:
        self._submit("reorder", self.session.gallery.commit_reorder)

    def _run_job(self, name: str, func: Callable[..., Any], args: tuple) -> None:
        succeeded: Optional[bool] = func(*args)
        self.action_finished.emit(name, bool(succeeded))
