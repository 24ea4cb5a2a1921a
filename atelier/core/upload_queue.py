"""
Upload queue controller for product images.

Turns a batch of picked or dropped files into sequential uploads through an
UploadTransport. Each file gets an UploadTask (uploading -> success|error)
that the UI renders; finished tasks disappear on their own after a short
delay. Failures are reported as messages through callbacks and never stop
sibling files. Nothing is retried automatically.
"""

from __future__ import annotations

import time
import threading
import traceback
from typing import Callable, Dict, Iterable, List, Optional

from atelier.core.models import ProductImage, UploadFile, UploadStatus, UploadTask
from atelier.core.upload_config import UploadSettings, load_upload_settings
from atelier.network.upload_transport import UploadTransport
from atelier.utils.format_utils import format_megabytes
from atelier.utils.logger import log
from atelier_exceptions import AtelierException, FileValidationError, UploadLimitError

# Type aliases for callbacks
UploadCompleteCallback = Callable[[ProductImage], None]
UploadErrorCallback = Callable[[str], None]
TasksChangedCallback = Callable[[List[UploadTask]], None]


class UploadQueueController:
    """Sequential uploader with validation, per-file progress and retry.

    ``handle_files`` blocks until the whole batch is processed, so it is
    meant to run on a worker thread (see atelier.processing.image_workers).
    """

    def __init__(self, product_id: str, transport: UploadTransport,
                 settings: Optional[UploadSettings] = None,
                 current_image_count: int = 0,
                 on_upload_complete: Optional[UploadCompleteCallback] = None,
                 on_upload_error: Optional[UploadErrorCallback] = None,
                 on_tasks_changed: Optional[TasksChangedCallback] = None,
                 sleep: Callable[[float], None] = time.sleep,
                 timer_factory: Callable[..., threading.Timer] = threading.Timer):
        """
        Args:
            product_id: Product the images belong to
            transport: Local or direct-to-storage upload transport
            settings: Limits and delays; loaded from config when omitted
            current_image_count: Images the product already has
            on_upload_complete: Receives each confirmed ProductImage
            on_upload_error: Receives each user-facing error message
            on_tasks_changed: Receives a snapshot of the task list on every change
            sleep: Used for the inter-file delay
            timer_factory: Used for the success self-dismiss delay
        """
        self.product_id = product_id
        self.transport = transport
        self.settings = settings or load_upload_settings()
        self.on_upload_complete = on_upload_complete
        self.on_upload_error = on_upload_error
        self.on_tasks_changed = on_tasks_changed
        self._sleep = sleep
        self._timer_factory = timer_factory

        self._lock = threading.Lock()
        self._tasks: List[UploadTask] = []
        self._dismiss_timers: Dict[int, threading.Timer] = {}
        self._current_image_count = current_image_count
        self._stopped = threading.Event()

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def tasks(self) -> List[UploadTask]:
        """Snapshot of the visible tasks, in creation order."""
        with self._lock:
            return [task.copy() for task in self._tasks]

    @property
    def current_image_count(self) -> int:
        with self._lock:
            return self._current_image_count

    def set_current_image_count(self, count: int) -> None:
        """Keep the controller in sync with the gallery's image count."""
        with self._lock:
            self._current_image_count = max(0, count)

    def task_for(self, upload_file: UploadFile) -> Optional[UploadTask]:
        with self._lock:
            task = self._find_task(upload_file)
            return task.copy() if task else None

    def _find_task(self, upload_file: UploadFile) -> Optional[UploadTask]:
        for task in self._tasks:
            if task.file is upload_file:
                return task
        return None

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_file(self, upload_file: UploadFile) -> None:
        """Check type and size before any network call.

        Raises:
            FileValidationError: with the user-facing message
        """
        accepted = self.settings.accepted_types
        if upload_file.content_type not in accepted:
            raise FileValidationError(
                f"File type {upload_file.content_type} is not supported. "
                f"Allowed types: {', '.join(accepted)}",
                file_name=upload_file.name,
            )

        max_size = self.settings.max_size_bytes
        if upload_file.size > max_size:
            raise FileValidationError(
                f"File size {format_megabytes(upload_file.size)} exceeds maximum size of "
                f"{format_megabytes(max_size)}",
                file_name=upload_file.name,
            )

    def check_batch_admission(self, batch_size: int) -> None:
        """Reject a whole batch that would push the product past max_files.

        Raises:
            UploadLimitError: when queued + batch + existing exceeds the limit
        """
        max_files = self.settings.max_files
        with self._lock:
            projected = len(self._tasks) + batch_size + self._current_image_count
        if projected > max_files:
            raise UploadLimitError(f"Cannot upload more than {max_files} images per product",
                                   max_files=max_files)

    # ------------------------------------------------------------------
    # Uploading
    # ------------------------------------------------------------------

    def handle_files(self, files: Iterable[UploadFile]) -> List[ProductImage]:
        """Upload a batch one file at a time, in order.

        Returns the images confirmed by the server during this batch.
        """
        files = list(files)
        if not files:
            return []

        try:
            self.check_batch_admission(len(files))
        except UploadLimitError as e:
            log(f"Rejected batch of {len(files)} files: {e.message}", level="warning", category="uploads")
            self._report_error(e.message)
            return []

        uploaded: List[ProductImage] = []
        for upload_file in files:
            if self._stopped.is_set():
                break
            image = self.upload_file(upload_file)
            if image is not None:
                uploaded.append(image)
            # Throttle: never burst several large transfers back to back
            self._sleep(self.settings.inter_file_delay)

        log(f"Batch finished: {len(uploaded)}/{len(files)} files uploaded for product {self.product_id}",
            level="info", category="uploads")
        return uploaded

    def upload_file(self, upload_file: UploadFile) -> Optional[ProductImage]:
        """Validate and upload one file. Returns the image or None on failure."""
        try:
            self.validate_file(upload_file)
        except FileValidationError as e:
            log(f"Rejected {upload_file.name}: {e.message}", level="warning", category="uploads")
            self._report_error(e.message)
            return None

        with self._lock:
            existing = self._find_task(upload_file)
            if existing is not None and existing.status == UploadStatus.UPLOADING:
                busy = True
            else:
                busy = False
                if existing is not None:
                    self._tasks.remove(existing)
                task = UploadTask(file=upload_file)
                self._tasks.append(task)
                set_as_primary = self._current_image_count == 0
        if busy:
            self._report_error(f"{upload_file.name} is already uploading")
            return None
        self._notify_tasks_changed()

        try:
            image = self.transport.upload(
                self.product_id,
                upload_file,
                set_as_primary,
                on_progress=lambda percent: self._update_task(task, progress=percent),
                should_stop=self._stopped.is_set,
                on_negotiated=lambda slot: self._update_task(task, image_key=slot.image_key),
            )
        except AtelierException as e:
            self._fail_task(task, e.message)
            return None
        except Exception as e:
            log(f"Unexpected upload error for {upload_file.name}: {traceback.format_exc()}",
                level="error", category="uploads")
            self._fail_task(task, str(e) or "Upload failed")
            return None

        with self._lock:
            task.status = UploadStatus.SUCCESS
            task.progress = 100
            task.error = None
            self._current_image_count += 1
        self._notify_tasks_changed()
        log(f"Uploaded {upload_file.name} as image {image.id} {self.transport.stored_message}",
            level="info", category="uploads")

        if self.on_upload_complete:
            self.on_upload_complete(image)
        self._schedule_dismiss(task)
        return image

    def retry(self, upload_file: UploadFile) -> Optional[ProductImage]:
        """Drop the file's failed task and upload it again from the first step."""
        self.dismiss(upload_file)
        log(f"Retrying upload of {upload_file.name}", level="info", category="uploads")
        return self.upload_file(upload_file)

    def dismiss(self, upload_file: UploadFile) -> None:
        """Remove the file's task from the visible list.

        An in-flight transfer keeps running; only the row goes away.
        """
        with self._lock:
            task = self._find_task(upload_file)
            if task is None:
                return
            self._tasks.remove(task)
            timer = self._dismiss_timers.pop(id(task), None)
        if timer is not None:
            timer.cancel()
        self._notify_tasks_changed()

    def shutdown(self) -> None:
        """Stop processing: abort the in-flight transfer and pending dismissals."""
        self._stopped.set()
        with self._lock:
            timers = list(self._dismiss_timers.values())
            self._dismiss_timers.clear()
        for timer in timers:
            timer.cancel()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _update_task(self, task: UploadTask, progress: Optional[int] = None,
                     image_key: Optional[str] = None) -> None:
        with self._lock:
            if progress is not None:
                task.progress = max(task.progress, min(100, progress))
            if image_key is not None:
                task.image_key = image_key
        self._notify_tasks_changed()

    def _fail_task(self, task: UploadTask, message: str) -> None:
        with self._lock:
            task.status = UploadStatus.ERROR
            task.error = message
        log(f"Upload of {task.file.name} failed: {message}", level="error", category="uploads")
        self._notify_tasks_changed()
        self._report_error(message)

    def _schedule_dismiss(self, task: UploadTask) -> None:
        if self._stopped.is_set():
            return
        timer = self._timer_factory(self.settings.success_dismiss_delay, self._auto_dismiss, args=(task,))
        timer.daemon = True
        with self._lock:
            self._dismiss_timers[id(task)] = timer
        timer.start()

    def _auto_dismiss(self, task: UploadTask) -> None:
        with self._lock:
            self._dismiss_timers.pop(id(task), None)
            # A retry may have replaced the task in the meantime
            if task not in self._tasks or task.status != UploadStatus.SUCCESS:
                return
            self._tasks.remove(task)
        self._notify_tasks_changed()

    def _notify_tasks_changed(self) -> None:
        if self.on_tasks_changed:
            self.on_tasks_changed(self.tasks)

    def _report_error(self, message: str) -> None:
        if self.on_upload_error:
            self.on_upload_error(message)
