#!/usr/bin/env python3
"""
Image Management Dialog
Gallery and upload tabs for one product's images
"""

import os
from typing import List, Optional

from PyQt6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QTabWidget,
    QListWidget, QListWidgetItem, QAbstractItemView, QProgressBar, QWidget,
    QStackedWidget, QFileDialog, QMessageBox, QScrollArea, QFrame
)
from PyQt6.QtCore import Qt, QSize, pyqtSignal

from atelier.core.image_management import ImageManagementSession, TABS
from atelier.core.models import ProductImage, UploadFile, UploadStatus, UploadTask
from atelier.core.upload_config import StorageMode
from atelier.processing.image_workers import GalleryActionWorker, UploadQueueWorker
from atelier.utils.format_utils import format_megabytes, truncate_string
from atelier.utils.logger import log
from atelier_exceptions import GalleryStateError

DELETE_CONFIRM_TEXT = "Are you sure you want to delete this image? This action cannot be undone."

_PAGE_LOADING = 0
_PAGE_LOAD_ERROR = 1
_PAGE_CONTENT = 2


class FileDropArea(QLabel):
    """Drop target that accepts local image files."""

    files_dropped = pyqtSignal(list)  # List of file paths

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setAcceptDrops(True)
        self.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.setMinimumHeight(120)
        self.setFrameShape(QFrame.Shape.StyledPanel)
        self.setText("Drop images here or click 'Select Images'")
        self._set_active(False)

    def _set_active(self, active: bool) -> None:
        border = "#2563eb" if active else "#9ca3af"
        self.setStyleSheet(f"border: 2px dashed {border}; border-radius: 6px; padding: 12px;")

    def dragEnterEvent(self, event):
        if event.mimeData().hasUrls():
            self._set_active(True)
            event.acceptProposedAction()
        else:
            event.ignore()

    def dragLeaveEvent(self, event):
        self._set_active(False)

    def dropEvent(self, event):
        self._set_active(False)
        paths = [url.toLocalFile() for url in event.mimeData().urls() if url.isLocalFile()]
        if paths:
            self.files_dropped.emit(paths)
        event.acceptProposedAction()


class UploadTaskRow(QWidget):
    """One file in the upload queue: name, progress, status, retry/dismiss."""

    retry_requested = pyqtSignal(object)    # UploadFile
    dismiss_requested = pyqtSignal(object)  # UploadFile

    def __init__(self, task: UploadTask, stored_message: str, parent=None):
        super().__init__(parent)
        self.task = task
        layout = QHBoxLayout(self)
        layout.setContentsMargins(4, 2, 4, 2)

        self.name_label = QLabel(f"{truncate_string(task.file.name)} ({format_megabytes(task.file.size)})")
        self.name_label.setToolTip(task.file.path)
        layout.addWidget(self.name_label, 1)

        self.progress_bar = QProgressBar()
        self.progress_bar.setRange(0, 100)
        self.progress_bar.setValue(task.progress)
        self.progress_bar.setFixedWidth(160)
        layout.addWidget(self.progress_bar)

        self.status_label = QLabel()
        layout.addWidget(self.status_label)

        self.retry_btn = QPushButton("Retry")
        self.retry_btn.clicked.connect(lambda: self.retry_requested.emit(task.file))
        layout.addWidget(self.retry_btn)

        self.dismiss_btn = QPushButton("✕")
        self.dismiss_btn.setToolTip("Dismiss")
        self.dismiss_btn.setFixedWidth(28)
        self.dismiss_btn.clicked.connect(lambda: self.dismiss_requested.emit(task.file))
        layout.addWidget(self.dismiss_btn)

        if task.status == UploadStatus.UPLOADING:
            self.status_label.setText(f"Uploading... {task.progress}%")
            self.retry_btn.setVisible(False)
        elif task.status == UploadStatus.SUCCESS:
            self.progress_bar.setVisible(False)
            self.status_label.setText(f"Upload completed successfully! {stored_message}")
            self.status_label.setStyleSheet("color: #15803d;")
            self.retry_btn.setVisible(False)
        else:
            self.progress_bar.setVisible(False)
            self.status_label.setText(task.error or "Upload failed")
            self.status_label.setStyleSheet("color: #b91c1c;")


class ImageManagementDialog(QDialog):
    """Manage Images dialog for a single product.

    Renders an ImageManagementSession. Network work runs on an
    UploadQueueWorker and a GalleryActionWorker; their results arrive here
    as queued signals and the widgets are redrawn from session state.
    """

    # Emitted with the new image list whenever the gallery changes
    images_changed = pyqtSignal(list)
    _state_changed = pyqtSignal()

    def __init__(self, session: ImageManagementSession, parent=None):
        super().__init__(parent)
        self.session = session
        self.setWindowTitle("Manage Images")
        self.setMinimumSize(720, 520)
        self.resize(960, 640)

        session.on_state_changed = self._state_changed.emit
        session.on_images_change = self.images_changed.emit
        self._state_changed.connect(self._refresh)

        self.upload_worker = UploadQueueWorker(session)
        self.upload_worker.tasks_changed.connect(self._render_tasks)
        self.gallery_worker = GalleryActionWorker(session)
        self.gallery_worker.action_finished.connect(self._on_action_finished)

        self._setup_ui()
        self._refresh()
        self._render_tasks(session.queue.tasks)

        # Authoritative state is reloaded every time the dialog opens
        self.gallery_worker.reload()

    # ------------------------------------------------------------------
    # UI construction
    # ------------------------------------------------------------------

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)

        # Header
        title = QLabel("Manage Images")
        title.setStyleSheet("font-size: 16px; font-weight: bold;")
        layout.addWidget(title)
        self.product_label = QLabel(self.session.product_name)
        self.product_label.setStyleSheet("color: #4b5563;")
        layout.addWidget(self.product_label)

        # Error banner (dismissible)
        self.error_banner = QFrame()
        self.error_banner.setStyleSheet("background: #fee2e2; border: 1px solid #fca5a5; border-radius: 4px;")
        banner_layout = QHBoxLayout(self.error_banner)
        banner_layout.setContentsMargins(8, 4, 8, 4)
        self.error_label = QLabel()
        self.error_label.setStyleSheet("color: #b91c1c; border: none;")
        self.error_label.setWordWrap(True)
        banner_layout.addWidget(self.error_label, 1)
        dismiss_error_btn = QPushButton("✕")
        dismiss_error_btn.setFixedWidth(28)
        dismiss_error_btn.clicked.connect(self.session.clear_error)
        banner_layout.addWidget(dismiss_error_btn)
        self.error_banner.setVisible(False)
        layout.addWidget(self.error_banner)

        self.stack = QStackedWidget()
        layout.addWidget(self.stack, 1)

        # Loading page
        loading = QLabel("Loading images...")
        loading.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.stack.addWidget(loading)

        # Load error page
        load_error_page = QWidget()
        error_layout = QVBoxLayout(load_error_page)
        error_layout.addStretch()
        self.load_error_label = QLabel()
        self.load_error_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.load_error_label.setStyleSheet("color: #b91c1c;")
        error_layout.addWidget(self.load_error_label)
        self.try_again_btn = QPushButton("Try Again")
        self.try_again_btn.clicked.connect(self.gallery_worker.reload)
        error_layout.addWidget(self.try_again_btn, 0, Qt.AlignmentFlag.AlignCenter)
        error_layout.addStretch()
        self.stack.addWidget(load_error_page)

        # Tabs
        self.tabs = QTabWidget()
        self.tabs.addTab(self._build_gallery_tab(), "")
        self.tabs.addTab(self._build_upload_tab(), "")
        self.tabs.currentChanged.connect(self._on_tab_changed)
        self.stack.addWidget(self.tabs)

        # Footer
        footer = QHBoxLayout()
        footer.addStretch()
        close_btn = QPushButton("Close")
        close_btn.clicked.connect(self.accept)
        footer.addWidget(close_btn)
        layout.addLayout(footer)

    def _build_gallery_tab(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)

        toolbar = QHBoxLayout()
        self.reorder_btn = QPushButton("Reorder Images")
        self.reorder_btn.clicked.connect(self._start_reorder)
        toolbar.addWidget(self.reorder_btn)
        self.save_order_btn = QPushButton("Save Order")
        self.save_order_btn.clicked.connect(self._save_reorder)
        toolbar.addWidget(self.save_order_btn)
        self.cancel_order_btn = QPushButton("Cancel")
        self.cancel_order_btn.clicked.connect(self._cancel_reorder)
        toolbar.addWidget(self.cancel_order_btn)
        self.reorder_hint = QLabel("Drag images to reorder them")
        self.reorder_hint.setStyleSheet("color: #2563eb;")
        toolbar.addWidget(self.reorder_hint)
        toolbar.addStretch()
        layout.addLayout(toolbar)

        self.empty_label = QLabel("No images uploaded yet")
        self.empty_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self.empty_label)

        self.image_list = QListWidget()
        self.image_list.setFlow(QListWidget.Flow.LeftToRight)
        self.image_list.setWrapping(True)
        self.image_list.setResizeMode(QListWidget.ResizeMode.Adjust)
        # Static movement makes drops reorder rows instead of repositioning icons
        self.image_list.setMovement(QListWidget.Movement.Static)
        self.image_list.setDefaultDropAction(Qt.DropAction.MoveAction)
        self.image_list.setGridSize(QSize(180, 90))
        self.image_list.setWordWrap(True)
        self.image_list.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)
        self.image_list.itemSelectionChanged.connect(self._update_action_buttons)
        self.image_list.itemDoubleClicked.connect(lambda item: self._view_image())
        self.image_list.model().rowsMoved.connect(self._on_rows_moved)
        layout.addWidget(self.image_list, 1)

        actions = QHBoxLayout()
        self.primary_btn = QPushButton("Set as Primary")
        self.primary_btn.clicked.connect(self._set_primary)
        actions.addWidget(self.primary_btn)
        self.view_btn = QPushButton("View")
        self.view_btn.clicked.connect(self._view_image)
        actions.addWidget(self.view_btn)
        self.delete_btn = QPushButton("Delete")
        self.delete_btn.clicked.connect(self._delete_image)
        actions.addWidget(self.delete_btn)
        actions.addStretch()
        layout.addLayout(actions)
        return page

    def _build_upload_tab(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        transport = self.session.transport
        settings = self.session.settings

        self.storage_label = QLabel(f"Storage: {transport.storage_label}")
        layout.addWidget(self.storage_label)
        if transport.storage_mode == StorageMode.LOCAL:
            notice = QLabel("Development mode: images are stored on the API server's local disk")
            notice.setStyleSheet("color: #92400e;")
            layout.addWidget(notice)

        self.drop_area = FileDropArea()
        self.drop_area.files_dropped.connect(self.add_files)
        layout.addWidget(self.drop_area)

        picker_row = QHBoxLayout()
        self.select_btn = QPushButton("Select Images")
        self.select_btn.clicked.connect(self._select_files)
        picker_row.addWidget(self.select_btn)
        kinds = ", ".join(t.split("/")[-1].upper() for t in settings.accepted_types)
        self.limits_label = QLabel(f"{kinds} up to {format_megabytes(settings.max_size_bytes)} "
                                   f"(max {settings.max_files} images)")
        self.limits_label.setStyleSheet("color: #6b7280;")
        picker_row.addWidget(self.limits_label)
        picker_row.addStretch()
        layout.addLayout(picker_row)

        self.task_container = QWidget()
        self.task_layout = QVBoxLayout(self.task_container)
        self.task_layout.setContentsMargins(0, 0, 0, 0)
        self.task_layout.addStretch()
        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(self.task_container)
        layout.addWidget(scroll, 1)
        self.task_rows: List[UploadTaskRow] = []
        return page

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _refresh(self) -> None:
        session = self.session
        gallery = session.gallery

        error = session.error
        self.error_banner.setVisible(bool(error) and not session.load_error)
        self.error_label.setText(error or "")

        if session.is_loading and not gallery.images:
            self.stack.setCurrentIndex(_PAGE_LOADING)
        elif session.load_error:
            self.load_error_label.setText(session.load_error)
            self.stack.setCurrentIndex(_PAGE_LOAD_ERROR)
        else:
            self.stack.setCurrentIndex(_PAGE_CONTENT)

        gallery_title, upload_title = session.tab_titles()
        self.tabs.setTabText(0, gallery_title)
        self.tabs.setTabText(1, upload_title)
        self.tabs.blockSignals(True)
        self.tabs.setCurrentIndex(TABS.index(session.active_tab))
        self.tabs.blockSignals(False)

        self._render_gallery()

    def _render_gallery(self) -> None:
        gallery = self.session.gallery
        images = gallery.display_images
        reordering = gallery.is_reordering
        selected_id = self._selected_image_id()

        self.image_list.blockSignals(True)
        self.image_list.clear()
        for image in images:
            item = QListWidgetItem(self._image_caption(image))
            item.setData(Qt.ItemDataRole.UserRole, image.id)
            item.setToolTip(image.image_url)
            if gallery.is_deleting(image.id):
                item.setFlags(item.flags() & ~Qt.ItemFlag.ItemIsEnabled)
            self.image_list.addItem(item)
            if image.id == selected_id:
                item.setSelected(True)
        self.image_list.blockSignals(False)

        drag_mode = (QAbstractItemView.DragDropMode.InternalMove if reordering
                     else QAbstractItemView.DragDropMode.NoDragDrop)
        self.image_list.setDragDropMode(drag_mode)
        self.image_list.setDragEnabled(reordering)

        self.empty_label.setVisible(not images)
        self.image_list.setVisible(bool(images))
        self.reorder_btn.setVisible(gallery.can_reorder)
        self.save_order_btn.setVisible(reordering)
        self.cancel_order_btn.setVisible(reordering)
        self.reorder_hint.setVisible(reordering)
        self._update_action_buttons()

    @staticmethod
    def _image_caption(image: ProductImage) -> str:
        lines = [f"#{image.display_order}"]
        if image.is_main:
            lines.append("★ Primary")
        size = format_megabytes(image.file_size)
        if size:
            lines.append(size)
        return "\n".join(lines)

    def _update_action_buttons(self) -> None:
        gallery = self.session.gallery
        image = self.selected_image()
        editable = image is not None and not gallery.is_reordering
        busy = image is not None and gallery.is_deleting(image.id)
        self.primary_btn.setVisible(not (image is not None and image.is_main))
        self.primary_btn.setEnabled(editable and not busy)
        self.delete_btn.setEnabled(editable and not busy)
        self.view_btn.setEnabled(image is not None)

    def _render_tasks(self, tasks: List[UploadTask]) -> None:
        for row in self.task_rows:
            self.task_layout.removeWidget(row)
            row.deleteLater()
        self.task_rows = []

        stored_message = self.session.transport.stored_message
        for task in tasks:
            row = UploadTaskRow(task, stored_message)
            row.retry_requested.connect(self.upload_worker.queue_retry)
            row.dismiss_requested.connect(self.upload_worker.dismiss)
            self.task_layout.insertWidget(self.task_layout.count() - 1, row)
            self.task_rows.append(row)

    # ------------------------------------------------------------------
    # Gallery actions
    # ------------------------------------------------------------------

    def _selected_image_id(self) -> Optional[str]:
        items = self.image_list.selectedItems()
        return items[0].data(Qt.ItemDataRole.UserRole) if items else None

    def selected_image(self) -> Optional[ProductImage]:
        image_id = self._selected_image_id()
        if image_id is None:
            return None
        return next((img for img in self.session.gallery.display_images if img.id == image_id), None)

    def _set_primary(self) -> None:
        image = self.selected_image()
        if image is not None and not image.is_main:
            self.gallery_worker.set_primary(image.id)

    def _delete_image(self) -> None:
        image = self.selected_image()
        if image is None:
            return
        gallery = self.session.gallery
        gallery.request_delete(image)
        if self._confirm("Delete Image", DELETE_CONFIRM_TEXT):
            self.gallery_worker.confirm_delete()
            self._render_gallery()
        else:
            gallery.cancel_delete()

    def _confirm(self, title: str, text: str) -> bool:
        reply = QMessageBox.question(self, title, text,
                                     QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
                                     QMessageBox.StandardButton.No)
        return reply == QMessageBox.StandardButton.Yes

    def _view_image(self) -> None:
        image = self.selected_image()
        if image is None:
            return
        self.session.gallery.select_image(image)
        preview = QMessageBox(self)
        preview.setWindowTitle("Image Preview")
        details = [image.image_url]
        if image.content_type:
            details.append(image.content_type)
        if image.file_size:
            details.append(format_megabytes(image.file_size))
        preview.setText("\n".join(details))
        preview.finished.connect(lambda _result: self.session.gallery.close_preview())
        preview.open()

    def _start_reorder(self) -> None:
        self.session.gallery.start_reorder()
        self._render_gallery()

    def _save_reorder(self) -> None:
        self.save_order_btn.setEnabled(False)
        self.gallery_worker.commit_reorder()

    def _cancel_reorder(self) -> None:
        self.session.gallery.cancel_reorder()
        self._render_gallery()

    def _on_rows_moved(self, parent, start, end, destination, row) -> None:
        # Qt reports the destination before removal of the source row
        to_index = row - 1 if row > start else row
        try:
            self.session.gallery.move_image(start, to_index)
        except (IndexError, GalleryStateError) as e:
            log(f"Ignoring invalid move {start} -> {to_index}: {e}", level="warning", category="ui")

    def _on_action_finished(self, action: str, succeeded: bool) -> None:
        log(f"Gallery action '{action}' finished (ok={succeeded})", level="debug", category="ui")
        self.save_order_btn.setEnabled(True)
        self._refresh()

    # ------------------------------------------------------------------
    # Upload actions
    # ------------------------------------------------------------------

    def _select_files(self) -> None:
        accepted = self.session.settings.accepted_types
        patterns = " ".join(f"*.{t.split('/')[-1]}" for t in accepted)
        paths, _ = QFileDialog.getOpenFileNames(self, "Select Images", os.path.expanduser("~"),
                                                f"Images ({patterns})")
        if paths:
            self.add_files(paths)

    def add_files(self, paths: List[str]) -> None:
        """Queue local files for upload."""
        files = []
        for path in paths:
            try:
                files.append(UploadFile(path))
            except OSError as e:
                log(f"Cannot read {path}: {e}", level="warning", category="uploads")
                self.session.set_error(f"Cannot read {os.path.basename(path)}")
        if files:
            self.upload_worker.queue_files(files)

    def _on_tab_changed(self, index: int) -> None:
        self.session.switch_tab(TABS[index])

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def done(self, result: int) -> None:
        self.upload_worker.stop(timeout=1.0)
        self.gallery_worker.stop(timeout=1.0)
        self.session.close()
        super().done(result)

