"""
State behind the "Manage Images" surface of one product.

Composes the gallery manager, the upload queue and the upload transport,
and keeps them in sync: uploads are merged into the gallery, the gallery's
size feeds the queue's admission check, and every error lands in a single
dismissible banner.
"""

import threading
from typing import Callable, Iterable, List, Optional, Tuple

from atelier.core.gallery import ImageGalleryManager
from atelier.core.models import ProductImage, UploadFile
from atelier.core.upload_config import UploadSettings, load_upload_settings
from atelier.core.upload_queue import UploadQueueController
from atelier.network.api_client import AdminApiClient
from atelier.network.upload_transport import UploadTransport
from atelier.network.upload_transport_factory import create_upload_transport
from atelier.utils.logger import log

TAB_GALLERY = "gallery"
TAB_UPLOAD = "upload"
TABS = (TAB_GALLERY, TAB_UPLOAD)


class ImageManagementSession:
    """Gallery and upload tabs for one product, as plain Python state."""

    def __init__(self, api_client: AdminApiClient, product_id: str, product_name: str = "",
                 initial_images: Optional[List[ProductImage]] = None,
                 transport: Optional[UploadTransport] = None,
                 settings: Optional[UploadSettings] = None,
                 on_images_change: Optional[Callable[[List[ProductImage]], None]] = None,
                 on_state_changed: Optional[Callable[[], None]] = None,
                 **queue_options):
        self.product_id = product_id
        self.product_name = product_name
        self.on_images_change = on_images_change
        self.on_state_changed = on_state_changed

        self._lock = threading.Lock()
        self._active_tab = TAB_GALLERY
        self._error: Optional[str] = None
        self._is_loading = False

        self.transport = transport or create_upload_transport(api_client)
        self.settings = settings or load_upload_settings()
        initial_images = list(initial_images or [])

        self.gallery = ImageGalleryManager(
            api_client, product_id, images=initial_images,
            on_images_change=self._on_gallery_changed,
            on_error=self.set_error,
        )
        self.queue = UploadQueueController(
            product_id, self.transport, settings=self.settings,
            current_image_count=len(initial_images),
            on_upload_complete=self._on_upload_complete,
            on_upload_error=self.set_error,
            **queue_options,
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def images(self) -> List[ProductImage]:
        return self.gallery.images

    @property
    def active_tab(self) -> str:
        with self._lock:
            return self._active_tab

    @property
    def error(self) -> Optional[str]:
        with self._lock:
            return self._error

    @property
    def is_loading(self) -> bool:
        with self._lock:
            return self._is_loading

    @property
    def load_error(self) -> Optional[str]:
        return self.gallery.load_error

    def tab_titles(self) -> Tuple[str, str]:
        return f"Gallery ({len(self.gallery.images)})", "Upload Images"

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def open(self) -> bool:
        """Reload the authoritative image list. Called whenever the surface opens."""
        with self._lock:
            self._is_loading = True
            self._error = None
        self._notify_state_changed()
        try:
            loaded = self.gallery.load()
        finally:
            with self._lock:
                self._is_loading = False
        self._notify_state_changed()
        return loaded

    def switch_tab(self, tab: str) -> None:
        if tab not in TABS:
            raise ValueError(f"Unknown tab: {tab!r}")
        with self._lock:
            self._active_tab = tab
        self._notify_state_changed()

    def set_error(self, message: str) -> None:
        with self._lock:
            self._error = message
        self._notify_state_changed()

    def clear_error(self) -> None:
        with self._lock:
            self._error = None
        self._notify_state_changed()

    def handle_files(self, files: Iterable[UploadFile]) -> List[ProductImage]:
        return self.queue.handle_files(files)

    def close(self) -> None:
        log(f"Closing image management for product {self.product_id}", level="debug", category="ui")
        self.queue.shutdown()

    # ------------------------------------------------------------------
    # Callbacks from the gallery and the queue
    # ------------------------------------------------------------------

    def _on_upload_complete(self, image: ProductImage) -> None:
        self.gallery.add_image(image)
        with self._lock:
            self._active_tab = TAB_GALLERY
        self._notify_state_changed()

    def _on_gallery_changed(self, images: List[ProductImage]) -> None:
        self.queue.set_current_image_count(len(images))
        if self.on_images_change:
            self.on_images_change(images)
        self._notify_state_changed()

    def _notify_state_changed(self) -> None:
        if self.on_state_changed:
            self.on_state_changed()
