"""
Gallery state for one product's images.

ImageGalleryManager owns the authoritative ordered image list. Every
mutation (promote, delete, reorder commit, upload merge) goes through it and
is echoed to the owner through on_images_change. Reordering is an explicit
two-phase transaction over a draft copy of the list.
"""

from __future__ import annotations

import threading
from typing import Callable, List, Optional, Set

from atelier.core.models import GalleryMode, ProductImage
from atelier.network.api_client import AdminApiClient
from atelier.utils.logger import log
from atelier_exceptions import AtelierException, GalleryLoadError, GalleryMutationError, GalleryStateError

ImagesChangeCallback = Callable[[List[ProductImage]], None]
ErrorCallback = Callable[[str], None]


class ImageGalleryManager:
    """Promote, delete and reorder the images of a single product.

    Network calls are made outside the internal lock, so a slow delete never
    blocks rendering reads from the UI thread.
    """

    def __init__(self, api_client: AdminApiClient, product_id: str,
                 images: Optional[List[ProductImage]] = None,
                 on_images_change: Optional[ImagesChangeCallback] = None,
                 on_error: Optional[ErrorCallback] = None):
        self.api = api_client
        self.product_id = product_id
        self.on_images_change = on_images_change
        self.on_error = on_error

        self._lock = threading.RLock()
        self._images: List[ProductImage] = list(images or [])
        self._mode = GalleryMode.NORMAL
        self._draft: Optional[List[ProductImage]] = None
        self._deleting: Set[str] = set()
        self._selected: Optional[ProductImage] = None
        self._pending_delete: Optional[ProductImage] = None
        self.load_error: Optional[str] = None

    @property
    def images_endpoint(self) -> str:
        return f"/admin/products/{self.product_id}/images"

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def images(self) -> List[ProductImage]:
        with self._lock:
            return list(self._images)

    @property
    def display_images(self) -> List[ProductImage]:
        """The draft while reordering, otherwise the authoritative list."""
        with self._lock:
            if self._mode == GalleryMode.REORDERING and self._draft is not None:
                return list(self._draft)
            return list(self._images)

    @property
    def mode(self) -> GalleryMode:
        with self._lock:
            return self._mode

    @property
    def is_reordering(self) -> bool:
        return self.mode == GalleryMode.REORDERING

    @property
    def can_reorder(self) -> bool:
        with self._lock:
            return self._mode == GalleryMode.NORMAL and len(self._images) > 1

    @property
    def deleting(self) -> Set[str]:
        with self._lock:
            return set(self._deleting)

    def is_deleting(self, image_id: str) -> bool:
        with self._lock:
            return image_id in self._deleting

    @property
    def selected_image(self) -> Optional[ProductImage]:
        with self._lock:
            return self._selected

    @property
    def pending_delete(self) -> Optional[ProductImage]:
        with self._lock:
            return self._pending_delete

    @property
    def main_image(self) -> Optional[ProductImage]:
        with self._lock:
            return next((img for img in self._images if img.is_main), None)

    # ------------------------------------------------------------------
    # Loading and merging
    # ------------------------------------------------------------------

    def load(self) -> bool:
        """Fetch the authoritative list from the server.

        On failure the list is cleared, load_error is set and the owner is
        told about the empty list.
        """
        try:
            try:
                response = self.api.get(self.images_endpoint)
            except AtelierException as e:
                raise GalleryLoadError("Failed to load images", details={"cause": e.message}) from e

            if not isinstance(response, list):
                log(f"Image list for product {self.product_id} is not an array, treating as empty",
                    level="warning", category="gallery")
                response = []
            try:
                images = [ProductImage.from_dict(item) for item in response]
            except (KeyError, TypeError, ValueError) as e:
                raise GalleryLoadError("Failed to load images", details={"cause": str(e)}) from e

        except GalleryLoadError as e:
            log(f"Loading images for product {self.product_id} failed: {e.details.get('cause')}",
                level="error", category="gallery")
            with self._lock:
                self.load_error = e.message
                self._reset_transient_state()
                self._images = []
            self._notify_images_changed()
            self._report_error(e.message)
            return False

        with self._lock:
            self.load_error = None
            self._reset_transient_state()
            self._images = images
        log(f"Loaded {len(images)} images for product {self.product_id}", level="debug", category="gallery")
        self._notify_images_changed()
        return True

    def set_images(self, images: List[ProductImage]) -> None:
        with self._lock:
            self._images = list(images)
        self._notify_images_changed()

    def add_image(self, image: ProductImage) -> None:
        """Merge a freshly uploaded image at the end of the list."""
        with self._lock:
            self._images.append(image)
            if self._draft is not None:
                self._draft.append(image)
        self._notify_images_changed()

    # ------------------------------------------------------------------
    # Promote
    # ------------------------------------------------------------------

    def set_primary(self, image_id: str) -> bool:
        try:
            self.api.put(f"{self.images_endpoint}/{image_id}")
        except AtelierException as e:
            self._mutation_failed(GalleryMutationError("Failed to set primary image", image_id=image_id,
                                                       details={"cause": e.message}))
            return False

        with self._lock:
            self._images = [img.with_changes(is_main=img.id == image_id) for img in self._images]
            if self._draft is not None:
                self._draft = [img.with_changes(is_main=img.id == image_id) for img in self._draft]
        log(f"Image {image_id} is now the primary image of product {self.product_id}",
            level="info", category="gallery")
        self._notify_images_changed()
        return True

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def request_delete(self, image: ProductImage) -> None:
        """Open the confirmation gate for deleting ``image``."""
        with self._lock:
            self._pending_delete = image

    def cancel_delete(self) -> None:
        with self._lock:
            self._pending_delete = None

    def take_pending_delete(self) -> Optional[ProductImage]:
        """Close the confirmation gate and return the image it held."""
        with self._lock:
            image, self._pending_delete = self._pending_delete, None
            return image

    def confirm_delete(self) -> bool:
        """Delete the image awaiting confirmation, if any."""
        image = self.take_pending_delete()
        if image is None:
            return False
        return self.delete(image.id)

    def begin_delete(self, image_id: str) -> bool:
        """Mark ``image_id`` as deleting. False if a delete is already under way."""
        with self._lock:
            if image_id in self._deleting:
                log(f"Delete of image {image_id} already in progress", level="debug", category="gallery")
                return False
            self._deleting.add(image_id)
            return True

    def delete(self, image_id: str) -> bool:
        if not self.begin_delete(image_id):
            return False
        return self.complete_delete(image_id)

    def complete_delete(self, image_id: str) -> bool:
        """Send the DELETE for an id reserved with begin_delete()."""
        try:
            try:
                self.api.delete(f"{self.images_endpoint}/{image_id}")
            except AtelierException as e:
                self._mutation_failed(GalleryMutationError("Failed to delete image", image_id=image_id,
                                                           details={"cause": e.message}))
                return False

            with self._lock:
                self._images = [img for img in self._images if img.id != image_id]
                if self._draft is not None:
                    self._draft = [img for img in self._draft if img.id != image_id]
                if self._selected is not None and self._selected.id == image_id:
                    self._selected = None
            log(f"Deleted image {image_id} from product {self.product_id}", level="info", category="gallery")
            self._notify_images_changed()
            return True
        finally:
            with self._lock:
                self._deleting.discard(image_id)

    # ------------------------------------------------------------------
    # Reorder transaction
    # ------------------------------------------------------------------

    def start_reorder(self) -> None:
        with self._lock:
            if self._mode == GalleryMode.REORDERING:
                return
            self._draft = list(self._images)
            self._mode = GalleryMode.REORDERING

    def move_image(self, from_index: int, to_index: int) -> None:
        """Splice one image to a new position within the draft.

        Raises:
            GalleryStateError: when not in reorder mode
            IndexError: when either index is out of range
        """
        with self._lock:
            if self._mode != GalleryMode.REORDERING or self._draft is None:
                raise GalleryStateError("Images can only be moved while reordering")
            size = len(self._draft)
            if not (0 <= from_index < size and 0 <= to_index < size):
                raise IndexError(f"Cannot move image {from_index} -> {to_index} in a gallery of {size}")
            moved = self._draft.pop(from_index)
            self._draft.insert(to_index, moved)

    def commit_reorder(self) -> bool:
        """Send the draft order to the server and adopt it on success.

        On failure the gallery stays in reorder mode with the draft intact.
        """
        with self._lock:
            if self._mode != GalleryMode.REORDERING or self._draft is None:
                raise GalleryStateError("No reorder in progress")
            draft = list(self._draft)

        image_order = [img.id for img in draft]
        try:
            self.api.put(f"{self.images_endpoint}/reorder", json=image_order)
        except AtelierException as e:
            self._mutation_failed(GalleryMutationError("Failed to reorder images",
                                                       details={"cause": e.message, "order": image_order}))
            return False

        with self._lock:
            # Uploads and deletes may have landed while the PUT was in flight
            current = {img.id: img for img in self._images}
            committed = set(image_order)
            ordered = [current[image_id] for image_id in image_order if image_id in current]
            ordered += [img for img in self._images if img.id not in committed]
            self._images = [img.with_changes(display_order=index + 1) for index, img in enumerate(ordered)]
            self._draft = None
            self._mode = GalleryMode.NORMAL
        log(f"Saved new order of {len(draft)} images for product {self.product_id}",
            level="info", category="gallery")
        self._notify_images_changed()
        return True

    def cancel_reorder(self) -> None:
        with self._lock:
            self._draft = None
            self._mode = GalleryMode.NORMAL

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    def select_image(self, image: ProductImage) -> None:
        with self._lock:
            self._selected = image

    def close_preview(self) -> None:
        with self._lock:
            self._selected = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reset_transient_state(self):
        self._draft = None
        self._mode = GalleryMode.NORMAL
        self._selected = None
        self._pending_delete = None

    def _mutation_failed(self, error: GalleryMutationError) -> None:
        target = f" (image {error.image_id})" if error.image_id else ""
        log(f"{error.message}{target}: {error.details.get('cause')}", level="error", category="gallery")
        self._report_error(error.message)

    def _notify_images_changed(self) -> None:
        if self.on_images_change:
            self.on_images_change(self.images)

    def _report_error(self, message: str) -> None:
        if self.on_error:
            self.on_error(message)
