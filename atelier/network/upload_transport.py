"""
Abstract base class for product image upload transports.

Every upload runs the same three steps:
1. negotiate  - ask the admin API for a write target and an image key
2. transfer   - PUT the raw file bytes to that target (pycurl, with progress)
3. confirm    - register the key against the product, get the image record

Subclasses differ only in how negotiation is spoken and how transfer
failures are worded/timed out, so the steps live here and the variants
override the pieces that differ.
"""

import time
from abc import ABC, abstractmethod
from io import BytesIO
from typing import Callable, Optional

import pycurl
import certifi

from atelier.core.models import ImageRole, ProductImage, UploadFile, UploadSlot
from atelier.core.upload_config import StorageMode
from atelier.network.api_client import AdminApiClient
from atelier.utils.format_utils import format_percentage
from atelier.utils.logger import log
from atelier_exceptions import AtelierException, ConfirmError, TransferError

ProgressCallback = Callable[[int], None]
StopCallback = Callable[[], bool]
NegotiatedCallback = Callable[[UploadSlot], None]


class UploadTransport(ABC):
    """Abstract base for the negotiate/transfer/confirm upload protocol."""

    storage_mode: StorageMode
    # Seconds before the byte transfer is abandoned; None = curl default
    transfer_timeout: Optional[int] = None

    def __init__(self, api_client: AdminApiClient):
        self.api = api_client

    @property
    @abstractmethod
    def storage_label(self) -> str:
        """Short label for the UI ('Local' or 'S3')."""
        ...

    @property
    @abstractmethod
    def stored_message(self) -> str:
        """Suffix for the success text, e.g. '(Stored locally)'."""
        ...

    @abstractmethod
    def negotiate(self, product_id: str, upload_file: UploadFile, image_role: ImageRole) -> UploadSlot:
        """Request a write target for one file. Raise NegotiationError on failure."""
        ...

    @abstractmethod
    def _status_error(self, status_code: int, body: str) -> TransferError:
        """Build the error for a non-2xx transfer response."""
        ...

    @abstractmethod
    def _network_error(self, curl_code: int, curl_message: str) -> TransferError:
        """Build the error for a failed connection/transfer."""
        ...

    @staticmethod
    def images_endpoint(product_id: str) -> str:
        return f"/admin/products/{product_id}/images"

    def transfer(self, slot: UploadSlot, upload_file: UploadFile,
                 on_progress: Optional[ProgressCallback] = None,
                 should_stop: Optional[StopCallback] = None) -> None:
        """PUT the file bytes to the negotiated URL.

        Progress is reported as a whole percentage of bytes sent, only when
        curl knows the total upload size.

        Raises:
            TransferError: on non-2xx status, network failure or abort
            TransferTimeoutError: when transfer_timeout elapses (direct variant)
        """
        last_percent = -1

        def _xferinfo(download_total, downloaded, upload_total, uploaded):
            nonlocal last_percent
            if should_stop and should_stop():
                return 1  # Abort transfer
            if on_progress and upload_total > 0:
                percent = format_percentage(uploaded, upload_total)
                if percent > last_percent:
                    last_percent = percent
                    on_progress(percent)
            return 0

        curl = pycurl.Curl()
        response_buffer = BytesIO()
        upload_start = time.time()

        try:
            with upload_file.open() as f:
                curl.setopt(pycurl.URL, slot.upload_url)
                curl.setopt(pycurl.NOSIGNAL, 1)  # Required for thread safety with timeouts
                curl.setopt(pycurl.CAINFO, certifi.where())
                curl.setopt(pycurl.UPLOAD, 1)
                curl.setopt(pycurl.READDATA, f)
                curl.setopt(pycurl.INFILESIZE, upload_file.size)
                curl.setopt(pycurl.WRITEDATA, response_buffer)
                curl.setopt(pycurl.HTTPHEADER, [f"Content-Type: {upload_file.content_type}"])
                curl.setopt(pycurl.NOPROGRESS, False)
                curl.setopt(pycurl.XFERINFOFUNCTION, _xferinfo)
                if self.transfer_timeout:
                    curl.setopt(pycurl.TIMEOUT, self.transfer_timeout)

                curl.perform()

            response_code = curl.getinfo(pycurl.RESPONSE_CODE)
            if not 200 <= response_code < 300:
                body = response_buffer.getvalue().decode('utf-8', errors='replace')
                raise self._status_error(response_code, body[:500])

        except pycurl.error as e:
            err_code, err_msg = e.args if len(e.args) == 2 else (0, str(e))
            if err_code == pycurl.E_ABORTED_BY_CALLBACK:
                log(f"Transfer of {upload_file.name} stopped", level="info", category="uploads")
                raise TransferError("Upload cancelled") from e
            log(f"Transfer of {upload_file.name} failed (pycurl {err_code}): {err_msg}",
                level="error", category="uploads")
            raise self._network_error(err_code, err_msg) from e
        except OSError as e:
            raise TransferError(f"Could not read {upload_file.name}: {e}") from e
        finally:
            curl.close()

        log(f"Transferred {upload_file.name} in {time.time() - upload_start:.2f}s",
            level="debug", category="uploads")

    def confirm(self, product_id: str, image_key: str, set_as_primary: bool) -> ProductImage:
        """Register the uploaded key against the product and return the record."""
        try:
            record = self.api.post(
                f"{self.images_endpoint(product_id)}/confirm",
                json={"imageKey": image_key, "isMain": set_as_primary},
            )
        except AtelierException as e:
            raise ConfirmError(e.message, details={"image_key": image_key}) from e

        try:
            return ProductImage.from_dict(record)
        except (KeyError, TypeError, ValueError) as e:
            raise ConfirmError("Invalid image record returned by server",
                               details={"image_key": image_key}) from e

    def upload(self, product_id: str, upload_file: UploadFile, set_as_primary: bool,
               on_progress: Optional[ProgressCallback] = None,
               should_stop: Optional[StopCallback] = None,
               on_negotiated: Optional[NegotiatedCallback] = None) -> ProductImage:
        """Run negotiate -> transfer -> confirm for one file.

        Any failure aborts the remaining steps; nothing already written is
        rolled back.
        """
        image_role = ImageRole.MAIN if set_as_primary else ImageRole.GALLERY
        log(f"Uploading {upload_file.name} via {self.storage_label} storage",
            level="debug", category="uploads")

        slot = self.negotiate(product_id, upload_file, image_role)
        if on_negotiated:
            on_negotiated(slot)
        self.transfer(slot, upload_file, on_progress=on_progress, should_stop=should_stop)
        return self.confirm(product_id, slot.image_key, set_as_primary)
