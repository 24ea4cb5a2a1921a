"""
Local storage upload transport (development deployments).

Negotiation is a POST with the filename and content type; the returned
uploadUrl is a backend-proxied endpoint that writes to the server's disk.
The byte transfer has no explicit timeout.
"""

from atelier.core.models import ImageRole, UploadFile, UploadSlot
from atelier.core.upload_config import StorageMode
from atelier.network.upload_transport import UploadTransport
from atelier.utils.logger import log
from atelier_exceptions import AtelierException, NegotiationError, TransferError


class LocalUploadTransport(UploadTransport):
    """Backend-proxied uploads."""

    storage_mode = StorageMode.LOCAL
    transfer_timeout = None

    @property
    def storage_label(self) -> str:
        return "Local"

    @property
    def stored_message(self) -> str:
        return "(Stored locally)"

    def negotiate(self, product_id: str, upload_file: UploadFile, image_role: ImageRole) -> UploadSlot:
        try:
            response = self.api.post(
                f"{self.images_endpoint(product_id)}/generate-upload-url",
                json={"filename": upload_file.name, "contentType": upload_file.content_type},
            )
        except AtelierException as e:
            raise NegotiationError(e.message) from e

        upload_url = response.get("uploadUrl") if isinstance(response, dict) else None
        image_key = response.get("imageKey") if isinstance(response, dict) else None
        if not upload_url or not image_key:
            log(f"Malformed upload URL response for {upload_file.name}: {response!r}",
                level="error", category="uploads")
            raise NegotiationError("Failed to get upload URL from server")

        return UploadSlot(upload_url=upload_url, image_key=image_key)

    def _status_error(self, status_code: int, body: str) -> TransferError:
        return TransferError(f"Upload failed with status {status_code}", status_code=status_code)

    def _network_error(self, curl_code: int, curl_message: str) -> TransferError:
        return TransferError("Upload failed", details={"curl_code": curl_code, "curl_message": curl_message})
