"""
Direct-to-storage upload transport (production deployments).

Negotiation is a GET carrying content_type, product_id and the image role
('main' or 'gallery') as query parameters; the server answers with a
time-limited presigned PUT URL on the object store. The browser-equivalent
transfer gives up after 120 seconds.
"""

import pycurl

from atelier.core.models import ImageRole, UploadFile, UploadSlot
from atelier.core.upload_config import StorageMode, get_upload_setting
from atelier.network.api_client import AdminApiClient
from atelier.network.upload_transport import UploadTransport
from atelier.utils.logger import log
from atelier_exceptions import AtelierException, NegotiationError, TransferError, TransferTimeoutError


class DirectUploadTransport(UploadTransport):
    """Presigned-URL uploads straight to object storage."""

    storage_mode = StorageMode.DIRECT
    transfer_timeout = 120

    def __init__(self, api_client: AdminApiClient, transfer_timeout: int = None):
        super().__init__(api_client)
        if transfer_timeout is None:
            transfer_timeout = get_upload_setting("direct_upload_timeout", "int")
        self.transfer_timeout = transfer_timeout

    @property
    def storage_label(self) -> str:
        return "S3"

    @property
    def stored_message(self) -> str:
        return "(Stored in S3)"

    def negotiate(self, product_id: str, upload_file: UploadFile, image_role: ImageRole) -> UploadSlot:
        try:
            response = self.api.get(
                f"{self.images_endpoint(product_id)}/generate-upload-url",
                params={
                    "content_type": upload_file.content_type,
                    "product_id": product_id,
                    "type": image_role.value,
                },
            )
        except AtelierException as e:
            raise NegotiationError(e.message) from e

        upload_url = response.get("upload_url") if isinstance(response, dict) else None
        image_key = response.get("key") if isinstance(response, dict) else None
        if not upload_url or not image_key:
            log(f"Malformed presigned URL response for {upload_file.name}: {response!r}",
                level="error", category="uploads")
            raise NegotiationError("Failed to get upload URL from server")

        return UploadSlot(upload_url=upload_url, image_key=image_key)

    def _status_error(self, status_code: int, body: str) -> TransferError:
        return TransferError(f"S3 upload failed with status {status_code}: {body}", status_code=status_code)

    def _network_error(self, curl_code: int, curl_message: str) -> TransferError:
        details = {"curl_code": curl_code, "curl_message": curl_message}
        if curl_code == pycurl.E_OPERATION_TIMEDOUT:
            return TransferTimeoutError("S3 upload failed - timeout", details=details)
        return TransferError("S3 upload failed - network error", details=details)
