"""
Factory for creating upload transport instances.

Picks the transport variant for the process-wide storage mode:
- StorageMode.LOCAL  -> LocalUploadTransport
- StorageMode.DIRECT -> DirectUploadTransport
"""

from typing import Optional

from atelier.core.upload_config import StorageMode, get_storage_mode
from atelier.network.api_client import AdminApiClient
from atelier.network.upload_transport import UploadTransport
from atelier.utils.logger import log
from atelier_exceptions import ConfigurationError


def create_upload_transport(api_client: AdminApiClient,
                            mode: Optional[StorageMode] = None) -> UploadTransport:
    """
    Create the upload transport for the given (or configured) storage mode.

    Args:
        api_client: Authenticated admin API client
        mode: Explicit storage mode; defaults to get_storage_mode()

    Returns:
        UploadTransport: An instance of the matching transport.

    Raises:
        ConfigurationError: If the mode is not recognized.

    Examples:
        >>> transport = create_upload_transport(api, StorageMode.DIRECT)
        >>> transport.storage_label
        'S3'
    """
    if mode is None:
        mode = get_storage_mode()

    if mode == StorageMode.DIRECT:
        from atelier.network.direct_upload_transport import DirectUploadTransport
        log("Using S3 upload for production environment", level="info", category="uploads")
        return DirectUploadTransport(api_client)

    elif mode == StorageMode.LOCAL:
        from atelier.network.local_upload_transport import LocalUploadTransport
        log("Using local storage upload for development environment", level="info", category="uploads")
        return LocalUploadTransport(api_client)

    raise ConfigurationError(f"Unknown storage mode: {mode!r}")
