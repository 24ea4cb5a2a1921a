"""
Custom exception hierarchy for the Atelier admin console.
Provides specific exceptions for the image upload and gallery flows.
"""

class AtelierException(Exception):
    """Base exception for all Atelier errors"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class AuthenticationError(AtelierException):
    """Raised when the admin session is rejected (HTTP 401)"""
    pass


class NetworkError(AtelierException):
    """Raised for network-related issues"""
    pass


class ApiRequestError(NetworkError):
    """Raised when the admin API answers with a non-2xx status or bad body"""
    def __init__(self, message: str, status_code: int = None, details: dict = None):
        super().__init__(message, details)
        self.status_code = status_code


class UploadError(AtelierException):
    """Base class for upload-related errors"""
    pass


class FileValidationError(UploadError):
    """Raised when a file is rejected before any network call (type or size)"""
    def __init__(self, message: str, file_name: str = None, details: dict = None):
        super().__init__(message, details)
        self.file_name = file_name


class UploadLimitError(UploadError):
    """Raised when a batch would exceed the per-product image limit"""
    def __init__(self, message: str, max_files: int = None, details: dict = None):
        super().__init__(message, details)
        self.max_files = max_files


class NegotiationError(UploadError):
    """Raised when the upload slot request fails or returns malformed data"""
    pass


class TransferError(UploadError):
    """Raised when writing the file bytes to the negotiated URL fails"""
    def __init__(self, message: str, status_code: int = None, details: dict = None):
        super().__init__(message, details)
        self.status_code = status_code


class TransferTimeoutError(TransferError):
    """Raised when the direct-to-storage transfer exceeds its timeout"""
    pass


class ConfirmError(UploadError):
    """Raised when the backend rejects the confirm step for uploaded bytes"""
    pass


class GalleryError(AtelierException):
    """Base class for gallery errors"""
    pass


class GalleryLoadError(GalleryError):
    """Raised when the product image list cannot be loaded"""
    pass


class GalleryMutationError(GalleryError):
    """Raised when promote, delete or reorder-commit fails"""
    def __init__(self, message: str, image_id: str = None, details: dict = None):
        super().__init__(message, details)
        self.image_id = image_id


class GalleryStateError(GalleryError):
    """Raised when a gallery operation is invalid in the current mode"""
    pass


class ConfigurationError(AtelierException):
    """Raised for configuration-related issues"""
    pass


class SettingsError(ConfigurationError):
    """Raised when settings are invalid or missing"""
    pass
