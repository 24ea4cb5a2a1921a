"""
Data model for product images and client-side upload tasks.

ProductImage mirrors the admin API's image record. UploadFile, UploadSlot
and UploadTask are client-only and never persisted.
"""

import os
import mimetypes
from enum import Enum
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

# Older interpreters only know WebP from the system mime.types file
mimetypes.add_type("image/webp", ".webp")


class UploadStatus(str, Enum):
    UPLOADING = "uploading"
    SUCCESS = "success"
    ERROR = "error"


class GalleryMode(str, Enum):
    NORMAL = "normal"
    REORDERING = "reordering"


class ImageRole(str, Enum):
    """Role sent with direct-to-storage negotiation."""
    MAIN = "main"
    GALLERY = "gallery"


@dataclass
class ProductImage:
    """One image attached to a product."""

    id: str
    product_id: str
    image_url: str
    is_main: bool = False
    display_order: int = 0
    content_type: Optional[str] = None
    file_size: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProductImage':
        """Build from the API's JSON record. Raises KeyError/TypeError on malformed input."""
        if not isinstance(data, dict):
            raise TypeError(f"Image record must be a dictionary, got {type(data).__name__}")
        file_size = data.get('file_size')
        return cls(
            id=str(data['id']),
            product_id=str(data.get('product_id', '')),
            image_url=data.get('image_url', ''),
            is_main=bool(data.get('is_main', False)),
            display_order=int(data.get('display_order') or 0),
            content_type=data.get('content_type'),
            file_size=int(file_size) if file_size is not None else None,
            created_at=data.get('created_at'),
            updated_at=data.get('updated_at'),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'product_id': self.product_id,
            'image_url': self.image_url,
            'is_main': self.is_main,
            'display_order': self.display_order,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }
        if self.content_type is not None:
            data['content_type'] = self.content_type
        if self.file_size is not None:
            data['file_size'] = self.file_size
        return data

    def with_changes(self, **changes) -> 'ProductImage':
        return replace(self, **changes)


@dataclass(eq=False)
class UploadFile:
    """A local file selected for upload.

    Compared by identity: two handles for the same path are two files,
    the same way two picks of one file in a browser are.
    """

    path: str
    content_type: str = ""
    size: int = -1
    name: str = ""

    def __post_init__(self):
        if not self.name:
            self.name = os.path.basename(self.path)
        if not self.content_type:
            self.content_type = mimetypes.guess_type(self.path)[0] or "application/octet-stream"
        if self.size < 0:
            self.size = os.path.getsize(self.path)

    def open(self):
        return open(self.path, 'rb')

    def read_bytes(self) -> bytes:
        with self.open() as f:
            return f.read()


@dataclass(frozen=True)
class UploadSlot:
    """Write target returned by the negotiate step."""

    upload_url: str
    image_key: str


@dataclass(eq=False)
class UploadTask:
    """One row of the upload queue. Compared by identity, like UploadFile."""

    file: UploadFile
    progress: int = 0
    status: UploadStatus = UploadStatus.UPLOADING
    error: Optional[str] = None
    image_key: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (UploadStatus.SUCCESS, UploadStatus.ERROR)

    def copy(self) -> 'UploadTask':
        return replace(self)
