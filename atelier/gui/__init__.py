"""Qt widgets for the image management surface."""

from atelier.gui.image_management_dialog import ImageManagementDialog

__all__ = [
    "ImageManagementDialog",
]
