"""Service layer package."""

from .crud_service import CrudService
from .image_pipeline import ImagePipeline, ImageUrls
from .tour_service import TourService
from .upload_service import CloudinaryUploader, CloudUploader

__all__ = [
    "CloudUploader",
    "CloudinaryUploader",
    "CrudService",
    "ImagePipeline",
    "ImageUrls",
    "TourService",
]
