"""Unit tests for request dependencies."""

from tournest.core.config import settings
from tournest.core.dependencies import get_image_pipeline
from tournest.services.upload_service import CloudinaryUploader


def test_image_pipeline_follows_settings(monkeypatch, tmp_path):
    """Test the production pipeline is built from the current settings."""
    monkeypatch.setattr(settings, "max_gallery_images", 1)
    monkeypatch.setattr(settings, "image_width", 800)
    monkeypatch.setattr(settings, "image_height", 320)
    monkeypatch.setattr(settings, "image_quality", 75)
    monkeypatch.setattr(settings, "tmp_dir", str(tmp_path))

    pipeline = get_image_pipeline()

    assert isinstance(pipeline.uploader, CloudinaryUploader)
    assert pipeline.max_gallery_images == 1
    assert pipeline.size == (800, 320)
    assert pipeline.quality == 75
    assert pipeline.tmp_dir == tmp_path
    assert pipeline.folder == settings.cloudinary_folder
