"""Concurrency tests for the image pipeline fan-out and cleanup."""

import asyncio

import pytest

from tournest.core.exceptions import UpstreamError
from tournest.services.image_service import ImageUpload


def uploads_for(jpeg_bytes, gallery_count, with_cover=True):
    files = [ImageUpload("imageCover", "cover.jpg", "image/jpeg", jpeg_bytes)] if with_cover else []
    files += [
        ImageUpload("images", f"g{n}.jpg", "image/jpeg", jpeg_bytes)
        for n in range(1, gallery_count + 1)
    ]
    return files


@pytest.mark.asyncio
@pytest.mark.parametrize("gallery_count", [0, 1, 2, 3])
async def test_one_file_per_image_at_target_size(image_pipeline, fake_uploader, image_tmp_dir, jpeg_bytes,
                                                 image_size, gallery_count):
    """Test every image produces exactly one JPEG at the target size, all removed afterwards."""
    urls = await image_pipeline.run("65a0c0ffee0000000000aaaa", uploads_for(jpeg_bytes, gallery_count))

    assert len(fake_uploader.images) == 1 + gallery_count
    assert set(fake_uploader.images.values()) == {("JPEG", image_size)}
    assert urls.cover is not None
    assert len(urls.images) == gallery_count
    assert list(image_tmp_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_uploads_run_concurrently(image_pipeline, fake_uploader, jpeg_bytes):
    """Test all uploads are in flight at the same time."""
    fake_uploader.delays = {".jpeg": 0.05}

    await image_pipeline.run("65a0c0ffee0000000000aaaa", uploads_for(jpeg_bytes, 3))

    assert fake_uploader.max_in_flight == 4


@pytest.mark.asyncio
async def test_url_order_independent_of_completion_order(image_pipeline, fake_uploader, jpeg_bytes):
    """Test URLs follow input order even when later uploads finish first."""
    fake_uploader.delays = {"tour-cover-": 0.08, "-1.jpeg": 0.06, "-2.jpeg": 0.03}

    urls = await image_pipeline.run("65a0c0ffee0000000000aaaa", uploads_for(jpeg_bytes, 3))

    assert "tour-cover-" in urls.cover
    assert [url.rsplit("-", 1)[-1] for url in urls.images] == ["1.jpeg", "2.jpeg", "3.jpeg"]


@pytest.mark.asyncio
async def test_failed_branch_waits_for_siblings_then_cleans_up(image_pipeline, fake_uploader, image_tmp_dir,
                                                               jpeg_bytes):
    """Test a failing upload lets slower siblings finish before every file is removed."""
    fake_uploader.fail_when.add("-1.jpeg")
    fake_uploader.delays = {"-3.jpeg": 0.05}

    with pytest.raises(UpstreamError):
        await image_pipeline.run("65a0c0ffee0000000000aaaa", uploads_for(jpeg_bytes, 3))

    assert len(fake_uploader.calls) == 4
    assert all(fake_uploader.seen_on_disk.values())
    assert fake_uploader.in_flight == 0
    assert list(image_tmp_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_parallel_requests_do_not_collide(image_pipeline, fake_uploader, image_tmp_dir, jpeg_bytes):
    """Test concurrent runs for different tours keep their files apart."""
    tour_ids = [f"65a0c0ffee00000000000{n:03d}" for n in range(5)]

    results = await asyncio.gather(*(
        image_pipeline.run(tour_id, uploads_for(jpeg_bytes, 2)) for tour_id in tour_ids
    ))

    for tour_id, urls in zip(tour_ids, results):
        assert tour_id in urls.cover
        assert all(tour_id in url for url in urls.images)
    assert len(fake_uploader.calls) == 15
    assert list(image_tmp_dir.iterdir()) == []
