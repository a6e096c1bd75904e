"""
Composite upload of categorized photographs.

All images of one call are compressed and uploaded concurrently and the call
returns only after every one of them has settled. Any failure fails the whole
call: there is no partial result and nothing is retried. Counts are checked
before the first network call.
"""

import asyncio
from typing import Callable, Dict, Iterable, List, Mapping, Sequence, Set

from errors import PhotoCategoryLockedError, UploadCardinalityError, UploadTransportError
from images import CompressedImage, RawImage, compress_image
from logging_config import get_logger
from schemas import PHOTO_CATEGORIES, PHOTOS_PER_CATEGORY
from storage import StorageClient

logger = get_logger("uploads")

PhotoSet = Mapping[str, Sequence[RawImage]]


def submitted_categories(by_category: PhotoSet) -> List[str]:
    return [c for c, images in by_category.items() if images]


def require_complete_set(by_category: PhotoSet) -> None:
    """A new report needs exactly two photographs in every category"""
    for category in PHOTO_CATEGORIES:
        count = len(by_category.get(category) or [])
        if count != PHOTOS_PER_CATEGORY:
            raise UploadCardinalityError(
                f"Upload exactly {PHOTOS_PER_CATEGORY} images for each category "
                f"({', '.join(PHOTO_CATEGORIES)}); '{category}' has {count}.",
                category=category,
                count=count,
            )


def require_unlocked(by_category: PhotoSet, locked: Iterable[str]) -> None:
    """Populated categories are final and take no new images"""
    clash = [c for c in submitted_categories(by_category) if c in set(locked)]
    if clash:
        raise PhotoCategoryLockedError(clash)


class UploadCoordinator:

    def __init__(self, storage: StorageClient,
                 compress: Callable[[RawImage], CompressedImage] = compress_image,
                 categories: Sequence[str] = PHOTO_CATEGORIES,
                 max_per_category: int = PHOTOS_PER_CATEGORY):
        self.storage = storage
        self.compress = compress
        self.categories: Set[str] = set(categories)
        self.max_per_category = max_per_category

    def check_cardinality(self, by_category: PhotoSet) -> None:
        for category, images in by_category.items():
            if category not in self.categories:
                raise UploadCardinalityError(f"Unknown photograph category '{category}'.", category=category)
            count = len(images or [])
            if count > self.max_per_category:
                raise UploadCardinalityError(
                    f"Only {self.max_per_category} images are allowed for the category '{category}'.",
                    category=category,
                    count=count,
                )

    async def upload(self, by_category: PhotoSet, base_path: str) -> Dict[str, List[str]]:
        """Upload every image and return category -> URLs, in submission order.

        Categories with no images are left out of the result, they are not
        defaulted to empty lists.
        """
        self.check_cardinality(by_category)

        jobs = [
            (category, image)
            for category in submitted_categories(by_category)
            for image in by_category[category]
        ]
        results = await asyncio.gather(
            *(self._upload_one(category, image, base_path) for category, image in jobs),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            logger.error(f"{len(failures)} of {len(jobs)} image uploads failed under {base_path}")
            first = failures[0]
            if isinstance(first, UploadTransportError):
                raise first
            raise UploadTransportError(f"Image upload failed: {first}") from first

        urls: Dict[str, List[str]] = {}
        for (category, _), url in zip(jobs, results):
            urls.setdefault(category, []).append(url)
        return urls

    async def _upload_one(self, category: str, image: RawImage, base_path: str) -> str:
        compressed = await asyncio.to_thread(self.compress, image)
        logger.debug(f"Compressed {image.filename}: {len(image.data)} -> {len(compressed.data)} bytes")
        path = f"{base_path.rstrip('/')}/{category}/{compressed.filename}"
        return await asyncio.to_thread(
            self.storage.upload_bytes, path, compressed.data, compressed.content_type
        )
