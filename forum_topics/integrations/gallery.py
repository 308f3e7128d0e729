"""
Gallery image placement for topics posted into image groups.

Uploading and thumbnailing happen elsewhere; by the time a topic is created
the caller holds a prepared image that only needs to be moved to its final
location and named after the new topic id.
"""
import logging
from pathlib import Path
from typing import Optional, Protocol, Tuple

from forum_topics.config.settings import settings
from forum_topics.exceptions import PrecheckFailedError

logger = logging.getLogger(__name__)


class PlacedImage(Protocol):
    main_file: Path
    icon_file: Path


class PreparedImage(Protocol):
    def move_to(self, directory: Path, name: str) -> PlacedImage:
        """Moves the image and its icon into `directory`, using `name` as the file stem."""
        ...


def gallery_directory() -> Path:
    return Path(settings.HTML_PATH_PREFIX) / settings.GALLERY_DIR_NAME


def place_topic_image(image: Optional[PreparedImage], topic_id: int) -> Tuple[str, str]:
    """
    Moves the prepared image into the gallery and returns the topic's (url, link_text).

    Raises:
        PrecheckFailedError: If no prepared image was supplied.
    """
    if image is None:
        raise PrecheckFailedError(f"Image required for topic {topic_id} but none was prepared")

    placed = image.move_to(gallery_directory(), str(topic_id))
    url = f"{settings.GALLERY_DIR_NAME}/{placed.main_file.name}"
    link_text = f"{settings.GALLERY_DIR_NAME}/{placed.icon_file.name}"
    logger.info(f"Placed gallery image for topic {topic_id} at {url}")
    return url, link_text
