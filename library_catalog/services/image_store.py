import logging
import uuid
from pathlib import Path
from typing import List, Optional
from library_catalog.config import settings
from library_catalog.exceptions import ValidationError, UnexpectedError
from library_catalog.schemas.book import CoverImage

logger = logging.getLogger(__name__)


class ImageStore:
    """File-system store for book cover images."""
    
    def __init__(
        self,
        root_dir: Optional[str] = None,
        folder: Optional[str] = None,
        allowed_extensions: Optional[List[str]] = None,
        max_bytes: Optional[int] = None,
    ):
        self.root_dir = Path(root_dir or settings.image_upload_dir)
        self.folder = (folder or settings.image_folder).replace("\\", "/").strip("/")
        self._allowed_extensions = [
            ext.lower() for ext in (allowed_extensions or settings.image_allowed_extensions)
        ]
        self._max_bytes = max_bytes or settings.image_max_bytes
    
    @property
    def allowed_extensions(self) -> List[str]:
        return list(self._allowed_extensions)
    
    @property
    def max_file_size(self) -> int:
        return self._max_bytes
    
    def validate(self, image: Optional[CoverImage]) -> str:
        """Check the upload and return its normalized extension."""
        if image is None or image.is_empty:
            raise ValidationError("Book cover image is required.")
        
        extension = Path(image.filename or "").suffix.lower()
        if extension not in self._allowed_extensions:
            raise ValidationError(
                f"File type '{extension or image.filename}' is not allowed. "
                f"Allowed types: {', '.join(self._allowed_extensions)}"
            )
        
        if len(image.content) > self._max_bytes:
            raise ValidationError(
                f"File size exceeds the maximum of {self._max_bytes // (1024 * 1024)} MB."
            )
        return extension
    
    def save(self, image: Optional[CoverImage]) -> str:
        """Store the image and return its path reference, e.g. /images/books/<uuid>.png"""
        extension = self.validate(image)
        upload_dir = self.root_dir / self.folder
        file_name = f"{uuid.uuid4().hex}{extension}"
        
        try:
            upload_dir.mkdir(parents=True, exist_ok=True)
            (upload_dir / file_name).write_bytes(image.content)
        except OSError as e:
            logger.exception(f"Could not store cover image '{image.filename}': {e}")
            raise UnexpectedError("save_image") from e
        
        path_reference = f"/{self.folder}/{file_name}"
        logger.debug(f"Stored cover image {path_reference} ({len(image.content)} bytes)")
        return path_reference
    
    def delete(self, path_reference: Optional[str]) -> None:
        """Best-effort removal; failures are logged and never raised."""
        if not path_reference:
            return
        
        root = self.root_dir.resolve()
        physical_path = (root / path_reference.lstrip("/")).resolve()
        if root not in physical_path.parents:
            logger.warning(f"Refusing to delete image outside upload root: {path_reference}")
            return
        
        try:
            physical_path.unlink()
            logger.debug(f"Deleted cover image {path_reference}")
        except FileNotFoundError:
            logger.info(f"Cover image already gone: {path_reference}")
        except OSError as e:
            logger.warning(f"Could not delete image {path_reference}: {e}")
