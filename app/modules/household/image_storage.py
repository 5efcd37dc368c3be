import logging
import time
from supabase import Client
from app.config.settings import settings
from fastapi import HTTPException

logger = logging.getLogger(__name__)


def _path_segment(value: str) -> str:
    """Collapse a client-supplied name into a single object key segment."""
    segment = (value or "").replace("/", "_").replace("\\", "_").strip()
    if segment in ("", ".", ".."):
        return "_"
    return segment


class ImageStorage:
    def __init__(self, supabase: Client, bucket_name: str = None):
        self.supabase = supabase
        self.bucket_name = bucket_name or settings.supabase_images_bucket

    @staticmethod
    def build_path(group_id, category: str, filename: str, now_ms: int = None) -> str:
        """Object key: <group_id>/<category>/<epoch_ms>-<filename>. Missing group goes under 'nogroup'."""
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        group_part = str(group_id) if group_id is not None else "nogroup"
        return f"{group_part}/{_path_segment(category)}/{now_ms}-{_path_segment(filename)}"

    def validate(self, content_type: str, size: int) -> None:
        if not content_type or not content_type.startswith("image/"):
            raise HTTPException(
                status_code=400,
                detail="Please select an image file (JPG, PNG, GIF, etc.)"
            )
        if size > settings.max_image_upload_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"Please select an image smaller than {settings.max_image_upload_bytes // (1024 * 1024)}MB"
            )

    def upload_file(self, file_content: bytes, path: str, content_type: str) -> str:
        """Upload an image to the bucket and return its public URL"""
        try:
            bucket = self.supabase.storage.from_(self.bucket_name)
            bucket.upload(path, file_content, {"content-type": content_type})
            return bucket.get_public_url(path)
        except Exception as e:
            logger.error(f"Failed to upload image to {self.bucket_name}/{path}: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Upload failed: {str(e)}")

    def delete_file(self, path: str) -> bool:
        """Delete an object from the bucket"""
        try:
            self.supabase.storage.from_(self.bucket_name).remove([path])
            return True
        except Exception as e:
            logger.error(f"Failed to delete image {self.bucket_name}/{path}: {str(e)}")
            return False
