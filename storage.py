"""
Local filesystem storage for uploaded receipts.

Files live flat under ``UPLOAD_DIR`` and are served read-only from ``/uploads``.
Names are generated here and never taken from the client.
"""
import os
import random
import shutil
import time
from pathlib import Path
from typing import BinaryIO, Optional

import structlog

from config import settings

log = structlog.get_logger(__name__)


class LocalStorage:
    def __init__(self, base_dir: str):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def generate_name(field_name: str, original_name: Optional[str]) -> str:
        """``<field>-<epoch ms>-<random>`` plus the original extension."""
        ext = os.path.splitext(original_name or "")[1].lower()
        suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
        return f"{field_name}-{suffix}{ext}"

    def path(self, filename: str) -> Path:
        # stored names are always flat
        return self.base_dir / Path(filename).name

    def save(self, stream: BinaryIO, field_name: str, original_name: Optional[str]) -> str:
        filename = self.generate_name(field_name, original_name)
        with open(self.path(filename), "wb") as f:
            shutil.copyfileobj(stream, f)
        log.info("file_stored", filename=filename)
        return filename

    def exists(self, filename: str) -> bool:
        return self.path(filename).is_file()

    def url_for(self, filename: str) -> str:
        return f"{settings.public_base_url.rstrip('/')}/uploads/{filename}"

    def delete(self, filename: str) -> None:
        path = self.path(filename)
        try:
            path.unlink()
        except FileNotFoundError:
            log.warning("file_missing_on_delete", filename=filename)
        except OSError as e:
            log.warning("file_delete_failed", filename=filename, error=str(e))


storage = LocalStorage(settings.upload_dir)
