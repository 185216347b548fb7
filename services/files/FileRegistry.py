"""In-memory file records: the upload layer's view of stored documents.

Uploads are written below <ROOT_DIR>/uploads/<owner_id>/ and registered here.
Lookups are always owner-scoped.
"""

import asyncio
import os
import re
import uuid

from shared.exceptions.errors import NotFoundError, ValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.models.file import FileRecord

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class FileRegistry:
    def __init__(self, helper_config: HelperConfig, upload_dir: str | None = None):
        self.logging = helper_config.get_logger()
        root_dir = helper_config.get_string_val("ROOT_DIR", default=os.getcwd())
        self.upload_dir = upload_dir or helper_config.get_string_val("UPLOAD_DIR", default=os.path.join(root_dir, "uploads"))
        self._records: dict[str, FileRecord] = {}
        self._lock = asyncio.Lock()

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_file(self, file_id: str, owner_id: str) -> FileRecord | None:
        """Return the record if it exists and belongs to the owner."""
        record = self._records.get(file_id)
        if record is None or record.owner_id != owner_id:
            return None
        return record

    def get_file_or_raise(self, file_id: str, owner_id: str) -> FileRecord:
        record = self.get_file(file_id, owner_id)
        if record is None:
            raise NotFoundError(f"File not found or user not authorized for fileId: {file_id}")
        return record

    def list_files(self, owner_id: str) -> list[FileRecord]:
        return [r for r in self._records.values() if r.owner_id == owner_id]

    ##########################################
    ################ WRITES ##################
    ##########################################

    async def register(self, record: FileRecord) -> FileRecord:
        """Register a file that is already on disk."""
        async with self._lock:
            self._records[record.file_id] = record
        return record

    async def store_upload(self, owner_id: str, original_name: str, content: bytes, mime_type: str | None = None) -> FileRecord:
        """Write uploaded bytes to disk and register the file.

        Raises:
            ValidationError: If the owner, the file name or the content is missing.
        """
        if not owner_id:
            raise ValidationError("An owner is required to store a file.")
        if not original_name:
            raise ValidationError("Uploaded file has no name.")
        if not content:
            raise ValidationError("Uploaded file is empty.")

        file_id = uuid.uuid4().hex
        safe_name = _UNSAFE_NAME_CHARS.sub("_", os.path.basename(original_name)) or "upload"
        owner_dir = os.path.join(self.upload_dir, _UNSAFE_NAME_CHARS.sub("_", owner_id))
        path = os.path.join(owner_dir, f"{file_id}_{safe_name}")

        def _write() -> None:
            os.makedirs(owner_dir, exist_ok=True)
            with open(path, "wb") as f:
                f.write(content)

        await asyncio.to_thread(_write)
        record = FileRecord(
            file_id=file_id,
            owner_id=owner_id,
            path=path,
            original_name=original_name,
            mime_type=mime_type,
            size=len(content),
        )
        await self.register(record)
        self.logging.info("Stored upload '%s' as %s (%d bytes).", original_name, file_id, len(content))
        return record

    async def remove(self, file_id: str, owner_id: str) -> FileRecord:
        """Unregister a file and delete it from disk.

        Raises:
            NotFoundError: If the file is absent or not owned by the caller.
        """
        async with self._lock:
            record = self.get_file_or_raise(file_id, owner_id)
            del self._records[file_id]
        if os.path.isfile(record.path):
            await asyncio.to_thread(os.remove, record.path)
        return record
