from pathlib import Path, PurePosixPath

import aiofiles
import aiofiles.os
from loguru import logger

from stripbooth.errors import BlobNotFoundError, ValidationError


class LocalBlobStore:
    """Files under one root directory, addressed by relative POSIX keys."""

    def __init__(self, root, url_prefix: str = "/uploads"):
        self.root = Path(root).resolve()
        self.url_prefix = url_prefix.rstrip("/")

    def normalize_key(self, key: str) -> str:
        if not key:
            raise ValidationError("File path is empty")
        raw = key.replace("\\", "/")
        # records may carry the public URL form
        if self.url_prefix and raw.startswith(self.url_prefix + "/"):
            raw = raw[len(self.url_prefix) + 1:]
        parts = [p for p in PurePosixPath(raw.lstrip("/")).parts if p not in ("", ".")]
        if not parts or ".." in parts:
            raise ValidationError(f"Unsafe file path: {key}", details={"path": key})
        return "/".join(parts)

    def path_for(self, key: str) -> Path:
        return self.root.joinpath(*self.normalize_key(key).split("/"))

    def url_for(self, key: str) -> str:
        return f"{self.url_prefix}/{self.normalize_key(key)}"

    async def exists(self, key: str) -> bool:
        return await aiofiles.os.path.isfile(self.path_for(key))

    async def read(self, key: str) -> bytes:
        path = self.path_for(key)
        try:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()
        except FileNotFoundError as e:
            raise BlobNotFoundError(self.normalize_key(key)) from e

    async def write(self, key: str, data: bytes) -> str:
        path = self.path_for(key)
        await aiofiles.os.makedirs(path.parent, exist_ok=True)
        async with aiofiles.open(path, "wb") as f:
            await f.write(data)
        return self.normalize_key(key)

    async def write_new(self, key: str, data: bytes) -> str:
        """Write to a fresh file; a taken name gets a numeric suffix, nothing is overwritten."""
        normalized = self.normalize_key(key)
        stem, dot, ext = normalized.rpartition(".")
        if not dot:
            stem, ext = normalized, ""

        attempt = 0
        while True:
            candidate = normalized if attempt == 0 else f"{stem}-{attempt}{dot}{ext}"
            path = self.path_for(candidate)
            await aiofiles.os.makedirs(path.parent, exist_ok=True)
            try:
                async with aiofiles.open(path, "xb") as f:
                    await f.write(data)
                return candidate
            except FileExistsError:
                attempt += 1
                logger.debug(f"{candidate} already exists, trying another name")

    async def delete(self, key: str) -> bool:
        try:
            await aiofiles.os.remove(self.path_for(key))
            return True
        except FileNotFoundError:
            logger.warning(f"Could not delete missing file {key}")
            return False
