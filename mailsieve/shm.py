"""Memory shared between processes through mapped files in a temporary directory."""

from __future__ import annotations

import mmap
import os
import tempfile
from types import TracebackType

_BLOCK_SIZE = 8192
_ZERO_BLOCK = bytes(_BLOCK_SIZE)


class ShmError(Exception):
    """The shared file could not be created, mapped or changed."""


class SharedFile:
    """A file in ``tmp_dir`` mapped into memory, so another process can map it too."""

    def __init__(self, tmp_dir: str, prefix: str = "mailsieve") -> None:
        self.tmp_dir = tmp_dir
        self.prefix = prefix
        self.name = ""
        self.size = 0
        self.data: mmap.mmap | None = None
        self._fd = -1

    @property
    def path(self) -> str:
        return os.path.join(self.tmp_dir, self.name)

    def _expand(self, size: int) -> None:
        if size == self.size:
            return
        if size < self.size:
            os.ftruncate(self._fd, size)
            return
        # Write the zeroes out so that a full disk is noticed now.
        os.lseek(self._fd, self.size, os.SEEK_SET)
        remaining = size - self.size
        while remaining > 0:
            chunk = _ZERO_BLOCK[: min(remaining, _BLOCK_SIZE)]
            if os.write(self._fd, chunk) != len(chunk):
                raise OSError("short write")
            remaining -= len(chunk)
        os.fsync(self._fd)

    def _map(self, size: int) -> mmap.mmap:
        data = mmap.mmap(self._fd, size, mmap.MAP_SHARED,
                         mmap.PROT_READ | mmap.PROT_WRITE)
        if hasattr(data, "madvise") and hasattr(mmap, "MADV_SEQUENTIAL"):
            data.madvise(mmap.MADV_SEQUENTIAL)
        return data

    def create(self, size: int) -> mmap.mmap:
        """Create a zero-filled file of ``size`` bytes and map it."""
        if size == 0:
            raise ValueError("zero size")
        try:
            fd, path = tempfile.mkstemp(prefix=f"{self.prefix}.", dir=self.tmp_dir)
        except OSError as exc:
            raise ShmError(f"{self.tmp_dir}: {exc.strerror}") from exc
        self._fd = fd
        self.name = os.path.basename(path)
        self.size = 0
        try:
            self._expand(size)
            self.data = self._map(size)
        except (OSError, ValueError) as exc:
            os.close(fd)
            self._fd = -1
            os.unlink(path)
            self.name = ""
            raise ShmError(f"{path}: {exc}") from exc
        self.size = size
        return self.data

    def close(self) -> None:
        """Unmap and close the file without removing it."""
        if self._fd == -1:
            return
        if self.data is not None:
            self.data.close()
            self.data = None
        os.close(self._fd)
        self._fd = -1

    def destroy(self) -> None:
        """Close and remove the file."""
        if not self.name:
            return
        self.close()
        os.unlink(self.path)
        self.name = ""

    def reopen(self) -> mmap.mmap:
        """Open and map the file again after :meth:`close`."""
        try:
            self._fd = os.open(self.path, os.O_RDWR)
        except OSError as exc:
            raise ShmError(f"{self.path}: {exc.strerror}") from exc
        try:
            self.data = self._map(self.size)
        except (OSError, ValueError) as exc:
            raise ShmError(f"{self.path}: {exc}") from exc
        return self.data

    def resize(self, nmemb: int, size: int) -> mmap.mmap:
        """Grow or shrink the file to ``nmemb * size`` bytes and map it again."""
        if size == 0 or nmemb == 0:
            raise ValueError("zero size")
        new_size = nmemb * size
        if self.data is not None:
            self.data.close()
            self.data = None
        try:
            self._expand(new_size)
            self.data = self._map(new_size)
        except (OSError, ValueError) as exc:
            raise ShmError(f"{self.path}: {exc}") from exc
        self.size = new_size
        return self.data

    def chown(self, uid: int, gid: int) -> None:
        """Give the file to ``uid`` and ``gid``."""
        try:
            os.fchown(self._fd, uid, gid)
        except OSError as exc:
            raise ShmError(f"{self.path}: {exc.strerror}") from exc

    def __enter__(self) -> SharedFile:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.destroy()