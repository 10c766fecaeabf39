"""
lines.py

Open file handles and the line splitter for filetailer.

An OpenFile is owned by exactly one tailing cycle. Its remainder buffer
holds text that has been read but is not yet terminated by
LINE_SEPARATOR, and is thrown away together with the handle when the
file is rotated.
"""

import asyncio
import codecs
import os
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional, Tuple

import aiofiles

LINE_SEPARATOR = "\r\n"
DEFAULT_CHUNK_SIZE = 1024


@dataclass(frozen=True)
class FileIdentity:
    """Device + inode pair naming one on-disk file, independent of its path."""

    device: int
    inode: int

    @classmethod
    def from_stat(cls, st: os.stat_result) -> "FileIdentity":
        return cls(st.st_dev, st.st_ino)


class OpenFile:
    """
    A read handle plus the stat snapshot taken when it was opened.

    ``offset`` counts the bytes read so far.
    """

    def __init__(self, handle, stat: os.stat_result):
        self.handle = handle
        self.stat = stat
        self.identity = FileIdentity.from_stat(stat)
        self.buffer = ""
        self.offset = 0
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def decode(self, chunk: bytes) -> str:
        return self._decoder.decode(chunk)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.handle.close()


async def open_file(filepath: str) -> Optional[OpenFile]:
    """
    Open ``filepath`` for reading.

    Returns None when the file does not exist. Any other OSError propagates.
    """
    try:
        handle = await aiofiles.open(filepath, "rb")
    except FileNotFoundError:
        return None

    try:
        loop = asyncio.get_running_loop()
        stat = await loop.run_in_executor(None, os.fstat, handle.fileno())
    except BaseException:
        await handle.close()
        raise
    return OpenFile(handle, stat)


def split_lines(buffer: str) -> Tuple[List[str], str]:
    """Split ``buffer`` into complete lines and the unterminated tail."""
    parts = buffer.split(LINE_SEPARATOR)
    remainder = parts.pop()
    return parts, remainder


async def read_lines(
    open_file: OpenFile, chunk_size: int = DEFAULT_CHUNK_SIZE
) -> AsyncIterator[str]:
    """
    Yield every complete line currently readable from ``open_file``.

    Stops at the first empty read. Calling it again later resumes from
    the handle's offset and the stored remainder.
    """
    while True:
        chunk = await open_file.handle.read(chunk_size)
        if not chunk:
            break
        open_file.offset += len(chunk)
        lines, open_file.buffer = split_lines(open_file.buffer + open_file.decode(chunk))
        for line in lines:
            yield line
