"""
tailer.py

The FileTailer control loop.

Each cycle opens the file, arms a watch, checks that both refer to the
same inode, drains what is already there and then drains again on every
change event. Whenever the path stops pointing at the open file the
cycle is torn down and started again from scratch.
"""

import logging
from typing import AsyncIterator, Optional

from .events import CHANGE, RENAME
from .lines import DEFAULT_CHUNK_SIZE, FileIdentity, OpenFile, open_file, read_lines
from .watcher import (
    DEFAULT_RETRY_INTERVAL,
    BootstrapControl,
    WatchSession,
    setup_watcher,
    stat_path,
    watchdog_source,
)


class FileTailer:
    """
    Follow one file across rotation, yielding CRLF-terminated lines.

    ``logger`` only needs an ``info(msg, *args)`` method.
    """

    def __init__(
        self,
        filepath: str,
        logger=None,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
        arm=None,
    ):
        self.filepath = filepath
        self.logger = logger if logger is not None else logging.getLogger("filetailer")
        self.chunk_size = chunk_size
        self.retry_interval = retry_interval
        self.arm = arm if arm is not None else watchdog_source

        self.watcher: Optional[WatchSession] = None
        self.watcher_setup: Optional[BootstrapControl] = None
        self.descriptor: Optional[OpenFile] = None
        self.watching = False
        self._stopped = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.stop()

    async def watch(self) -> AsyncIterator[str]:
        if self.watching:
            raise RuntimeError(f"Can't watch {self.filepath} multiple times")
        self.watching = True
        self._stopped = False
        try:
            while not self._stopped:
                descriptor = self.descriptor = await open_file(self.filepath)

                watcher = await self._setup_watcher()
                if watcher is None:
                    # stop() was called during the bootstrap
                    break

                if descriptor is None:
                    descriptor = self.descriptor = await open_file(self.filepath)
                else:
                    async for line in self._drain(descriptor):
                        yield line

                if descriptor is None:
                    self.logger.info("File deleted after watch, re-tailing")
                    self._release()
                    continue

                if descriptor.identity != watcher.identity:
                    self.logger.info("File mismatch between fd and watch, re-tailing")
                    await self._close_descriptor()
                    self._release()
                    continue

                self.logger.info("Now watching file %s for changes", self.filepath)
                re_watch = False
                truncated = False

                async for event in watcher:
                    if self._stopped:
                        break
                    new_stat = await stat_path(self.filepath)
                    if not re_watch:
                        if new_stat is None or FileIdentity.from_stat(new_stat) != descriptor.identity:
                            self.logger.info("File %s went away, re-tailing", event.filename)
                            # queued events are still delivered after the watch closes
                            self._release()
                            re_watch = True
                        elif new_stat.st_size < descriptor.offset:
                            self.logger.info("File %s was truncated, re-tailing", event.filename)
                            self._release()
                            re_watch = truncated = True

                    if truncated:
                        # the old offset points past the new content
                        continue

                    if event.kind == CHANGE:
                        self.logger.info("File %s changed, reading next data", event.filename)
                    elif event.kind == RENAME:
                        self.logger.info("File %s was renamed", event.filename)

                    async for line in self._drain(descriptor):
                        yield line

                await self._close_descriptor()
                if not re_watch:
                    break
        finally:
            await self._close_descriptor()
            self.stop()
            self._stopped = False
            self.watching = False

    def stop(self) -> None:
        """End watch(). Safe to call at any time and more than once."""
        if self.watching:
            self._stopped = True
        self._release()

    def _release(self) -> None:
        if self.watcher_setup is not None:
            self.watcher_setup.cancel()
            self.watcher_setup = None
        if self.watcher is not None:
            self.watcher.close()
            self.watcher = None

    async def _drain(self, descriptor: OpenFile) -> AsyncIterator[str]:
        async for line in read_lines(descriptor, self.chunk_size):
            if self._stopped:
                break
            yield line

    async def _close_descriptor(self) -> None:
        if self.descriptor is not None:
            descriptor, self.descriptor = self.descriptor, None
            await descriptor.close()

    async def _setup_watcher(self) -> Optional[WatchSession]:
        if self._stopped:
            return None
        control = self.watcher_setup = BootstrapControl()
        self.watcher = None
        try:
            self.watcher = await setup_watcher(
                self.filepath, control, arm=self.arm, retry_interval=self.retry_interval
            )
        finally:
            if self.watcher_setup is control:
                self.watcher_setup = None
        return self.watcher
