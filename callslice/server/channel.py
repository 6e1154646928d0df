"""Named-pipe request channel for the daemon.

The daemon reads records from a FIFO opened non-blocking and waits on it
through a selector, so every receive blocks for at most its timeout. When
the last writer closes its end, a FIFO descriptor stays readable at EOF;
the channel then reopens the FIFO so the next wait blocks again. The new
descriptor is opened before the old one is closed, which keeps the pipe
alive and anything a new writer already queued.
"""

from __future__ import annotations

import codecs
import errno
import logging
import os
import selectors
import stat
from collections import deque
from pathlib import Path

from callslice.core.exceptions import ResourceError
from callslice.server.protocol import RECORD_SEPARATOR

logger = logging.getLogger(__name__)

_READ_SIZE = 65536


class FifoChannel:
    """Receiving end of the daemon's request FIFO."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._fd: int | None = None
        self._selector: selectors.BaseSelector | None = None
        self._created = False
        self._buffer = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending: deque[str] = deque()

    def open(self) -> FifoChannel:
        """Create the FIFO if needed and open it for reading."""
        try:
            if not self.path.exists():
                self.path.parent.mkdir(parents=True, exist_ok=True)
                os.mkfifo(self.path, 0o600)
                self._created = True
            elif not stat.S_ISFIFO(self.path.stat().st_mode):
                raise ResourceError(f"{self.path} exists and is not a FIFO")
            self._fd = self._open_fd()
        except OSError as e:
            raise ResourceError(f"Cannot open request channel {self.path}: {e}") from e

        self._selector = selectors.DefaultSelector()
        self._selector.register(self._fd, selectors.EVENT_READ)
        logger.debug("Opened request channel %s", self.path)
        return self

    def _open_fd(self) -> int:
        return os.open(self.path, os.O_RDONLY | os.O_NONBLOCK)

    def reopen(self) -> None:
        """Replace the read descriptor so the next wait blocks correctly."""
        if self._fd is None or self._selector is None:
            raise ResourceError("Request channel is not open")
        try:
            new_fd = self._open_fd()
        except OSError as e:
            raise ResourceError(f"Cannot reopen request channel {self.path}: {e}") from e
        self._selector.unregister(self._fd)
        os.close(self._fd)
        self._fd = new_fd
        self._selector.register(self._fd, selectors.EVENT_READ)

    def receive(self, timeout: float) -> str | None:
        """Wait up to ``timeout`` seconds for the next complete record."""
        if self._pending:
            return self._pending.popleft()
        if self._fd is None or self._selector is None:
            raise ResourceError("Request channel is not open")

        if not self._selector.select(timeout):
            return None
        try:
            data = os.read(self._fd, _READ_SIZE)
        except BlockingIOError:
            return None
        except OSError as e:
            raise ResourceError(f"Cannot read request channel {self.path}: {e}") from e

        if not data:
            # Writer hung up; a trailing unterminated record still counts
            if self._buffer.strip():
                self._pending.append(self._buffer)
            self._buffer = ""
            self._decoder.reset()
            self.reopen()
        else:
            self._buffer += self._decoder.decode(data)
            *records, self._buffer = self._buffer.split(RECORD_SEPARATOR)
            self._pending.extend(r for r in records if r.strip())

        return self._pending.popleft() if self._pending else None

    def close(self) -> None:
        if self._selector is not None:
            self._selector.close()
            self._selector = None
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None
        if self._created:
            self.path.unlink(missing_ok=True)
            self._created = False

    def __enter__(self) -> FifoChannel:
        return self.open()

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        self.close()


def send_record(path: Path, record: str) -> None:
    """Write one record to a daemon's FIFO.

    Fails with ResourceError when no daemon has the channel open.
    """
    path = Path(path)
    try:
        fd = os.open(path, os.O_WRONLY | os.O_NONBLOCK)
    except FileNotFoundError:
        raise ResourceError(f"No request channel at {path}; is the daemon running?") from None
    except OSError as e:
        if e.errno == errno.ENXIO:
            raise ResourceError(f"No daemon is listening on {path}") from None
        raise ResourceError(f"Cannot open request channel {path}: {e}") from e

    try:
        os.set_blocking(fd, True)
        data = record.encode("utf-8")
        while data:
            written = os.write(fd, data)
            data = data[written:]
    except OSError as e:
        raise ResourceError(f"Cannot write to request channel {path}: {e}") from e
    finally:
        os.close(fd)
