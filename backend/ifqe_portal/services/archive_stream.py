"""
Bounded in-memory pipe between the zip encoder and the uploader.

The encoder thread writes into it like a file, the upload thread reads
fixed-size chunks out of it. The stream is deliberately unseekable so
``zipfile`` writes data descriptors instead of seeking back.
"""
import queue
import threading
from typing import Optional

from ifqe_portal.core.exceptions import IFQEError

_EOF = object()
_POLL_INTERVAL = 0.1


class ArchiveStreamAborted(IFQEError):
    """The other side of the pipe gave up"""

    def __init__(self, cause: Optional[BaseException] = None):
        reason = f"{type(cause).__name__}: {cause}" if cause is not None else "aborted"
        super().__init__(f"Archive stream aborted ({reason})", code="ARCHIVE_STREAM_ABORTED")
        self.cause = cause


class ArchiveStream:
    """Thread-safe producer/consumer byte pipe with a bounded queue"""

    def __init__(self, chunk_size: int = 256 * 1024, max_chunks: int = 16):
        if chunk_size <= 0 or max_chunks <= 0:
            raise ValueError("chunk_size and max_chunks must be positive")
        self._chunk_size = chunk_size
        self._queue: queue.Queue = queue.Queue(maxsize=max_chunks)
        self._pending = bytearray()
        self._closed = False
        self._aborted = threading.Event()
        self._cause: Optional[BaseException] = None
        self.bytes_written = 0

    # -- file-like API used by zipfile ---------------------------------

    def writable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def write(self, data) -> int:
        if self._closed:
            raise ValueError("write to closed archive stream")
        self._raise_if_aborted()

        size = len(data)
        self._pending.extend(data)
        self.bytes_written += size
        while len(self._pending) >= self._chunk_size:
            self._put(bytes(self._pending[:self._chunk_size]))
            del self._pending[:self._chunk_size]
        return size

    def flush(self) -> None:
        pass

    def close(self) -> None:
        """Push buffered bytes and signal end of stream"""
        if self._closed:
            return
        self._closed = True
        if self._pending:
            self._put(bytes(self._pending))
            self._pending.clear()
        self._put(_EOF)

    # -- consumer side -------------------------------------------------

    def read_chunk(self) -> Optional[bytes]:
        """Next chunk, or None once the producer closed the stream"""
        while True:
            self._raise_if_aborted()
            try:
                item = self._queue.get(timeout=_POLL_INTERVAL)
            except queue.Empty:
                continue
            if item is _EOF:
                return None
            return item

    # -- cancellation --------------------------------------------------

    def abort(self, cause: Optional[BaseException] = None) -> None:
        """Wake both sides; their next call raises ArchiveStreamAborted"""
        if self._cause is None:
            self._cause = cause
        self._aborted.set()

    def _put(self, item) -> None:
        while True:
            self._raise_if_aborted()
            try:
                self._queue.put(item, timeout=_POLL_INTERVAL)
                return
            except queue.Full:
                continue

    def _raise_if_aborted(self) -> None:
        if self._aborted.is_set():
            raise ArchiveStreamAborted(self._cause)
