import asyncio
import filecmp
import hashlib
import logging
import multiprocessing
from multiprocessing.pool import Pool
import pathlib
import signal
from typing import Awaitable

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1024 * 1024


def compute_digest_for_path(path: pathlib.Path, algorithm: str = 'sha256', chunk_size: int = DEFAULT_CHUNK_SIZE):
    """Digest the whole content of path, reading at most chunk_size bytes at a time."""
    digest = hashlib.new(algorithm)
    with open(path, "rb") as f:
        while chunk := f.read(chunk_size):
            digest.update(chunk)
    return digest.digest()


def compare_file_content(a: pathlib.Path, b: pathlib.Path):
    return filecmp.cmp(a, b, shallow=False)


def _settle(future: asyncio.Future, value=None, exception: BaseException | None = None):
    # The awaiting task may have been cancelled while the worker was busy.
    if future.done():
        return
    if exception is not None:
        future.set_exception(exception)
    else:
        future.set_result(value)


def _post(loop: asyncio.AbstractEventLoop, future: asyncio.Future, value=None, exception: BaseException | None = None):
    try:
        loop.call_soon_threadsafe(_settle, future, value, exception)
    except RuntimeError:
        # The run ended and its event loop is closed; nobody awaits this result.
        logger.debug("Dropping a worker result for a closed event loop")


def _ignore_interrupts():
    # Ctrl-C is delivered to the whole process group; only the parent reacts to it.
    signal.signal(signal.SIGINT, signal.SIG_IGN)


class Processor:
    def __init__(self, concurrency: int | None = None, chunk_size: int = DEFAULT_CHUNK_SIZE):
        if concurrency is None:
            concurrency = multiprocessing.cpu_count()

        self._concurrency = concurrency
        self._chunk_size = chunk_size
        self._pool: Pool = Pool(self._concurrency, initializer=_ignore_interrupts)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.close()
        else:
            self.terminate()

    def close(self):
        """Wait for outstanding work, then stop the workers."""
        self._pool.close()
        self._pool.join()

    def terminate(self):
        """Stop the workers immediately, abandoning outstanding work."""
        self._pool.terminate()
        self._pool.join()

    @property
    def concurrency(self):
        return self._concurrency

    def sha256(self, path: pathlib.Path) -> Awaitable[bytes]:
        return self.digest(path, 'sha256')

    def blake2b(self, path: pathlib.Path) -> Awaitable[bytes]:
        return self.digest(path, 'blake2b')

    def digest(self, path: pathlib.Path, algorithm: str) -> Awaitable[bytes]:
        logger.info(f"Starting {algorithm} computation for: {path}")

        async def log_and_compute():
            result = await self._evaluate(compute_digest_for_path, path, algorithm, self._chunk_size)
            logger.info(f"Completed {algorithm} computation for: {path}")
            return result

        return log_and_compute()

    def compare_content(self, a: pathlib.Path, b: pathlib.Path) -> Awaitable[bool]:
        """Compare content of two files.

        :return: True if two files are equal, False otherwise."""
        logger.info(f"Starting content comparison: {a} vs {b}")

        async def log_and_compare():
            result = await self._evaluate(compare_file_content, a, b)
            logger.info(f"Completed content comparison: {a} vs {b} (equal={result})")
            return result

        return log_and_compare()

    def _evaluate(self, func, *args):
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        self._pool.apply_async(func, args=args,
                               callback=lambda v: _post(loop, future, v),
                               error_callback=lambda e: _post(loop, future, None, e))

        return future
