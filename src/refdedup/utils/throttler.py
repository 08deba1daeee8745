import asyncio
from asyncio import TaskGroup, Semaphore


class Throttler:
    """Concurrency throttler that limits the number of simultaneously running tasks.

    schedule() blocks the caller until a permit is free, so a producer iterating a lazy
    sequence never gets more than `concurrency` items ahead of the workers.
    """

    def __init__(self, task_group: TaskGroup, concurrency: int):
        self._task_group = task_group
        self._semaphore = Semaphore(concurrency)

    async def schedule(self, coro, name=None) -> asyncio.Task:
        """Schedule a coroutine to run once a permit is available.

        The permit is released when the coroutine finishes, successfully or not.
        """
        await self._semaphore.acquire()

        async def wrapper():
            try:
                return await coro
            finally:
                self._semaphore.release()

        try:
            return self._task_group.create_task(wrapper(), name=name)
        except BaseException:
            self._semaphore.release()
            coro.close()
            raise
