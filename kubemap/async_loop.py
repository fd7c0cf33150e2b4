import asyncio
from threading import Event, Thread
from typing import Any


class AsyncLoop:
    """An event loop running on its own thread, driven from sync code."""

    def __init__(self, *, loop: asyncio.AbstractEventLoop, thread: Thread) -> None:
        self.loop = loop
        self.thread = thread

    def get_loop(self) -> asyncio.AbstractEventLoop:
        return self.loop

    def run_coro_until_completion(self, coro) -> Any:
        fut = asyncio.run_coroutine_threadsafe(coro, self.loop)
        return fut.result()

    def stop(self) -> None:
        if not self.loop.is_running():
            return

        self.loop.call_soon_threadsafe(self.loop.stop)
        self.thread.join()


def launch_in_background_thread() -> AsyncLoop:
    loop = asyncio.new_event_loop()
    initialized_event = Event()

    def run() -> None:
        asyncio.set_event_loop(loop)
        loop.call_soon(initialized_event.set)
        try:
            loop.run_forever()
        finally:
            loop.close()

    thread = Thread(target=run, name="async-loop", daemon=True)
    thread.start()

    # wait until the loop is running on the other thread and ready to be used
    initialized_event.wait()

    return AsyncLoop(loop=loop, thread=thread)
