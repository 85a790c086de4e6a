"""In-process single-flight guard.

Concurrent callers asking for the same key share one in-flight computation
instead of each scoring and writing the cache.  Scope is one process; across
workers the cache's unique keys keep the last write.
"""

import asyncio
from typing import Any, Awaitable, Callable, Hashable

# Resolved into the shared future when the leader is cancelled
_ABANDONED = object()


class SingleFlight:
    def __init__(self):
        self._inflight: dict[Hashable, asyncio.Future] = {}

    @property
    def pending(self) -> int:
        return len(self._inflight)

    async def do(self, key: Hashable, fn: Callable[[], Awaitable[Any]]) -> Any:
        """Run ``fn`` once per key at a time; followers await the leader's result.

        Exceptions from the leader propagate to every waiter.  A cancelled
        leader only cancels itself: its followers retry, and one of them
        becomes the next leader.
        """
        while True:
            existing = self._inflight.get(key)
            if existing is None:
                break
            result = await asyncio.shield(existing)
            if result is not _ABANDONED:
                return result

        future = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            result = await fn()
        except asyncio.CancelledError:
            future.set_result(_ABANDONED)
            raise
        except Exception as exc:
            future.set_exception(exc)
            # Retrieve so an unawaited failure does not log "exception never retrieved"
            future.exception()
            raise
        else:
            future.set_result(result)
            return result
        finally:
            self._inflight.pop(key, None)
