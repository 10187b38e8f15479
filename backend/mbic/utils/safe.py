"""
Per-panel failure isolation.

Dashboard pages fan out several independent metric calls; each one is wrapped
so that a failing procedure degrades to its fallback value instead of failing
the whole response.
"""
import logging
from typing import Any, Callable, Generic, Optional, TypeVar

from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SafeResult(BaseModel, Generic[T]):
    data: T
    ok: bool = True
    error: Optional[str] = None
    count: int = 0


def _count(value: Any) -> int:
    if isinstance(value, (list, tuple)):
        return len(value)
    return 1 if value else 0


async def safe_call(
    label: str,
    fn: Callable[..., Any],
    *args: Any,
    fallback: Any,
    **kwargs: Any,
) -> SafeResult:
    """Run blocking ``fn`` in the threadpool; exceptions become a failed SafeResult."""
    try:
        data = await run_in_threadpool(fn, *args, **kwargs)
    except Exception as exc:  # noqa: BLE001
        logger.error("Server fetch failed (%s): %s", label, exc)
        return SafeResult(data=fallback, ok=False, error=str(exc), count=0)

    if data is None:
        data = fallback
    return SafeResult(data=data, ok=True, count=_count(data))
