from __future__ import annotations

import asyncio
import functools
import inspect
import random
import time
from collections.abc import Callable, Iterator


def _delays(tries: int, base_delay: float, jitter: bool) -> Iterator[float]:
    """Esperas entre intentos: base, 2*base, 4*base... (+ jitter opcional)."""
    delay = base_delay
    for _ in range(max(1, tries) - 1):
        yield delay + (random.uniform(0, delay) if jitter else 0.0)
        delay *= 2


def retry(
    source_type: str,
    tries: int = 3,
    base_delay: float = 0.5,
    jitter: bool = True,
    exceptions: tuple[type[BaseException], ...] = (Exception,),
):
    """
    Decorador de reintentos con backoff exponencial (sync y async).
    - source_type: etiqueta para logs.
    - tries: intentos totales (incluye el primero).
    - exceptions: sólo éstas se reintentan; cualquier otra se propaga en el acto.
    """

    def _wrap(fn: Callable):
        if inspect.iscoroutinefunction(fn):

            @functools.wraps(fn)
            async def _arun(*args, **kwargs):
                from nvrmon.core.logging import logger

                attempt = 0
                for sleep in _delays(tries, base_delay, jitter):
                    attempt += 1
                    try:
                        return await fn(*args, **kwargs)
                    except exceptions as e:
                        logger.warning(
                            "retry/%s attempt=%d err=%r sleep=%.2fs", source_type, attempt, e, sleep
                        )
                    await asyncio.sleep(sleep)
                try:
                    return await fn(*args, **kwargs)
                except exceptions as e:
                    logger.error(
                        "retry/%s exhausted after %d tries: %r", source_type, attempt + 1, e
                    )
                    raise

            return _arun

        @functools.wraps(fn)
        def _run(*args, **kwargs):
            from nvrmon.core.logging import logger

            attempt = 0
            for sleep in _delays(tries, base_delay, jitter):
                attempt += 1
                try:
                    return fn(*args, **kwargs)
                except exceptions as e:
                    logger.warning(
                        "retry/%s attempt=%d err=%r sleep=%.2fs", source_type, attempt, e, sleep
                    )
                time.sleep(sleep)
            try:
                return fn(*args, **kwargs)
            except exceptions as e:
                logger.error("retry/%s exhausted after %d tries: %r", source_type, attempt + 1, e)
                raise

        return _run

    return _wrap
