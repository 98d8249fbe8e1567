# retry_util.py
# 重試用盡時回傳 Failure，不丟例外；只有 InvalidArgument 會直接往外拋。
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from errors import ClassifiedError, InvalidArgument, RetryExhausted, classify

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
BACKOFF_STEP_SEC = 2.0


def linear_backoff(failed_attempt: int) -> float:
    """第 n 次失敗後等待 n * 2 秒（2s, 4s, 6s ...），無 jitter、無上限。"""
    return failed_attempt * BACKOFF_STEP_SEC


@dataclass
class AttemptRecord:
    number: int
    waited: float
    outcome: Any = None
    ok: bool = False


@dataclass
class Success:
    payload: Any
    attempts: list[AttemptRecord] = field(default_factory=list)
    ok = True

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)

    def unwrap(self) -> Any:
        return self.payload


@dataclass
class Failure:
    error: ClassifiedError
    attempts: list[AttemptRecord] = field(default_factory=list)
    ok = False

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)

    def unwrap(self) -> Any:
        raise RetryExhausted(self.error, self.attempt_count)


Result = Success | Failure


def _check_args(action, max_attempts) -> None:
    if not callable(action):
        raise InvalidArgument("action must be callable")
    if isinstance(max_attempts, bool) or not isinstance(max_attempts, int) or max_attempts < 1:
        raise InvalidArgument(f"max_attempts must be a positive int, got {max_attempts!r}")


def _record_failure(rec: AttemptRecord, exc: Exception, max_attempts: int, label: str) -> ClassifiedError:
    err = classify(exc)
    rec.outcome = err
    log = logger.error if rec.number == max_attempts else logger.warning
    log("%s attempt %d/%d failed (%s): %s", label, rec.number, max_attempts, err.kind.value, err.message)
    return err


def invoke_with_retry(
    action: Callable[[], Any],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    *,
    backoff: Callable[[int], float] = linear_backoff,
    sleep: Callable[[float], Any] | None = None,
    label: str | None = None,
) -> Result:
    _check_args(action, max_attempts)
    label = label or getattr(action, "__name__", "call")
    sleep = sleep or time.sleep
    attempts: list[AttemptRecord] = []
    waited = 0.0
    err: ClassifiedError | None = None

    for n in range(1, max_attempts + 1):
        if n > 1:
            waited = backoff(n - 1)
            logger.info("%s waiting %.1fs before attempt %d", label, waited, n)
            sleep(waited)
        rec = AttemptRecord(number=n, waited=waited)
        attempts.append(rec)
        logger.info("%s attempt %d/%d", label, n, max_attempts)
        try:
            payload = action()
        except InvalidArgument:
            raise
        except Exception as e:
            err = _record_failure(rec, e, max_attempts, label)
            continue
        rec.outcome, rec.ok = payload, True
        return Success(payload, attempts)

    return Failure(err, attempts)


async def invoke_with_retry_async(
    action: Callable[[], Awaitable[Any]],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    *,
    backoff: Callable[[int], float] = linear_backoff,
    sleep: Callable[[float], Awaitable[Any]] | None = None,
    label: str | None = None,
) -> Result:
    """Same loop as ``invoke_with_retry``; the wait only suspends this task."""
    _check_args(action, max_attempts)
    label = label or getattr(action, "__name__", "call")
    sleep = sleep or asyncio.sleep
    attempts: list[AttemptRecord] = []
    waited = 0.0
    err: ClassifiedError | None = None

    for n in range(1, max_attempts + 1):
        if n > 1:
            waited = backoff(n - 1)
            logger.info("%s waiting %.1fs before attempt %d", label, waited, n)
            await sleep(waited)
        rec = AttemptRecord(number=n, waited=waited)
        attempts.append(rec)
        logger.info("%s attempt %d/%d", label, n, max_attempts)
        try:
            payload = await action()
        except InvalidArgument:
            raise
        except Exception as e:
            err = _record_failure(rec, e, max_attempts, label)
            continue
        rec.outcome, rec.ok = payload, True
        return Success(payload, attempts)

    return Failure(err, attempts)
