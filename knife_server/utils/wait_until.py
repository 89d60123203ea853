import time
from typing import Callable


class WaitUntilTimeoutError(Exception):
    pass


def wait_until(predicate: Callable[[], bool], timeout: float = 60, retry_interval: float = 1):
    """Poll ``predicate`` until it returns a truthy value.

    Raises WaitUntilTimeoutError when ``timeout`` seconds pass first.
    """
    deadline = time.time() + timeout
    while True:
        if predicate():
            return
        if time.time() + retry_interval > deadline:
            raise WaitUntilTimeoutError(f"Condition not met within {timeout}s")
        time.sleep(retry_interval)
