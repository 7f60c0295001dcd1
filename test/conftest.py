from __future__ import annotations

import typing
from concurrent.futures import ThreadPoolExecutor

import pytest


@pytest.fixture()
def executor() -> typing.Generator[ThreadPoolExecutor, None, None]:
    pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="test-agent")
    yield pool
    pool.shutdown(wait=True)
