"""
Shared pytest hooks and fixtures.

Runs `async def` tests on a fresh event loop when no async plugin
(pytest-asyncio/anyio) is installed, and provides fake HTTP responses so
client tests never touch the network.
"""
import asyncio
import inspect
import logging
from typing import Any, Dict, Optional
from unittest.mock import Mock

import pytest
import requests


def pytest_pyfunc_call(pyfuncitem):  # type: ignore[override]
    """
    Run coroutine tests using a local event loop when pytest lacks async plugins.

    Returns True when the async test was executed so pytest skips its default
    pyfunc execution path; otherwise returns None to let pytest handle sync tests.
    """
    test_obj = pyfuncitem.obj
    if not inspect.iscoroutinefunction(test_obj):
        return None

    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        kwargs: Dict[str, Any] = {
            name: pyfuncitem.funcargs[name]
            for name in pyfuncitem._fixtureinfo.argnames
        }
        loop.run_until_complete(test_obj(**kwargs))
    finally:
        asyncio.set_event_loop(None)
        loop.close()
    return True


def make_response(
    status_code: int = 200,
    text: str = "",
    json_data: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None,
) -> Mock:
    """Mock ``requests.Response`` with the attributes the clients read."""
    response = Mock(spec=requests.Response)
    response.status_code = status_code
    response.text = text
    response.reason = "OK" if status_code < 400 else "Error"
    response.headers = headers or {}
    if json_data is None:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def response_factory():
    return make_response


@pytest.fixture
def mock_session():
    """A ``requests.Session`` stand-in; set ``.get.side_effect`` per test."""
    return Mock(spec=requests.Session)


@pytest.fixture
def restore_root_logging():
    """Drop handlers installed by ``configure_logging`` during a test."""
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in before:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
