"""
Test utilities and helper functions for mcbridge testing.
"""
import asyncio
import json
from typing import Any, Callable, Dict, Optional


class AsyncTestHelper:
    """Helper class for async testing operations."""

    @staticmethod
    async def wait_for_condition(condition: Callable[[], bool], timeout: float = 1.0) -> bool:
        """Wait for a condition to become true."""
        loop = asyncio.get_running_loop()
        start_time = loop.time()
        while loop.time() - start_time < timeout:
            if condition():
                return True
            await asyncio.sleep(0.01)
        return condition()


class FrameTestHelper:
    """Helper class for building inbound game frames."""

    @staticmethod
    def envelope(purpose: str, body: Optional[Dict[str, Any]] = None, **header: Any) -> str:
        """Build a JSON envelope the way the game sends it."""
        full_header = {
            "requestId": "00000000-0000-0000-0000-000000000000",
            "messagePurpose": purpose,
            "version": 1,
            "messageType": "commandResponse" if purpose == "commandResponse" else "event",
        }
        full_header.update(header)
        return json.dumps({"header": full_header, "body": body or {}})

    @staticmethod
    def event(body: Dict[str, Any], **header: Any) -> str:
        return FrameTestHelper.envelope("event", body, **header)
