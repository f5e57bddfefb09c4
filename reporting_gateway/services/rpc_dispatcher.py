"""Bounded-time invocation of data service procedures."""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import httpx

from reporting_gateway.clients.service_client import DataStoreError

logger = logging.getLogger(__name__)


class RpcStatus(str, Enum):
    OK = "ok"
    ERROR = "error"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class RpcResult:
    """Normalized outcome of a procedure call."""

    status: RpcStatus
    data: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is RpcStatus.OK

    @classmethod
    def success(cls, data: Any) -> "RpcResult":
        return cls(status=RpcStatus.OK, data=data)

    @classmethod
    def failure(cls, message: str) -> "RpcResult":
        return cls(status=RpcStatus.ERROR, error=message)

    @classmethod
    def timeout(cls) -> "RpcResult":
        return cls(status=RpcStatus.TIMEOUT, error="rpc_timeout")


class RpcDispatcher:
    """Calls named procedures with a deadline and never raises for downstream failures."""

    def __init__(self, data_store, timeout_ms: int = 10000):
        """Initialize dispatcher.

        Args:
            data_store: Object exposing ``async rpc(name, params)``
            timeout_ms: Default deadline per call
        """
        self.data_store = data_store
        self.timeout_ms = timeout_ms

    async def call(
        self, name: str, params: Dict[str, Any], timeout_ms: Optional[int] = None
    ) -> RpcResult:
        """Invoke ``name`` and normalize the outcome.

        The in-flight call is cancelled once the deadline passes, so a hung
        downstream never holds the request.

        Args:
            name: Procedure name
            params: Procedure arguments
            timeout_ms: Deadline override

        Returns:
            RpcResult (ok, error or timeout)
        """
        deadline_ms = timeout_ms if timeout_ms is not None else self.timeout_ms
        start_time = time.monotonic()

        try:
            data = await asyncio.wait_for(
                self.data_store.rpc(name, params), timeout=deadline_ms / 1000.0
            )
        except asyncio.TimeoutError:
            logger.error(f"RPC {name} timed out after {deadline_ms}ms")
            return RpcResult.timeout()
        except httpx.TimeoutException:
            logger.error(f"RPC {name} transport timeout")
            return RpcResult.timeout()
        except DataStoreError as e:
            logger.error(f"RPC {name} failed: {e.message}")
            return RpcResult.failure(e.message or "rpc_error")
        except httpx.HTTPError as e:
            logger.error(f"RPC {name} request failed: {e}")
            return RpcResult.failure(str(e) or "rpc_exception")
        except Exception as e:
            logger.exception(f"RPC {name} raised unexpectedly: {e}")
            return RpcResult.failure(str(e) or "rpc_exception")

        latency_ms = (time.monotonic() - start_time) * 1000
        logger.info(f"RPC {name} completed in {latency_ms:.2f}ms")
        return RpcResult.success(data)
