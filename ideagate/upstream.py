"""Single, deadline-bounded call to the upstream generation API."""

from __future__ import annotations

import concurrent.futures
import json
import logging
import socket
import threading
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.connectionpool import HTTPConnectionPool, HTTPSConnectionPool

from ideagate.errors import (
    CONFIGURATION_ERROR,
    TIMEOUT_MESSAGE,
    UPSTREAM_MALFORMED,
    UPSTREAM_REJECTED,
    UPSTREAM_TIMEOUT,
    GatewayError,
    classify,
)
from ideagate.models import UpstreamPayload

RESPONSES_URL = "https://api.openai.com/v1/responses"
IMAGES_URL = "https://api.openai.com/v1/images/generations"

# Stay under the ~10s execution ceiling of the hosting function.
DEFAULT_DEADLINE_SECONDS = 9.0

SENSITIVE_HEADERS = {"authorization", "api-key"}

# How long a timed-out call may take to unwind once its socket is shut down.
_ABORT_GRACE_SECONDS = 0.5

_REJECTED_FALLBACKS = {
    "responses": "OpenAI API error ({status})",
    "images": "Image API error",
}


class _TrackingAdapter(HTTPAdapter):
    """``HTTPAdapter`` that remembers every connection it opens.

    ``requests`` gives no handle on the socket of an in-flight call, so the
    pools mounted here record each new connection for :meth:`abort`.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self._lock = threading.Lock()
        self._connections: List[Any] = []
        super().__init__(*args, **kwargs)

    def init_poolmanager(self, *args: Any, **kwargs: Any) -> None:
        super().init_poolmanager(*args, **kwargs)
        self._install_tracking(self.poolmanager)

    def proxy_manager_for(self, proxy: str, **proxy_kwargs: Any) -> Any:
        fresh = proxy not in self.proxy_manager
        manager = super().proxy_manager_for(proxy, **proxy_kwargs)
        # SOCKS managers bring their own pool classes
        if fresh and not proxy.lower().startswith("socks"):
            self._install_tracking(manager)
        return manager

    def _install_tracking(self, manager: Any) -> None:
        adapter = self

        def tracked(pool_cls: Any) -> Any:
            class _TrackedPool(pool_cls):
                def _new_conn(self) -> Any:
                    conn = super()._new_conn()
                    adapter._remember(conn)
                    return conn

            return _TrackedPool

        manager.pool_classes_by_scheme = {
            "http": tracked(HTTPConnectionPool),
            "https": tracked(HTTPSConnectionPool),
        }

    def _remember(self, conn: Any) -> None:
        with self._lock:
            self._connections.append(conn)

    def abort(self) -> None:
        """Shut down every socket opened so far, waking any blocked read."""

        with self._lock:
            connections = list(self._connections)
            self._connections.clear()
        for conn in connections:
            sock = getattr(conn, "sock", None)
            if sock is not None:
                try:
                    sock.shutdown(socket.SHUT_RDWR)
                except OSError:
                    # already closed by the peer or by urllib3
                    pass
            conn.close()


class HttpTransport:
    """Single-use ``requests`` transport.

    ``close`` may be called from another thread while ``send`` is blocked:
    it shuts down the sockets of the call, so the worker's read fails
    immediately instead of waiting on the upstream.
    """

    def __init__(self, session: Optional[requests.Session] = None) -> None:
        self._adapter = _TrackingAdapter()
        self._session = session or requests.Session()
        self._session.mount("https://", self._adapter)
        self._session.mount("http://", self._adapter)

    def send(
        self,
        endpoint: str,
        body: Mapping[str, Any],
        *,
        headers: Dict[str, str],
        timeout: float,
    ) -> Tuple[int, str]:
        response = self._session.post(
            endpoint,
            data=json.dumps(body).encode("utf-8"),
            headers=headers,
            timeout=(timeout, timeout),
        )
        try:
            return response.status_code, response.text
        finally:
            response.close()

    def close(self) -> None:
        self._adapter.abort()
        self._session.close()


class UpstreamInvoker:
    """Issue exactly one upstream request and race it against a deadline."""

    def __init__(
        self,
        *,
        endpoints: Optional[Mapping[str, str]] = None,
        transport_factory: Callable[[], Any] = HttpTransport,
    ) -> None:
        self._endpoints = {"responses": RESPONSES_URL, "images": IMAGES_URL}
        self._endpoints.update(endpoints or {})
        self._transport_factory = transport_factory
        self._logger = logging.getLogger(self.__class__.__name__)

    def invoke(
        self,
        payload: UpstreamPayload,
        credential: Optional[str],
        deadline: float = DEFAULT_DEADLINE_SECONDS,
    ) -> Any:
        """Return the decoded upstream envelope for *payload*.

        Raises :class:`GatewayError` for a missing credential, an expired
        deadline, a non-JSON body, or a non-success status.
        """

        api_key = credential.strip() if isinstance(credential, str) else ""
        if not api_key:
            raise GatewayError(
                CONFIGURATION_ERROR,
                "API key not configured. Set OPENAI_API_KEY in the server environment.",
            )
        if deadline <= 0:
            raise ValueError("deadline must be positive")

        endpoint = self._endpoints[payload.endpoint_kind]
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        self._logger.debug(
            "POST %s model=%s headers=%s deadline=%.1fs",
            endpoint,
            payload.model,
            redact_headers(headers),
            deadline,
        )

        status, raw = self._race(endpoint, payload, headers, deadline)

        try:
            envelope = json.loads(raw)
        except (json.JSONDecodeError, RecursionError):
            self._logger.warning("Upstream returned non-JSON body (status %s)", status)
            raise GatewayError(
                UPSTREAM_MALFORMED,
                f"Upstream returned non-JSON (status {status}).",
                details=raw,
            ) from None

        if not 200 <= status < 300:
            message = _upstream_error_message(envelope) or _REJECTED_FALLBACKS[
                payload.endpoint_kind
            ].format(status=status)
            self._logger.warning("Upstream rejected request: status=%s message=%s", status, message)
            raise GatewayError(
                UPSTREAM_REJECTED,
                message,
                http_status_hint=status,
                details=envelope,
            )

        return envelope

    def _race(
        self,
        endpoint: str,
        payload: UpstreamPayload,
        headers: Dict[str, str],
        deadline: float,
    ) -> Tuple[int, str]:
        transport = self._transport_factory()
        executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="ideagate-upstream"
        )
        future = executor.submit(
            transport.send,
            endpoint,
            payload.to_json(),
            headers=headers,
            timeout=deadline,
        )
        try:
            return future.result(timeout=deadline)
        except concurrent.futures.TimeoutError:
            self._logger.warning("Upstream call exceeded %.1fs deadline; cancelling", deadline)
            transport.close()
            concurrent.futures.wait([future], timeout=_ABORT_GRACE_SECONDS)
            raise GatewayError(UPSTREAM_TIMEOUT, TIMEOUT_MESSAGE) from None
        except requests.RequestException as exc:
            self._logger.warning("Upstream request failed: %s", type(exc).__name__)
            raise classify(exc) from None
        finally:
            transport.close()
            executor.shutdown(wait=False, cancel_futures=True)


def redact_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    return {
        key: "***redacted***" if key.lower() in SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }


def _upstream_error_message(envelope: Any) -> Optional[str]:
    if not isinstance(envelope, dict):
        return None
    error = envelope.get("error")
    if isinstance(error, dict) and isinstance(error.get("message"), str) and error["message"]:
        return error["message"]
    if isinstance(error, str) and error:
        return error
    message = envelope.get("message")
    if isinstance(message, str) and message:
        return message
    return None


__all__ = [
    "DEFAULT_DEADLINE_SECONDS",
    "HttpTransport",
    "IMAGES_URL",
    "RESPONSES_URL",
    "UpstreamInvoker",
    "redact_headers",
]
