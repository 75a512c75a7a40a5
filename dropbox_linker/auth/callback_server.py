"""
Short-lived loopback HTTP listener for the OAuth redirect.

Serves a single Starlette route on localhost via uvicorn, resolves a future
with the query parameters of the first callback request, then shuts down.
"""

import asyncio
import logging
import socket
from html import escape
from typing import Dict, List, Optional

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import HTMLResponse
from starlette.routing import Route

from dropbox_linker.auth.constants import CALLBACK_HOST, CALLBACK_PATH, CALLBACK_PORT, CALLBACK_TIMEOUT_SECONDS
from dropbox_linker.exceptions import CallbackServerError, CallbackTimeoutError

_PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <title>Dropbox Authentication</title>
    <style>
        body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
               display: flex; justify-content: center; align-items: center;
               height: 100vh; margin: 0; background: #f5f5f5; }}
        .message {{ text-align: center; padding: 40px; background: white;
                    border-radius: 12px; box-shadow: 0 2px 8px rgba(0,0,0,0.1); }}
        .icon {{ font-size: 48px; margin-bottom: 16px; }}
        .text {{ color: {color}; font-size: 18px; }}
    </style>
</head>
<body>
    <div class="message">
        <div class="icon">{icon}</div>
        <div class="text">{message}</div>
    </div>
</body>
</html>"""


def render_callback_page(success: bool) -> str:
    """Static confirmation page shown in the browser after the redirect."""
    if success:
        message, color, icon = "Authentication successful! You can close this window.", "#28a745", "&#10003;"
    else:
        message, color, icon = "Authentication failed. Please try again.", "#dc3545", "&#10007;"
    return _PAGE_TEMPLATE.format(message=escape(message), color=color, icon=icon)


class CallbackServer:
    """Receives exactly one OAuth redirect on the loopback interface."""

    def __init__(self, port: int = CALLBACK_PORT, host: str = CALLBACK_HOST):
        self.port = port
        self.host = host
        self.logger = logging.getLogger(__name__)
        self._result: Optional[asyncio.Future] = None
        self._server: Optional[uvicorn.Server] = None
        self._serve_task: Optional[asyncio.Task] = None
        self._sockets: List[socket.socket] = []

    def _build_app(self) -> Starlette:
        return Starlette(routes=[Route(CALLBACK_PATH, self._handle_callback, methods=["GET"])])

    async def _handle_callback(self, request: Request) -> HTMLResponse:
        params = dict(request.query_params)
        if self._result is not None and not self._result.done():
            self._result.set_result(params)
        else:
            self.logger.debug("Ignoring additional callback request")
        return HTMLResponse(render_callback_page("code" in params))

    def _bind_sockets(self) -> List[socket.socket]:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
        except OSError as e:
            sock.close()
            raise CallbackServerError(f"Could not listen on {self.host}:{self.port}: {e}") from e
        sockets = [sock]

        # Browsers may resolve "localhost" to ::1; listen there too when possible
        if self.host == CALLBACK_HOST and socket.has_ipv6:
            bound_port = sock.getsockname()[1]
            try:
                sock6 = socket.socket(socket.AF_INET6, socket.SOCK_STREAM)
            except OSError:
                self.logger.debug("IPv6 unavailable; listening on IPv4 only")
                return sockets
            try:
                sock6.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                sock6.bind(("::1", bound_port))
                sockets.append(sock6)
            except OSError:
                sock6.close()
                self.logger.debug("IPv6 loopback unavailable; listening on IPv4 only")
        return sockets

    @property
    def bound_port(self) -> Optional[int]:
        """Port actually bound, which differs from ``port`` when it was 0."""
        if not self._sockets:
            return None
        return self._sockets[0].getsockname()[1]

    async def start(self) -> None:
        """
        Bind the port and start serving.

        Raises:
            CallbackServerError: If the port cannot be bound or the server fails to start
        """
        if self._serve_task is not None:
            raise CallbackServerError("Callback server already started")

        self._sockets = self._bind_sockets()
        self._result = asyncio.get_running_loop().create_future()

        config = uvicorn.Config(self._build_app(), log_config=None, access_log=False, lifespan="off")
        self._server = uvicorn.Server(config)
        self._serve_task = asyncio.create_task(self._server.serve(sockets=self._sockets))

        while not self._server.started:
            if self._serve_task.done():
                await self.stop()
                raise CallbackServerError(f"Callback server on port {self.port} failed to start")
            await asyncio.sleep(0.01)
        self.logger.debug(f"Listening for OAuth callback on port {self.port}")

    async def wait_for_callback(self, timeout: float = CALLBACK_TIMEOUT_SECONDS) -> Dict[str, str]:
        """
        Wait for the browser redirect.

        Args:
            timeout: Seconds to wait before giving up

        Returns:
            Query parameters of the callback request

        Raises:
            CallbackTimeoutError: If nothing arrives within the timeout
        """
        if self._result is None:
            raise CallbackServerError("Callback server not started")
        try:
            return await asyncio.wait_for(asyncio.shield(self._result), timeout)
        except asyncio.TimeoutError:
            raise CallbackTimeoutError(timeout) from None

    async def stop(self) -> None:
        """Shut the listener down and release the port. Safe to call twice."""
        if self._server is not None:
            self._server.should_exit = True
        if self._serve_task is not None:
            try:
                await self._serve_task
            except Exception as e:
                self.logger.debug(f"Callback server exited with error: {e}")
            self._serve_task = None
        for sock in self._sockets:
            sock.close()
        self._sockets = []
        if self._result is not None and not self._result.done():
            self._result.cancel()
        self._server = None

    async def __aenter__(self) -> "CallbackServer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
