from __future__ import annotations

import json
from typing import Any, AsyncIterator, Dict, Optional

import aiohttp
import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """HTTP and WebSocket client for the mattori_home service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def get_ac_status(self) -> Dict[str, Any]:
        try:
            response = self._client.get("/ac")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def set_ac_status(self, status: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self._client.put("/ac", json=status)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def set_sea_level_pressure(self, hpa: float) -> Dict[str, Any]:
        try:
            response = self._client.put("/atmosphere/sea-level-pressure", json={"hpa": hpa})
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    async def read_atmosphere(
        self, features: Dict[str, bool], count: Optional[int] = None
    ) -> AsyncIterator[Dict[str, Any]]:
        """Open the atmosphere stream, send ``features`` and yield readings."""
        received = 0
        async with aiohttp.ClientSession() as session:
            async with session.ws_connect(self._config.stream_url) as ws:
                await ws.send_str(json.dumps(features))
                async for message in ws:
                    if message.type == aiohttp.WSMsgType.TEXT:
                        yield json.loads(message.data)
                        received += 1
                        if count is not None and received >= count:
                            return
                    elif message.type == aiohttp.WSMsgType.ERROR:
                        raise typer.BadParameter(f"Stream failed: {ws.exception()}")
                if ws.close_code not in (None, aiohttp.WSCloseCode.OK):
                    typer.secho(
                        f"Stream closed by server ({ws.close_code}).",
                        fg=typer.colors.RED,
                        err=True,
                    )
                    raise typer.Exit(code=1)

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except ValueError:
            detail = exc.response.text.strip()
        if not isinstance(detail, str) and detail is not None:
            detail = json.dumps(detail)
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
