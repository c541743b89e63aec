from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the history service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def get_current(self) -> List[Dict[str, Any]]:
        return self._get("/current")

    def get_aggregated(
        self,
        tag: Optional[int] = None,
        date: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params = {
            key: value
            for key, value in (("tag_id", tag), ("date", date), ("limit", limit))
            if value is not None
        }
        return self._get("/history_aggregated", params=params)

    def run_aggregation(self) -> Dict[str, Any]:
        return self._request("POST", "/tasks/aggregate")

    def run_cleanup(self, days: Optional[int] = None) -> Dict[str, Any]:
        params = {"days": days} if days is not None else None
        return self._request("POST", "/tasks/clean", params=params)

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._request("GET", path, params=params)

    def _request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = self._client.request(method, path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}", fg=typer.colors.RED, err=True
            )
            raise typer.Exit(code=1)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
