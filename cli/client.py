from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the ingest service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def list_sensors(self, provider: Optional[str] = None, registered: bool = False) -> Any:
        if registered:
            path = f"/{provider}/sensors" if provider else "/sensors/registered"
        else:
            path = f"/sensors/{provider}" if provider else "/sensors"
        return self._get(path)

    def purpleair_history(
        self,
        sensor_index: int,
        start_timestamp: Optional[int] = None,
        average: Optional[int] = None,
        fields: Optional[str] = None,
        time_range: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = {
            "start_timestamp": start_timestamp,
            "average": average,
            "fields": fields,
            "range": time_range,
        }
        return self._get(
            f"/purpleair/sensors/{sensor_index}/history",
            params={key: value for key, value in params.items() if value is not None},
        )

    def acurite_live(
        self,
        sensor_index: int,
        date: Optional[str] = None,
        time_range: Optional[str] = None,
    ) -> Dict[str, Any]:
        path = f"/acurite/sensors/{sensor_index}/live"
        if date:
            path = f"{path}/{date}"
        params = {"range": time_range} if time_range else {}
        return self._get(path, params=params)

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = self._client.get(path, params=params)
            if response.status_code == 404:
                raise typer.BadParameter(self._detail(response) or f"{path} was not found.")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}", fg=typer.colors.RED, err=True
            )
            raise typer.Exit(code=1) from exc
        return response.json()

    @staticmethod
    def _detail(response: httpx.Response) -> Optional[str]:
        try:
            data = response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = response.text.strip()
        return str(detail) if detail else None

    @classmethod
    def _handle_http_error(cls, exc: httpx.HTTPStatusError) -> None:
        detail = cls._detail(exc.response)
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
