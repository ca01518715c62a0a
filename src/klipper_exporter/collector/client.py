"""
HTTP client for a single Moonraker instance.

One fetch method per upstream resource. Each issues a single GET (no
retries), sends the API key as X-API-KEY when there is one, and returns a
typed response from collector.responses. Anything that goes wrong comes
out as a FetchError so callers only have one thing to catch.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from klipper_exporter.collector.errors import DecodeError, TransportError
from klipper_exporter.collector.responses import (
    DirectoryInfo,
    HistoryList,
    HistoryTotals,
    JobQueue,
    PrinterObjectList,
    ProcStats,
    SpoolmanStatus,
    SystemInfo,
    TemperatureStore,
    as_dict,
)

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0

PROC_STATS_PATH = "/machine/proc_stats"
DIRECTORY_PATH = "/server/files/directory?path=gcodes&extended=false"
JOB_QUEUE_PATH = "/server/job_queue/status"
HISTORY_TOTALS_PATH = "/server/history/totals"
HISTORY_LATEST_PATH = "/server/history/list?limit=1&start=0&since=1&order=desc"
SYSTEM_INFO_PATH = "/machine/system_info"
TEMPERATURE_STORE_PATH = "/server/temperature_store"
OBJECTS_LIST_PATH = "/printer/objects/list"
OBJECTS_QUERY_PATH = "/printer/objects/query"
SPOOLMAN_STATUS_PATH = "/server/spoolman/status"


class MoonrakerClient:

    def __init__(
        self,
        target: str,
        api_key: str = "",
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.target = target
        headers = {"X-API-KEY": api_key} if api_key else {}
        self._client = httpx.Client(
            headers=headers,
            timeout=timeout_seconds,
            transport=transport,
        )

    def url(self, path: str) -> str:
        return f"http://{self.target}{path}"

    def get_result(self, path: str) -> Dict[str, Any]:
        """GET path and return the "result" object of the JSON body."""
        url = self.url(path)
        if not self.target:
            raise TransportError(url, "no target host given")

        log.debug("Collecting metrics from %s", url)
        try:
            response = self._client.get(url)
        except httpx.InvalidURL as e:
            raise TransportError(url, f"unable to create HTTP request: {e}") from e
        except httpx.HTTPError as e:
            raise TransportError(url, f"unable to complete HTTP request: {e}") from e

        if not response.is_success:
            raise TransportError(
                url, f"unexpected status code: {response.status_code} {response.reason_phrase}"
            )

        try:
            body = response.json()
        except (ValueError, RecursionError) as e:
            raise DecodeError(url, f"response is not valid JSON: {e}") from e

        if not isinstance(body, dict):
            raise DecodeError(url, f"expected a JSON object, got {type(body).__name__}")

        result = body.get("result", {})
        if not isinstance(result, dict):
            raise DecodeError(url, f"expected \"result\" to be an object, got {type(result).__name__}")
        return result

    # -- One method per upstream resource --

    def process_stats(self) -> ProcStats:
        return ProcStats.from_result(self.get_result(PROC_STATS_PATH))

    def directory_info(self) -> DirectoryInfo:
        return DirectoryInfo.from_result(self.get_result(DIRECTORY_PATH))

    def job_queue(self) -> JobQueue:
        return JobQueue.from_result(self.get_result(JOB_QUEUE_PATH))

    def history_totals(self) -> HistoryTotals:
        return HistoryTotals.from_result(self.get_result(HISTORY_TOTALS_PATH))

    def history_latest(self) -> HistoryList:
        return HistoryList.from_result(self.get_result(HISTORY_LATEST_PATH))

    def system_info(self) -> SystemInfo:
        return SystemInfo.from_result(self.get_result(SYSTEM_INFO_PATH))

    def temperature_store(self) -> TemperatureStore:
        return TemperatureStore.from_result(self.get_result(TEMPERATURE_STORE_PATH))

    def printer_object_names(self) -> PrinterObjectList:
        return PrinterObjectList.from_result(self.get_result(OBJECTS_LIST_PATH))

    def printer_objects(self, query: str) -> Dict[str, Any]:
        """Raw status dict for the objects named in query (see printer_objects.build_query)."""
        result = self.get_result(f"{OBJECTS_QUERY_PATH}?{query}")
        return as_dict(result.get("status"))

    def spoolman_status(self) -> SpoolmanStatus:
        return SpoolmanStatus.from_result(self.get_result(SPOOLMAN_STATUS_PATH))

    def close(self):
        self._client.close()

    def __enter__(self) -> "MoonrakerClient":
        return self

    def __exit__(self, *exc_info):
        self.close()
