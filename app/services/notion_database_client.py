import json
from collections.abc import Mapping
from typing import Any
from urllib import error, parse, request


class NotionDatabaseError(Exception):
    pass


class NotionDatabaseClient:
    def __init__(
        self,
        *,
        api_token: str,
        database_id: str,
        timeout_seconds: float = 10.0,
        api_version: str = "2022-06-28",
        title_property_id: str = "title",
        page_size: int = 100,
        api_base_url: str = "https://api.notion.com/v1",
    ) -> None:
        self.api_token = api_token
        self.database_id = database_id
        self.timeout_seconds = timeout_seconds
        self.api_version = api_version
        self.title_property_id = title_property_id
        self.page_size = page_size
        self.api_base_url = api_base_url.rstrip("/")

    def query_database(self) -> list[dict[str, Any]]:
        """Return every page of the configured database, following cursors."""
        if not self.api_token or not self.database_id:
            raise NotionDatabaseError("NOTION_API_KEY or NOTION_DATABASE_ID is missing.")

        records: list[dict[str, Any]] = []
        next_cursor: str | None = None
        path = f"/databases/{parse.quote(self.database_id, safe='')}/query"
        while True:
            body: dict[str, Any] = {"page_size": self.page_size}
            if next_cursor:
                body["start_cursor"] = next_cursor
            response = self._request_json("POST", path, payload=body)
            records.extend(self._collect_results(response))

            next_cursor = self._next_cursor(response)
            if not next_cursor:
                break
        return records

    def get_title_property_items(self, page_id: str) -> list[dict[str, Any]]:
        """Return the property items of a page's title, one per rich-text segment."""
        items: list[dict[str, Any]] = []
        next_cursor: str | None = None
        base_path = (
            f"/pages/{parse.quote(page_id, safe='')}/properties/"
            f"{parse.quote(self.title_property_id, safe='')}"
        )
        while True:
            query_params: dict[str, Any] = {"page_size": self.page_size}
            if next_cursor:
                query_params["start_cursor"] = next_cursor
            response = self._request_json("GET", f"{base_path}?{parse.urlencode(query_params)}")
            items.extend(self._collect_results(response))

            next_cursor = self._next_cursor(response)
            if not next_cursor:
                break
        return items

    def _collect_results(self, response: Mapping[str, Any]) -> list[dict[str, Any]]:
        results = response.get("results")
        if not isinstance(results, list):
            raise NotionDatabaseError("Notion API response missing results.")
        return [dict(result) for result in results if isinstance(result, Mapping)]

    def _next_cursor(self, response: Mapping[str, Any]) -> str | None:
        if not response.get("has_more"):
            return None
        next_cursor = response.get("next_cursor")
        if not isinstance(next_cursor, str) or not next_cursor:
            return None
        return next_cursor

    def _request_json(
        self,
        method: str,
        path: str,
        payload: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        target = f"{self.api_base_url}{path}"
        raw_payload: bytes | None = None
        if payload is not None:
            raw_payload = json.dumps(payload).encode("utf-8")

        req = request.Request(
            target,
            data=raw_payload,
            method=method,
            headers={
                "Authorization": f"Bearer {self.api_token}",
                "Notion-Version": self.api_version,
                "Content-Type": "application/json",
            },
        )
        try:
            with request.urlopen(req, timeout=self.timeout_seconds) as response:
                response_body = response.read()
        except TimeoutError as exc:
            raise NotionDatabaseError("Notion API request timed out.") from exc
        except error.HTTPError as exc:
            body = exc.read().decode("utf-8", errors="ignore")
            raise NotionDatabaseError(
                f"Notion API HTTP {exc.code}: {body or 'empty response body'}",
            ) from exc
        except error.URLError as exc:
            raise NotionDatabaseError(f"Notion API connection error: {exc.reason}") from exc

        try:
            parsed_body = json.loads(response_body.decode("utf-8"))
        except json.JSONDecodeError as exc:
            raise NotionDatabaseError("Notion API returned invalid JSON.") from exc

        if not isinstance(parsed_body, dict):
            raise NotionDatabaseError("Notion API response is not a JSON object.")
        return parsed_body
