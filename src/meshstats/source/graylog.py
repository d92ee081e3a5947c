import json
import math
from datetime import datetime, timezone
from urllib.parse import quote, urlencode

import httpx
import structlog

from meshstats.errors import UsageFetchError
from meshstats.models import ABSENT, Direction, MaybeAmount, Present, TimeWindow

logger = structlog.get_logger()

STATS_PATH = "api/search/universal/absolute/stats"

# graylog reports an empty aggregate as the string "NaN"
_NAN_SENTINEL = '"NaN"'


def format_timestamp(value: "datetime") -> "str":
    """
    formats a timestamp the way the stats endpoint is queried,
    e.g. 2024-01-2T00:00:00.000Z (the day is not zero padded).
    """
    value = value.astimezone(timezone.utc)
    millis = value.microsecond // 1000
    return f"{value:%Y-%m}-{value.day}T{value:%H:%M:%S}.{millis:03d}Z"


def build_query(network_key: "str", direction: "Direction") -> "str":
    return f'"{network_key}" AND "{direction.value}"'


def parse_sum(body: "str") -> "MaybeAmount":
    """
    extracts the `sum` field of a stats response. A null, missing
    or NaN sum means no entries matched and becomes Absent.
    Raises ValueError on anything that is not a stats object.
    """
    data = json.loads(body.replace(_NAN_SENTINEL, "null"))
    if not isinstance(data, dict):
        raise ValueError("stats response is not a JSON object")

    total = data.get("sum")
    if total is None:
        return ABSENT
    # bool is an int subclass but never a valid sum
    if isinstance(total, bool) or not isinstance(total, (int, float)):
        raise ValueError(f"unexpected sum value {total!r}")
    if math.isnan(total):
        return ABSENT
    return Present(float(total))


class GraylogUsageFetcher:
    """
    GraylogUsageFetcher implements the UsageFetcher protocol on top
    of Graylog's absolute-time field statistics search. Each call
    sums the `bytes` field of the log lines that mention a member's
    key together with the direction phrase.
    """

    def __init__(
        self,
        base_url: "str",
        username: "str",
        password: "str",
        timeout: "float" = 60.0,
    ) -> "None":
        if not base_url.endswith("/"):
            base_url += "/"
        self._base_url = base_url
        self._client: "httpx.AsyncClient" = httpx.AsyncClient(
            timeout=timeout,
            auth=(username, password),
            headers={"Accept": "application/json"},
        )

    async def close(self) -> "None":
        await self._client.aclose()

    def stats_url(
        self,
        network_key: "str",
        window: "TimeWindow",
        direction: "Direction",
    ) -> "str":
        # spaces must be sent as %20, graylog does not decode "+"
        params = urlencode(
            {
                "field": "bytes",
                "query": build_query(network_key, direction),
                "from": format_timestamp(window.start),
                "to": format_timestamp(window.end),
            },
            quote_via=quote,
        )
        return f"{self._base_url}{STATS_PATH}?{params}"

    async def fetch_bytes(
        self,
        network_key: "str",
        window: "TimeWindow",
        direction: "Direction",
    ) -> "MaybeAmount":
        url = self.stats_url(network_key, window, direction)
        logger.debug(
            "graylog_fetch_stats",
            network_key=network_key,
            direction=direction.name.lower(),
        )

        try:
            resp = await self._client.get(url)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise UsageFetchError(
                network_key, direction.name.lower(), str(exc)
            ) from exc

        try:
            return parse_sum(resp.text)
        except ValueError as exc:
            # json.JSONDecodeError is a ValueError as well
            raise UsageFetchError(
                network_key, direction.name.lower(), f"unparseable response: {exc}"
            ) from exc
