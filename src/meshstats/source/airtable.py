from urllib.parse import quote

import httpx
import structlog

from meshstats.errors import RosterFetchError
from meshstats.models import Member

logger = structlog.get_logger()

AIRTABLE_BASE_URL = "https://api.airtable.com/v0"

# roster column names
NAME_FIELD = "Name"
NETWORK_KEY_FIELD = "WG Key"
UPSTREAM_FIELD = "Upstream"


def parse_member(record: "dict[str, object]") -> "Member":
    """
    maps one Airtable record onto a Member. Missing columns come
    back as empty values, Airtable omits empty cells entirely.
    """
    fields = record.get("fields") or {}
    if not isinstance(fields, dict):
        raise ValueError(f"record {record.get('id')!r} has no fields object")

    upstreams = fields.get(UPSTREAM_FIELD) or []
    return Member(
        id=str(record["id"]),
        name=str(fields.get(NAME_FIELD) or ""),
        network_key=str(fields.get(NETWORK_KEY_FIELD) or "").strip(),
        upstreams=tuple(str(u) for u in upstreams),
    )


class AirtableMemberSource:
    """
    AirtableMemberSource implements the MemberSource protocol by
    listing every record of the roster table, following Airtable's
    offset pagination.
    """

    def __init__(
        self,
        api_key: "str",
        base_id: "str",
        table_name: "str",
        timeout: "float" = 10.0,
    ) -> "None":
        self._url = f"{AIRTABLE_BASE_URL}/{base_id}/{quote(table_name, safe='')}"
        self._client: "httpx.AsyncClient" = httpx.AsyncClient(
            timeout=timeout,
            headers={"Authorization": f"Bearer {api_key}"},
        )

    @property
    def url(self) -> "str":
        return self._url

    async def close(self) -> "None":
        await self._client.aclose()

    async def list_members(self) -> "list[Member]":
        try:
            records = await self._list_records()
            members = [parse_member(r) for r in records]
        except (httpx.HTTPError, ValueError, KeyError) as exc:
            raise RosterFetchError(f"failed to list roster: {exc}") from exc

        logger.debug("airtable_roster_done", record_count=len(members))
        return members

    async def _list_records(self) -> "list[dict[str, object]]":
        records: "list[dict[str, object]]" = []
        offset = ""

        # keep requesting pages until airtable stops returning an offset
        while True:
            params = {"offset": offset} if offset else None
            logger.debug("airtable_fetch_page", offset=offset or None)
            resp = await self._client.get(self._url, params=params)
            resp.raise_for_status()

            data = resp.json()
            records.extend(data.get("records", []))

            offset = data.get("offset", "")
            if not offset:
                break

        return records
