from typing import Any

import structlog
from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from meshstats.errors import PersistenceError
from meshstats.models import UsagePeriod

logger = structlog.get_logger()

# milliseconds, applies to connecting and to every insert
_TIMEOUT_MS = 10_000


class MongoUsageSink:
    """
    MongoUsageSink implements the UsageSink protocol by appending
    one document per usage period to a collection. Periods are
    never updated or deleted.
    """

    def __init__(
        self,
        collection: "Any",
        client: "AsyncMongoClient | None" = None,
    ) -> "None":
        self._collection = collection
        self._client = client

    @classmethod
    def from_url(cls, url: "str", database: "str", collection: "str") -> "MongoUsageSink":
        # the client connects lazily on the first operation
        client: "AsyncMongoClient" = AsyncMongoClient(
            url,
            tz_aware=True,
            connectTimeoutMS=_TIMEOUT_MS,
            serverSelectionTimeoutMS=_TIMEOUT_MS,
            timeoutMS=_TIMEOUT_MS,
        )
        return cls(client[database][collection], client=client)

    async def close(self) -> "None":
        if self._client is not None:
            await self._client.close()

    async def insert(self, period: "UsagePeriod") -> "None":
        try:
            result = await self._collection.insert_one(period.to_document())
        except PyMongoError as exc:
            raise PersistenceError(period.name, str(exc)) from exc

        logger.debug("mongo_inserted", name=period.name, id=str(result.inserted_id))
