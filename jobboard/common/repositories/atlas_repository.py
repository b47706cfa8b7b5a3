"""
MongoDB Collection Repository

Wraps one collection of the hosted MongoDB (Atlas) database behind
RepositoryInterface.
"""

import logging
from typing import Any, Dict, List, Optional

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .base import RepositoryInterface, WriteResult

logger = logging.getLogger(__name__)


class AtlasRepository(RepositoryInterface):
    """
    Repository over a single MongoDB collection.

    Connection Management:
    - One MongoClient per process, shared by every collection repository
    - PyMongo handles the connection pool internally

    Error Handling:
    - Fail-fast: all errors propagate to caller
    """

    _client: Optional[MongoClient] = None
    _client_uri: Optional[str] = None

    def __init__(self, mongodb_uri: str, database: str, collection: str):
        """
        Args:
            mongodb_uri: MongoDB connection string
            database: Database name
            collection: Collection name
        """
        self._mongodb_uri = mongodb_uri
        self._database_name = database
        self._collection_name = collection

    @property
    def collection_name(self) -> str:
        return self._collection_name

    @classmethod
    def _get_client(cls, mongodb_uri: str) -> MongoClient:
        if cls._client is None or cls._client_uri != mongodb_uri:
            cls._client = MongoClient(
                mongodb_uri,
                serverSelectionTimeoutMS=5000,
                connectTimeoutMS=5000,
            )
            cls._client_uri = mongodb_uri
            logger.info("Created MongoDB client")
        return cls._client

    def _get_collection(self) -> Collection:
        client = self._get_client(self._mongodb_uri)
        return client[self._database_name][self._collection_name]

    @retry(
        retry=retry_if_exception_type((ConnectionFailure, ServerSelectionTimeoutError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        reraise=True,
    )
    def ping(self) -> bool:
        """
        Check the server is reachable.

        DNS hiccups after network changes are common with hosted clusters,
        so the ping is retried with exponential backoff before giving up.
        """
        client = self._get_client(self._mongodb_uri)
        client.admin.command("ping")
        return True

    def find_one(
        self,
        filter: Dict[str, Any],
        projection: Optional[Dict[str, Any]] = None,
        sort: Optional[List[tuple]] = None,
    ) -> Optional[Dict[str, Any]]:
        collection = self._get_collection()
        if sort:
            return collection.find_one(filter, projection, sort=sort)
        return collection.find_one(filter, projection)

    def find(
        self,
        filter: Dict[str, Any],
        projection: Optional[Dict[str, Any]] = None,
        sort: Optional[List[tuple]] = None,
        limit: int = 0,
        skip: int = 0,
    ) -> List[Dict[str, Any]]:
        collection = self._get_collection()
        cursor = collection.find(filter, projection)

        if sort:
            cursor = cursor.sort(sort)
        if skip > 0:
            cursor = cursor.skip(skip)
        if limit > 0:
            cursor = cursor.limit(limit)

        return list(cursor)

    def count_documents(self, filter: Dict[str, Any]) -> int:
        return self._get_collection().count_documents(filter)

    def insert_one(self, document: Dict[str, Any]) -> WriteResult:
        result = self._get_collection().insert_one(document)

        return WriteResult(
            matched_count=0,
            modified_count=0,
            upserted_id=str(result.inserted_id) if result.inserted_id else None,
        )

    def insert_many(self, documents: List[Dict[str, Any]]) -> WriteResult:
        if not documents:
            return WriteResult(matched_count=0, modified_count=0, inserted_ids=[])
        result = self._get_collection().insert_many(documents)

        return WriteResult(
            matched_count=0,
            modified_count=0,
            inserted_ids=[str(i) for i in result.inserted_ids],
        )

    def update_one(
        self,
        filter: Dict[str, Any],
        update: Dict[str, Any],
        upsert: bool = False,
    ) -> WriteResult:
        result = self._get_collection().update_one(filter, update, upsert=upsert)

        return WriteResult(
            matched_count=result.matched_count,
            modified_count=result.modified_count,
            upserted_id=str(result.upserted_id) if result.upserted_id else None,
        )

    def update_many(
        self,
        filter: Dict[str, Any],
        update: Dict[str, Any],
    ) -> WriteResult:
        result = self._get_collection().update_many(filter, update)

        return WriteResult(
            matched_count=result.matched_count,
            modified_count=result.modified_count,
        )

    def delete_one(self, filter: Dict[str, Any]) -> WriteResult:
        result = self._get_collection().delete_one(filter)

        return WriteResult(
            matched_count=result.deleted_count,
            modified_count=result.deleted_count,
        )

    def delete_many(self, filter: Dict[str, Any]) -> WriteResult:
        result = self._get_collection().delete_many(filter)

        return WriteResult(
            matched_count=result.deleted_count,
            modified_count=result.deleted_count,
        )

    def aggregate(self, pipeline: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return list(self._get_collection().aggregate(pipeline))

    @classmethod
    def reset_connection(cls) -> None:
        """
        Reset the connection pool.

        Used for testing or connection recovery.
        """
        if cls._client:
            cls._client.close()
        cls._client = None
        cls._client_uri = None
        logger.info("MongoDB connection reset")
