"""
MongoDB persistence for forms and submissions.

One Store is built at process start and handed to every component that
needs it. Documents are keyed by ObjectId; ids cross the API as strings.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import Settings
from errors import StoreFailure

logger = logging.getLogger(__name__)

FORMS = "form"
SUBMISSIONS = "submission"


def connect(settings: Settings) -> MongoClient:
    logger.info("Connecting to MongoDB database %s", settings.database_name)
    return MongoClient(settings.database_url)


def _object_id(doc_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(doc_id)
    except (InvalidId, TypeError):
        return None


def new_id() -> str:
    return str(ObjectId())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Store:
    """Thin document store over a pymongo Database."""

    def __init__(self, db: Database):
        self.db = db

    @property
    def name(self) -> str:
        return self.db.name

    def ping(self) -> bool:
        try:
            self.db.command("ping")
            return True
        except PyMongoError:
            logger.warning("MongoDB ping failed", exc_info=True)
            return False

    def create_document(self, collection_name: str, data: Dict[str, Any]) -> Dict[str, Any]:
        doc = dict(data)
        now = _now()
        doc["created_at"] = now
        doc["updated_at"] = now
        try:
            result = self.db[collection_name].insert_one(doc)
            return self.db[collection_name].find_one({"_id": result.inserted_id})
        except PyMongoError as e:
            logger.error("insert into %s failed: %s", collection_name, e)
            raise StoreFailure() from e

    def get_document(
        self, collection_name: str, doc_id: str, filter_dict: Optional[Dict[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        oid = _object_id(doc_id)
        if oid is None:
            return None
        query = {"_id": oid, **(filter_dict or {})}
        try:
            return self.db[collection_name].find_one(query)
        except PyMongoError as e:
            logger.error("find_one in %s failed: %s", collection_name, e)
            raise StoreFailure() from e

    def get_documents(
        self, collection_name: str, filter_dict: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        # ObjectIds grow with insertion, so _id order is insertion order.
        try:
            cursor = self.db[collection_name].find(filter_dict or {}).sort("_id", ASCENDING)
            return list(cursor)
        except PyMongoError as e:
            logger.error("find in %s failed: %s", collection_name, e)
            raise StoreFailure() from e

    def replace_document(self, collection_name: str, doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Overwrite a whole document; concurrent writers race, last one wins."""
        oid = _object_id(doc_id)
        doc = {k: v for k, v in data.items() if k != "_id"}
        doc["updated_at"] = _now()
        try:
            self.db[collection_name].replace_one({"_id": oid}, doc)
            return self.db[collection_name].find_one({"_id": oid})
        except PyMongoError as e:
            logger.error("replace in %s failed: %s", collection_name, e)
            raise StoreFailure() from e

    def delete_document(self, collection_name: str, doc_id: str) -> bool:
        oid = _object_id(doc_id)
        if oid is None:
            return False
        try:
            result = self.db[collection_name].delete_one({"_id": oid})
        except PyMongoError as e:
            logger.error("delete in %s failed: %s", collection_name, e)
            raise StoreFailure() from e
        return result.deleted_count > 0
