"""Generic create/read/update/delete operations over one document collection."""

import logging
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from ..core.exceptions import ConflictError, NotFoundError
from ..models.base import ResourceDescriptor, parse_object_id
from .query_builder import QuerySpec

logger = logging.getLogger(__name__)


class CrudService:
    """
    Standard persistence operations parameterized by a resource descriptor.

    Each resource type reuses this service instead of reimplementing list,
    get, create, update and delete.
    """

    def __init__(self, db: AsyncIOMotorDatabase, resource: ResourceDescriptor):
        self.db = db
        self.resource = resource
        self.collection = db[resource.collection]

    def _not_found(self, object_id: Any) -> NotFoundError:
        logger.warning(
            "Document not found",
            extra={"resource": self.resource.name, "id": str(object_id)}
        )
        return NotFoundError(
            resource_type=self.resource.name,
            resource_id=str(object_id),
            message=f"No {self.resource.name} found with this ID",
        )

    def _conflict(self, error: DuplicateKeyError) -> ConflictError:
        details = error.details or {}
        key_value = details.get("keyValue") or {}
        logger.warning(
            "Duplicate key on write",
            extra={"resource": self.resource.name, "key_value": key_value}
        )
        fields = ", ".join(key_value) or "a unique field"
        return ConflictError(
            message=f"A {self.resource.name} with the same {fields} already exists",
            conflicting_fields={k: str(v) for k, v in key_value.items()},
        )

    def _visible(self, document: dict[str, Any]) -> dict[str, Any]:
        return {k: v for k, v in document.items() if k not in self.resource.hidden_fields}

    async def list(self, spec: QuerySpec) -> tuple[list[dict[str, Any]], int]:
        """
        Find documents matching the query specification.

        Args:
            spec: Filter, projection, sort and pagination

        Returns:
            The page of documents and its size
        """
        cursor = self.collection.find(
            spec.to_filter(),
            spec.to_projection(self.resource),
            sort=spec.to_sort(self.resource),
            skip=spec.skip,
            limit=spec.limit,
        )
        documents = await cursor.to_list(length=None)

        logger.info(
            "Documents listed",
            extra={
                "resource": self.resource.name,
                "results": len(documents),
                "page": spec.page,
                "limit": spec.limit,
            }
        )
        return documents, len(documents)

    async def get(self, object_id: Any) -> dict[str, Any]:
        """
        Get one document by identifier.

        Raises:
            ValidationError: If the identifier is malformed
            NotFoundError: If no document has this identifier
        """
        oid = parse_object_id(object_id, self.resource.name)
        document = await self.collection.find_one(
            {"_id": oid}, self.resource.default_projection()
        )
        if document is None:
            raise self._not_found(oid)
        return document

    async def create(self, document: dict[str, Any]) -> dict[str, Any]:
        """
        Insert a new document.

        Returns:
            The stored document, including its ``_id``

        Raises:
            ConflictError: If a unique index rejects the document
        """
        document = dict(document)
        try:
            result = await self.collection.insert_one(document)
        except DuplicateKeyError as e:
            raise self._conflict(e)

        document["_id"] = result.inserted_id
        logger.info(
            "Document created",
            extra={"resource": self.resource.name, "id": str(result.inserted_id)}
        )
        return self._visible(document)

    async def update(self, object_id: Any, changes: dict[str, Any]) -> dict[str, Any]:
        """
        Apply a partial update and return the updated document.

        Raises:
            NotFoundError: If no document has this identifier
            ConflictError: If a unique index rejects the change
        """
        oid = parse_object_id(object_id, self.resource.name)
        if not changes:
            return await self.get(oid)

        try:
            document: Optional[dict[str, Any]] = await self.collection.find_one_and_update(
                {"_id": oid},
                {"$set": changes},
                projection=self.resource.default_projection(),
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as e:
            raise self._conflict(e)

        if document is None:
            raise self._not_found(oid)

        logger.info(
            "Document updated",
            extra={"resource": self.resource.name, "id": str(oid), "fields": sorted(changes)}
        )
        return document

    async def delete(self, object_id: Any) -> None:
        """
        Delete a document by identifier.

        Raises:
            NotFoundError: If no document had this identifier
        """
        oid = parse_object_id(object_id, self.resource.name)
        result = await self.collection.delete_one({"_id": oid})
        if result.deleted_count == 0:
            raise self._not_found(oid)

        logger.info(
            "Document deleted",
            extra={"resource": self.resource.name, "id": str(oid)}
        )
