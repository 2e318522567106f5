"""
Base repositories shared by the MongoDB (Beanie) and Milvus implementations
"""

from typing import Generic, List, Optional, Type, TypeVar

from beanie import Document
from pymilvus import Collection as MilvusCollection

BeanieDocument = TypeVar("BeanieDocument", bound=Document)


class MongoBaseRepository(Generic[BeanieDocument]):
    def __init__(self, collection: Type[BeanieDocument]):
        self.collection = collection

    async def find(
        self,
        query: dict,
        sort: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[BeanieDocument]:
        cursor = self.collection.find(query)
        if sort:
            cursor = cursor.sort(sort)
        if limit:
            cursor = cursor.limit(limit)
        return await cursor.to_list()

    async def find_all(self) -> List[BeanieDocument]:
        return await self.collection.find_all().to_list()

    def raw_collection(self):
        """Underlying motor collection, for operators Beanie does not wrap"""
        return self.collection.get_motor_collection()


class MilvusBaseRepository:
    def __init__(self, collection: MilvusCollection):
        self.collection = collection
