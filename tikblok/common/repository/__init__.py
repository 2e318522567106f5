from .base import MongoBaseRepository, MilvusBaseRepository
