"""
Create the Milvus collection that backs the video index: VARCHAR id (video id),
float-vector embedding, JSON metadata payload, the vector index and the
namespace partition. Run once per environment, then call the admin reindex
endpoint to fill it.
"""

import argparse
from typing import Optional

from pymilvus import Collection, connections, FieldSchema, CollectionSchema, DataType, utility

from tikblok.core.settings import VideoIndexMilvusSetting

MAX_ID_LENGTH = 256
# Output size of the default ViT-B-32 text tower
DEFAULT_EMBEDDING_DIM = 512


class VideoCollectionCreator:
    def __init__(
        self,
        setting: VideoIndexMilvusSetting,
        alias: str = "default",
        db_name: str = "default"
    ):
        self.setting = setting
        self.collection_name = setting.COLLECTION_NAME
        self.alias = alias

        self._connect(db_name)

    def _connect(self, db_name: str):
        if connections.has_connection(self.alias):
            connections.remove_connection(self.alias)

        conn_params = {
            "host": self.setting.HOST,
            "port": self.setting.PORT,
            "db_name": db_name
        }

        if self.setting.TOKEN:
            conn_params["token"] = self.setting.TOKEN
        elif self.setting.USER and self.setting.PASSWORD:
            conn_params["user"] = self.setting.USER
            conn_params["password"] = self.setting.PASSWORD

        connections.connect(alias=self.alias, **conn_params)
        print(f"Connected to Milvus at {self.setting.HOST}:{self.setting.PORT}")

    def create_collection(
        self,
        embedding_dim: int,
        drop_existing: bool = False,
        index_params: Optional[dict] = None
    ) -> Collection:
        if utility.has_collection(self.collection_name, using=self.alias):
            if not drop_existing:
                print(f"Collection '{self.collection_name}' already exists")
                collection = Collection(self.collection_name, using=self.alias)
                self._ensure_partition(collection)
                return collection
            print(f"Dropping existing collection '{self.collection_name}' before creation...")
            utility.drop_collection(self.collection_name, using=self.alias)

        fields = [
            FieldSchema(name="id", dtype=DataType.VARCHAR, is_primary=True, auto_id=False, max_length=MAX_ID_LENGTH),
            FieldSchema(name="embedding", dtype=DataType.FLOAT_VECTOR, dim=embedding_dim),
            FieldSchema(name="metadata", dtype=DataType.JSON, description="Denormalized video payload"),
        ]

        schema = CollectionSchema(fields, f"Video search index for {self.collection_name}")
        collection = Collection(self.collection_name, schema, using=self.alias)
        print(f"Created collection '{self.collection_name}' with dimension {embedding_dim}")

        if index_params is None:
            index_params = {
                "metric_type": self.setting.METRIC_TYPE,
                "index_type": self.setting.INDEX_TYPE,
                "params": {}
            }

        collection.create_index("embedding", index_params)
        print("Created index for embedding field")

        self._ensure_partition(collection)
        collection.load()
        print("Collection loaded for search")
        return collection

    def _ensure_partition(self, collection: Collection):
        if not collection.has_partition(self.setting.NAMESPACE):
            collection.create_partition(self.setting.NAMESPACE)
            print(f"Created namespace partition '{self.setting.NAMESPACE}'")

    def disconnect(self):
        if connections.has_connection(self.alias):
            connections.remove_connection(self.alias)
            print("Disconnected from Milvus")


def main():
    parser = argparse.ArgumentParser(description="Create the Milvus collection for the video index")
    parser.add_argument("--embedding-dim", type=int, default=DEFAULT_EMBEDDING_DIM,
                        help="Embedding dimension of the configured text model")
    parser.add_argument("--drop-existing", action="store_true",
                        help="Drop and recreate the collection if it exists")
    args = parser.parse_args()

    creator = VideoCollectionCreator(VideoIndexMilvusSetting())
    try:
        creator.create_collection(args.embedding_dim, drop_existing=args.drop_existing)
    finally:
        creator.disconnect()


if __name__ == "__main__":
    main()
