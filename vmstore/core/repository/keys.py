class KeyCodec:
    SEPARATOR: str = ":"
    COUNTER_PREFIX: str = "nextItemId"
    WILDCARD: str = "*"

    @classmethod
    def record_key(cls, collection: str, record_id: str) -> str:
        return f"{collection}{cls.SEPARATOR}{record_id}"

    @classmethod
    def counter_key(cls, collection: str) -> str:
        return f"{cls.COUNTER_PREFIX}{cls.SEPARATOR}{collection}"

    @classmethod
    def collection_pattern(cls, collection: str) -> str:
        return f"{collection}{cls.SEPARATOR}{cls.WILDCARD}"

    @classmethod
    def parse_record_key(cls, collection: str, key: str) -> str | None:
        """
        Parse:
            key = collection || ":" || record_id

        Returns:
            record_id
        or:
            None if the key does not belong to the collection
        """
        prefix = collection + cls.SEPARATOR
        if not key.startswith(prefix):
            return None
        return key[len(prefix):]
