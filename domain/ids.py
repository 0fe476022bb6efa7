import uuid

from uuid_extensions import uuid7


def new_id() -> uuid.UUID:
    """UUIDv7: идентификаторы сортируются по времени создания."""
    return uuid7()
