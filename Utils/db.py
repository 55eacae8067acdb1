import logging
from urllib.parse import urlparse

from bson import ObjectId
from mongoengine import connect, disconnect

logger = logging.getLogger(__name__)


def init_db(app):
    """Connect mongoengine using the app's MONGODB_URI."""
    mongo_uri = app.config["MONGODB_URI"]

    # Auto-detect DB name from URI
    parsed = urlparse(mongo_uri)
    db_name = (parsed.path or "").lstrip("/") or "wasteless"

    kwargs = {}
    if app.config.get("MONGO_MOCK"):
        import mongomock
        kwargs["mongo_client_class"] = mongomock.MongoClient

    # A previous app in the same process may still hold the default alias
    disconnect(alias="default")
    try:
        connect(db=db_name, host=mongo_uri, alias="default", **kwargs)
        logger.info(f"MongoDB connected successfully → {db_name}")
    except Exception as e:
        logger.error(f"MongoDB connection error: {e}")
        raise


def close_db():
    disconnect(alias="default")


def find_by_id(document_cls, raw_id):
    """Return the document with the given id, or None if absent or malformed."""
    if not raw_id or not ObjectId.is_valid(str(raw_id)):
        return None
    return document_cls.objects(id=str(raw_id)).first()


def reference_id(document, field):
    """Id behind a ReferenceField without dereferencing it."""
    value = document._data.get(field)
    if value is None:
        return None
    return getattr(value, "id", value)
