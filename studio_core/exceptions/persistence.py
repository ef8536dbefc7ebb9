"""Persistence-related exceptions."""


class PersistenceError(Exception):
    """Base exception for document and blob store failures."""

    status_code = 500


class RecordNotFoundError(PersistenceError):
    """Raised when a document id does not exist."""

    status_code = 404

    def __init__(self, collection: str, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"No {collection} record with id {record_id}")
