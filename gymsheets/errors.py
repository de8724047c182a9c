class GymSheetsError(Exception):
    """Base class for errors raised inside gymsheets."""


class StoreError(GymSheetsError):
    """A read or write against the record store failed."""


class RecordNotFoundError(StoreError):
    def __init__(self, collection: str, record_id: str):
        super().__init__(f"{collection} record {record_id} not found")
        self.collection = collection
        self.record_id = record_id


class MissingOwnerError(GymSheetsError):
    """Raised when an operation is attempted without an owner bound to it."""


class InvalidSheetError(GymSheetsError):
    """A sheet failed a boundary check (e.g. it has no exercises)."""
