class StockTrackerError(Exception):
    """Base class for failures raised by the tracker core."""


class DraftValidationError(StockTrackerError):
    """A draft is missing a required field or carries a non-positive number."""


class StoreWriteError(StockTrackerError):
    """A create/update/delete or batch commit was not applied by the store."""


class SubscriptionError(StockTrackerError):
    """A live read of a collection failed."""


class IdentityError(StockTrackerError):
    """The identity collaborator could not establish a user id."""


class ExternalCallError(StockTrackerError):
    """The text-generation call ended in a terminal failure."""
