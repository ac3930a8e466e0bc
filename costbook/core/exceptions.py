"""
Domain exceptions.

Every error carries the HTTP status the API answers with, so routes can let
them propagate and the handler in ``costbook.main`` renders them.
"""
from fastapi import status


class CostbookError(Exception):
    """Base class for all expected application errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Request failed"

    def __init__(self, detail: str = None):
        self.detail = detail or self.message
        super().__init__(self.detail)


class NotFoundError(CostbookError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Resource not found"


class LineItemValidationError(CostbookError):
    status_code = 422
    message = "Invalid line item"


class ContingencyAllocationError(CostbookError):
    """Allocation rejected, or rolled back after a failed write."""

    status_code = 422
    message = "Contingency allocation failed"


class InvalidStatusTransition(CostbookError):
    status_code = status.HTTP_409_CONFLICT
    message = "Status change not allowed"

    def __init__(self, entity: str, current: str, target: str):
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"Cannot move {entity} from '{current}' to '{target}'")


class PersistenceError(CostbookError):
    status_code = status.HTTP_502_BAD_GATEWAY
    message = "Database write failed"


class EstimateStateError(CostbookError):
    """Operation not allowed for the estimate's current status."""

    status_code = status.HTTP_409_CONFLICT
    message = "Estimate is not in a state that allows this operation"


class DuplicateRecordError(CostbookError):
    status_code = status.HTTP_409_CONFLICT
    message = "Record already exists"
