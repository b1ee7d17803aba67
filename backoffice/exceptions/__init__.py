"""Custom exceptions for the back-office application."""


class BackofficeError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        rv['error'] = type(self).__name__
        return rv


class BusinessLogicError(BackofficeError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)


class ValidationError(BusinessLogicError):
    """Raised for malformed input (empty item list, bad quantity, missing counterparty)."""
    def __init__(self, message, payload=None):
        super().__init__(message, 400, payload)


class NotFoundError(BackofficeError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class InvalidStateError(BusinessLogicError):
    """Raised when an entity's status forbids the requested operation."""
    def __init__(self, message, current_status=None, payload=None):
        payload = dict(payload or ())
        if current_status is not None:
            payload['current_status'] = getattr(current_status, 'value', current_status)
        super().__init__(message, 409, payload)
        self.current_status = current_status


class InsufficientStockError(BusinessLogicError):
    """Raised when an operation fails due to lack of stock."""
    def __init__(self, product_name, required, available):
        message = f"Insufficient stock for {product_name}: {required} required, {available} available"
        super().__init__(message, status_code=409, payload={
            'required': required,
            'available': available,
        })
        self.required = required
        self.available = available


class PersistenceError(BackofficeError):
    """Raised when the underlying store fails (connection, constraint violation)."""
    def __init__(self, message="Database error"):
        super().__init__(message, 500)
