from typing import Optional


class SweetShopError(Exception):
    """Base error of the inventory service. Subclasses set the HTTP status."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationError(SweetShopError):
    status_code = 400

    def __init__(self, message: str, fields: Optional[list[str]] = None):
        super().__init__(message)
        self.fields = fields or []

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.fields:
            body["fields"] = self.fields
        return body


class NotFound(SweetShopError):
    status_code = 404


class InsufficientStock(SweetShopError):
    status_code = 400


class PersistenceError(SweetShopError):
    status_code = 500
