"""Error taxonomy shared by the engine and the tool dispatch layer."""

from typing import Any


class YnabMcpError(Exception):
    """Base class for errors rendered to the caller as structured objects."""

    kind = "Error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to the exposed error object."""
        return {"kind": self.kind, "message": self.message}


class InvalidArguments(YnabMcpError):
    """Caller-supplied argument payload has the wrong shape."""

    kind = "InvalidArguments"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["field"] = self.field
        return result


class UnknownOperation(YnabMcpError):
    """Tool name is not one of the supported operations."""

    kind = "UnknownOperation"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class _UnknownEntity(YnabMcpError):
    entity = "Entity"

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"{self.entity} not found: {identifier}")


class UnknownCategory(_UnknownEntity):
    """Category id or name is not present in the snapshot."""

    kind = "UnknownCategory"
    entity = "Category"


class UnknownAccount(_UnknownEntity):
    """Account id is not present in the snapshot."""

    kind = "UnknownAccount"
    entity = "Account"


class UnknownPayee(_UnknownEntity):
    """Payee id is not present in the snapshot."""

    kind = "UnknownPayee"
    entity = "Payee"


class InvalidDateRange(YnabMcpError):
    """Date range start is after its end."""

    kind = "InvalidDateRange"


class DataFetchError(YnabMcpError):
    """Budget snapshot could not be fetched or decoded.

    The underlying cause (HTTP error, auth failure, malformed payload) is
    chained as ``__cause__`` and not interpreted further.
    """

    kind = "DataFetchError"
