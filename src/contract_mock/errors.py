"""Error types and machine-readable error codes."""

OPERATION_NOT_FOUND = "operation_not_found"
INTERNAL_SYNTHESIS_ERROR = "internal_synthesis_error"


class ContractMockError(Exception):
    """Base class for contract-mock errors."""


class UnsupportedFormatError(ContractMockError):
    """A raw document is not claimed by any registered spec handler."""


class HandlerNotFoundError(ContractMockError):
    """No handler is registered for a parsed spec's type.

    This points at a registry misconfiguration, so it is allowed to
    propagate to the caller.
    """

    def __init__(self, spec_type: str):
        super().__init__(f"No handler registered for spec type: {spec_type}")
        self.spec_type = spec_type


class SynthesisError(ContractMockError):
    """A handler failed while scoring fixtures or generating a response."""

    def __init__(self, operation_id: str, cause: Exception):
        super().__init__(f"Response synthesis failed for {operation_id}: {cause}")
        self.operation_id = operation_id
        self.cause = cause
