"""Errors raised while provisioning the GitHub Actions -> Azure trust."""


class ProvisioningError(Exception):
    """Base class for every fatal provisioning failure."""

    hint = ""

    def __init__(self, message: str):
        super().__init__(message)
        self.stage = None


class ConfigurationError(ProvisioningError):
    """A required parameter could not be resolved before any Azure call."""

    hint = "Run inside a clone with a github.com remote or pass the value explicitly (see --help)."


class RemoteOperationError(ProvisioningError):
    """An Azure CLI call returned a failure."""

    hint = "Fix the cause reported by the Azure CLI and re-run. Resources created so far are kept."

    def __init__(self, operation: str, cause: str):
        super().__init__(f"{operation} failed: {cause}")
        self.operation = operation
        self.cause = cause


class MissingIdentifierError(ProvisioningError):
    """An Azure CLI call succeeded but left out an identifier we depend on."""

    hint = "The Azure CLI response was incomplete. Check the resource in the Azure portal and re-run."

    def __init__(self, operation: str, field: str):
        super().__init__(f"{operation} returned no '{field}'")
        self.operation = operation
        self.field = field
