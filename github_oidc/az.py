"""
Azure identity operations.

IdentityClient is what the provisioner needs from Entra ID and Azure RBAC.
AzureCliClient implements it on top of the Azure CLI, one `az` invocation per
operation, using the operator's signed-in session.
"""
import json
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Protocol

from github_oidc.errors import MissingIdentifierError, RemoteOperationError
from github_oidc.policy import ClaimsExpressionPolicy, ExactSubjectPolicy

GRAPH_BETA = "https://graph.microsoft.com/beta"

# Operation names, used in error messages
AUTHENTICATE = "authenticate"
CREATE_APPLICATION = "create application"
CREATE_FEDERATED_CREDENTIAL = "create federated credential"
CREATE_FEDERATED_CREDENTIAL_WILDCARD = "create wildcard federated credential"
LIST_FEDERATED_CREDENTIALS = "list federated credentials"
CREATE_SERVICE_PRINCIPAL = "create service principal"
SHOW_SERVICE_PRINCIPAL = "show service principal"
READ_SUBSCRIPTION_ID = "read subscription id"
CREATE_ROLE_ASSIGNMENT = "create role assignment"
LIST_ROLE_ASSIGNMENTS = "list role assignments"
READ_TENANT_ID = "read tenant id"


class ApplicationRegistration:
    """The app registration created for the run."""

    def __init__(self, client_id: str, object_id: str, raw: Optional[dict] = None):
        self.client_id = client_id
        self.object_id = object_id
        self.raw = raw or {}

    @classmethod
    def from_response(cls, response: dict) -> "ApplicationRegistration":
        """Build from `az ad app create` output; both ids are mandatory."""
        client_id = (response or {}).get("appId")
        object_id = (response or {}).get("id")
        if not client_id:
            raise MissingIdentifierError(CREATE_APPLICATION, "appId")
        if not object_id:
            raise MissingIdentifierError(CREATE_APPLICATION, "id")
        return cls(client_id, object_id, raw=response)


class IdentityClient(Protocol):
    def authenticate(self) -> None: ...

    def create_application(self, display_name: str) -> ApplicationRegistration: ...

    def create_federated_credential(
        self, client_id: str, policy: ExactSubjectPolicy, parameters_file: Optional[Path] = None
    ) -> dict: ...

    def create_federated_credential_wildcard(
        self, object_id: str, policy: ClaimsExpressionPolicy
    ) -> dict: ...

    def list_federated_credentials(self, client_id: str) -> List[dict]: ...

    def create_service_principal(self, client_id: str) -> dict: ...

    def show_service_principal(self, client_id: str) -> dict: ...

    def read_subscription_id(self) -> str: ...

    def create_role_assignment(self, client_id: str, role: str, scope: str) -> dict: ...

    def list_role_assignments(self, client_id: str) -> List[dict]: ...

    def read_tenant_id(self) -> str: ...


def run_az(args: list, operation: str, output: Optional[str] = "json", capture_output: bool = True):
    """
    Run one Azure CLI command.

    output="json" parses stdout as JSON, output="tsv" returns stripped text,
    output=None returns nothing. Any failure raises RemoteOperationError.
    """
    az = shutil.which("az")
    if not az:
        raise RemoteOperationError(
            operation, "Azure CLI not found. Install: https://aka.ms/installazurecli"
        )

    cmd = [az, *args]
    if output:
        cmd += ["-o", output]

    try:
        result = subprocess.run(cmd, capture_output=capture_output, text=True)
    except OSError as e:
        raise RemoteOperationError(operation, str(e)) from e

    if result.returncode != 0:
        stderr = (result.stderr or "").strip() if capture_output else ""
        raise RemoteOperationError(operation, stderr or f"az exited with code {result.returncode}")

    if output == "json":
        stdout = (result.stdout or "").strip()
        if not stdout:
            return {}
        try:
            return json.loads(stdout)
        except json.JSONDecodeError as e:
            raise RemoteOperationError(operation, f"unparseable Azure CLI output: {e}") from e
    if output == "tsv":
        return (result.stdout or "").strip()
    return None


class AzureCliClient:
    """IdentityClient backed by the Azure CLI."""

    def __init__(self, login: bool = False):
        self.login = login

    def authenticate(self) -> None:
        if self.login:
            run_az(["login"], AUTHENTICATE, output="none", capture_output=False)
        account = run_az(["account", "show"], AUTHENTICATE)
        if not account:
            raise RemoteOperationError(AUTHENTICATE, "no active Azure CLI session. Run: az login")

    def create_application(self, display_name: str) -> ApplicationRegistration:
        response = run_az(["ad", "app", "create", "--display-name", display_name], CREATE_APPLICATION)
        return ApplicationRegistration.from_response(response)

    def create_federated_credential(self, client_id, policy, parameters_file=None):
        parameters = f"@{parameters_file}" if parameters_file else json.dumps(policy.to_document())
        return run_az(
            ["ad", "app", "federated-credential", "create", "--id", client_id, "--parameters", parameters],
            CREATE_FEDERATED_CREDENTIAL,
        )

    def create_federated_credential_wildcard(self, object_id, policy):
        # az ad app federated-credential has no claimsMatchingExpression support yet
        return run_az(
            [
                "rest", "--method", "POST",
                "--uri", f"{GRAPH_BETA}/applications/{object_id}/federatedIdentityCredentials",
                "--headers", "Content-Type=application/json",
                "--body", json.dumps(policy.to_document()),
            ],
            CREATE_FEDERATED_CREDENTIAL_WILDCARD,
        )

    def list_federated_credentials(self, client_id):
        return run_az(
            ["ad", "app", "federated-credential", "list", "--id", client_id],
            LIST_FEDERATED_CREDENTIALS,
        ) or []

    def create_service_principal(self, client_id):
        return run_az(["ad", "sp", "create", "--id", client_id], CREATE_SERVICE_PRINCIPAL)

    def show_service_principal(self, client_id):
        return run_az(["ad", "sp", "show", "--id", client_id], SHOW_SERVICE_PRINCIPAL)

    def read_subscription_id(self):
        return run_az(["account", "show", "--query", "id"], READ_SUBSCRIPTION_ID, output="tsv")

    def create_role_assignment(self, client_id, role, scope):
        return run_az(
            ["role", "assignment", "create", "--role", role, "--assignee", client_id, "--scope", scope],
            CREATE_ROLE_ASSIGNMENT,
        )

    def list_role_assignments(self, client_id):
        return run_az(
            ["role", "assignment", "list", "--assignee", client_id, "--all"],
            LIST_ROLE_ASSIGNMENTS,
        ) or []

    def read_tenant_id(self):
        return run_az(["account", "show", "--query", "tenantId"], READ_TENANT_ID, output="tsv")
