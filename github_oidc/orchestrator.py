"""
Provision the trust between a GitHub repository and an Azure subscription.

Steps run strictly in order, each feeding identifiers to the next:

1. Confirm the Azure CLI session
2. Create the app registration
3. Add the federated credential (one branch, or every branch with --all)
4. Create the service principal
5. Grant it Contributor on the subscription or resource group
6. Collect the ids GitHub needs

The first failure stops the run. Nothing created before it is rolled back.
"""
import enum
from pathlib import Path
from typing import List, Optional, Union

from github_oidc.artifacts import APP_FILE, CREDENTIAL_FILE, write_json
from github_oidc.az import (
    READ_SUBSCRIPTION_ID,
    READ_TENANT_ID,
    ApplicationRegistration,
    IdentityClient,
)
from github_oidc.config import ProvisioningConfig
from github_oidc.console import Console
from github_oidc.errors import MissingIdentifierError, ProvisioningError
from github_oidc.policy import (
    CONTRIBUTOR_ROLE,
    ClaimsExpressionPolicy,
    ExactSubjectPolicy,
    build_policy,
    role_scope,
)
from github_oidc.report import RunResult


class Stage(enum.Enum):
    INIT = "init"
    AUTHENTICATED = "authenticated"
    APP_CREATED = "app created"
    CREDENTIAL_ESTABLISHED = "credential established"
    PRINCIPAL_CREATED = "principal created"
    ROLE_ASSIGNED = "role assigned"
    REPORTED = "reported"


# What the provisioner is doing while it moves out of each stage
STAGE_ACTIONS = {
    Stage.INIT: "checking Azure CLI authentication",
    Stage.AUTHENTICATED: "creating the app registration",
    Stage.APP_CREATED: "creating the federated credential",
    Stage.CREDENTIAL_ESTABLISHED: "creating the service principal",
    Stage.PRINCIPAL_CREATED: "assigning the Contributor role",
    Stage.ROLE_ASSIGNED: "reading tenant and subscription ids",
}


class Provisioner:
    """Runs one provisioning pass for a resolved ProvisioningConfig."""

    def __init__(
        self,
        client: IdentityClient,
        config: ProvisioningConfig,
        console: Optional[Console] = None,
        artifact_dir: Union[str, Path] = ".",
    ):
        self.client = client
        self.config = config
        self.console = console or Console()
        self.artifact_dir = Path(artifact_dir)
        self.stage = Stage.INIT
        self.artifacts: List[Path] = []

    @property
    def current_action(self) -> str:
        return STAGE_ACTIONS.get(self.stage, self.stage.value)

    def run(self) -> RunResult:
        """Walk every stage; tag and re-raise the first ProvisioningError."""
        try:
            self.authenticate()
            app = self.create_application()
            self.establish_credential(app)
            self.create_service_principal(app)
            self.assign_role(app)
            return self.collect_result(app)
        except ProvisioningError as e:
            e.stage = self.stage
            raise

    def _advance(self, stage: Stage):
        self.stage = stage

    def authenticate(self):
        self.console.step("🔍 Checking Azure CLI authentication...")
        self.client.authenticate()
        self.console.success("Authenticated with Azure")
        self._advance(Stage.AUTHENTICATED)

    def create_application(self) -> ApplicationRegistration:
        self.console.step(f"🔐 Creating app registration '{self.config.display_name}'...")
        app = self.client.create_application(self.config.display_name)
        self.artifacts.append(write_json(self.artifact_dir, APP_FILE, app.raw))
        self.console.success("App registration created")
        self.console.info(f"   Client ID: {app.client_id}")
        self.console.info(f"   Object ID: {app.object_id}")
        self._advance(Stage.APP_CREATED)
        return app

    def establish_credential(self, app: ApplicationRegistration):
        policy = build_policy(self.config)
        self.console.step(f"🔑 Creating federated credential '{policy.name}'...")

        if isinstance(policy, ClaimsExpressionPolicy):
            self.client.create_federated_credential_wildcard(app.object_id, policy)
            self.console.success(f"Trusting every branch of {self.config.repository}")
        elif isinstance(policy, ExactSubjectPolicy):
            parameters = write_json(self.artifact_dir, CREDENTIAL_FILE, policy.to_document())
            self.artifacts.append(parameters)
            self.client.create_federated_credential(app.client_id, policy, parameters)
            credentials = self.client.list_federated_credentials(app.client_id)
            self.console.success(f"Trusting {policy.subject}")
            self.console.info(f"   {len(credentials)} federated credential(s) on the app")
        else:
            raise TypeError(f"Unknown federated credential policy: {policy!r}")

        self._advance(Stage.CREDENTIAL_ESTABLISHED)

    def create_service_principal(self, app: ApplicationRegistration):
        self.console.step("👤 Creating service principal...")
        self.client.create_service_principal(app.client_id)
        self.client.show_service_principal(app.client_id)
        self.console.success("Service principal created")
        self._advance(Stage.PRINCIPAL_CREATED)

    def assign_role(self, app: ApplicationRegistration):
        self.console.step(f"🛡️  Assigning {CONTRIBUTOR_ROLE} role...")
        subscription_id = self.client.read_subscription_id()
        if not subscription_id:
            raise MissingIdentifierError(READ_SUBSCRIPTION_ID, "id")

        scope = role_scope(subscription_id, self.config.resource_group)
        self.client.create_role_assignment(app.client_id, CONTRIBUTOR_ROLE, scope)
        assignments = self.client.list_role_assignments(app.client_id)
        self.console.success(f"{CONTRIBUTOR_ROLE} on {scope}")
        self.console.info(f"   {len(assignments)} role assignment(s) for the service principal")
        self._advance(Stage.ROLE_ASSIGNED)

    def collect_result(self, app: ApplicationRegistration) -> RunResult:
        tenant_id = self.client.read_tenant_id()
        if not tenant_id:
            raise MissingIdentifierError(READ_TENANT_ID, "tenantId")
        # Read again rather than reuse the value from assign_role
        subscription_id = self.client.read_subscription_id()
        if not subscription_id:
            raise MissingIdentifierError(READ_SUBSCRIPTION_ID, "id")

        self._advance(Stage.REPORTED)
        return RunResult(
            client_id=app.client_id,
            tenant_id=tenant_id,
            subscription_id=subscription_id,
            repository=self.config.repository,
            artifacts=tuple(self.artifacts),
        )
