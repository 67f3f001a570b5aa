from datetime import datetime

import pytest

from github_oidc import az
from github_oidc.az import ApplicationRegistration
from github_oidc.config import AmbientContext, ProvisioningConfig
from github_oidc.errors import RemoteOperationError

SUBSCRIPTION_ID = "00000000-0000-0000-0000-0000000000aa"
TENANT_ID = "00000000-0000-0000-0000-0000000000bb"
CLIENT_ID = "11111111-1111-1111-1111-111111111111"
OBJECT_ID = "22222222-2222-2222-2222-222222222222"


class FakeIdentityClient:
    """In-memory IdentityClient that records every call it receives."""

    def __init__(self, fail=None, fail_on_call=None, app_response=None,
                 subscription_id=SUBSCRIPTION_ID, tenant_id=TENANT_ID):
        self.fail = set(fail or ())
        # operation -> which call (1-based) of that operation fails
        self.fail_on_call = dict(fail_on_call or {})
        self.app_response = app_response if app_response is not None else {
            "appId": CLIENT_ID, "id": OBJECT_ID, "displayName": "alice-20250101120000"
        }
        self.subscription_id = subscription_id
        self.tenant_id = tenant_id
        self.calls = []
        self.federated_credentials = []
        self.role_assignments = []

    def _call(self, operation, *args):
        self.calls.append((operation, args))
        if operation in self.fail or self.fail_on_call.get(operation) == self.operations.count(operation):
            raise RemoteOperationError(operation, "simulated failure")

    @property
    def operations(self):
        return [operation for operation, _ in self.calls]

    def authenticate(self):
        self._call(az.AUTHENTICATE)

    def create_application(self, display_name):
        self._call(az.CREATE_APPLICATION, display_name)
        return ApplicationRegistration.from_response(self.app_response)

    def create_federated_credential(self, client_id, policy, parameters_file=None):
        self._call(az.CREATE_FEDERATED_CREDENTIAL, client_id, policy, parameters_file)
        self.federated_credentials.append(policy.to_document())
        return policy.to_document()

    def create_federated_credential_wildcard(self, object_id, policy):
        self._call(az.CREATE_FEDERATED_CREDENTIAL_WILDCARD, object_id, policy)
        self.federated_credentials.append(policy.to_document())
        return policy.to_document()

    def list_federated_credentials(self, client_id):
        self._call(az.LIST_FEDERATED_CREDENTIALS, client_id)
        return list(self.federated_credentials)

    def create_service_principal(self, client_id):
        self._call(az.CREATE_SERVICE_PRINCIPAL, client_id)
        return {"appId": client_id}

    def show_service_principal(self, client_id):
        self._call(az.SHOW_SERVICE_PRINCIPAL, client_id)
        return {"appId": client_id}

    def read_subscription_id(self):
        self._call(az.READ_SUBSCRIPTION_ID)
        return self.subscription_id

    def create_role_assignment(self, client_id, role, scope):
        self._call(az.CREATE_ROLE_ASSIGNMENT, client_id, role, scope)
        assignment = {"principalName": client_id, "roleDefinitionName": role, "scope": scope}
        self.role_assignments.append(assignment)
        return assignment

    def list_role_assignments(self, client_id):
        self._call(az.LIST_ROLE_ASSIGNMENTS, client_id)
        return list(self.role_assignments)

    def read_tenant_id(self):
        self._call(az.READ_TENANT_ID)
        return self.tenant_id


@pytest.fixture
def fake_client():
    return FakeIdentityClient()


@pytest.fixture
def context():
    return AmbientContext(
        user="alice",
        remote_url="git@github.com:alice/demo.git",
        now=datetime(2025, 1, 1, 12, 0, 0),
        environ={},
    )


@pytest.fixture
def config():
    return ProvisioningConfig(display_name="alice-20250101120000", owner="alice", repo="demo", branch="main")


@pytest.fixture
def wildcard_config():
    return ProvisioningConfig(display_name="bob-20250101120000", owner="bob", repo="svc", branch="main", wildcard=True)
