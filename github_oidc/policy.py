"""
Federated credential policies and role assignment scopes.

A federated credential is either an exact subject (one branch) or a claims
matching expression (every branch). Both share the GitHub Actions issuer and
the Azure AD token exchange audience.
"""
import re
from dataclasses import dataclass
from typing import Optional, Union

from github_oidc.config import ProvisioningConfig

GITHUB_ISSUER = "https://token.actions.githubusercontent.com"
AZURE_AUDIENCE = "api://AzureADTokenExchange"
CONTRIBUTOR_ROLE = "Contributor"

_MAX_NAME_LENGTH = 120
_INVALID_NAME_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


def credential_name(*parts: str) -> str:
    """Join parts into a federated credential name Entra ID accepts."""
    name = _INVALID_NAME_CHARS.sub("-", "-".join(parts)).strip("-")
    return name[:_MAX_NAME_LENGTH]


def exact_subject(owner: str, repo: str, branch: str) -> str:
    return f"repo:{owner}/{repo}:ref:refs/heads/{branch}"


def claims_expression(owner: str, repo: str) -> str:
    return (
        f"claims['sub'] matches 'repo:{owner}/{repo}:ref:refs/heads/*' "
        f"and claims['job_workflow_ref'] matches "
        f"'{owner}/{repo}/.github/workflows/*.yml@refs/heads/*'"
    )


@dataclass(frozen=True)
class ExactSubjectPolicy:
    """Trusts tokens issued for one branch."""
    name: str
    subject: str
    description: str

    def to_document(self) -> dict:
        """Body accepted by `az ad app federated-credential create --parameters`."""
        return {
            "name": self.name,
            "issuer": GITHUB_ISSUER,
            "subject": self.subject,
            "description": self.description,
            "audiences": [AZURE_AUDIENCE],
        }


@dataclass(frozen=True)
class ClaimsExpressionPolicy:
    """Trusts tokens issued for any branch of the repository."""
    name: str
    expression: str
    description: str

    def to_document(self) -> dict:
        """Body for POST /applications/{id}/federatedIdentityCredentials (Graph beta)."""
        return {
            "name": self.name,
            "issuer": GITHUB_ISSUER,
            "audiences": [AZURE_AUDIENCE],
            "description": self.description,
            "claimsMatchingExpression": {
                "value": self.expression,
                "languageVersion": 1,
            },
        }


FederatedCredentialPolicy = Union[ExactSubjectPolicy, ClaimsExpressionPolicy]


def build_policy(config: ProvisioningConfig) -> FederatedCredentialPolicy:
    """Pick the policy variant for the configured mode."""
    if config.wildcard:
        return ClaimsExpressionPolicy(
            name=credential_name(config.repo, "all-branches"),
            expression=claims_expression(config.owner, config.repo),
            description=f"GitHub Actions for every branch of {config.repository}",
        )
    return ExactSubjectPolicy(
        name=credential_name(config.repo, config.branch),
        subject=exact_subject(config.owner, config.repo, config.branch),
        description=f"GitHub Actions for {config.repository} on {config.branch}",
    )


def role_scope(subscription_id: str, resource_group: Optional[str] = None) -> str:
    """Subscription path, narrowed to a resource group when one is given."""
    scope = f"/subscriptions/{subscription_id}"
    if resource_group:
        scope += f"/resourceGroups/{resource_group}"
    return scope
