"""
Final summary of a provisioning run.

Only rendered after every step succeeded, so whatever it prints describes a
working trust between the repository and Azure.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

SECRET_NAMES = ("AZURE_CLIENT_ID", "AZURE_TENANT_ID", "AZURE_SUBSCRIPTION_ID")


@dataclass(frozen=True)
class RunResult:
    client_id: str
    tenant_id: str
    subscription_id: str
    repository: str = ""
    artifacts: Tuple[Path, ...] = field(default_factory=tuple)

    @property
    def secrets(self) -> dict:
        return dict(zip(SECRET_NAMES, (self.client_id, self.tenant_id, self.subscription_id)))

    @property
    def complete(self) -> bool:
        return all(self.secrets.values())


WORKFLOW_SNIPPET = """\
permissions:
  id-token: write
  contents: read

steps:
  - uses: azure/login@v2
    with:
      client-id: ${{ secrets.AZURE_CLIENT_ID }}
      tenant-id: ${{ secrets.AZURE_TENANT_ID }}
      subscription-id: ${{ secrets.AZURE_SUBSCRIPTION_ID }}"""


def render_summary(result: RunResult) -> str:
    """Format the secrets to store in GitHub plus where the artifacts went."""
    if not result.complete:
        missing = [name for name, value in result.secrets.items() if not value]
        raise ValueError(f"Incomplete run result, missing {', '.join(missing)}")

    lines = ["=" * 70, "✅ Setup Complete!", "=" * 70, ""]
    lines.append("Add these secrets to the GitHub repository:")
    for name, value in result.secrets.items():
        lines.append(f"  {name}={value}")
    lines.append("")

    if result.repository:
        lines.append("Or with the GitHub CLI:")
        for name, value in result.secrets.items():
            lines.append(f"  gh secret set {name} --repo {result.repository} --body \"{value}\"")
        lines.append("")

    if result.artifacts:
        lines.append("Details saved to:")
        for path in result.artifacts:
            lines.append(f"  📄 {path}")
        lines.append("")

    lines.append("Then sign in from a workflow with:")
    lines.append("")
    lines.extend(f"  {line}" if line else "" for line in WORKFLOW_SNIPPET.splitlines())
    return "\n".join(lines)
