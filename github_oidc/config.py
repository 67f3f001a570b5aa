"""
Resolve the provisioning parameters.

Explicit command-line values win. Anything left out is derived from the
ambient context: the signed-in user, the clock, the repository's git remote
and, as a last resort, GITHUB_REPOSITORY / GITHUB_REPO from the environment
or a .env file.
"""
import getpass
import os
import re
import shutil
import subprocess
from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping, Optional, Tuple

from dotenv import find_dotenv, load_dotenv

from github_oidc.errors import ConfigurationError

DEFAULT_BRANCH = "main"
TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"
REPO_ENV_VARS = ("GITHUB_REPOSITORY", "GITHUB_REPO")

_GITHUB_PREFIX = re.compile(r"^.*?github\.com[:/]", re.IGNORECASE)


@dataclass(frozen=True)
class AmbientContext:
    """Everything the resolver would otherwise read from global state."""
    user: str
    remote_url: str
    now: datetime
    environ: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ProvisioningConfig:
    display_name: str
    owner: str
    repo: str
    branch: str
    wildcard: bool = False
    resource_group: Optional[str] = None

    @property
    def repository(self) -> str:
        return f"{self.owner}/{self.repo}"


def load_env_file(path: Optional[str] = None):
    """
    Load a .env file into os.environ without overriding existing values.

    Without a path, the file is searched for from the working directory up.
    """
    load_dotenv(dotenv_path=path or find_dotenv(usecwd=True), override=False)


def current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return ""


def git_remote_url(remote: str = "origin") -> str:
    """Return the URL of a git remote, or "" when there is none."""
    git = shutil.which("git")
    if not git:
        return ""
    try:
        result = subprocess.run(
            [git, "config", "--get", f"remote.{remote}.url"],
            capture_output=True,
            text=True
        )
    except OSError:
        return ""
    if result.returncode != 0:
        return ""
    return result.stdout.strip()


def gather_ambient_context() -> AmbientContext:
    return AmbientContext(
        user=current_user(),
        remote_url=git_remote_url(),
        now=datetime.now(),
        environ=dict(os.environ),
    )


def parse_remote_url(url: str) -> Tuple[str, str]:
    """
    Split a GitHub remote URL into (owner, repo).

    Handles https://github.com/owner/repo.git, git@github.com:owner/repo and
    ssh://git@github.com/owner/repo. Returns ("", "") when the URL is empty or
    does not point at github.com.
    """
    url = (url or "").strip()
    match = _GITHUB_PREFIX.match(url)
    if not match:
        return "", ""
    path = url[match.end():].strip("/")
    parts = path.split("/")
    if len(parts) < 2:
        return "", ""
    owner, name = parts[-2], parts[-1]
    if name.endswith(".git"):
        name = name[:-len(".git")]
    return owner, name


def _split_repository(value: str) -> Tuple[str, str]:
    parts = (value or "").strip().strip("/").split("/")
    if len(parts) != 2:
        return "", ""
    return parts[0], parts[1]


def _repository_from_context(context: AmbientContext) -> Tuple[str, str]:
    owner, name = parse_remote_url(context.remote_url)
    if owner and name:
        return owner, name
    for var in REPO_ENV_VARS:
        owner, name = _split_repository(context.environ.get(var, ""))
        if owner and name:
            return owner, name
    return "", ""


def default_display_name(context: AmbientContext) -> str:
    if not context.user:
        return ""
    return f"{context.user}-{context.now.strftime(TIMESTAMP_FORMAT)}"


def resolve_config(
    context: AmbientContext,
    display_name: Optional[str] = None,
    owner: Optional[str] = None,
    repo: Optional[str] = None,
    branch: Optional[str] = None,
    wildcard: bool = False,
    resource_group: Optional[str] = None,
) -> Tuple[ProvisioningConfig, list]:
    """
    Build the ProvisioningConfig for one run.

    Returns the config and a list of advisory messages. Raises
    ConfigurationError listing every value that is still empty after
    defaulting.
    """
    advisories = []
    branch = (branch or "").strip()

    if wildcard and branch:
        advisories.append(
            f"--branch '{branch}' is ignored because --all trusts every branch"
        )

    if not (owner and repo):
        fallback_owner, fallback_repo = _repository_from_context(context)
        owner = owner or fallback_owner
        repo = repo or fallback_repo

    values = {
        "display name": (display_name or default_display_name(context)).strip(),
        "GitHub username": (owner or "").strip(),
        "GitHub repository": (repo or "").strip(),
        "branch": branch or DEFAULT_BRANCH,
    }
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise ConfigurationError(f"Could not determine {', '.join(missing)}")

    config = ProvisioningConfig(
        display_name=values["display name"],
        owner=values["GitHub username"],
        repo=values["GitHub repository"],
        branch=values["branch"],
        wildcard=wildcard,
        resource_group=(resource_group or "").strip() or None,
    )
    return config, advisories
