#!/usr/bin/env python3
"""
Set up passwordless GitHub Actions -> Azure authentication (OIDC).

Creates an app registration, a federated credential trusting the repository,
a service principal and a Contributor role assignment, then prints the three
values to store as GitHub secrets.

Prerequisites:
- Azure CLI installed and authenticated: az login
- Permissions to create app registrations and role assignments

Usage:
    github-oidc-setup                      # repo from git remote, branch main
    github-oidc-setup -b release -g my-rg  # one branch, resource group scope
    github-oidc-setup --all                # every branch
"""
import argparse
import sys
from pathlib import Path
from typing import Optional

from github_oidc.az import AzureCliClient, IdentityClient
from github_oidc.config import (
    AmbientContext,
    gather_ambient_context,
    load_env_file,
    resolve_config,
)
from github_oidc.console import Console, configure_windows_console
from github_oidc.errors import ProvisioningError
from github_oidc.orchestrator import Provisioner
from github_oidc.report import render_summary


class ArgumentParser(argparse.ArgumentParser):
    """argparse exits with 2 on bad usage; this tool always exits with 1."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"❌ {self.prog}: {message}\n")


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="github-oidc-setup",
        description="Create an Azure AD app with a federated credential for GitHub Actions",
    )
    parser.add_argument("-d", "--display-name", help="App registration name (default: <user>-<timestamp>)")
    parser.add_argument("-u", "--github-username", help="Repository owner (default: from git remote)")
    parser.add_argument("-r", "--github-repo", help="Repository name (default: from git remote)")
    parser.add_argument("-b", "--branch", help="Branch to trust (default: main, ignored with --all)")
    parser.add_argument("-a", "--all", action="store_true", dest="all_branches",
                        help="Trust every branch of the repository")
    parser.add_argument("-g", "--resource-group",
                        help="Scope the role assignment to this resource group instead of the subscription")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only print warnings and errors")
    parser.add_argument("--login", action="store_true", help="Run 'az login' before provisioning")
    return parser


def main(
    argv: Optional[list] = None,
    client: Optional[IdentityClient] = None,
    context: Optional[AmbientContext] = None,
    artifact_dir: Optional[Path] = None,
) -> int:
    """Parse arguments, provision and report. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    console = Console(quiet=args.quiet)

    if context is None:
        load_env_file()
        context = gather_ambient_context()

    console.heading("Azure OIDC Setup for GitHub Actions")

    try:
        config, advisories = resolve_config(
            context,
            display_name=args.display_name,
            owner=args.github_username,
            repo=args.github_repo,
            branch=args.branch,
            wildcard=args.all_branches,
            resource_group=args.resource_group,
        )
    except ProvisioningError as e:
        console.error(str(e))
        console.error(f"   {e.hint}")
        return 1

    for advisory in advisories:
        console.warn(advisory)

    console.info(f"📦 Repository: {config.repository}")
    console.info(f"🌿 Branch: {'* (all branches)' if config.wildcard else config.branch}")
    console.info(f"🏷️  Display name: {config.display_name}")
    console.info(f"🎯 Scope: {'resource group ' + config.resource_group if config.resource_group else 'subscription'}")

    provisioner = Provisioner(
        client or AzureCliClient(login=args.login),
        config,
        console=console,
        artifact_dir=artifact_dir or Path.cwd(),
    )
    try:
        result = provisioner.run()
    except ProvisioningError as e:
        console.error(f"Failed while {provisioner.current_action}: {e}")
        console.error(f"   {e.hint}")
        return 1
    except OSError as e:
        problem = f"could not write {e.filename}: {e.strerror}" if e.filename else str(e)
        console.error(f"Failed while {provisioner.current_action}: {problem}")
        return 1

    console.info()
    console.info(render_summary(result))
    return 0


def run():
    configure_windows_console()
    sys.exit(main())


if __name__ == "__main__":
    run()
