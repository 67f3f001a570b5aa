from github_oidc.cli import run

run()
