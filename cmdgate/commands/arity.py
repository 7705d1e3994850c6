"""Command arity table used to broaden permission patterns.

The arity of a command is how many leading tokens identify *what* it does,
ignoring the arguments it does it to. Approving `git status*` should cover
`git status --short` but not `git push`, so `git` has arity 2; `npm run`
needs the script name as well, so it has arity 3.
"""

from typing import Dict, List, Sequence

ARITY: Dict[str, int] = {
    # Version control
    "git": 2,
    "git config": 3,
    "git remote": 3,
    "git stash": 3,
    "git submodule": 3,
    "gh": 3,
    "hg": 2,
    "svn": 2,
    # JavaScript tooling
    "npm": 2,
    "npm run": 3,
    "npm exec": 3,
    "npx": 2,
    "pnpm": 2,
    "pnpm run": 3,
    "pnpm exec": 3,
    "yarn": 2,
    "yarn run": 3,
    "bun": 2,
    "bun run": 3,
    "bunx": 2,
    "deno": 2,
    "deno task": 3,
    # Python tooling
    "pip": 2,
    "pip3": 2,
    "uv": 2,
    "uv pip": 3,
    "poetry": 2,
    "pipx": 2,
    "conda": 2,
    "python -m": 3,
    "python3 -m": 3,
    # Other language toolchains
    "cargo": 2,
    "go": 2,
    "go mod": 3,
    "rustup": 2,
    "dotnet": 2,
    "mvn": 2,
    "gradle": 2,
    "make": 2,
    "bundle": 2,
    "gem": 2,
    "composer": 2,
    # Containers and cloud
    "docker": 2,
    "docker compose": 3,
    "docker container": 3,
    "docker image": 3,
    "docker network": 3,
    "docker volume": 3,
    "podman": 2,
    "kubectl": 2,
    "kubectl config": 3,
    "kubectl rollout": 3,
    "helm": 2,
    "terraform": 2,
    "aws": 3,
    "gcloud": 3,
    "az": 3,
    # System
    "systemctl": 2,
    "brew": 2,
    "apt": 2,
    "apt-get": 2,
    "dnf": 2,
    "yum": 2,
}


def prefix(tokens: Sequence[str]) -> List[str]:
    """Return the leading tokens that identify the command's class.

    The longest leading token sequence present in ARITY decides how many
    tokens are kept. Unknown commands keep only the program name.

    Args:
        tokens: Literal tokens of one invocation, program name first

    Returns:
        List of leading tokens (empty for an empty invocation)
    """
    if not tokens:
        return []
    for length in range(len(tokens), 0, -1):
        key = " ".join(tokens[:length])
        arity = ARITY.get(key)
        if arity is not None:
            return list(tokens[:arity])
    return list(tokens[:1])
