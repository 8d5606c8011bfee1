"""Configuration loading: CLI flags → env vars → defaults."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ConfigValue = str | int | bool | None

BLAME_STRATEGIES = ("first-hunk", "latest-hunk")
DEFAULT_PORT = 3344


def _validate_port(port: int) -> None:
    """Reject ports outside the TCP range."""
    if not 0 < port < 65536:
        msg = f"Invalid port {port}: must be between 1 and 65535"
        raise ValueError(msg)


def _validate_blame_strategy(strategy: str) -> None:
    if strategy not in BLAME_STRATEGIES:
        msg = (
            f"Invalid blame strategy '{strategy}': "
            f"expected one of {', '.join(BLAME_STRATEGIES)}"
        )
        raise ValueError(msg)


def _validate_default_branch(branch: str) -> None:
    """Warn if the initial branch name looks unusual."""
    if not branch or branch.startswith(("-", "/")) or ".." in branch:
        logger.warning(
            "Default branch '%s' is unlikely to be a valid ref name; "
            "git will reject it when initializing repositories",
            branch,
        )


def _load_env_files() -> None:
    """Load a dotenv file from the current directory (if present)."""
    load_dotenv(Path.cwd() / ".env", override=False)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class Config:
    """Immutable application configuration."""

    repos_root: Path = Path("repos")
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    default_branch: str = "main"
    blame_strategy: str = "first-hunk"
    verbose: bool = False

    def __post_init__(self) -> None:
        """Validate config fields on creation.

        Rejects ports outside 1-65535 and unknown blame strategies.  Logs a
        warning when ``default_branch`` looks like an invalid ref name.
        """
        _validate_port(self.port)
        _validate_blame_strategy(self.blame_strategy)
        _validate_default_branch(self.default_branch)

    @classmethod
    def from_env(cls, overrides: dict[str, ConfigValue] | None = None) -> Config:
        """Build config from environment variables, then apply overrides.

        Priority: overrides (CLI flags) > env vars > defaults.
        """
        _load_env_files()

        env_values: dict[str, ConfigValue] = {
            "repos_root": os.environ.get("REPO_HOST_REPOS_ROOT"),
            "host": os.environ.get("REPO_HOST_HOST"),
            "port": os.environ.get("REPO_HOST_PORT"),
            "default_branch": os.environ.get("REPO_HOST_DEFAULT_BRANCH"),
            "blame_strategy": os.environ.get("REPO_HOST_BLAME_STRATEGY"),
            "verbose": _env_flag("REPO_HOST_VERBOSE"),
        }

        merged = {k: v for k, v in env_values.items() if v}
        if overrides:
            merged.update({k: v for k, v in overrides.items() if v is not None})

        raw_port = merged.get("port", cls.port)
        try:
            port = int(raw_port)  # type: ignore[arg-type]
        except (TypeError, ValueError) as exc:
            msg = f"Invalid port {raw_port!r}: must be an integer"
            raise ValueError(msg) from exc

        return cls(
            repos_root=Path(str(merged.get("repos_root", cls.repos_root))).expanduser(),
            host=str(merged.get("host", cls.host)),
            port=port,
            default_branch=str(merged.get("default_branch", cls.default_branch)),
            blame_strategy=str(merged.get("blame_strategy", cls.blame_strategy)),
            verbose=bool(merged.get("verbose", cls.verbose)),
        )
