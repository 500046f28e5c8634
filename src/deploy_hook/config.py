import os

from dotenv import dotenv_values
from pydantic import Field
from pydantic_settings import BaseSettings

COMMANDS_PREFIX = "DEPLOY_COMMANDS_"
WORK_DIR_PREFIX = "WORK_DIR_"


def repo_key(full_name: str) -> str:
    """Environment key suffix for a repository: "my-org/my-api" -> "MY_ORG_MY_API"."""
    return full_name.upper().replace("/", "_").replace("-", "_")


def _scan_prefixed(prefix: str) -> dict[str, str]:
    """Collect non-empty variables starting with ``prefix``, keyed by the remainder."""
    values = {**dotenv_values(".env"), **os.environ}
    found = {}
    for name, value in values.items():
        if not name.startswith(prefix) or value is None:
            continue
        value = value.strip()
        if value:
            found[name[len(prefix):]] = value
    return found


class Settings(BaseSettings):
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "frozen": True,
        "str_strip_whitespace": True,
    }

    # Server
    host: str = "0.0.0.0"
    port: int = 8300
    log_level: str = "info"

    # GitHub
    webhook_secret: str

    # Discord
    discord_webhook: str = ""

    # Deployment
    deploy_commands: str = ""
    work_dir: str = ""
    deploy_branch: str = "main"
    serialize_deployments: bool = True

    # Per-repository overrides, keyed by repo_key()
    repo_commands: dict[str, str] = Field(
        default_factory=lambda: _scan_prefixed(COMMANDS_PREFIX)
    )
    repo_work_dirs: dict[str, str] = Field(
        default_factory=lambda: _scan_prefixed(WORK_DIR_PREFIX)
    )

    def command_override(self, full_name: str) -> str:
        """Semicolon-separated override for a repository, falling back to the global one."""
        return self.repo_commands.get(repo_key(full_name)) or self.deploy_commands

    def working_dir(self, full_name: str) -> str:
        return self.repo_work_dirs.get(repo_key(full_name)) or self.work_dir
