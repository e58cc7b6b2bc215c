import os

from enum import Enum


ENV_VAR = "NETWEAVE_ENV"


class Environment(Enum):
    """Which `.env` file and settings profile netweave runs with."""

    DEVELOPMENT = "development"
    TESTING     = "testing"
    PRODUCTION  = "production"

    @property
    def dotenv_filename(self) -> str:
        return ".env" if self is Environment.DEVELOPMENT else f".env.{self.value}"


def get_current_env() -> Environment:
    """The environment named by NETWEAVE_ENV (development when unset)."""
    return Environment(os.environ.get(ENV_VAR, Environment.DEVELOPMENT.value).lower())


def set_current_env(env: str | Environment) -> Environment:
    """Export `env` to NETWEAVE_ENV and return it; unknown names raise ValueError."""
    env = Environment(env.lower()) if isinstance(env, str) else Environment(env)
    os.environ[ENV_VAR] = env.value
    return env
