"""
Runtime configuration

Read once from the environment at the entry points and handed to the
collaborators. The engine itself never looks at the environment.
"""

import os
from dataclasses import dataclass
from decimal import Decimal

from .models import DEFAULT_FEE_RATE, parse_rate


@dataclass(frozen=True)
class Settings:
    environment: str = "dev"
    port: int = 8080
    database_url: str | None = None
    create_tables: bool = False
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o"
    default_fee_rate: Decimal = DEFAULT_FEE_RATE

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        env = os.environ if environ is None else environ
        fee_rate = env.get("DEFAULT_FEE_RATE")
        return cls(
            # Environment (dev, staging, prod)
            environment=env.get("ENVIRONMENT", "dev"),
            port=int(env.get("PORT", 8080)),
            database_url=env.get("DATABASE_URL") or None,
            create_tables=env.get("CREATE_TABLES", "false").lower() == "true",
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            openai_model=env.get("OPENAI_MODEL", "gpt-4o"),
            default_fee_rate=parse_rate(fee_rate, "DEFAULT_FEE_RATE") if fee_rate else DEFAULT_FEE_RATE,
        )
