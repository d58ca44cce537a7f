"""Core configuration for rolekeeper."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env(name: str, *legacy: str) -> AliasChoices:
    """Accept ROLEKEEPER_<NAME> plus the variable names the dApp already uses."""
    return AliasChoices(f"ROLEKEEPER_{name}", *legacy)


class Settings(BaseSettings):
    """Settings loaded from environment variables and ``.env``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ROLEKEEPER_",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # ── App ──────────────────────────────────────────────────────────────
    app_name: str = "rolekeeper"
    app_env: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    default_network: str = "localhost"

    # ── Registry addresses (per network) ─────────────────────────────────
    registry_polygon: str = Field(
        default="", validation_alias=_env("REGISTRY_POLYGON", "NEXT_PUBLIC_CERTIFICATE_CONTRACT_POLYGON"),
    )
    registry_mumbai: str = Field(
        default="", validation_alias=_env("REGISTRY_MUMBAI", "NEXT_PUBLIC_CERTIFICATE_CONTRACT_MUMBAI"),
    )
    registry_amoy: str = Field(
        default="", validation_alias=_env("REGISTRY_AMOY", "NEXT_PUBLIC_CERTIFICATE_CONTRACT_AMOY"),
    )
    registry_local: str = Field(
        default="", validation_alias=_env("REGISTRY_LOCAL", "NEXT_PUBLIC_CERTIFICATE_CONTRACT_LOCAL"),
    )

    # ── RPC endpoints ────────────────────────────────────────────────────
    polygon_rpc_url: str = Field(
        default="https://polygon-rpc.com", validation_alias=_env("POLYGON_RPC_URL", "POLYGON_RPC_URL"),
    )
    mumbai_rpc_url: str = Field(
        default="https://rpc-mumbai.maticvigil.com", validation_alias=_env("MUMBAI_RPC_URL", "MUMBAI_RPC_URL"),
    )
    amoy_rpc_url: str = Field(
        default="https://rpc-amoy.polygon.technology", validation_alias=_env("AMOY_RPC_URL", "AMOY_RPC_URL"),
    )
    local_rpc_url: str = "http://localhost:8545"

    # ── Role targets ─────────────────────────────────────────────────────
    authorized_minters: str = Field(default="", validation_alias=_env("AUTHORIZED_MINTERS", "AUTHORIZED_MINTERS"))
    admin_wallets: str = Field(default="", validation_alias=_env("ADMIN_WALLETS", "ADMIN_WALLETS"))
    minter_role_label: str = "MINTER"
    admin_role_label: str = "ADMIN"

    # ── Signing (delegated to cast) ──────────────────────────────────────
    private_key: SecretStr = Field(default=SecretStr(""), validation_alias=_env("PRIVATE_KEY", "PRIVATE_KEY"))
    sender_address: str = ""  # used with --unlocked when no private key is set

    # ── Foundry ──────────────────────────────────────────────────────────
    foundry_bin_path: str = "/usr/local/bin"
    cast_timeout_seconds: int = 60

    # ── Transactions ─────────────────────────────────────────────────────
    tx_timeout_seconds: int = 300
    confirmations: int = 2
    read_max_retries: int = 3
    read_retry_base_delay: float = 1.0

    # ── Capability probe ─────────────────────────────────────────────────
    probe_enabled: bool = True
    probe_subject: str = "0x0000000000000000000000000000000000000001"
    probe_course_id: str = "test-course-001"
    probe_course_name: str = "Test Course"
    probe_event_name: str = "CertificateMinted"
    probe_event_signature: str = "CertificateMinted(uint256,address,string,string,uint256,string)"

    def role_targets(self) -> dict[str, str]:
        """Comma-separated target lists keyed by role label."""
        return {
            self.minter_role_label: self.authorized_minters,
            self.admin_role_label: self.admin_wallets,
        }


@lru_cache
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()
