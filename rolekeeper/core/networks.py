"""Supported networks and registry address resolution."""

from __future__ import annotations

from dataclasses import dataclass

from rolekeeper.core.addresses import is_address
from rolekeeper.core.config import Settings, get_settings
from rolekeeper.core.errors import ConfigurationError
from rolekeeper.core.types import NetworkProfile


@dataclass(frozen=True)
class NetworkConfig:
    """Static description of a network the registry is deployed on."""

    chain_id: int
    name: str
    display_name: str
    registry_setting: str  # Settings attribute holding the registry address
    rpc_setting: str  # Settings attribute holding the RPC URL
    explorer_url: str
    native_currency: str = "ETH"
    is_testnet: bool = False


# ── Network Registry ─────────────────────────────────────────────────────────

NETWORKS: dict[str, NetworkConfig] = {
    "polygon": NetworkConfig(
        chain_id=137,
        name="polygon",
        display_name="Polygon Mainnet",
        registry_setting="registry_polygon",
        rpc_setting="polygon_rpc_url",
        explorer_url="https://polygonscan.com",
        native_currency="MATIC",
    ),
    "mumbai": NetworkConfig(
        chain_id=80001,
        name="mumbai",
        display_name="Mumbai Testnet",
        registry_setting="registry_mumbai",
        rpc_setting="mumbai_rpc_url",
        explorer_url="https://mumbai.polygonscan.com",
        native_currency="MATIC",
        is_testnet=True,
    ),
    "amoy": NetworkConfig(
        chain_id=80002,
        name="amoy",
        display_name="Amoy Testnet",
        registry_setting="registry_amoy",
        rpc_setting="amoy_rpc_url",
        explorer_url="https://amoy.polygonscan.com",
        native_currency="POL",
        is_testnet=True,
    ),
    "localhost": NetworkConfig(
        chain_id=31337,
        name="localhost",
        display_name="Localhost",
        registry_setting="registry_local",
        rpc_setting="local_rpc_url",
        explorer_url="",
        is_testnet=True,
    ),
}

NETWORK_ALIASES: dict[str, str] = {
    "hardhat": "localhost",
    "local": "localhost",
    "anvil": "localhost",
}


def get_network_config(network_name: str) -> NetworkConfig | None:
    """Get network configuration by name or alias."""
    key = network_name.strip().lower()
    return NETWORKS.get(NETWORK_ALIASES.get(key, key))


def get_all_networks() -> list[NetworkConfig]:
    """Return all supported networks."""
    return list(NETWORKS.values())


class NetworkProfileResolver:
    """Maps a network identifier to its registry.

    Pure lookup against the settings' address table; safe to call
    repeatedly. Any failure here is fatal because every later step would
    fail against a missing registry.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    def resolve(self, network_name: str) -> NetworkProfile:
        config = get_network_config(network_name or "")
        if config is None:
            supported = ", ".join(sorted([*NETWORKS, *NETWORK_ALIASES]))
            raise ConfigurationError(
                f"Unsupported network: {network_name!r} (supported: {supported})",
                network=network_name,
            )

        address = (getattr(self._settings, config.registry_setting, "") or "").strip()
        if not address:
            raise ConfigurationError(
                f"No registry address configured for network {config.name}. "
                "Deploy the contract first.",
                network=config.name,
            )
        if not is_address(address):
            raise ConfigurationError(
                f"Registry address for {config.name} is malformed: {address!r}",
                network=config.name,
            )

        return NetworkProfile(
            # keep the caller's name so "local" stays "local" in reports
            name=network_name.strip().lower(),
            registry_address=address,
            chain_id=config.chain_id,
            rpc_url=getattr(self._settings, config.rpc_setting, "") or "",
            explorer_url=config.explorer_url,
        )

    def is_configured(self, network_name: str) -> bool:
        try:
            self.resolve(network_name)
        except ConfigurationError:
            return False
        return True
