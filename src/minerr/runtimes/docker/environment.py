"""Container environment for game servers."""

from minerr.config import RuntimeConfig
from minerr.runtimes.docker.models import CreationRequest, ProvisioningMode

# Provisioning mode -> server TYPE understood by the image
SERVER_TYPES = {
    ProvisioningMode.BASE: "VANILLA",
    ProvisioningMode.MANAGED_MODPACK: "AUTO_CURSEFORGE",
}


def build_environment(request: CreationRequest, config: RuntimeConfig) -> list[str]:
    """Translate a creation request into ``KEY=VALUE`` entries.

    Modpack credentials are only emitted for MANAGED_MODPACK, even if the
    request carries them for another mode.
    """
    env = [
        "EULA=TRUE",
        f"SERVER_NAME={request.name}",
        f"MOTD={request.motd}",
        f"TYPE={SERVER_TYPES[request.mode]}",
        f"VERSION={request.version}",
        f"MAX_PLAYERS={request.max_players}",
        f"MEMORY={request.memory}{config.memory_unit}",
        f"AUTOPAUSE_TIMEOUT_KN={config.handshake_timeout}",
        f"ENABLE_AUTOPAUSE={'TRUE' if config.auto_pause else 'FALSE'}",
    ]

    if request.mode is ProvisioningMode.MANAGED_MODPACK:
        env.append(f"CF_API_KEY={request.cf_api_key}")
        env.append(f"CF_PAGE_URL={request.cf_modpack_url}")

    return env
