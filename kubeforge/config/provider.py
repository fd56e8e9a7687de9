"""Configuration provider following Black Box Design principles."""
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Protocol, Union

DEFAULT_CLUSTER_NAME = "my-cluster"

REQUIRED_ENV_VARS = {
    "KUBEFORGE_TOKEN": "Agent token issued by the control plane",
    "KUBEFORGE_API_URL": "Base URL of the control plane API",
}


class ConfigError(ValueError):
    """Raised when required agent configuration is missing or invalid."""


@dataclass
class AgentConfig:
    """Agent configuration."""
    token: str
    api_url: str
    cluster_name: str = DEFAULT_CLUSTER_NAME
    verify_ssl: bool = True
    ca_cert_path: Optional[str] = None
    poll_timeout: float = 60.0
    register_retry_delay: float = 5.0
    poll_error_backoff: float = 5.0
    log_level: str = "INFO"

    @property
    def verify(self) -> Union[bool, str]:
        """Value for the ``verify`` argument of requests calls."""
        return self.ca_cert_path if self.ca_cert_path else self.verify_ssl

    @property
    def uses_plain_http(self) -> bool:
        """Check if the control plane is reached without TLS."""
        return self.api_url.startswith("http://")


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_agent_config(self) -> AgentConfig:
        """Get agent configuration."""
        ...


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._environ = os.environ if environ is None else environ

    def _get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self._environ.get(key)
        if value is None or value.strip() == "":
            return default
        return value.strip()

    def _get_float(self, key: str, default: float) -> float:
        raw = self._get(key)
        if raw is None:
            return default
        try:
            return float(raw)
        except ValueError:
            raise ConfigError(f"{key} must be a number, got {raw!r}")

    def get_agent_config(self) -> AgentConfig:
        """Get agent configuration from environment variables."""
        missing = [key for key in REQUIRED_ENV_VARS if self._get(key) is None]
        if missing:
            raise ConfigError(
                f"Missing required environment variables: {', '.join(missing)}. "
                "Set them in the agent deployment (see the kubeforge-agent secret)."
            )

        return AgentConfig(
            token=self._get("KUBEFORGE_TOKEN"),
            api_url=self._get("KUBEFORGE_API_URL").rstrip("/"),
            cluster_name=self._get("CLUSTER_NAME", DEFAULT_CLUSTER_NAME),
            verify_ssl=self._get("KUBEFORGE_SSL_VERIFY", "true").lower() == "true",
            ca_cert_path=self._get("KUBEFORGE_CA_CERT"),
            poll_timeout=self._get_float("KUBEFORGE_POLL_TIMEOUT", 60.0),
            register_retry_delay=self._get_float("KUBEFORGE_REGISTER_RETRY_DELAY", 5.0),
            poll_error_backoff=self._get_float("KUBEFORGE_POLL_ERROR_BACKOFF", 5.0),
            log_level=self._get("LOG_LEVEL", "INFO").upper(),
        )
