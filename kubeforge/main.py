#!/usr/bin/env python3
"""
KubeForge Agent - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Initializes modules
3. Runs the agent loop until a termination signal arrives

All business logic is in the modules, following black box principles.
"""

import logging
import signal
import sys
from typing import Optional

from kubernetes.config import ConfigException

from kubeforge.config import ConfigError, ConfigProvider, EnvConfigProvider
from kubeforge.logging_config import configure_logging
from kubeforge.modules.agent import Agent
from kubeforge.modules.cluster import KubernetesResourceProvider, load_kube_config
from kubeforge.modules.dispatcher import CommandDispatcher
from kubeforge.modules.transport import ControlPlaneClient

logger = logging.getLogger("kubeforge.main")


def build_agent(config_provider: Optional[ConfigProvider] = None) -> Agent:
    """
    Wire the agent's modules together.

    Raises:
        ConfigError: Required configuration is missing
    """
    config = (config_provider or EnvConfigProvider()).get_agent_config()
    configure_logging(config.log_level, token=config.token)

    # Security validation: Warn if using HTTP in production
    if config.uses_plain_http and config.verify_ssl:
        logger.warning("⚠️  Using HTTP without TLS - this should only be used for local development!")

    load_kube_config()
    provider = KubernetesResourceProvider()
    dispatcher = CommandDispatcher(provider)
    client = ControlPlaneClient(config)
    return Agent(config, client, dispatcher, provider=provider)


def install_signal_handlers(agent: Agent) -> None:
    """Turn SIGTERM and SIGINT into a graceful agent shutdown."""

    def _handle(signum, frame):
        logger.info(f"{signal.Signals(signum).name} received, shutting down")
        agent.stop()

    signal.signal(signal.SIGTERM, _handle)
    signal.signal(signal.SIGINT, _handle)


def main() -> None:
    """Main entry point."""
    try:
        agent = build_agent()
    except (ConfigError, ConfigException) as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error(str(e))
        sys.exit(1)

    install_signal_handlers(agent)

    with agent.client:
        try:
            agent.run()
        except Exception as e:
            logger.exception(f"Agent fatal error: {e}")
            sys.exit(1)


if __name__ == "__main__":
    main()
