"""
Config Module - Black Box Interface

Purpose: Agent configuration management
Interface: EnvConfigProvider().get_agent_config() -> AgentConfig
Hidden: Environment parsing, defaults, validation

Can be replaced with different config sources (mounted files, Vault).
"""

from .provider import AgentConfig, ConfigError, ConfigProvider, EnvConfigProvider

__all__ = ["AgentConfig", "ConfigError", "ConfigProvider", "EnvConfigProvider"]
