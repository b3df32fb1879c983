"""Configuration domain exports."""

from .config_scaffold_builder import (
    DEFAULT_CONFIG_FILENAME,
    build_placeholder_configuration,
    write_placeholder_configuration,
)
from .loader import ConfigurationError, load_configuration
from .runtime_settings import (
    Configuration,
    ConsumerBehaviour,
    ConsumerConfig,
    InitialOffset,
    KafkaSettings,
    RegistrySettings,
    default_consumer_config,
)

__all__ = [
    "Configuration",
    "ConsumerBehaviour",
    "ConsumerConfig",
    "InitialOffset",
    "KafkaSettings",
    "RegistrySettings",
    "default_consumer_config",
    "ConfigurationError",
    "load_configuration",
    "DEFAULT_CONFIG_FILENAME",
    "build_placeholder_configuration",
    "write_placeholder_configuration",
]
