"""Configuration management for the private voting client."""

from .config import (
    SystemConfig, LedgerConfig, FHEConfig, StatusConfig,
    DEV_CONTRACT_ADDRESS, load_config, save_config
)

__all__ = ['SystemConfig', 'LedgerConfig', 'FHEConfig', 'StatusConfig',
           'DEV_CONTRACT_ADDRESS', 'load_config', 'save_config']
