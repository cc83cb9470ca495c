from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import logging

import yaml

logger = logging.getLogger(__name__)

# Address the development registry is deployed at
DEV_CONTRACT_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"


@dataclass
class LedgerConfig:
    contract_address: str = DEV_CONTRACT_ADDRESS
    # Seconds to wait for a receipt before failing with ConfirmationTimeout
    confirmation_timeout: float = 120.0
    block_time: float = 0.5
    max_concurrent_reads: int = 8

    def __post_init__(self):
        if self.confirmation_timeout <= 0:
            raise ValueError("confirmation_timeout must be positive")
        if self.max_concurrent_reads < 1:
            raise ValueError("max_concurrent_reads must be at least 1")


@dataclass
class FHEConfig:
    coprocessor_url: str = "local://coprocessor"
    key_seed: Optional[str] = None
    latency: float = 0.0
    decryption_latency: float = 0.0


@dataclass
class StatusConfig:
    success_display_seconds: float = 2.0
    error_display_seconds: float = 3.0


@dataclass
class SystemConfig:
    default_vote_value: int = 1
    id_prefix: str = "vote"

    ledger_config: LedgerConfig = field(default_factory=LedgerConfig)
    fhe_config: FHEConfig = field(default_factory=FHEConfig)
    status_config: StatusConfig = field(default_factory=StatusConfig)

    log_dir: Path = field(default_factory=lambda: Path("logs"))
    results_dir: Path = field(default_factory=lambda: Path("results"))
    log_level: str = "INFO"
    enable_debug_mode: bool = False

    def __post_init__(self):
        self.log_dir = Path(self.log_dir)
        self.results_dir = Path(self.results_dir)

        if self.enable_debug_mode:
            self.log_level = "DEBUG"


def load_config(config_path: Optional[Path] = None) -> SystemConfig:
    """Load configuration from file or return default"""
    if config_path is None:
        config_path = Path("config.yaml")
    config_path = Path(config_path)

    if config_path.exists():
        try:
            with open(config_path, 'r') as f:
                config_data = yaml.safe_load(f) or {}

            ledger_data = config_data.get('ledger', {})
            ledger_config = LedgerConfig(
                contract_address=ledger_data.get(
                    'contract_address', DEV_CONTRACT_ADDRESS),
                confirmation_timeout=float(
                    ledger_data.get('confirmation_timeout', 120.0)),
                block_time=float(ledger_data.get('block_time', 0.5)),
                max_concurrent_reads=int(
                    ledger_data.get('max_concurrent_reads', 8))
            )

            fhe_data = config_data.get('fhe', {})
            fhe_config = FHEConfig(
                coprocessor_url=fhe_data.get(
                    'coprocessor_url', 'local://coprocessor'),
                key_seed=fhe_data.get('key_seed'),
                latency=float(fhe_data.get('latency', 0.0)),
                decryption_latency=float(
                    fhe_data.get('decryption_latency', 0.0))
            )

            status_data = config_data.get('status', {})
            status_config = StatusConfig(
                success_display_seconds=float(
                    status_data.get('success_display_seconds', 2.0)),
                error_display_seconds=float(
                    status_data.get('error_display_seconds', 3.0))
            )

            return SystemConfig(
                default_vote_value=int(config_data.get('default_vote_value', 1)),
                id_prefix=config_data.get('id_prefix', 'vote'),
                ledger_config=ledger_config,
                fhe_config=fhe_config,
                status_config=status_config,
                log_dir=Path(config_data.get('log_dir', 'logs')),
                results_dir=Path(config_data.get('results_dir', 'results')),
                log_level=config_data.get('log_level', 'INFO'),
                enable_debug_mode=config_data.get('enable_debug_mode', False)
            )
        except (OSError, yaml.YAMLError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Could not load config file {config_path}: {e}")
            logger.warning("Using default configuration")

    return SystemConfig()


def save_config(config: SystemConfig, config_path: Optional[Path] = None):
    """Save configuration to YAML file"""
    if config_path is None:
        config_path = Path("config.yaml")

    config_data = {
        'default_vote_value': config.default_vote_value,
        'id_prefix': config.id_prefix,
        'ledger': {
            'contract_address': config.ledger_config.contract_address,
            'confirmation_timeout': config.ledger_config.confirmation_timeout,
            'block_time': config.ledger_config.block_time,
            'max_concurrent_reads': config.ledger_config.max_concurrent_reads
        },
        'fhe': {
            'coprocessor_url': config.fhe_config.coprocessor_url,
            'key_seed': config.fhe_config.key_seed,
            'latency': config.fhe_config.latency,
            'decryption_latency': config.fhe_config.decryption_latency
        },
        'status': {
            'success_display_seconds': config.status_config.success_display_seconds,
            'error_display_seconds': config.status_config.error_display_seconds
        },
        'log_dir': str(config.log_dir),
        'results_dir': str(config.results_dir),
        'log_level': config.log_level,
        'enable_debug_mode': config.enable_debug_mode
    }

    try:
        with open(config_path, 'w') as f:
            yaml.dump(config_data, f, default_flow_style=False)
    except OSError as e:
        logger.warning(f"Could not save config file {config_path}: {e}")
