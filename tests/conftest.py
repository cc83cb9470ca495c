import sys
from pathlib import Path

import pytest

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.config import FHEConfig, LedgerConfig, StatusConfig, SystemConfig  # noqa: E402

ALICE = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
BOB = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"


def fast_config(tmp_path: Path, **ledger) -> SystemConfig:
    """Zero block time and short status windows"""
    ledger.setdefault("block_time", 0.0)
    ledger.setdefault("confirmation_timeout", 5.0)
    return SystemConfig(
        ledger_config=LedgerConfig(**ledger),
        fhe_config=FHEConfig(key_seed="test-seed"),
        status_config=StatusConfig(success_display_seconds=0.05,
                                   error_display_seconds=0.05),
        log_dir=tmp_path / "logs",
        results_dir=tmp_path / "results",
    )


@pytest.fixture
def config(tmp_path):
    return fast_config(tmp_path)
