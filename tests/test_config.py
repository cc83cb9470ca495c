from pathlib import Path

import pytest

from config.config import (
    DEV_CONTRACT_ADDRESS, LedgerConfig, SystemConfig, load_config, save_config
)


def test_missing_file_gives_defaults(tmp_path):
    config = load_config(tmp_path / "absent.yaml")
    assert config.ledger_config.contract_address == DEV_CONTRACT_ADDRESS
    assert config.ledger_config.confirmation_timeout == 120.0
    assert config.status_config.success_display_seconds == 2.0
    assert config.status_config.error_display_seconds == 3.0
    assert config.default_vote_value == 1


def test_save_and_load(tmp_path):
    path = tmp_path / "config.yaml"
    original = SystemConfig(
        id_prefix="poll",
        ledger_config=LedgerConfig(confirmation_timeout=30.0, block_time=0.1),
        results_dir=tmp_path / "out",
        enable_debug_mode=True,
    )
    save_config(original, path)

    loaded = load_config(path)
    assert loaded.id_prefix == "poll"
    assert loaded.ledger_config.confirmation_timeout == 30.0
    assert loaded.ledger_config.block_time == 0.1
    assert loaded.results_dir == Path(tmp_path / "out")
    assert loaded.log_level == "DEBUG"


def test_partial_file_keeps_other_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("ledger:\n  confirmation_timeout: 15\n")
    config = load_config(path)
    assert config.ledger_config.confirmation_timeout == 15.0
    assert config.ledger_config.max_concurrent_reads == 8
    assert config.fhe_config.coprocessor_url == "local://coprocessor"


@pytest.mark.parametrize("content", [
    "ledger: [unbalanced\n",
    "ledger:\n  confirmation_timeout: -1\n",
    "ledger: just-a-string\n",
])
def test_bad_file_falls_back_to_defaults(tmp_path, content):
    path = tmp_path / "config.yaml"
    path.write_text(content)
    config = load_config(path)
    assert config.ledger_config.confirmation_timeout == 120.0


def test_invalid_values_rejected():
    with pytest.raises(ValueError):
        LedgerConfig(max_concurrent_reads=0)
