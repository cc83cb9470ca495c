import json
import logging
import sys

import pytest

import main
from config.config import save_config
from conftest import fast_config


@pytest.fixture
def restore_logging():
    yield
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()


def test_demo_creates_decrypts_and_saves_reports(tmp_path, monkeypatch, restore_logging):
    config_path = tmp_path / "config.yaml"
    save_config(fast_config(tmp_path), config_path)
    monkeypatch.setattr(sys, "argv", ["main.py", "--config", str(config_path), "--votes", "2"])

    with pytest.raises(SystemExit) as exit_info:
        main.main()

    assert exit_info.value.code == 0
    report = json.loads((tmp_path / "results" / "demo_report.json").read_text())
    assert sorted(report['data']['decrypted'].values()) == [1, 2]
    assert report['data']['system_metrics']['verified_votes'] == 2
    assert (tmp_path / "results" / "performance_report.txt").exists()


def test_list_mode_no_longer_offered(monkeypatch):
    monkeypatch.setattr(sys, "argv", ["main.py", "--mode", "list"])
    with pytest.raises(SystemExit) as exit_info:
        main.main()
    assert exit_info.value.code == 2
