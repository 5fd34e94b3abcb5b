#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Configuration layering tests

Priority: environment > command line > YAML > defaults
"""

import sys
from pathlib import Path

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

import json

import pytest
import yaml

from config import UnifiedConfig, config
from config.unified_config import get_config, parse_args, validate_config


def test_defaults():
    cfg = get_config(apply_env=False, validate=False)
    assert cfg.topology.num_edge_nodes == 3
    assert cfg.topology.num_devices == 200
    assert cfg.edge.vm_mips == 10000.0
    assert cfg.cloud.wan_latency_ms == pytest.approx(150.0)
    assert cfg.task.task_length == [3000.0, 6000.0, 10000.0, 15000.0]
    assert cfg.experiment.simulation_time == 30
    assert cfg.experiment.warm_up_period == 3
    assert cfg.security.security_level == 2
    assert validate_config(cfg) == []


def test_shared_instance():
    assert isinstance(config, UnifiedConfig)


def test_command_line_overrides():
    args = parse_args(['--num-devices', '20', '--simulation-time', '12',
                       '--seed', '7', '--no-advanced', '--log-level', 'DEBUG'])
    cfg = get_config(args, apply_env=False, validate=False)
    assert cfg.topology.num_devices == 20
    assert cfg.experiment.simulation_time == 12
    assert cfg.experiment.random_seed == 7
    assert cfg.experiment.advanced_features is False
    assert cfg.logging.level == "DEBUG"
    assert cfg.config_source.startswith("args+")


def test_environment_beats_command_line(monkeypatch):
    monkeypatch.setenv("EDGESIM_NUM_DEVICES", "55")
    monkeypatch.setenv("EDGESIM_ADVANCED", "no")
    args = parse_args(['--num-devices', '20'])
    cfg = get_config(args, validate=False)
    assert cfg.topology.num_devices == 55
    assert cfg.experiment.advanced_features is False


def test_unparseable_environment_value_warns(monkeypatch):
    monkeypatch.setenv("EDGESIM_NUM_DEVICES", "many")
    with pytest.warns(UserWarning):
        cfg = get_config(validate=False)
    assert cfg.topology.num_devices == 200


def test_yaml_file_overrides_defaults(tmp_path):
    path = tmp_path / "small.yaml"
    path.write_text(yaml.safe_dump({
        'topology': {'num_devices': 7, 'unknown_key': 1},
        'experiment': {'warm_up_period': 1},
    }))
    cfg = get_config(yaml_file=str(path), apply_env=False, validate=False)
    assert cfg.topology.num_devices == 7
    assert cfg.topology.num_edge_nodes == 3
    assert cfg.experiment.warm_up_period == 1
    assert cfg.config_source == str(path)


def test_validation_warnings():
    cfg = UnifiedConfig()
    cfg.topology.num_edge_nodes = 0
    cfg.experiment.warm_up_period = 40
    cfg.task.generation_probability = 1.5
    cfg.task.input_size = [1.0]
    cfg.services.min_recovery_ticks = 9
    problems = validate_config(cfg)
    assert len(problems) == 5

    with pytest.warns(UserWarning):
        get_config(parse_args(['--warm-up', '50']), apply_env=False)


def test_export_yaml_and_json(tmp_path):
    cfg = UnifiedConfig()
    yaml_path = tmp_path / "cfg.yaml"
    json_path = tmp_path / "cfg.json"
    cfg.to_yaml(str(yaml_path))
    cfg.to_json(str(json_path))

    reloaded = get_config(yaml_file=str(yaml_path), apply_env=False, validate=False)
    assert reloaded.to_dict()['topology'] == cfg.to_dict()['topology']
    assert json.loads(json_path.read_text())['cloud']['vm_mips'] == 20000.0
