#!/usr/bin/env python
# coding: utf-8

"""
Test suite for the `config` module.

This collection of tests validates:
- Default settings and input format descriptions
- Validation of setting overrides
- JSON save / load and the global configuration instance

Usage:
    pytest -v --cov=methdiff_engine.core.config --cov-report=html
"""

import json
from datetime import datetime

import pytest

import methdiff_engine.core.config as cfg


def test_defaults():
    conf = cfg.ComparisonConfig()
    assert conf.get('pseudocount') == 1.0
    assert conf.get('all_loci') is False
    assert conf.get('input_format') == 'auto'
    assert conf.get('output_format') == 'bed'
    assert set(conf.input_formats) == {'bed', 'methcounts'}


def test_get_config_returns_singleton():
    g1 = cfg.get_config()
    g2 = cfg.get_config()
    assert g1 is g2
    assert g1.get('pseudocount') == cfg.DEFAULT_COMPARISON_SETTINGS['pseudocount']


def test_defaults_not_shared_between_instances():
    conf = cfg.ComparisonConfig()
    conf.update(pseudocount=3)
    conf.input_formats['bed']['name'] = 'changed'
    assert cfg.DEFAULT_COMPARISON_SETTINGS['pseudocount'] == 1.0
    assert cfg.DEFAULT_INPUT_FORMATS['bed']['name'] == 'BED CpG counts'


def test_update_ignores_none():
    conf = cfg.ComparisonConfig()
    conf.update(pseudocount=None, all_loci=True)
    assert conf.get('pseudocount') == 1.0
    assert conf.get('all_loci') is True


@pytest.mark.parametrize(
    'settings,message',
    [
        ({'pseudocount': -1}, 'non-negative'),
        ({'pseudocount': 'one'}, 'must be a number'),
        ({'pseudocount': True}, 'must be a number'),
        ({'input_format': 'vcf'}, 'Unsupported input format'),
        ({'output_format': 'parquet'}, 'Unsupported output format'),
        ({'score_format': 'q'}, 'Invalid score format'),
        ({'threads': 4}, 'Unknown setting'),
    ],
)
def test_update_rejects_invalid(settings, message):
    conf = cfg.ComparisonConfig()
    with pytest.raises(ValueError, match=message):
        conf.update(**settings)


def test_failed_update_leaves_settings_unchanged():
    conf = cfg.ComparisonConfig()
    with pytest.raises(ValueError):
        conf.update(all_loci=True, pseudocount=-2)
    assert conf.get('all_loci') is False
    assert conf.get('pseudocount') == 1.0


def test_save_and_load_json(tmp_path):
    p = tmp_path / "conf.json"
    conf = cfg.ComparisonConfig()
    conf.update(pseudocount=0.5, all_loci=True)
    conf.save_to_file(str(p))

    new = cfg.ComparisonConfig()
    new.load_from_file(str(p))
    assert new.get('pseudocount') == 0.5
    assert new.get('all_loci') is True

    with open(str(p), 'r') as f:
        d = json.load(f)
    assert 'last_updated' in d
    datetime.fromisoformat(d['last_updated'])


def test_load_from_file_updates_only_present_keys(tmp_path):
    p = tmp_path / "partial.json"
    with open(p, 'w') as f:
        json.dump({'settings': {'pseudocount': 2}}, f)

    conf = cfg.ComparisonConfig(str(p))
    assert conf.get('pseudocount') == 2
    assert conf.get('output_format') == 'bed'


def test_load_from_file_validates(tmp_path):
    p = tmp_path / "bad.json"
    with open(p, 'w') as f:
        json.dump({'settings': {'pseudocount': -5}}, f)

    with pytest.raises(ValueError, match='non-negative'):
        cfg.ComparisonConfig().load_from_file(str(p))


def test_missing_config_file_uses_defaults(tmp_path):
    conf = cfg.ComparisonConfig(str(tmp_path / "absent.json"))
    assert conf.settings == cfg.DEFAULT_COMPARISON_SETTINGS


def test_load_config_global(tmp_path):
    p = tmp_path / "global.json"
    with open(p, 'w') as f:
        json.dump({'settings': {'all_loci': True}}, f)

    cfg.load_config(str(p))
    assert cfg.get_config().get('all_loci') is True


def test_load_config_requires_json(tmp_path):
    with pytest.raises(ValueError, match='JSON'):
        cfg.load_config(str(tmp_path / "conf.yaml"))


def test_export_default_config(tmp_path):
    p = tmp_path / "default.json"
    cfg.export_default_config(str(p))

    with open(p) as f:
        d = json.load(f)
    assert d['settings'] == cfg.DEFAULT_COMPARISON_SETTINGS
    assert 'methcounts' in d['input_formats']

    with pytest.raises(ValueError, match='.json'):
        cfg.export_default_config(str(tmp_path / "default.xlsx"))


def test_get_input_format():
    conf = cfg.ComparisonConfig()
    assert conf.get_input_format('methcounts')['level_column'] == 'level'
    assert conf.get_input_format('bed')['columns'][3] == 'name'

    with pytest.raises(ValueError, match='Unknown input format'):
        conf.get_input_format('vcf')


def test_load_merges_input_format_layout(tmp_path):
    p = tmp_path / "conf.json"
    columns = ['chrom', 'start', 'end', 'score', 'name', 'strand']
    with open(p, 'w') as f:
        json.dump({'input_formats': {'bed': {'columns': columns}}}, f)

    conf = cfg.ComparisonConfig(str(p))
    assert conf.get_input_format('bed')['columns'] == columns
    assert conf.get_input_format('bed')['level_column'] == 'score'
    assert cfg.DEFAULT_INPUT_FORMATS['bed']['columns'][3] == 'name'


def test_copy_is_independent():
    conf = cfg.ComparisonConfig()
    clone = conf.copy()
    clone.update(all_loci=True)
    clone.input_formats['bed']['columns'].append('extra')

    assert conf.get('all_loci') is False
    assert 'extra' not in conf.get_input_format('bed')['columns']
