#!/usr/bin/env python
# coding: utf-8

"""
Comparison Configuration
Centralized settings for pairwise CpG methylation comparison
"""

import copy
import json
import os
from datetime import datetime
from typing import Any, Dict, Optional


# ============================================================================
# DEFAULT CONFIGURATION
# ============================================================================

DEFAULT_COMPARISON_SETTINGS = {
    'pseudocount': 1.0,
    'all_loci': False,
    'input_format': 'auto',
    'output_format': 'bed',
    'score_format': 'g',
    'verbose': False,
}

DEFAULT_INPUT_FORMATS = {
    'bed': {
        'name': 'BED CpG counts',
        'columns': ['chrom', 'start', 'end', 'name', 'score', 'strand'],
        'suffixes': ['.bed', '.bed.gz'],
        'level_column': 'score',
        'reads_column': 'name',
        'notes': "Read total after the first ':' of the name, e.g. CpG:12",
    },
    'methcounts': {
        'name': 'Per-locus methylation summary',
        'columns': ['chrom', 'pos', 'strand', 'context', 'level', 'n_reads'],
        'suffixes': ['.meth', '.methcounts', '.meth.gz', '.methcounts.gz'],
        'level_column': 'level',
        'reads_column': 'n_reads',
        'notes': 'One line per cytosine, 0-based position',
    },
}

OUTPUT_FORMATS = ('bed', 'csv', 'tsv', 'excel')
INPUT_FORMATS = ('auto',) + tuple(DEFAULT_INPUT_FORMATS)


def validate_settings(settings: Dict[str, Any]) -> None:
    """Check setting values, raising ValueError on the first bad one."""
    pseudocount = settings['pseudocount']
    if isinstance(pseudocount, bool) or not isinstance(pseudocount, (int, float)):
        raise ValueError(f"pseudocount must be a number, got {pseudocount!r}")
    if pseudocount < 0:
        raise ValueError(f"pseudocount must be non-negative, got {pseudocount}")

    if settings['input_format'] not in INPUT_FORMATS:
        raise ValueError(f"Unsupported input format: {settings['input_format']}")
    if settings['output_format'] not in OUTPUT_FORMATS:
        raise ValueError(f"Unsupported output format: {settings['output_format']}")
    try:
        format(0.5, settings['score_format'])
    except (TypeError, ValueError):
        raise ValueError(f"Invalid score format: {settings['score_format']!r}")


# ============================================================================
# CONFIGURATION MANAGER
# ============================================================================

class ComparisonConfig:
    """
    Configuration manager for methylation comparisons.

    Holds the run settings and the description of supported input formats,
    and loads/saves both as JSON.
    """

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration manager.

        Parameters
        ----------
        config_file : str, optional
            Path to JSON configuration file
        """
        self.settings = DEFAULT_COMPARISON_SETTINGS.copy()
        self.input_formats = copy.deepcopy(DEFAULT_INPUT_FORMATS)

        if config_file and os.path.exists(config_file):
            self.load_from_file(config_file)

    def load_from_file(self, filepath: str):
        """
        Load configuration from JSON file.

        Only keys present in the file are updated.

        Parameters
        ----------
        filepath : str
            Path to JSON configuration file
        """
        with open(filepath, 'r') as f:
            config = json.load(f)

        if 'settings' in config:
            self.update(**config['settings'])
        if 'input_formats' in config:
            for format_id, description in config['input_formats'].items():
                self.input_formats.setdefault(format_id, {}).update(description)

    def save_to_file(self, filepath: str):
        """
        Save current configuration to JSON file.

        Parameters
        ----------
        filepath : str
            Path to save JSON configuration
        """
        config = {
            'settings': self.settings,
            'input_formats': self.input_formats,
            'last_updated': datetime.now().isoformat()
        }

        with open(filepath, 'w') as f:
            json.dump(config, f, indent=2)

    def update(self, **settings: Any):
        """
        Validate and apply setting overrides.

        ``None`` values are ignored so unset command-line options keep the
        configured value.
        """
        candidate = self.settings.copy()
        for key, value in settings.items():
            if value is None:
                continue
            if key not in DEFAULT_COMPARISON_SETTINGS:
                raise ValueError(f"Unknown setting: {key}")
            candidate[key] = value
        validate_settings(candidate)
        self.settings = candidate

    def validate(self):
        """Check the current settings."""
        validate_settings(self.settings)

    def get(self, key: str) -> Any:
        """Get a setting value."""
        return self.settings[key]

    def get_input_format(self, format_id: str) -> Dict[str, Any]:
        """Get input format description (column layout, suffixes)."""
        if format_id not in self.input_formats:
            raise ValueError(f"Unknown input format: {format_id}")
        return self.input_formats[format_id]

    def copy(self) -> 'ComparisonConfig':
        """Independent copy, so per-run overrides leave this instance untouched."""
        return copy.deepcopy(self)


# ============================================================================
# GLOBAL CONFIGURATION INSTANCE
# ============================================================================

_global_config = ComparisonConfig()


def get_config() -> ComparisonConfig:
    """
    Get global configuration instance.

    Examples
    --------
    >>> config = get_config()
    >>> config.get('pseudocount')
    1.0
    """
    return _global_config


def load_config(filepath: str):
    """
    Load configuration from file into global instance.

    Parameters
    ----------
    filepath : str
        Path to JSON configuration file
    """
    if not filepath.endswith('.json'):
        raise ValueError("Config file must be JSON format")
    _global_config.load_from_file(filepath)


def export_default_config(filepath: str):
    """
    Export default configuration template.

    Examples
    --------
    >>> export_default_config('methdiff.json')
    >>> # Edit, then load
    >>> load_config('methdiff.json')
    """
    if not filepath.endswith('.json'):
        raise ValueError("Filepath must end with .json")
    ComparisonConfig().save_to_file(filepath)
