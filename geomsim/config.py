# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""YAML-backed configuration for the simulator."""

from pathlib import Path
from typing import Any, Dict

import yaml


class Config:
    def __init__(self, config_path):
        self.config_path = Path(config_path)
        self.config = self.load_config()

    def load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file. A missing file yields an empty config."""
        if not self.config_path.exists():
            return {}
        with open(self.config_path, "r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {self.config_path}")
        return data

    def get(self, key, default=None):
        return self.config.get(key, default)

    def __getitem__(self, key):
        return self.config[key]

    def __contains__(self, key):
        return key in self.config
