# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent
DEFAULT_CONFIG_FILE = BASE_DIR / "config.yml"
