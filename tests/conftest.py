"""Global test fixtures."""

import os

# Tests build their own Config; a developer's YAML file must not leak in.
# This must happen at module load time, before any test module builds a Config.
os.environ.pop("SDCAT_CONFIG_FILE", None)
