"""assetpatch - Configuration package.

Defaults ship in ``assetpatch/config.json``; a user file (JSON or YAML) named
by argument or ``ASSETPATCH_CONFIG`` is merged on top and validated with
jsonschema and pydantic.
"""

from .io import default_config_path, get_config_path, load_config, load_settings, save_config
from .models import ConfigModel, LoggingSettings, PatchingSettings, validate_config
from .schema import validate_config_schema

__all__ = [
    'ConfigModel',
    'LoggingSettings',
    'PatchingSettings',
    'default_config_path',
    'get_config_path',
    'load_config',
    'load_settings',
    'save_config',
    'validate_config',
    'validate_config_schema',
]
