'''
Load and validate configuration of the conversion job
'''


import copy
import json
import pkgutil

import jsonschema
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from audioconvert import CONFIG_ENCODING, DEFAULT_CONFIG
from audioconvert.errors import ConfigError


import logging
log = logging.getLogger(__name__)



_schema = None
def schema():
    '''JSON schema for configuration files (shipped with the package)'''
    global _schema
    if _schema is None:
        _schema = json.loads(pkgutil.get_data('audioconvert', 'schema.json').decode())
    return _schema



def validate(config):
    try:
        jsonschema.validate(config, schema())
    except jsonschema.ValidationError as error:
        location = '/'.join(str(p) for p in error.absolute_path) or '<root>'
        raise ConfigError('Invalid configuration at {}: {}'.format(
            location, error.message
        )) from error
    return config



def read_config(filename):
    '''Read YAML configuration file and validate it'''
    yaml = YAML(typ='safe')
    try:
        with open(filename, encoding=CONFIG_ENCODING) as f:
            config = yaml.load(f)
    except (OSError, YAMLError) as error:
        raise ConfigError('Can not read {}: {}'.format(filename, error)) from error
    if config is None:
        config = {}
    if not isinstance(config, dict):
        raise ConfigError('{} must contain a mapping'.format(filename))
    log.debug('Loaded configuration from {}'.format(filename))
    return validate(config)



def merge(*configs):
    '''
    Combine configuration layers, later ones take precedence

    None values never override anything. "operation" sections are merged key
    by key unless the preset changes.
    '''
    result = copy.deepcopy(DEFAULT_CONFIG)
    for config in configs:
        for key, value in (config or {}).items():
            if value is None:
                continue
            if key == 'operation':
                value = {k: v for k, v in value.items() if v is not None}
                preset = value.get('preset', result[key].get('preset'))
                if preset != result[key].get('preset'):
                    result[key] = {}
                result[key] = dict(result[key], **value)
            else:
                result[key] = value
    return validate(result)
