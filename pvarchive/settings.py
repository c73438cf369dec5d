"""
Deployment settings for the archive. Settings are layered from several configobj files - the packaged defaults,
a platform flavor, the user's file and a local file - and validated against the packaged schema.
"""
import logging
import os
import platform
import sys

from configobj import ConfigObj, ConfigObjError, flatten_errors
from validate import Validator

logger = logging.getLogger(__name__)

config_extension = '.cfg'
default_name = 'archive'


def config_filename(name):
    filename = sys.modules[__name__].__file__
    dirname = os.path.dirname(os.path.abspath(filename))
    return os.path.join(dirname, name + config_extension)


def load_config_file_base(file, must_exist=True):
    return ConfigObj(file, interpolation='Template') if must_exist or os.path.exists(file) else ConfigObj()


def config_flavor_file(name, subpart=None, must_exist=True) -> ConfigObj:
    configname = name if not subpart else name + '.' + subpart
    return load_config_file_base(config_filename(configname), must_exist)


def user_config_filename(name):
    return os.path.expanduser('~/pvarchive_' + name + config_extension)


def load_settings(name=default_name) -> ConfigObj:
    """
    Loads the settings with the given name. Later files override earlier ones: defaults, platform, user, local.
    Only the defaults and the schema have to exist.
    """
    config = ConfigObj()
    config.merge(config_flavor_file(name, 'default'))
    config.merge(config_flavor_file(name, platform.system().lower(), must_exist=False))
    config.merge(load_config_file_base(user_config_filename(name), must_exist=False))
    config.merge(config_flavor_file(name, must_exist=False))
    return validate_settings(config, name)


def settings_from_dict(values: dict, name=default_name) -> ConfigObj:
    """ builds validated settings from a plain dictionary, with the schema defaults for anything not given.
    >>> s = settings_from_dict({'influxdb': {'dbname': 'plant'}})
    >>> s['influxdb']['dbname'], s['influxdb']['chunk_size']
    ('plant', 5000)
    """
    return validate_settings(ConfigObj(values), name)


def validate_settings(config: ConfigObj, name=default_name) -> ConfigObj:
    config.configspec = ConfigObj(config_filename(name + '.schema'), list_values=False, _inspec=True)
    validator = Validator()
    result = config.validate(validator, preserve_errors=True)
    if result is not True:
        for section_list, key, res in flatten_errors(config, result):
            if key is not None:
                logger.error('The "%s" key in the section "%s" failed validation: %s',
                             key, ', '.join(section_list), res)
            else:
                logger.error('The following section was missing: %s', ', '.join(section_list))
        raise ConfigObjError("the settings '%s' failed validation" % name)
    return config


def data_db_name(settings, channel_name=None):
    """ the database holding sample data. All channels currently share one database.
    >>> data_db_name(settings_from_dict({}), 'pv1')
    'pvarchive'
    """
    return settings['influxdb']['dbname']


def meta_db_name(settings, channel_name=None):
    """ the database holding channel metadata.
    >>> meta_db_name(settings_from_dict({}), 'pv1')
    'pvarchive_meta'
    """
    return settings['influxdb']['metadbname']
