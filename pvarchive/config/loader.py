"""
Populates an ArchiveConfig from a hierarchical description of engines, groups and channels.
The description is any nested mapping, typically a ConfigObj read from a file like this:

    [demo_engine]
    id = 1
    description = Demo engine
    url = http://localhost:4812
        [[vacuum]]
        id = 10
            [[[pv1]]]
            id = 100
            period = 5.0
            enabling = True

Reading the description format is left to the caller; this module only validates and indexes it.
"""
import collections.abc
import logging

from pvarchive.config.model import ArchiveConfig, ConfigurationError, EngineConfig, SampleMode

logger = logging.getLogger(__name__)

_true_values = ('true', 'yes', 'on', '1')
_false_values = ('false', 'no', 'off', '0')


def as_bool(value) -> bool:
    """
    >>> as_bool('Yes'), as_bool(False), as_bool('0')
    (True, False, False)
    """
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _true_values:
        return True
    if text in _false_values:
        return False
    raise ConfigurationError('not a boolean value: %r' % (value,))


def _subsections(section):
    return [(k, v) for k, v in section.items() if isinstance(v, collections.abc.Mapping)]


def _required(section, key, convert, owner):
    if key not in section:
        raise ConfigurationError('%s is missing "%s"' % (owner, key))
    try:
        return convert(section[key])
    except (TypeError, ValueError) as e:
        raise ConfigurationError('%s has an invalid "%s": %r' % (owner, key, section[key])) from e


def _sample_mode(section, owner) -> SampleMode:
    default = SampleMode()
    try:
        return SampleMode(as_bool(section.get('monitor', default.monitor)),
                          float(section.get('delta', default.delta)),
                          float(section.get('period', default.period)))
    except (TypeError, ValueError) as e:
        raise ConfigurationError('%s has an invalid sample mode' % owner) from e


def load_archive_config(description, config: ArchiveConfig=None) -> ArchiveConfig:
    """ adds the engines, groups and channels described to the given configuration, or to a new one. """
    config = config if config is not None else ArchiveConfig()
    for engine_name, engine_section in _subsections(description):
        owner = 'engine %s' % engine_name
        engine = config.add_engine(EngineConfig(_required(engine_section, 'id', int, owner), engine_name,
                                                engine_section.get('description', ''),
                                                _required(engine_section, 'url', str, owner)))
        for group_name, group_section in _subsections(engine_section):
            _load_group(config, engine, group_name, group_section)
        logger.debug("loaded %s", engine)
    return config


def _load_group(config: ArchiveConfig, engine: EngineConfig, group_name, group_section):
    group_id = _required(group_section, 'id', int, 'group %s' % group_name)
    group = config.add_group(engine.id, group_id, group_name)
    for channel_name, channel_section in _subsections(group_section):
        owner = 'channel %s' % channel_name
        channel = config.add_channel(group_id, _required(channel_section, 'id', int, owner), channel_name,
                                     _sample_mode(channel_section, owner))
        if as_bool(channel_section.get('enabling', False)):
            group.set_enabling_channel(channel)
    return group
