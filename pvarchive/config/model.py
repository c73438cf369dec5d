"""
The archive configuration: engines own groups, groups own channels.
Ids are plain values - a channel refers to its group by id, and a group to its engine by id.
"""
from urllib.parse import urlparse

from pvarchive.vtype import namedtuple_with_defaults


class ConfigurationError(Exception):
    """ Indicates an invalid change to the archive configuration. The configuration is left unchanged. """
    pass


class DuplicateChannelError(ConfigurationError):
    """ Indicates a channel name is already present in a group. """
    pass


class DuplicateIdError(ConfigurationError):
    """ Indicates an engine, group or channel id is already in use. """
    pass


class GroupMismatchError(ConfigurationError):
    """ Indicates a channel was used with a group it does not belong to. """
    pass


SampleMode = namedtuple_with_defaults('SampleMode', ['monitor', 'delta', 'period'], [True, 0.0, 1.0])


def validate_url(url: str) -> str:
    """
    >>> validate_url('http://localhost:8086')
    'http://localhost:8086'
    >>> validate_url('localhost')
    Traceback (most recent call last):
    ...
    pvarchive.config.model.ConfigurationError: not a valid url: 'localhost'
    """
    try:
        parts = urlparse(url)
        parts.port     # raises ValueError for a port that is not a number or out of range
    except (ValueError, TypeError, AttributeError) as e:
        raise ConfigurationError('not a valid url: %r' % (url,)) from e
    if not parts.scheme or not parts.hostname:
        raise ConfigurationError('not a valid url: %r' % (url,))
    return url


class EngineConfig:
    """ Describes one archive engine. """

    def __init__(self, id: int, name: str, description: str, url: str):
        self._id = id
        self.name = name
        self.description = description
        self.url = validate_url(url)

    @property
    def id(self):
        return self._id

    def __str__(self):
        return 'Engine %s: %s, %s [%d]' % (self.name, self.description, self.url, self._id)


class ChannelConfig:
    """ A single archived channel.
    last_type is the value type of the last sample archived, or None when not yet known.
    """

    def __init__(self, id: int, name: str, sample_mode: SampleMode, last_type, group_id: int):
        self._id = id
        self._name = name
        self._group_id = group_id
        self.sample_mode = sample_mode
        self.last_type = last_type

    @property
    def id(self):
        return self._id

    @property
    def name(self):
        return self._name

    @property
    def group_id(self):
        return self._group_id

    def __str__(self):
        return 'Channel %s [%d], %s' % (self._name, self._id, self.sample_mode)


class GroupConfig:
    """ A named collection of channels within one engine, enabled by one of its channels.
    >>> g = GroupConfig(2, 'vacuum', None, 1)
    >>> c = g.add_channel(10, 'pv1', SampleMode())
    >>> g.contains_channel('pv1'), c.group_id
    (True, 2)
    >>> str(g)
    'vacuum (2)'
    """

    def __init__(self, group_id: int, name: str, enabling_channel: str, engine_id: int):
        self._group_id = group_id
        self._engine_id = engine_id
        self.name = name
        self._enabling_channel = enabling_channel
        self._channel_name2id = dict()
        self._channel_id2obj = dict()

    @property
    def group_id(self):
        return self._group_id

    @property
    def engine_id(self):
        return self._engine_id

    @property
    def enabling_channel(self):
        return self._enabling_channel

    @property
    def channels(self) -> list:
        return list(self._channel_id2obj.values())

    def contains_channel(self, channel_name) -> bool:
        return channel_name in self._channel_name2id

    def get_channel(self, channel_name):
        channel_id = self._channel_name2id.get(channel_name)
        return None if channel_id is None else self._channel_id2obj[channel_id]

    def set_enabling_channel(self, channel: ChannelConfig):
        if channel.group_id != self._group_id:
            raise GroupMismatchError("Tried to set enabling channel to config with group id %d != %d"
                                     % (channel.group_id, self._group_id))
        self._enabling_channel = channel.name

    def add_channel(self, channel_id: int, channel_name: str, sample_mode: SampleMode) -> ChannelConfig:
        if channel_name in self._channel_name2id:
            raise DuplicateChannelError("Cannot re-add extant channel %s to group %s" % (channel_name, self.name))
        if channel_id in self._channel_id2obj:
            raise DuplicateIdError("Channel id %d already used in group %s" % (channel_id, self.name))
        channel = ChannelConfig(channel_id, channel_name, sample_mode, None, self._group_id)
        self._channel_name2id[channel_name] = channel_id
        self._channel_id2obj[channel_id] = channel
        return channel

    def __str__(self):
        return '%s (%d)' % (self.name, self._group_id)


class ArchiveConfig:
    """ All engines and groups known to the archive, indexed by their global ids.
        Not safe for concurrent mutation; callers sharing one instance between threads must lock around changes.
    """

    def __init__(self):
        self._engines = dict()
        self._groups = dict()
        self._channel_ids = set()

    @property
    def engines(self) -> list:
        return list(self._engines.values())

    @property
    def groups(self) -> list:
        return list(self._groups.values())

    def engine(self, engine_id) -> EngineConfig:
        try:
            return self._engines[engine_id]
        except KeyError as e:
            raise ConfigurationError("Unknown engine id %s" % engine_id) from e

    def group(self, group_id) -> GroupConfig:
        try:
            return self._groups[group_id]
        except KeyError as e:
            raise ConfigurationError("Unknown group id %s" % group_id) from e

    def add_engine(self, engine: EngineConfig) -> EngineConfig:
        if engine.id in self._engines:
            raise DuplicateIdError("Engine id %d already used by %s" % (engine.id, self._engines[engine.id]))
        self._engines[engine.id] = engine
        return engine

    def add_group(self, engine_id: int, group_id: int, name: str, enabling_channel: str=None) -> GroupConfig:
        self.engine(engine_id)
        if group_id in self._groups:
            raise DuplicateIdError("Group id %d already used by %s" % (group_id, self._groups[group_id]))
        group = GroupConfig(group_id, name, enabling_channel, engine_id)
        self._groups[group_id] = group
        return group

    def groups_of(self, engine_id) -> list:
        return [g for g in self._groups.values() if g.engine_id == engine_id]

    def add_channel(self, group_id: int, channel_id: int, name: str, sample_mode: SampleMode) -> ChannelConfig:
        group = self.group(group_id)
        if group.contains_channel(name):
            raise DuplicateChannelError("Cannot re-add extant channel %s to group %s" % (name, group))
        if channel_id in self._channel_ids:
            raise DuplicateIdError("Channel id %d already in use" % channel_id)
        channel = group.add_channel(channel_id, name, sample_mode)
        self._channel_ids.add(channel_id)
        return channel

    def set_enabling_channel(self, group_id: int, channel: ChannelConfig):
        self.group(group_id).set_enabling_channel(channel)

    def list_channels(self, group_id) -> list:
        return self.group(group_id).channels

    def channel_exists(self, group_id, name) -> bool:
        return self.group(group_id).contains_channel(name)

    def find_channel(self, name):
        for group in self._groups.values():
            channel = group.get_channel(name)
            if channel is not None:
                return channel
        return None

    def next_channel_id(self) -> int:
        """
        >>> ArchiveConfig().next_channel_id()
        1
        """
        return max(self._channel_ids, default=0) + 1
