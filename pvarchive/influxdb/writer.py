import logging
import threading
from contextlib import contextmanager

from pvarchive.config.model import ArchiveConfig, ChannelConfig, DuplicateChannelError, EngineConfig, SampleMode
from pvarchive.influxdb.base import ChannelNotFoundError
from pvarchive.influxdb.codecs import STRING, encode_metadata, encode_sample, sample_metadata, sample_type
from pvarchive.influxdb.connection import InfluxDBConnection, connect_settings
from pvarchive.influxdb.queries import InfluxDBQueries
from pvarchive.influxdb.results import read_metadata
from pvarchive.settings import data_db_name, meta_db_name

logger = logging.getLogger(__name__)

default_group_name = 'default'


def needs_metadata_update(cached_type, sample) -> bool:
    """ Determines if archiving the sample may change the channel's metadata.
    Only numbers and enums carry metadata, and it is only checked when the value type changes.
    >>> from pvarchive.vtype import NumberSample, StringSample
    >>> needs_metadata_update(None, NumberSample(0, 1.5))
    True
    >>> needs_metadata_update('double', NumberSample(0, 2.5))
    False
    >>> needs_metadata_update('double', NumberSample(0, 2))
    True
    >>> needs_metadata_update('double', StringSample(0, 'abc'))
    False
    """
    datatype = sample_type(sample)
    return datatype != STRING and datatype != cached_type


class Batch:
    """ Points waiting to be written. Points are only removed when the write that takes them succeeds. """

    def __init__(self):
        self._points = []

    def append(self, point: dict):
        self._points.append(point)

    def __len__(self):
        return len(self._points)

    @contextmanager
    def take(self):
        """ provides the pending points, and removes them only if the block completes without an exception.
        >>> b = Batch(); b.append({'time': 1})
        >>> with b.take() as points:
        ...     len(points)
        1
        >>> len(b)
        0
        """
        points = list(self._points)
        yield points
        del self._points[:len(points)]

    def clear(self) -> int:
        count = len(self._points)
        self._points = []
        return count


class PeriodicFlush:
    """ flushes a writer every period seconds on a background thread.
        A failed flush is logged and the batch is kept for the next attempt.
    """

    def __init__(self, writer, period: float):
        self.exception_handler = lambda e: logger.exception("periodic flush failed: %s", e)
        self.writer = writer
        self.period = period
        self.stop_event = None
        self.background_thread = None

    def start(self):
        if self.background_thread is None:
            self.stop_event = threading.Event()
            t = threading.Thread(target=self._loop, name='archive-flush', daemon=True)
            self.background_thread = t
            t.start()

    def _loop(self):
        stop = self.stop_event
        while not stop.wait(self.period):
            try:
                self.writer.flush()
            except Exception as e:
                self.exception_handler(e)
        logger.info("periodic flush thread exiting")

    def stop(self):
        if self.stop_event is not None:
            self.stop_event.set()
        if self.background_thread and self.background_thread is not threading.current_thread():
            self.background_thread.join()
        self.background_thread = None


class InfluxDBArchiveWriter:
    """
    Accumulates samples in a batch and writes the batch to the data database on flush.

    Channel metadata is written straight away, but only when a channel's value type changes
    and the stored metadata differs. Adding samples and flushing are serialized, so a flush triggered by the
    sample count and one triggered by the timer never overlap. One thread should own a writer; producers on other
    threads should feed it through a queue, or use a writer each.
    """

    def __init__(self, connection: InfluxDBConnection, settings, config: ArchiveConfig=None, group_id=None,
                 owns_connection=False):
        self.connection = connection
        self.settings = settings
        self.queries = InfluxDBQueries(connection, settings)
        self.config = config if config is not None else ArchiveConfig()
        self.group_id = group_id if group_id is not None else self._default_group_id()
        self.config.group(self.group_id)
        self.batch = Batch()
        self._lock = threading.RLock()
        self._owns_connection = owns_connection
        influx = settings['influxdb']
        self.retention_policy = influx['retention_policy']
        self.consistency = influx['consistency']
        self.flush_count = settings['writer']['flush_count']
        self.flusher = None
        flush_period = settings['writer']['flush_period']
        if flush_period:
            self.flusher = PeriodicFlush(self, flush_period)
            self.flusher.start()

    @classmethod
    def connect(cls, settings, config: ArchiveConfig=None, group_id=None):
        """ creates a writer with its own connection, which is closed with the writer. """
        return cls(connect_settings(settings), settings, config, group_id, owns_connection=True)

    def _default_group_id(self):
        groups = self.config.groups
        if groups:
            return min(g.group_id for g in groups)
        engine_id = max((e.id for e in self.config.engines), default=0) + 1
        self.config.add_engine(EngineConfig(engine_id, default_group_name, 'channels created by the writer',
                                            self.connection.url))
        return self.config.add_group(engine_id, 1, default_group_name).group_id

    @property
    def pending(self) -> int:
        return len(self.batch)

    def get_connection_info(self):
        return self.connection.connection_info()

    def _exists_in_store(self, channel_name) -> bool:
        """ a channel exists when it has data or metadata. Querying a database that is not created yet fails,
            so only the databases the store has are queried.
        """
        dbs = self.connection.connection_info().dbs
        if data_db_name(self.settings, channel_name) in dbs and \
                next(self.queries.get_oldest_channel_sample(channel_name).get_points(), None) is not None:
            return True
        return meta_db_name(self.settings, channel_name) in dbs and \
            next(self.queries.get_newest_meta_datum(channel_name).get_points(), None) is not None

    def get_channel(self, channel_name) -> ChannelConfig:
        """ retrieves a configured channel, or one with data in the store. Raises ChannelNotFoundError if neither."""
        with self._lock:
            channel = self.config.find_channel(channel_name)
            if channel is not None:
                return channel
            if not self._exists_in_store(channel_name):
                raise ChannelNotFoundError("Unknown channel %s" % channel_name)
            return self.config.add_channel(self.group_id, self.config.next_channel_id(), channel_name, SampleMode())

    def make_new_channel(self, channel_name, sample_mode: SampleMode=None) -> ChannelConfig:
        with self._lock:
            if self.config.find_channel(channel_name) is not None:
                raise DuplicateChannelError("Channel %s is already configured" % channel_name)
            for db in (data_db_name(self.settings, channel_name), meta_db_name(self.settings, channel_name)):
                self.connection.create_database(db)
            if self._exists_in_store(channel_name):
                raise DuplicateChannelError("Channel %s already exists in the store" % channel_name)
            channel = self.config.add_channel(self.group_id, self.config.next_channel_id(), channel_name,
                                              sample_mode or SampleMode())
            logger.info("created new channel %s", channel)
            return channel

    def _update_metadata(self, channel: ChannelConfig, sample):
        metadata = sample_metadata(sample)
        stored = read_metadata(self.queries.get_newest_meta_datum(channel.name, sample.time))
        if stored == metadata:
            return
        logger.debug("updating metadata of %s to %s", channel.name, metadata)
        self.connection.write([encode_metadata(channel.name, sample.time, metadata)],
                              meta_db_name(self.settings, channel.name), self.retention_policy, self.consistency)

    def add_sample(self, channel: ChannelConfig, sample):
        """
        Queues a sample for the next flush. When the channel's value type changes, the channel metadata is checked
        and written first; if that fails the sample is not queued.
        When the batch reaches the flush count it is flushed, and a failure of that flush is raised with
        the sample still queued.
        """
        datatype = sample_type(sample)
        point = encode_sample(channel.name, sample)
        with self._lock:
            if needs_metadata_update(channel.last_type, sample):
                self._update_metadata(channel, sample)
            channel.last_type = datatype
            self.batch.append(point)
            if self.flush_count and len(self.batch) >= self.flush_count:
                self.flush()

    def flush(self) -> int:
        """ writes the whole batch in one request. The batch is kept if the write fails.
        :return: the number of points written
        """
        with self._lock:
            if not len(self.batch):
                return 0
            with self.batch.take() as points:
                self.connection.write(points, data_db_name(self.settings), self.retention_policy, self.consistency)
            logger.debug("flushed %d samples", len(points))
            return len(points)

    def discard(self) -> int:
        """ drops the pending samples, returning how many were dropped. """
        with self._lock:
            count = self.batch.clear()
        if count:
            logger.warning("discarded %d unwritten samples", count)
        return count

    def close(self):
        """ stops periodic flushing, flushes what is pending and releases the connection if this writer owns it. """
        if self.flusher is not None:
            self.flusher.stop()
            self.flusher = None
        try:
            if self.pending:
                self.flush()
        finally:
            if self._owns_connection:
                self.connection.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
