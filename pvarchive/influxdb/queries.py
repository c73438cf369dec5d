import logging

from influxdb.line_protocol import quote_ident

from pvarchive.influxdb.connection import InfluxDBConnection
from pvarchive.settings import data_db_name, meta_db_name
from pvarchive.time import to_nanos_long

logger = logging.getLogger(__name__)

default_chunk_size = 5000


def get_channel_points(select_what: str, channel_name: str, starttime=None, endtime=None, limit=None, offset=None):
    """
    Creates a query statement selecting the points of a channel, ordered by time.

    :param select_what: the fields to select
    :param channel_name: the channel, which is the measurement name in the store
    :param starttime: the earliest time included, or None for the beginning of time
    :param endtime: the latest time included, or None for no end cutoff
    :param limit: None or 0 for no limit, positive for the oldest points in the range,
        negative for the newest points in the range, returned newest first
    :param offset: the number of points to skip, used to page through a range

    >>> get_channel_points('*', 'pv1')
    'SELECT * FROM "pv1" ORDER BY time'
    >>> get_channel_points('*', 'pv1', 10, 20, 5)
    'SELECT * FROM "pv1" WHERE time >= 10 AND time <= 20 ORDER BY time LIMIT 5'
    >>> get_channel_points('*', 'pv1', None, 20, -1)
    'SELECT * FROM "pv1" WHERE time <= 20 ORDER BY time DESC LIMIT 1'
    >>> get_channel_points('value', 'a"b', 10, limit=100, offset=200)
    'SELECT value FROM "a\\\\"b" WHERE time >= 10 ORDER BY time LIMIT 100 OFFSET 200'
    """
    parts = ['SELECT', select_what, 'FROM', quote_ident(channel_name)]
    bounds = []
    if starttime is not None:
        bounds.append('time >= %d' % to_nanos_long(starttime))
    if endtime is not None:
        bounds.append('time <= %d' % to_nanos_long(endtime))
    if bounds:
        parts.append('WHERE ' + ' AND '.join(bounds))
    parts.append('ORDER BY time')
    if limit:
        if limit < 0:
            parts.append('DESC')
        parts.append('LIMIT %d' % abs(limit))
    if offset:
        parts.append('OFFSET %d' % offset)
    return ' '.join(parts)


class InfluxDBQueries:
    """ The queries used to read channel samples and metadata back from the store. """

    def __init__(self, connection: InfluxDBConnection, settings, chunk_size=None):
        self.connection = connection
        self.settings = settings
        self.chunk_size = chunk_size or settings['influxdb']['chunk_size'] or default_chunk_size

    def _data_query(self, channel_name, statement):
        return self.connection.query(statement, data_db_name(self.settings, channel_name))

    def _meta_query(self, channel_name, statement):
        return self.connection.query(statement, meta_db_name(self.settings, channel_name))

    def get_oldest_channel_sample(self, channel_name):
        return self._data_query(channel_name, get_channel_points('*', channel_name, None, None, 1))

    def get_newest_channel_samples(self, channel_name, num: int, starttime=None, endtime=None):
        """ fetches the newest num samples, optionally within a time range. Rows are returned newest first. """
        return self._data_query(channel_name, get_channel_points('*', channel_name, starttime, endtime, -num))

    def get_channel_samples(self, channel_name, starttime=None, endtime=None, limit=None):
        return self._data_query(channel_name, get_channel_points('*', channel_name, starttime, endtime, limit))

    def get_newest_meta_datum(self, channel_name, endtime=None):
        """ fetches the latest metadata recorded at or before endtime. """
        return self._meta_query(channel_name, get_channel_points('*', channel_name, None, endtime, -1))

    def get_all_meta_data(self, channel_name, endtime=None):
        """ fetches every metadata record of a channel, or those recorded at or before endtime. """
        return self._meta_query(channel_name, get_channel_points('*', channel_name, None, endtime))

    def chunk_get_channel_samples(self, consumer, channel_name, starttime=None, endtime=None, limit=None,
                                  chunk_size=None) -> int:
        """
        Pages through the samples in a time range, oldest first, passing each non-empty chunk to consumer.
        :param limit: None or 0 to read the whole range, or the maximum number of samples to read
        :return: the number of chunks passed to the consumer
        """
        if limit is not None and limit < 0:
            raise ValueError("chunked queries read oldest first, limit must not be negative: %d" % limit)
        chunk_size = chunk_size or self.chunk_size
        fetched = 0
        chunks = 0
        while True:
            size = chunk_size if not limit else min(chunk_size, limit - fetched)
            if size <= 0:
                break
            result = self._data_query(channel_name,
                                      get_channel_points('*', channel_name, starttime, endtime, size, fetched))
            count = sum(1 for _ in result.get_points())
            if count:
                consumer(result)
                chunks += 1
                fetched += count
            if count < size:
                break
        logger.debug("read %d samples of %s in %d chunks", fetched, channel_name, chunks)
        return chunks
