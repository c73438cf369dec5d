"""
Interprets query results from the store as samples and channel metadata.
"""
import bisect
from datetime import datetime

from influxdb.resultset import ResultSet

from pvarchive.influxdb.codecs import decode_metadata, decode_row
from pvarchive.influxdb.queries import InfluxDBQueries
from pvarchive.time import nanos_to_datetime


def _points(result: ResultSet):
    return result.get_points() if result is not None else iter(())


def read_series(result: ResultSet, metadata=None):
    """ generates the samples in a data query result, in the order the store returned them.
        Each call starts again from the first row.
    """
    for row in _points(result):
        yield decode_row(row, metadata)


def read_metadata(result: ResultSet):
    """ the most recent metadata record in the result, or None if the result is empty. """
    latest = None
    for row in _points(result):
        if latest is None or row['time'] > latest['time']:
            latest = row
    return None if latest is None else decode_metadata(latest)


def read_metadata_history(result: ResultSet) -> list:
    """ the metadata records in the result as (time, metadata) pairs, oldest first. """
    return sorted(((row['time'], decode_metadata(row)) for row in _points(result)), key=lambda r: r[0])


def metadata_at(history: list, nanos: int):
    """ the metadata in effect at a time: the last record at or before it, or None if there is none.
    >>> metadata_at([(10, 'a'), (20, 'b')], 20), metadata_at([(10, 'a'), (20, 'b')], 15), metadata_at([(10, 'a')], 5)
    ('b', 'a', None)
    """
    index = bisect.bisect_right([t for t, _ in history], nanos)
    return history[index - 1][1] if index else None


def read_newest_samples(queries: InfluxDBQueries, channel_name, num: int, starttime=None, endtime=None) -> list:
    """ reads the newest num samples of a channel, in chronological order.
        Each sample is decoded with the metadata in effect at its time, so labels and display follow type changes.
    """
    history = read_metadata_history(queries.get_all_meta_data(channel_name, endtime))
    result = queries.get_newest_channel_samples(channel_name, num, starttime, endtime)
    rows = [decode_row(row, metadata_at(history, row['time'])) for row in _points(result)]
    rows.reverse()     # the query returns newest first
    return rows


def read_oldest_sample(queries: InfluxDBQueries, channel_name):
    row = next(_points(queries.get_oldest_channel_sample(channel_name)), None)
    if row is None:
        return None
    metadata = read_metadata(queries.get_newest_meta_datum(channel_name, row['time']))
    return decode_row(row, metadata)


def range_of(queries: InfluxDBQueries, channel_name) -> (datetime, datetime):
    """
    :return: the times of the oldest and newest samples of a channel, or None if the channel has no samples
    """
    oldest = next(_points(queries.get_oldest_channel_sample(channel_name)), None)
    if oldest is None:
        return None
    newest = next(_points(queries.get_newest_channel_samples(channel_name, 1)), oldest)
    return nanos_to_datetime(oldest['time']), nanos_to_datetime(newest['time'])


def results_to_string(result: ResultSet) -> str:
    """ formats a query result for diagnostics, one line per series and one per row. """
    if result is None:
        return 'null result'
    lines = []
    for series in result.raw.get('series', []):
        lines.append('series %s, columns %s' % (series.get('name'), ', '.join(series.get('columns', []))))
        for values in series.get('values', []):
            lines.append('    %s' % ', '.join(str(v) for v in values))
    if not lines:
        lines.append('empty result')
    return '\n'.join(lines)
