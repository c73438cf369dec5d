"""
An in-memory stand-in for InfluxDBConnection, understanding just the statements built by queries.get_channel_points.
"""
import re
from collections import defaultdict

from influxdb.resultset import ResultSet

from pvarchive.influxdb.base import QueryFailedError, WriteFailedError
from pvarchive.influxdb.connection import ConnectionInfo
from pvarchive.settings import settings_from_dict

test_url = 'http://localhost:8086'


def make_settings(**writer):
    return settings_from_dict({'influxdb': {'dbname': 'data', 'metadbname': 'meta'}, 'writer': writer})


def result_set(name, rows):
    """ builds a ResultSet like the store returns, from a list of row dictionaries. """
    if not rows:
        return ResultSet({'statement_id': 0})
    columns = ['time'] + sorted({k for row in rows for k in row if k != 'time'})
    values = [[row.get(c) for c in columns] for row in rows]
    return ResultSet({'statement_id': 0, 'series': [{'name': name, 'columns': columns, 'values': values}]})


class MemoryConnection:

    def __init__(self):
        self.url = test_url
        self.databases = defaultdict(list)
        self.statements = []
        self.writes = []
        self.fail_writes = False

    def create_database(self, name):
        self.databases.setdefault(name, [])

    def write(self, points, database, retention_policy=None, consistency=None):
        if self.fail_writes:
            raise WriteFailedError('partial write: field type conflict')
        self.writes.append((database, list(points)))
        self.databases[database].extend(points)

    def query(self, statement, database, **kwargs):
        self.statements.append((database, statement))
        if database not in self.databases:
            raise QueryFailedError("Query on %s failed (database not found: %s)" % (database, database), statement)
        name = re.search(r'FROM "((?:[^"\\]|\\.)*)"', statement).group(1)
        rows = [dict(p.get('tags', {}), time=p['time'], **p['fields'])
                for p in self.databases.get(database, []) if p['measurement'] == name]
        start = re.search(r'time >= (-?\d+)', statement)
        end = re.search(r'time <= (-?\d+)', statement)
        if start:
            rows = [r for r in rows if r['time'] >= int(start.group(1))]
        if end:
            rows = [r for r in rows if r['time'] <= int(end.group(1))]
        rows.sort(key=lambda r: r['time'], reverse=' DESC' in statement)
        offset = re.search(r'OFFSET (\d+)', statement)
        if offset:
            rows = rows[int(offset.group(1)):]
        limit = re.search(r'LIMIT (\d+)', statement)
        if limit:
            rows = rows[:int(limit.group(1))]
        return result_set(name, rows)

    def connection_info(self):
        return ConnectionInfo('test', list(self.databases))

    def close(self):
        pass
