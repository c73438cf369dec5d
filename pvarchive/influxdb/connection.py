import logging
from urllib.parse import urlparse

from influxdb import InfluxDBClient
from influxdb.exceptions import InfluxDBClientError, InfluxDBServerError
from requests.exceptions import RequestException

from pvarchive.influxdb.base import ConnectionFailedError, NotConnectedError, QueryFailedError, WriteFailedError

logger = logging.getLogger(__name__)

default_port = 8086


class ConnectionInfo:
    """ A snapshot of the store's identity, fetched when constructed. """

    def __init__(self, version: str, dbs: list):
        self.version = version
        self.dbs = dbs

    def __str__(self):
        """
        >>> str(ConnectionInfo('1.8.10', ['a', 'b']))
        'InfluxDB connection version 1.8.10 [2 databases]'
        """
        return 'InfluxDB connection version %s [%d databases]' % (self.version, len(self.dbs))


def client_args(url: str, user=None, password=None, timeout=None) -> dict:
    """ builds the InfluxDBClient constructor arguments for a url.
    Credentials are only passed when both user and password are given.
    >>> sorted(client_args('https://db.example.org:9086/influx', 'u', 'p').items())
    [('host', 'db.example.org'), ('password', 'p'), ('path', '/influx'), ('port', 9086), ('ssl', True), ('username', 'u'), ('verify_ssl', True)]
    >>> client_args('http://localhost', None, 'p')['port']
    8086
    """
    parts = urlparse(url)
    ssl = parts.scheme == 'https'
    args = dict(host=parts.hostname, port=parts.port or default_port, ssl=ssl, verify_ssl=ssl,
                path=parts.path.rstrip('/'))
    if user is not None and password is not None:
        args.update(username=user, password=password)
    if timeout:
        args.update(timeout=timeout)
    return args


class InfluxDBConnection:
    """ Owns a client for the store, and translates client failures to ArchiveStoreErrors.
        The connection can be shared between writers and readers, since each query and write is independent.
    """

    def __init__(self, url: str, user=None, password=None, timeout=None):
        self.url = url
        self.user = user
        self._password = password
        self.timeout = timeout
        self._client = None

    @property
    def connected(self):
        return self._client is not None

    @property
    def client(self) -> InfluxDBClient:
        if self._client is None:
            raise NotConnectedError("not connected to %s" % self.url)
        return self._client

    def connect(self):
        """ Connects to the store. Returns silently if already connected.
        The client does not contact the server when constructed, so the version is probed to check the connection.
        """
        if self.connected:
            return self
        logger.debug("Connecting to %s", self.url)
        try:
            client = InfluxDBClient(**client_args(self.url, self.user, self._password, self.timeout))
        except (ValueError, TypeError) as e:
            raise ConnectionFailedError("Invalid InfluxDB url %s" % self.url) from e
        try:
            version = client.ping()
        except (InfluxDBClientError, InfluxDBServerError, RequestException) as e:
            client.close()
            raise ConnectionFailedError("Failed to connect to InfluxDB as user %s at %s" % (self.user, self.url)) from e
        logger.info("Connected to InfluxDB %s at %s", version, self.url)
        self._client = client
        return self

    def connection_info(self) -> ConnectionInfo:
        client = self.client
        try:
            return ConnectionInfo(client.ping(), [db['name'] for db in client.get_list_database()])
        except (InfluxDBClientError, InfluxDBServerError, RequestException) as e:
            raise ConnectionFailedError("Failed to get info for connection. Maybe disconnected?") from e

    def query(self, statement: str, database: str, **kwargs):
        """ runs a query, with times returned as nanoseconds since the epoch. """
        client = self.client
        logger.debug("Query on %s: %s", database, statement)
        try:
            return client.query(statement, database=database, epoch='ns', **kwargs)
        except (InfluxDBClientError, InfluxDBServerError) as e:
            raise QueryFailedError("Query on %s failed (%s)" % (database, e), statement) from e
        except RequestException as e:
            raise ConnectionFailedError("Query on %s could not reach %s" % (database, self.url)) from e

    def write(self, points: list, database: str, retention_policy=None, consistency=None):
        """ writes all points in one request. The points' times are nanoseconds since the epoch. """
        client = self.client
        try:
            client.write_points(points, time_precision='n', database=database,
                                retention_policy=retention_policy, consistency=consistency)
        except (InfluxDBClientError, InfluxDBServerError) as e:
            logger.error("Write of %d points to %s rejected: %s", len(points), database, e)
            raise WriteFailedError("Write of %d points to %s failed: %s" % (len(points), database, e)) from e
        except RequestException as e:
            raise ConnectionFailedError("Write to %s could not reach %s" % (database, self.url)) from e

    def create_database(self, name: str):
        try:
            self.client.create_database(name)
        except (InfluxDBClientError, InfluxDBServerError) as e:
            raise QueryFailedError("Could not create database %s (%s)" % (name, e)) from e
        except RequestException as e:
            raise ConnectionFailedError("Could not reach %s" % self.url) from e

    def close(self):
        if self._client is None:
            return
        client, self._client = self._client, None
        client.close()
        logger.debug("Closed connection to %s", self.url)

    def __enter__(self):
        return self.connect()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def connect(url: str, user=None, password=None, timeout=None) -> InfluxDBConnection:
    """ connects to the store at the given url, and checks it can be reached. Raises ConnectionFailedError if not. """
    return InfluxDBConnection(url, user, password, timeout).connect()


def connect_settings(settings) -> InfluxDBConnection:
    influx = settings['influxdb']
    return connect(influx['url'], influx['user'], influx['password'], influx['timeout'])
