
class ArchiveStoreError(Exception):
    """ Indicates an error accessing the archive store. """
    pass


class ConnectionFailedError(ArchiveStoreError):
    """ Indicates the store could not be reached, or refused the credentials. """
    pass


class NotConnectedError(ConnectionFailedError):
    """ Indicates a connection is closed when a connection is required. """
    pass


class WriteFailedError(ArchiveStoreError):
    """ Indicates the store rejected some or all of the points written. """
    pass


class QueryFailedError(ArchiveStoreError):
    """ Indicates the store rejected a query. The statement is kept for diagnosis. """

    def __init__(self, message, statement=None):
        super().__init__(message if statement is None else '%s: %s' % (message, statement))
        self.statement = statement


class ChannelNotFoundError(ArchiveStoreError):
    """ Indicates a channel is neither configured nor present in the store. """
    pass
