from datetime import datetime, timezone
import calendar
import logging

logger = logging.getLogger(__name__)

nanos_per_second = 1000000000
nanos_per_micro = 1000

_long_min = -(1 << 63)
_long_max = (1 << 63) - 1


def uts_datetime_to_nanos(dt: datetime) -> int:
    """
    converts a datetime to nanoseconds since the epoch. Naive datetimes are taken to be UTC.
    The conversion uses integer arithmetic only, so no precision is lost.
    >>> uts_datetime_to_nanos(datetime(1970,1,1,0,0,0,750999))
    750999000
    >>> uts_datetime_to_nanos(datetime(1970,1,2,0,0,0,1))
    86400000001000
    """
    # calendar.timegm works on utc time, unlike time.mktime() which uses the local timezone.
    secs_since_epoch = calendar.timegm(dt.utctimetuple())
    return secs_since_epoch * nanos_per_second + dt.microsecond * nanos_per_micro


def to_nanos(t) -> int:
    """
    converts a time given as a datetime or as integer nanoseconds to integer nanoseconds.
    >>> to_nanos(1234)
    1234
    >>> to_nanos(datetime(1970,1,1,0,0,1))
    1000000000
    """
    if isinstance(t, datetime):
        return uts_datetime_to_nanos(t)
    if isinstance(t, bool) or not isinstance(t, int):
        raise TypeError('time should be a datetime or integer nanoseconds: %r' % (t,))
    return t


def to_nanos_long(t) -> int:
    """
    converts a time to nanoseconds that fit in the store's signed 64 bit timestamp.
    Values out of range are logged and truncated to 64 bits.
    >>> to_nanos_long(5)
    5
    >>> to_nanos_long(1 << 63)
    -9223372036854775808
    """
    nanos = to_nanos(t)
    if _long_min <= nanos <= _long_max:
        return nanos
    logger.warning("Could not convert time %s to a 64 bit timestamp, truncating", t)
    truncated = nanos & ((1 << 64) - 1)
    return truncated - (1 << 64) if truncated > _long_max else truncated


def nanos_to_datetime(nanos: int) -> datetime:
    """
    converts nanoseconds since the epoch to a naive UTC datetime. Datetimes only resolve microseconds,
    so any sub-microsecond part is logged and dropped.
    >>> nanos_to_datetime(86400000000000)
    datetime.datetime(1970, 1, 2, 0, 0)
    >>> nanos_to_datetime(1500)
    datetime.datetime(1970, 1, 1, 0, 0, 0, 1)
    """
    secs, remainder = divmod(int(nanos), nanos_per_second)
    micros, lost = divmod(remainder, nanos_per_micro)
    if lost:
        logger.warning("Dropping %d ns from timestamp %d", lost, nanos)
    dt = datetime.fromtimestamp(secs, timezone.utc).replace(tzinfo=None)
    return dt.replace(microsecond=micros)
