"""
Encodes samples and channel metadata as InfluxDB points, and decodes query rows back.

Data points carry the alarm severity and status as tags, and the value in a field named for its type:
'double', 'long', 'enum' or 'string'. Arrays store 'array_size' and one field per element ('double.0', 'double.1', ...).
InfluxDB cannot store NaN or infinite doubles, so those are written as the hex of their IEEE-754 bytes in a
'<field>.hex' field instead.

Metadata points record the 'datatype' together with either the 'display' or the enum 'labels', each a JSON value.
The store merges the fields of points written at the same time, so every record rewrites the whole display
or label list; nothing a reader looks at is left over from an earlier record at that time.
"""
import logging
import math
import numbers

import simplejson as json

from pvarchive.influxdb.util import double_to_hex, hex_to_double
from pvarchive.time import nanos_to_datetime, to_nanos_long
from pvarchive.vtype import AlarmSeverity, Display, EnumSample, NumberArraySample, NumberSample, StringSample, \
    namedtuple_with_defaults

logger = logging.getLogger(__name__)

DOUBLE = 'double'
LONG = 'long'
ENUM = 'enum'
STRING = 'string'
DOUBLE_ARRAY = 'double_array'
LONG_ARRAY = 'long_array'

numeric_types = (DOUBLE, LONG, DOUBLE_ARRAY, LONG_ARRAY)

hex_suffix = '.hex'
array_size_field = 'array_size'
display_limits = Display._fields[:8]
display_field = 'display'
labels_field = 'labels'

NumericMetaData = namedtuple_with_defaults('NumericMetaData', ['datatype', 'display'], [DOUBLE, Display()])
EnumMetaData = namedtuple_with_defaults('EnumMetaData', ['labels'], [()])


def _is_long(value) -> bool:
    return isinstance(value, numbers.Integral)


def sample_type(sample) -> str:
    """ classifies a sample by the type its value is stored as.
    >>> sample_type(NumberSample(0, 3.0))
    'double'
    >>> sample_type(NumberSample(0, 3))
    'long'
    >>> sample_type(NumberArraySample(0, (1, 2.5)))
    'double_array'
    >>> sample_type(42)
    Traceback (most recent call last):
    ...
    ValueError: not a sample: 42
    """
    if isinstance(sample, NumberSample):
        if not isinstance(sample.value, numbers.Real):
            raise ValueError('number sample has a non numeric value: %r' % (sample.value,))
        return LONG if _is_long(sample.value) else DOUBLE
    if isinstance(sample, NumberArraySample):
        if not all(isinstance(v, numbers.Real) for v in sample.value):
            raise ValueError('array sample has non numeric elements: %r' % (sample.value,))
        return LONG_ARRAY if all(_is_long(v) for v in sample.value) else DOUBLE_ARRAY
    if isinstance(sample, EnumSample):
        if not _is_long(sample.value):
            raise ValueError('enum sample has a non integer value: %r' % (sample.value,))
        return ENUM
    if isinstance(sample, StringSample):
        return STRING
    raise ValueError('not a sample: %r' % (sample,))


def _finite_or_none(value):
    if value is None or not isinstance(value, numbers.Real) or not math.isfinite(value):
        return None
    return float(value)


def normalize_display(display: Display) -> Display:
    """ keeps only what the store can hold: finite limits as floats, the precision as an integer.
    >>> normalize_display(Display(lower_display=0, upper_display=float('nan'), precision=2.0))
    Display(lower_display=0.0, upper_display=None, lower_warning=None, upper_warning=None, lower_alarm=None, upper_alarm=None, lower_control=None, upper_control=None, units=None, precision=2)
    """
    display = display or Display()
    limits = {name: _finite_or_none(getattr(display, name)) for name in display_limits}
    precision = None if display.precision is None else int(display.precision)
    return Display(units=display.units, precision=precision, **limits)


def sample_metadata(sample):
    """ the metadata a sample stores for its channel, or None for samples that leave metadata untouched. """
    datatype = sample_type(sample)
    if datatype == ENUM:
        return EnumMetaData(tuple(sample.labels))
    if datatype in numeric_types:
        return NumericMetaData(datatype, normalize_display(sample.display))
    return None


def _put_double(fields, name, value):
    value = float(value)
    if math.isfinite(value):
        fields[name] = value
    else:
        fields[name + hex_suffix] = double_to_hex(value)


def _put_number(fields, name, value, datatype):
    if datatype in (LONG, LONG_ARRAY):
        fields[name] = int(value)
    else:
        _put_double(fields, name, value)


def encode_sample(channel_name: str, sample) -> dict:
    """ encodes a sample as a point for the data database.
    >>> p = encode_sample('pv1', NumberSample(1000, 3.0))
    >>> p['measurement'], p['time'], p['fields'], sorted(p['tags'].items())
    ('pv1', 1000, {'double': 3.0}, [('severity', 'NONE'), ('status', '')])
    """
    datatype = sample_type(sample)
    fields = dict()
    if datatype in (DOUBLE, LONG):
        _put_number(fields, datatype, sample.value, datatype)
    elif datatype in (DOUBLE_ARRAY, LONG_ARRAY):
        element = DOUBLE if datatype == DOUBLE_ARRAY else LONG
        fields[array_size_field] = len(sample.value)
        for i, v in enumerate(sample.value):
            _put_number(fields, '%s.%d' % (element, i), v, datatype)
    elif datatype == ENUM:
        fields[ENUM] = int(sample.value)
    else:
        fields[STRING] = str(sample.value)
    severity = AlarmSeverity.parse(sample.severity)
    return {
        'measurement': channel_name,
        'time': to_nanos_long(sample.time),
        'tags': {'severity': severity.value, 'status': sample.status or ''},
        'fields': fields,
    }


def encode_metadata(channel_name: str, time, metadata) -> dict:
    """ encodes channel metadata as a point for the metadata database.
    >>> encode_metadata('pv1', 5, EnumMetaData(('Zero', 'One')))['fields']
    {'datatype': 'enum', 'labels': '["Zero", "One"]'}
    """
    if isinstance(metadata, EnumMetaData):
        fields = {'datatype': ENUM, labels_field: json.dumps(list(metadata.labels))}
    else:
        display = normalize_display(metadata.display)
        if display.units is not None:
            display = display._replace(units=str(display.units))
        fields = {'datatype': metadata.datatype, display_field: json.dumps(display._asdict())}
    return {'measurement': channel_name, 'time': to_nanos_long(time), 'fields': fields}


def decode_double(value) -> float:
    """ doubles written with an integral value can come back as integers.
    >>> decode_double(3)
    3.0
    """
    return float(value)


def decode_long(value) -> int:
    """
    >>> decode_long(42)
    42
    """
    if isinstance(value, float):
        logger.warning("long value returned as floating point %r, converting", value)
    return int(value)


def _get_double(row, name):
    raw = row.get(name + hex_suffix)
    if raw is not None:
        return hex_to_double(raw)
    value = row.get(name)
    return None if value is None else decode_double(value)


def _get_number(row, name, datatype):
    if datatype == LONG:
        value = row.get(name)
        return None if value is None else decode_long(value)
    return _get_double(row, name)


def _has_field(row, name):
    return row.get(name) is not None or row.get(name + hex_suffix) is not None


def _decode_array(row):
    size = decode_long(row[array_size_field])
    element = LONG if _has_field(row, 'long.0') else DOUBLE
    values = tuple(_get_number(row, '%s.%d' % (element, i), element) for i in range(size))
    if any(v is None for v in values):
        logger.warning("array row at %s is missing elements", row.get('time'))
    return values


def decode_row(row: dict, metadata=None):
    """ decodes a row of a data query to a sample. Enum labels and the display are taken from the metadata given.
    >>> decode_row({'time': 0, 'severity': 'MINOR', 'status': 'HIGH', 'long': 7})
    NumberSample(time=datetime.datetime(1970, 1, 1, 0, 0), value=7, severity=<AlarmSeverity.MINOR: 'MINOR'>, status='HIGH', display=Display(lower_display=None, upper_display=None, lower_warning=None, upper_warning=None, lower_alarm=None, upper_alarm=None, lower_control=None, upper_control=None, units=None, precision=None))
    """
    time = nanos_to_datetime(row['time'])
    severity = AlarmSeverity.parse(row.get('severity'))
    status = row.get('status') or ''
    display = metadata.display if isinstance(metadata, NumericMetaData) else Display()
    if row.get(STRING) is not None:
        return StringSample(time, row[STRING], severity, status)
    if row.get(ENUM) is not None:
        labels = metadata.labels if isinstance(metadata, EnumMetaData) else ()
        return EnumSample(time, decode_long(row[ENUM]), severity, status, tuple(labels))
    if row.get(array_size_field) is not None:
        return NumberArraySample(time, _decode_array(row), severity, status, display)
    if _has_field(row, DOUBLE):
        return NumberSample(time, _get_double(row, DOUBLE), severity, status, display)
    if row.get(LONG) is not None:
        return NumberSample(time, decode_long(row[LONG]), severity, status, display)
    raise ValueError('row at %s has no value field: %r' % (row.get('time'), sorted(row)))


def decode_metadata(row: dict):
    """
    >>> decode_metadata({'time': 0, 'datatype': 'enum', 'labels': '["Zero", "One"]'})
    EnumMetaData(labels=('Zero', 'One'))
    """
    datatype = row.get('datatype')
    if datatype == ENUM:
        return EnumMetaData(tuple(json.loads(row.get(labels_field) or '[]')))
    if datatype not in numeric_types:
        logger.warning("unknown metadata type %r, assuming %s", datatype, DOUBLE)
        datatype = DOUBLE
    values = json.loads(row.get(display_field) or '{}')
    limits = {name: _finite_or_none(values.get(name)) for name in display_limits}
    precision = values.get('precision')
    display = Display(units=values.get('units'), precision=None if precision is None else decode_long(precision),
                      **limits)
    return NumericMetaData(datatype, display)
