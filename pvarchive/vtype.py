"""
Archived value types. Every sample is an immutable tuple that starts with (time, value, severity, status),
so readers that only need those four can unpack any variant the same way.
"""
import collections
import collections.abc
from enum import Enum


def namedtuple_with_defaults(typename, field_names, default_values=()):
    T = collections.namedtuple(typename, field_names)
    T.__new__.__defaults__ = (None,) * len(T._fields)
    if isinstance(default_values, collections.abc.Mapping):
        prototype = T(**default_values)
    else:
        prototype = T(*default_values)
    T.__new__.__defaults__ = tuple(prototype)
    return T


class AlarmSeverity(Enum):
    NONE = 'NONE'
    MINOR = 'MINOR'
    MAJOR = 'MAJOR'
    INVALID = 'INVALID'
    UNDEFINED = 'UNDEFINED'

    @classmethod
    def parse(cls, text):
        """
        >>> AlarmSeverity.parse('MAJOR')
        <AlarmSeverity.MAJOR: 'MAJOR'>
        >>> AlarmSeverity.parse(None)
        <AlarmSeverity.UNDEFINED: 'UNDEFINED'>
        """
        if isinstance(text, AlarmSeverity):
            return text
        try:
            return cls(text)
        except ValueError:
            return cls.UNDEFINED


Display = namedtuple_with_defaults('Display', [
    'lower_display', 'upper_display',
    'lower_warning', 'upper_warning',
    'lower_alarm', 'upper_alarm',
    'lower_control', 'upper_control',
    'units', 'precision'])

NumberSample = namedtuple_with_defaults('NumberSample', ['time', 'value', 'severity', 'status', 'display'],
                                        [None, None, AlarmSeverity.NONE, '', Display()])

NumberArraySample = namedtuple_with_defaults('NumberArraySample', ['time', 'value', 'severity', 'status', 'display'],
                                             [None, (), AlarmSeverity.NONE, '', Display()])

EnumSample = namedtuple_with_defaults('EnumSample', ['time', 'value', 'severity', 'status', 'labels'],
                                      [None, None, AlarmSeverity.NONE, '', ()])

StringSample = namedtuple_with_defaults('StringSample', ['time', 'value', 'severity', 'status'],
                                        [None, '', AlarmSeverity.NONE, ''])


def number_array_sample(time, values, severity=AlarmSeverity.NONE, status='', display=Display()):
    """ builds an array sample, freezing the values into a tuple so the sample stays immutable.
    >>> number_array_sample(0, [1, 2]).value
    (1, 2)
    """
    return NumberArraySample(time, tuple(values), severity, status, display)


def enum_sample(time, value, labels, severity=AlarmSeverity.NONE, status=''):
    """
    >>> enum_sample(0, 1, ['Zero', 'One']).labels
    ('Zero', 'One')
    """
    return EnumSample(time, value, severity, status, tuple(labels))
