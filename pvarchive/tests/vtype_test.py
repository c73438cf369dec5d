import unittest

from hamcrest import assert_that, calling, equal_to, is_, raises

from pvarchive.vtype import AlarmSeverity, Display, EnumSample, NumberSample, StringSample, enum_sample, \
    number_array_sample


class SampleTest(unittest.TestCase):

    def test_defaults(self):
        sample = NumberSample(5, 1.5)
        assert_that(sample.severity, is_(AlarmSeverity.NONE))
        assert_that(sample.status, is_(''))
        assert_that(sample.display, is_(equal_to(Display())))

    def test_samples_are_immutable(self):
        sample = StringSample(5, 'Hello')

        def change():
            sample.value = 'Bye'
        assert_that(calling(change), raises(AttributeError))

    def test_array_values_frozen(self):
        values = [1.0, 2.0]
        sample = number_array_sample(5, values)
        values.append(3.0)
        assert_that(sample.value, is_(equal_to((1.0, 2.0))))

    def test_enum_labels_frozen(self):
        labels = ['Zero', 'One']
        sample = enum_sample(5, 0, labels, AlarmSeverity.MINOR, 'LOW')
        labels.append('Two')
        assert_that(sample, is_(equal_to(EnumSample(5, 0, AlarmSeverity.MINOR, 'LOW', ('Zero', 'One')))))

    def test_severity_parse(self):
        assert_that(AlarmSeverity.parse('INVALID'), is_(AlarmSeverity.INVALID))
        assert_that(AlarmSeverity.parse(AlarmSeverity.MINOR), is_(AlarmSeverity.MINOR))
        assert_that(AlarmSeverity.parse('what'), is_(AlarmSeverity.UNDEFINED))


if __name__ == '__main__':
    unittest.main()
