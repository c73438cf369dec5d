import unittest
from datetime import datetime

from hamcrest import assert_that, contains_string, equal_to, is_, none

from influx_fixtures import MemoryConnection, make_settings, result_set
from pvarchive.influxdb.codecs import EnumMetaData, NumericMetaData, encode_metadata, encode_sample
from pvarchive.influxdb.queries import InfluxDBQueries
from pvarchive.influxdb.results import range_of, read_metadata, read_newest_samples, read_oldest_sample, \
    read_series, results_to_string
from pvarchive.vtype import Display, NumberSample, StringSample, enum_sample


class ReadSeriesTest(unittest.TestCase):

    def test_empty_result(self):
        assert_that(list(read_series(result_set('pv1', []))), is_(equal_to([])))

    def test_rows_in_store_order(self):
        result = result_set('pv1', [{'time': 2000, 'long': 2}, {'time': 1000, 'long': 1}])
        samples = list(read_series(result))
        assert_that([s.value for s in samples], is_(equal_to([2, 1])))
        assert_that(samples[0].time, is_(datetime(1970, 1, 1, 0, 0, 0, 2)))

    def test_each_call_restarts(self):
        result = result_set('pv1', [{'time': 0, 'string': 'a'}, {'time': 1000, 'string': 'b'}])
        assert_that([s.value for s in read_series(result)], is_(equal_to(['a', 'b'])))
        assert_that([s.value for s in read_series(result)], is_(equal_to(['a', 'b'])))

    def test_samples_unpack_as_time_value_severity_status(self):
        result = result_set('pv1', [{'time': 0, 'string': 'a', 'severity': 'MAJOR', 'status': 'OK'}])
        time, value, severity, status = next(read_series(result))
        assert_that((value, severity.value, status), is_(equal_to(('a', 'MAJOR', 'OK'))))

    def test_enum_labels_from_metadata(self):
        result = result_set('pv1', [{'time': 0, 'enum': 1}])
        sample = next(read_series(result, EnumMetaData(('Zero', 'One'))))
        assert_that(sample.labels, is_(equal_to(('Zero', 'One'))))


class ReadMetadataTest(unittest.TestCase):

    def test_empty_is_none(self):
        assert_that(read_metadata(result_set('pv1', [])), is_(none()))

    def test_most_recent_record(self):
        result = result_set('pv1', [
            {'time': 1, 'datatype': 'enum', 'labels': '["A"]'},
            {'time': 3, 'datatype': 'enum', 'labels': '["C"]'},
            {'time': 2, 'datatype': 'enum', 'labels': '["B"]'},
        ])
        assert_that(read_metadata(result), is_(equal_to(EnumMetaData(('C',)))))

    def test_numeric(self):
        result = result_set('pv1', [{'time': 1, 'datatype': 'long',
                                     'display': '{"units": "mm", "precision": 3, "lower_display": 0}'}])
        assert_that(read_metadata(result),
                    is_(equal_to(NumericMetaData('long', Display(lower_display=0.0, units='mm', precision=3)))))


class ChannelReadTest(unittest.TestCase):
    """ reads through the queries against the in-memory store """

    def setUp(self):
        self.connection = MemoryConnection()
        self.queries = InfluxDBQueries(self.connection, make_settings())
        display = Display(units='V', precision=1)
        samples = [NumberSample(t * 1000, float(t), display=display) for t in range(1, 6)]
        self.connection.write([encode_sample('pv1', s) for s in samples], 'data')
        self.connection.write([encode_metadata('pv1', 1000, NumericMetaData('double', display))], 'meta')

    def test_newest_samples_chronological(self):
        samples = read_newest_samples(self.queries, 'pv1', 3)
        assert_that([s.value for s in samples], is_(equal_to([3.0, 4.0, 5.0])))
        assert_that(samples[0].display.units, is_('V'))

    def test_oldest_sample(self):
        assert_that(read_oldest_sample(self.queries, 'pv1').value, is_(1.0))

    def test_oldest_sample_of_unknown_channel(self):
        assert_that(read_oldest_sample(self.queries, 'nothing'), is_(none()))

    def test_range(self):
        assert_that(range_of(self.queries, 'pv1'),
                    is_(equal_to((datetime(1970, 1, 1, 0, 0, 0, 1), datetime(1970, 1, 1, 0, 0, 0, 5)))))
        assert_that(range_of(self.queries, 'nothing'), is_(none()))


class TypeChangeReadTest(unittest.TestCase):
    """ a channel archived as an enum first and as a number later """

    def setUp(self):
        self.connection = MemoryConnection()
        self.queries = InfluxDBQueries(self.connection, make_settings())
        self.display = Display(units='V', precision=1)
        self.connection.write([encode_sample('pv', enum_sample(1000, 1, ['Zero', 'One'])),
                               encode_sample('pv', NumberSample(2000, 2.5, display=self.display))], 'data')
        self.connection.write([encode_metadata('pv', 1000, EnumMetaData(('Zero', 'One'))),
                               encode_metadata('pv', 2000, NumericMetaData('double', self.display))], 'meta')

    def test_oldest_sample_has_metadata_of_its_time(self):
        assert_that(read_oldest_sample(self.queries, 'pv').labels, is_(equal_to(('Zero', 'One'))))

    def test_newest_samples_each_with_metadata_of_their_time(self):
        enum, number = read_newest_samples(self.queries, 'pv', 2)
        assert_that(enum.labels, is_(equal_to(('Zero', 'One'))))
        assert_that(number.display, is_(equal_to(self.display)))

    def test_end_bound_limits_metadata(self):
        samples = read_newest_samples(self.queries, 'pv', 5, endtime=1500)
        assert_that([s.labels for s in samples], is_(equal_to([('Zero', 'One')])))
        assert_that(self.connection.statements[0], is_(equal_to(('meta', 'SELECT * FROM "pv" WHERE time <= 1500 '
                                                                          'ORDER BY time'))))


class ResultsToStringTest(unittest.TestCase):

    def test_lists_rows(self):
        text = results_to_string(result_set('pv1', [{'time': 5, 'string': 'Hello'}]))
        assert_that(text, contains_string('series pv1, columns time, string'))
        assert_that(text, contains_string('5, Hello'))

    def test_empty(self):
        assert_that(results_to_string(result_set('pv1', [])), is_('empty result'))


if __name__ == '__main__':
    unittest.main()
