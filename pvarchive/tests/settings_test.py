import os
import unittest
from unittest.mock import patch

from configobj import ConfigObjError
from hamcrest import assert_that, calling, equal_to, is_, none, raises

from pvarchive import settings
from pvarchive.settings import config_filename, data_db_name, load_settings, meta_db_name, settings_from_dict


class SettingsTest(unittest.TestCase):

    def test_packaged_files_exist(self):
        for name in ('archive.default', 'archive.schema'):
            file = config_filename(name)
            assert_that(os.path.exists(file), is_(True), "expected config path %s to exist" % file)

    def test_local_file_beside_package(self):
        assert_that(os.path.dirname(config_filename('archive')),
                    is_(equal_to(os.path.dirname(os.path.abspath(settings.__file__)))))

    def test_defaults(self):
        s = settings_from_dict({})
        influx = s['influxdb']
        assert_that(influx['url'], is_('http://localhost:8086'))
        assert_that(influx['user'], is_(none()))
        assert_that(influx['password'], is_(none()))
        assert_that(influx['consistency'], is_('all'))
        assert_that(influx['retention_policy'], is_('autogen'))
        assert_that(influx['timeout'], is_(10.0))
        assert_that(s['writer']['flush_count'], is_(500))
        assert_that(s['writer']['flush_period'], is_(0.0))

    def test_values_converted(self):
        s = settings_from_dict({'influxdb': {'chunk_size': '100', 'timeout': '2.5'}, 'writer': {'flush_count': '7'}})
        assert_that(s['influxdb']['chunk_size'], is_(100))
        assert_that(s['influxdb']['timeout'], is_(2.5))
        assert_that(s['writer']['flush_count'], is_(7))

    def test_invalid_value_rejected(self):
        with self.assertLogs('pvarchive.settings', 'ERROR'):
            assert_that(calling(settings_from_dict).with_args({'influxdb': {'consistency': 'most'}}),
                        raises(ConfigObjError))

    def test_database_names(self):
        s = settings_from_dict({'influxdb': {'dbname': 'plant', 'metadbname': 'plant_meta'}})
        assert_that(data_db_name(s, 'pv1'), is_('plant'))
        assert_that(meta_db_name(s, 'pv1'), is_('plant_meta'))

    @patch.object(settings, 'user_config_filename', return_value='/nonexistent/pvarchive_archive.cfg')
    def test_load_packaged_settings(self, user_file):
        s = load_settings()
        assert_that(s['influxdb']['url'], is_(equal_to('http://localhost:8086')))
        assert_that(s['writer']['flush_count'], is_(500))
        user_file.assert_called_once_with('archive')


if __name__ == '__main__':
    unittest.main()
