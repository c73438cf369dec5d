from os import path
from setuptools import setup

here = path.abspath(path.dirname(__file__))

# Get the long description from the README file
with open(path.join(here, 'README.md'), encoding='utf-8') as f:
    long_description = f.read()

setup(
    name='pvarchive',
    version='0.1',
    description='Archives process variable samples in InfluxDB',
    long_description=long_description,
    long_description_content_type='text/markdown',
    install_requires=[
        'configobj',
        'influxdb',
        'requests',
        'simplejson',
    ],

    packages=[
        'pvarchive',
        'pvarchive.config',
        'pvarchive.influxdb',
    ],

    package_data={
        'pvarchive': ['*.cfg'],
    },

    extras_require={
        'test': ['coverage', 'pytest', 'PyHamcrest'],
    },
)
