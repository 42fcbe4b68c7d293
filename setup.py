#!/usr/bin/env python
import os
from setuptools import setup, find_packages
from cloudfsadapter.constants import version

def read(fname):
    full_path = os.path.join(os.path.dirname(__file__), fname)
    if os.path.exists(full_path):
        with open(full_path) as fd:
            return fd.read()
    else:
        return ""

setup(name='cloudfsadapter',
      version=version,
      description='Filesystem adapter for OpenStack Object Storage (Swift) and Rackspace Cloud Files',
      long_description = read('README.rst'),
      license='MIT',
      include_package_data=True,
      zip_safe=False,
      python_requires='>=3.7',
      install_requires=['python-swiftclient>=3.0.0', 'python-memcached'],
      extras_require={'test': ['pytest']},
      packages = find_packages(exclude=['tests',]),
      classifiers = [
        'Development Status :: 4 - Beta',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Operating System :: OS Independent',
        'License :: OSI Approved :: MIT License',
        ],
      )
