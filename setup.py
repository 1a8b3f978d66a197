#!/usr/bin/env python
# -*- coding: utf-8 -*-

from setuptools import setup, find_packages
from os.path import join, dirname

exec(open(join(dirname(__file__), 'websvc', 'release.py'), 'rb').read())
lib_name = 'websvc'

setup(
    name='websvc',
    version=version,
    description=description,
    long_description=long_desc,
    url=url,
    author=author,
    author_email=author_email,
    classifiers=[c for c in classifiers.split('\n') if c],
    license=license,
    scripts=['setup/websvc'],
    packages=find_packages(include=['websvc', 'websvc.*']),
    package_dir={'%s' % lib_name: 'websvc'},
    include_package_data=True,
    install_requires=[
        'werkzeug >= 2.2',
        'lxml',
        'markupsafe',
        'passlib',
        'decorator',
    ],
    python_requires='>=3.10',
    extras_require={
        'test': ['pytest', 'freezegun'],
    },
    tests_require=[
        'pytest',
        'freezegun',
    ],
)
