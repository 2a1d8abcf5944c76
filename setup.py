#!/usr/bin/env python3
"""
Setup script for the Contact Verification Pipeline.
Selector indexes are created at runtime with `validate_once.py --ensure-indexes`.
"""

from setuptools import setup, find_namespace_packages

setup(
    name='contact-verification-pipeline',
    version='0.1.0',
    description='Streams unverified customer contacts to an external verifier and reconciles the results',
    python_requires='>=3.8',
    packages=find_namespace_packages(include=['shared', 'verify', 'config']),
    py_modules=['shared_config', 'validate_once', 'receive_notification'],
    install_requires=[
        'requests>=2.28',
        'tenacity>=8.0',
        'pymongo>=4.0',
    ],
    extras_require={
        'test': ['pytest>=7.0'],
    },
    entry_points={
        'console_scripts': [
            'validate-contacts=validate_once:main',
            'receive-verification-notification=receive_notification:main',
        ],
    },
)
