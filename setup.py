"""
Packaging for serialhelper.

Tests are modules named *_test.py beside the code they test, and are run with pytest:

    pip install -e .[test]
    pytest
"""

from setuptools import setup

setup(
    name='serialhelper-py',
    version='0.1.0',
    description='Resilient serial port connections with auto-reconnect, framing and request/reply.',
    url='',
    author='',
    author_email='',
    license='LGPL',
    package_dir={'': 'src'},
    packages=['serialhelper', 'serialhelper.conduit', 'serialhelper.config', 'serialhelper.connector',
              'serialhelper.protocol', 'serialhelper.support'],
    python_requires='>=3.7',
    install_requires=[
        'pyserial>=3.5',
        'configobj>=5.0.9',
    ],
    extras_require={
        'test': [
            'pytest',
            'PyHamcrest>=2.0.3',
            'timeout-decorator',
        ],
    },
    entry_points={
        'console_scripts': [
            'serialhelper-monitor=serialhelper.monitor:main',
        ],
    },
    zip_safe=False,
)
