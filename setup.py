"""
Packaging for the accessory bridge.

Run the bridge with `python -m accessorybridge` or the `accessorybridge` console script.
Tests live beside the modules as *_test.py and run with `pytest src`.
"""

from setuptools import setup


setup(
    name='accessory-bridge',
    version='0.0.1',
    description='Host-side echo bridge to an accessory over a duplex byte channel.',
    url='',
    author='',
    author_email='',
    license='LGPL',
    package_dir={'': 'src'},
    packages=['accessorybridge', 'accessorybridge.channel', 'accessorybridge.config',
              'accessorybridge.support'],
    package_data={'accessorybridge.config': ['*.cfg']},
    python_requires='>=3.6',
    install_requires=[
        'pyserial>=3.4',
        'configobj>=5.0.6',
    ],
    extras_require={
        'test': [
            'pytest',
            'PyHamcrest',
            'timeout-decorator',
        ],
    },
    entry_points={
        'console_scripts': [
            'accessorybridge = accessorybridge.__main__:main',
        ],
    },
    zip_safe=False,
)
