# setup.py
import os
from setuptools import setup, find_packages

# --- Helper function to read files ---
def read(fname):
    """Reads the content of a file."""
    try:
        with open(os.path.join(os.path.dirname(__file__), fname), encoding='utf-8') as f:
            return f.read()
    except IOError:
        return "" # Return empty string if file doesn't exist

# --- Package Metadata ---
NAME = 'vidlook'
VERSION = '1.0.0'
DESCRIPTION = 'Multi-provider video metadata and stream resolution engine.'
LICENSE_TYPE = 'MIT License'
PYTHON_REQUIRES = '>=3.8'

# --- Define dependencies ---
# Read dependencies from requirements.txt, ignore comments/empty lines
INSTALL_REQUIRES = [
    req for req in read('requirements.txt').splitlines()
    if req and not req.strip().startswith('#')
]

# --- Setup Configuration ---
setup(
    name=NAME,
    version=VERSION,
    description=DESCRIPTION,
    long_description=read('README.md'), # Read README for PyPI description
    long_description_content_type='text/markdown',
    license=LICENSE_TYPE,
    python_requires=PYTHON_REQUIRES,

    # The importable package lives under src/
    package_dir={'': 'src'},
    packages=find_packages(where='src'),

    # Specify required packages needed for installation
    install_requires=INSTALL_REQUIRES,
    extras_require={
        'test': ['pytest>=7'],
    },

    # Metadata classifiers for PyPI (helps users find your package)
    classifiers=[
        'Development Status :: 4 - Beta',
        'Framework :: AsyncIO',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Multimedia :: Video',
        'Topic :: Internet :: WWW/HTTP',
    ],

    keywords='video invidious piped metadata stream resolver async',
)
