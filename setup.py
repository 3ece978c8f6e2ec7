"""
Setup script for HEMSAEUCC - End-to-end encrypted store-and-forward messenger.

This messenger provides:
- X25519 identities whose public key is the address
- Per-message ephemeral X25519 + XChaCha20-Poly1305 sealing
- An untrusted HTTP relay that stores packets until recipients poll
- A command-line client with a background polling mode
"""

from setuptools import setup, find_packages
import os

this_directory = os.path.abspath(os.path.dirname(__file__))
with open(os.path.join(this_directory, 'README.md'), encoding='utf-8') as f:
    long_description = f.read()

setup(
    name='hemsaeucc-messenger',
    version='1.2.0',
    description='End-to-end encrypted store-and-forward messenger with an untrusted relay',
    long_description=long_description,
    long_description_content_type='text/markdown',
    package_dir={'': 'src'},
    packages=find_packages(where='src'),
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: End Users/Desktop',
        'Topic :: Communications :: Chat',
        'Topic :: Security :: Cryptography',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Operating System :: OS Independent',
        'Environment :: Console',
    ],
    python_requires='>=3.9',
    install_requires=[
        'cryptography>=42.0.4',
        'PyNaCl>=1.5.0',
        'fastapi>=0.110.0',
        'uvicorn>=0.29.0',
        'httpx>=0.27.0',
        'rich>=13.7.0',
        'tomli>=2.0.1; python_version < "3.11"',
    ],
    extras_require={
        'test': [
            'pytest>=7.4.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'hemsaeucc=hemsaeucc.__main__:main',
            'hemsaeucc-relay=hemsaeucc.server:main',
        ],
    },
)
