from setuptools import setup

install_requires = [
    'cryptography>=41.0.0',
    'pycryptodomex>=3.20.0',
    'striprtf>=0.0.26',
]

if __name__ == '__main__':
    setup(
        name='ciphvault',
        version='1.2',
        description='Encrypted password document: legacy Blowfish container, typedstream archive and record store',
        python_requires='>=3.8',
        packages=['ciphvault'],
        install_requires=install_requires,
        extras_require={
            'test': ['pytest'],
        },
        classifiers=[
            'Programming Language :: Python :: 3',
            'Topic :: Security :: Cryptography',
        ],
    )
