from setuptools import setup, find_packages

setup(
    name='k3pi',
    version='0.1.0',
    packages=find_packages(exclude=['k3pi.tests']),
    include_package_data=True,
    install_requires=[
        'typer',
        'paramiko',
        'pyyaml',
        'pydantic>=2',
        'python-dotenv',
        'requests',
        'tenacity',
        'jsonschema',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'k3pi=k3pi.cli:app'
        ]
    },
    description='Installs k3OS on a fleet of Raspberry Pi style nodes over SSH',
    classifiers=[
        'Programming Language :: Python :: 3',
        'Operating System :: OS Independent',
    ],
    python_requires='>=3.8',
)
