from setuptools import find_packages, setup

setup(
    name="event-relay",
    version="0.1.0",
    license="Apache License 2.0",

    python_requires=">=3.12",
    description="Consumer that delivers domain events from an SQS queue to "
                "webhook subscribers with backoff and partial requeue.",

    packages=find_packages(exclude=('tests', 'tests.*')),

    install_requires=[
        "Click>=8.1,<9.0",
        "boto3>=1.34,<2.0",
        "pydantic>=2.7,<3.0",
        "pydantic-settings>=2.3,<3.0",
        "structlog>=24.1",
        "sentry-sdk>=2.0,<3.0",
        "prometheus-client>=0.20",
    ],

    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-mock>=3.12",
            "moto[sqs,secretsmanager]>=5.0",
        ],
        "typing": [
            "mypy-boto3-sqs",
            "mypy-boto3-secretsmanager",
        ],
    },

    classifiers=[
        'Development Status :: 3 - Alpha',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.12',
    ],
    entry_points={
        'console_scripts': [
            'event-relay = event_relay.cli:cli',
        ],
    },
)
