"""Install the parlour service."""

from setuptools import setup, find_packages

setup(
    name='parlour',
    version='0.3.0',
    packages=find_packages(exclude=['tests', '*.tests', '*.tests.*']),
    install_requires=[
        "flask",
        "werkzeug",
        "click",
        "wtforms[email]",
        "pyjwt",
        "redis",
        "fakeredis",
        "boto3",
        "botocore",
        "python-dateutil",
        "pytz",
        "python-json-logger"
    ],
    extras_require={
        'test': ['pytest', 'jsonschema']
    },
    zip_safe=False
)
