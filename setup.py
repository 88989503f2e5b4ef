#!/usr/bin/env python
from setuptools import find_packages, setup

VERSION = "0.1.0"
INSTALL_REQUIREMENTS = [
    "Django>=4.2",
    "celery>=5.3",
    "django-redis",
    "django-structlog",
    "redis",
    "sentry-sdk",
    "setuptools_scm",
    "structlog",
]
EXTRAS_REQUIRE = {
    "postgres": ["psycopg2-binary"],
    "test": ["pytest", "pytest-django"],
}
SCRIPTS = ["manage.py"]
DESCRIPTION = "Restore backed up form entries into local storage"
CLASSIFIERS = """\
Environment :: Web Environment
Framework :: Django
Programming Language :: Python
Programming Language :: Python :: 3
""".splitlines()

with open("README.md", "r") as f:
    LONG_DESCRIPTION = f.read()


setup(
    name="restoration",
    version=VERSION,
    description=DESCRIPTION,
    long_description=LONG_DESCRIPTION,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["*.tests", "*.tests.*"]),
    include_package_data=True,
    scripts=SCRIPTS,
    install_requires=INSTALL_REQUIREMENTS,
    extras_require=EXTRAS_REQUIRE,
    classifiers=CLASSIFIERS,
    python_requires=">=3.10",
)
