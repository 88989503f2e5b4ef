import functools

from setuptools_scm import get_version


@functools.lru_cache(maxsize=None)
def get_restoration_version():
    from restoration import get_version as get_package_version

    try:
        return get_version(root="..", relative_to=__file__)
    except LookupError:
        # Not running from a git checkout
        return get_package_version()
