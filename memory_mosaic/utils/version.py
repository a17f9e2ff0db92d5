import os
import pathlib
from importlib import metadata

DISTRIBUTION_NAME = "memory-mosaic"


def version() -> str:
    """Read the version from the VERSION file of a source checkout, falling back to the installed distribution"""
    current_file = pathlib.Path(__file__)
    version_file = os.path.join(current_file.parent.parent.parent, "VERSION")
    if os.path.isfile(version_file):
        with open(version_file) as file:
            return file.readline().strip()
    return metadata.version(DISTRIBUTION_NAME)
