"""Test profile directory listing for GUS_GetTestProfiles.

The host asks for profiles by test family keyword or by file pattern:

    sine        *.vsp
    random      *.vrp
    shock       *.vkp
    datareplay  *.vfp

A filter containing ``*`` or ``?`` is used as a glob pattern; any other
filter must match a file name exactly. Matching ignores case, as the
profile directory lives on a Windows file system.
"""

import fnmatch
import logging
import xml.etree.ElementTree as ET
from pathlib import Path

logger = logging.getLogger(__name__)

# Test family keyword -> profile file pattern
PROFILE_PATTERNS: dict[str, str] = {
    "sine": "*.vsp",
    "random": "*.vrp",
    "shock": "*.vkp",
    "datareplay": "*.vfp",
}

_WILDCARDS = ("*", "?")


def resolve_profile_pattern(profile_filter: str) -> str:
    """
    Map a profile filter to a lowercase file name pattern.

    Args:
        profile_filter: Keyword, glob pattern or literal file name

    Returns:
        Lowercase pattern for fnmatch
    """
    key = profile_filter.strip().lower()
    return PROFILE_PATTERNS.get(key, key)


def _matches(file_name: str, pattern: str) -> bool:
    name = file_name.lower()
    if any(wildcard in pattern for wildcard in _WILDCARDS):
        return fnmatch.fnmatchcase(name, pattern)
    return name == pattern


def find_test_profiles(directory: str | Path, profile_filter: str) -> list[str]:
    """
    Find profile file names in a directory.

    Args:
        directory: Profile directory
        profile_filter: Keyword, glob pattern or literal file name

    Returns:
        Sorted file names (not paths). Empty if the directory does not exist.
    """
    path = Path(directory)
    if not path.is_dir():
        logger.warning("Profile directory not found: %s", path)
        return []

    pattern = resolve_profile_pattern(profile_filter)
    names = sorted(
        entry.name
        for entry in path.iterdir()
        if entry.is_file() and _matches(entry.name, pattern)
    )
    logger.debug("%d profiles match %r in %s", len(names), pattern, path)
    return names


def list_test_profiles(directory: str | Path, profile_filter: str) -> str:
    """
    Build the TestProfiles XML document.

    Returns:
        XML with a TestProfiles root and one Profile/Name per matching file
    """
    root = ET.Element("TestProfiles")
    for name in find_test_profiles(directory, profile_filter):
        profile = ET.SubElement(root, "Profile")
        ET.SubElement(profile, "Name").text = name

    ET.indent(root)
    return '<?xml version="1.0" encoding="utf-8"?>\n' + ET.tostring(
        root, encoding="unicode"
    )
