"""Centralized constants for kmpack to ensure consistency across modules."""

import re

# The main application identifier, also used for the settings directory name.
APP_NAME = "kmpack"

# Keyboard Maestro expects these exact names inside a plug-in action bundle.
MANIFEST_NAME = "Keyboard Maestro Action.plist"
ICON_NAME = "Icon.png"
SCRIPT_KEY = "Script"

# Plug-in icons must be square PNGs of this size.
ICON_FORMAT = "PNG"
DEFAULT_ICON_SIZE = 64

# Files the OS drops into folders that must never ship in an archive.
METADATA_EXCLUDES = (".DS_Store",)

ARCHIVE_SUFFIX = ".zip"

# Only ASCII alphanumerics or underscores, in both the script name and its
# extension: https://wiki.keyboardmaestro.com/manual/Plug_In_Actions
FILENAME_PART_RE = re.compile(r"[A-Za-z0-9_]+")
