"""Error taxonomy for the build pipeline.

Every error is terminal: the pipeline raises it, nothing retries, and the CLI
turns it into an ``Error:`` line and exit status 1.
"""


class BuildError(Exception):
    """Base class for all build failures."""

    code = "BUILD_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnsupportedPlatform(BuildError):
    code = "UNSUPPORTED_PLATFORM"

    def __init__(self, platform: str):
        super().__init__(
            f"Sorry, this build script only runs on macOS currently (found {platform})."
        )
        self.platform = platform


class MissingArtifact(BuildError):
    code = "MISSING_ARTIFACT"

    def __init__(self, name: str):
        super().__init__(f"{name} file missing.")
        self.name = name


class ConversionFailed(BuildError):
    code = "CONVERSION_FAILED"

    def __init__(self, details: str = ""):
        message = "Conversion failed. Manually save as XML, then try again."
        if details:
            message += f" ({details})"
        super().__init__(message)
        self.details = details


class ManifestSyntaxError(BuildError):
    code = "MANIFEST_SYNTAX_ERROR"

    def __init__(self, details: list[str]):
        joined = "\n".join(details)
        super().__init__(
            f"Plist contains syntax errors, fix, then try again. Error(s): {joined}"
        )
        self.details = details


class InvalidIconFormat(BuildError):
    code = "INVALID_ICON_FORMAT"

    def __init__(self, actual: str, expected: str = "PNG"):
        super().__init__(f"Invalid Icon file format: {actual}. Must be {expected}.")
        self.actual = actual


class InvalidIconDimensions(BuildError):
    code = "INVALID_ICON_DIMENSIONS"

    def __init__(self, width: int, height: int, size: int):
        super().__init__(
            f"Incorrect Icon file dimensions: {width}x{height}, must be {size}x{size}."
        )
        self.width = width
        self.height = height


class MissingScriptKey(BuildError):
    code = "MISSING_SCRIPT_KEY"

    def __init__(self, key: str = "Script"):
        super().__init__(f"No {key} key in plist")
        self.key = key


class ScriptFileMissing(BuildError):
    code = "SCRIPT_FILE_MISSING"

    def __init__(self, name: str):
        super().__init__(f"{name} does not exist.")
        self.name = name


class InvalidFilename(BuildError):
    code = "INVALID_FILENAME"

    def __init__(self, filename: str):
        super().__init__(f"filename contains invalid characters: '{filename}'")
        self.filename = filename


class InvalidExtension(BuildError):
    code = "INVALID_EXTENSION"

    def __init__(self, extension: str):
        super().__init__(f"extension contains invalid characters: '{extension}'")
        self.extension = extension


class ArchiveError(BuildError):
    code = "ARCHIVE_ERROR"

    def __init__(self, details: str = ""):
        message = "Zip failed"
        if details:
            message += f": {details}"
        super().__init__(message)
        self.details = details


class ToolUnavailable(BuildError):
    code = "TOOL_UNAVAILABLE"

    def __init__(self, tool: str, hint: str = ""):
        super().__init__(hint or f"Required tool not found: {tool}")
        self.tool = tool


class ToolError(BuildError):
    """An external tool failed in a way no specific check accounts for."""

    code = "TOOL_ERROR"

    def __init__(self, tool: str, details: str):
        super().__init__(f"{tool} failed: {details}")
        self.tool = tool
        self.details = details
