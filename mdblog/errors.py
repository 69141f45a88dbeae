from __future__ import annotations


class BlogError(Exception):
    """Base class for every error raised by the generator."""


class FrontMatterError(BlogError, ValueError):
    code = "FrontMatterError"

    def __init__(self, message: str = "", line: int | None = None, source: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code
        self.line = line
        self.source = source

    def __str__(self) -> str:
        where = self.source
        if self.line is not None:
            where = f"{where}:{self.line}" if where else f"line {self.line}"
        if where:
            return f"{where}: {self.code}: {self.message}"
        return f"{self.code}: {self.message}"


class MissingOpenDelimiter(FrontMatterError):
    code = "MissingOpenDelimiter"


class MissingCloseDelimiter(FrontMatterError):
    code = "MissingCloseDelimiter"


class InvalidSyntax(FrontMatterError):
    code = "InvalidSyntax"


class InvalidBool(FrontMatterError):
    code = "InvalidBool"


class InvalidDate(FrontMatterError):
    code = "InvalidDate"


class MissingTitle(FrontMatterError):
    code = "MissingTitle"


class MissingDate(FrontMatterError):
    code = "MissingDate"


class InvalidEncoding(FrontMatterError):
    code = "InvalidEncoding"


class PathSafetyError(BlogError):
    """A configured path is unsafe. ``code`` is ``<Role><Reason>``."""

    ROLE_PREFIXES = {
        "out_dir": "OutDir",
        "posts_dir": "PostsDir",
        "static_dir": "StaticDir",
        "templates_dir": "TemplatesDir",
        "config_file": "ConfigFile",
        "watch_dir": "WatchDir",
    }

    def __init__(self, role: str, reason: str, path: object = "") -> None:
        self.role = role
        self.reason = reason
        self.path = str(path)
        self.code = f"{self.ROLE_PREFIXES.get(role, role)}{reason}"
        super().__init__(f"{self.code}: {self.path!r}")


class WatchPathError(PathSafetyError):
    pass


class DuplicateSlugError(BlogError):
    def __init__(self, slug: str, source: str, owner: str) -> None:
        self.slug = slug
        self.source = source
        self.owner = owner
        super().__init__(f"duplicate slug '{slug}' for {source} (already used by {owner})")


class RenderError(BlogError):
    def __init__(self, message: str, source: str = "") -> None:
        self.message = message
        self.source = source
        super().__init__(message)

    def __str__(self) -> str:
        if self.source:
            return f"{self.source}: {self.message}"
        return self.message


class FeedError(BlogError):
    pass


class ConfigError(BlogError):
    pass
