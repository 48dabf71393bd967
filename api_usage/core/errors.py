from __future__ import annotations


class ExporterError(Exception):
    pass


class SpecificationError(ExporterError):
    """The OpenAPI document cannot be turned into route trees."""


class MissingParameterDeclaration(SpecificationError):
    def __init__(self, segment: str, path: str):
        self.segment = segment
        self.path = path
        super().__init__(f"path parameter {segment} of {path} is not declared")


class InvalidServerURL(SpecificationError):
    def __init__(self, url: str, reason: str = ""):
        self.url = url
        msg = f"cannot derive base path from server url {url!r}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class SpecificationLoadError(ExporterError):
    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"failed to load OpenAPI specification from {source}: {reason}")


class InvalidLogRecord(ExporterError):
    pass


class ConfigError(ExporterError):
    pass
