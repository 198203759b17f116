from importlib import metadata as importlib_metadata

DISTRIBUTION_NAME = "starlette-reqlog"


def get_project_version(name: str = DISTRIBUTION_NAME, default: str = "unknown") -> str:
    """
    Return the installed distribution version, or `default` when the package
    is not installed (e.g. running from a source checkout).
    """
    try:
        return importlib_metadata.version(name)
    except importlib_metadata.PackageNotFoundError:
        return default


__all__ = ["DISTRIBUTION_NAME", "get_project_version"]
