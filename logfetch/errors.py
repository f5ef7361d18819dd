"""Exceptions raised by the log fetcher."""


class LogFetchError(RuntimeError):
    """Base class for fetch/clear failures."""


class RemoteCommandError(LogFetchError):
    """The SSH connection, session or remote command could not be run."""


class LocalWriteError(LogFetchError):
    """The fetched bytes could not be written to the local file."""
