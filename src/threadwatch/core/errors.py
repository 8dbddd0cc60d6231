"""Exception hierarchy for threadwatch."""


class ThreadWatchError(Exception):
    """Base class for all threadwatch errors."""


class StartupError(ThreadWatchError):
    """Raised when monitoring cannot start. Always fatal."""


class TargetProcessNotFoundError(StartupError):
    """No .NET process is running."""

    def __init__(self, message: str = "There is no .NET process running") -> None:
        super().__init__(message)


class MissingEnvironmentError(StartupError):
    """A required variable is absent from the target's environment."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Cannot find the environment variable of {name}")
        self.name = name


class CollectorStartError(StartupError):
    """The metrics collector could not be started or exited before writing."""


class CaptureError(ThreadWatchError):
    """The diagnostic capture tool failed."""


class UploadError(ThreadWatchError):
    """The artifact could not be shipped to remote storage."""
