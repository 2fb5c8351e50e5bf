"""Exceptions raised by the driver core."""


class DriverError(Exception):
    """Base class for driver failures."""


class UserError(DriverError):
    """Configuration or invocation error the user can fix.

    The CLI reports these without a traceback.
    """


class UnsupportedBackend(UserError):
    """The requested build mode needs an analyzer family that is disabled."""

    def __init__(self, requested_mode: str, analyzer: str):
        self.requested_mode = requested_mode
        self.analyzer = analyzer
        super().__init__(
            f"Unsupported build mode: {requested_mode}\n"
            f"capdriver was configured with {analyzer} analyzers disabled. "
            f"Please enable {analyzer} in the [backends] configuration."
        )


class AmbiguousBuckIntegration(UserError):
    """A Buck command was given without selecting a Buck integration."""

    def __init__(self):
        super().__init__(
            "`buck` command detected on the command line but no Buck integration has been "
            "selected. Please specify `--buck-mode clang-flavors`, `--buck-mode "
            "java-genrule-master`, or `--buck-mode compilation-db`. See `capd capture --help` "
            "for more information."
        )


class UnknownBuildCommand(UserError):
    """The build executable does not map to any known build system."""

    def __init__(self, exe_name: str):
        self.exe_name = exe_name
        super().__init__(
            f"Unsupported build command {exe_name!r}. Use --force-integration to select "
            "a build system explicitly."
        )


class CaptureBackendFailure(DriverError):
    """A capture backend hit an I/O fault and the run cannot continue."""

    def __init__(self, backend: str, message: str):
        self.backend = backend
        super().__init__(f"Capture backend '{backend}' failed: {message}")
