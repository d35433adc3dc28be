"""Domain-specific errors for connectblue.

Every error carries the process exit code the CLI reports for it.
"""


class ConnectblueError(Exception):
    """Base error for connectblue."""

    exit_code = 1


class PlatformUnavailableError(ConnectblueError):
    """Raised when the macOS framework bindings cannot be imported."""


class DeviceNotFoundError(ConnectblueError):
    """Raised when a Bluetooth address cannot be resolved to a device."""

    exit_code = 1


class BluetoothConnectError(ConnectblueError):
    """Base error for connection failures."""

    exit_code = 2


class ConnectionOpenError(BluetoothConnectError):
    """Raised when the open-connection request is rejected."""


class ConnectionTimeoutError(BluetoothConnectError):
    """Raised when the device does not report connected before the deadline."""


class AudioRouteError(ConnectblueError):
    """Base audio routing error."""

    exit_code = 3


class AudioQueryError(AudioRouteError):
    """Raised when audio devices cannot be enumerated."""


class AudioSwitchError(AudioRouteError):
    """Raised when the default output cannot be switched."""


class ConfigError(ConnectblueError):
    """Base configuration error."""

    exit_code = 4


class ConfigLoadError(ConfigError):
    """Raised when reading the configuration file fails."""


class ConfigValidationError(ConfigError):
    """Raised when the configuration does not conform to schema or semantics."""
