"""Connect a Bluetooth headset and route macOS audio output to it."""

__version__ = "0.1.0"
