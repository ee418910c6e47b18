class LedesCodecError(Exception):
    """Base class for infrastructure failures inside the export pipeline."""


class ConfigurationError(LedesCodecError, ValueError):
    """A configuration could not be parsed (bad format, unknown UTBMS code...)."""


class ConfigurationNotFound(LedesCodecError, LookupError):
    def __init__(self, configuration_id: str):
        super().__init__(f"Configuration not found: {configuration_id}")
        self.configuration_id = configuration_id


class UnsupportedFormatError(LedesCodecError, ValueError):
    def __init__(self, fmt):
        super().__init__(f"Unsupported LEDES format: {fmt}")
        self.format = fmt
