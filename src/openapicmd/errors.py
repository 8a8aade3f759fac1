"""Exception definitions for openapicmd"""


class OpenapicmdException(Exception):
    """Base exception for all openapicmd errors.

    All custom exceptions in openapicmd inherit from this class.
    Use this as a catch-all for openapicmd-specific errors when you don't need
    to handle specific exception types.
    """

    pass


class ConfigException(OpenapicmdException):
    """Raised when configuration validation or loading fails.

    Use this exception when:
    - The configuration file cannot be found
    - The TOML syntax is invalid
    - Configuration validation fails (missing required fields, invalid values)
    """

    pass


class SpecException(OpenapicmdException):
    """Raised when an API description cannot be loaded or parsed.

    Use this exception when:
    - The description file or URL cannot be read
    - The content is neither valid JSON nor valid YAML
    - The document has no usable `paths` section
    """

    pass


class LookupException(OpenapicmdException):
    """Raised when a field lookup cannot produce candidate values.

    Use this exception when:
    - The lookup request fails at the network level
    - The lookup response has an empty body
    - The value path matches nothing in the response
    """

    pass


class ImportException(OpenapicmdException):
    """Raised when pasted import text (curl command or JSON literal) is malformed."""

    pass


class StorageException(OpenapicmdException):
    pass


class FetchInProgress(OpenapicmdException):
    """Raised when a lookup or submit is started while one is still outstanding.

    A form owns at most one network call at a time; a second call is rejected
    instead of being queued.
    """

    pass
