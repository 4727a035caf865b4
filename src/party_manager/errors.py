"""Exception hierarchy shared by every Party Manager component.

Errors fall into four kinds. Each kind carries the process exit code the
command line reports for it:

    NotFoundError       (3) registry, game, manifest or config missing
    AlreadyExistsError  (4) duplicate game, existing install or registry
    MalformedError      (5) bad manifest, archive structure or registry file
    IOFailureError      (6) unreadable or unwritable filesystem resources
"""


class PartyManagerError(Exception):
    """Base class for all errors raised by Party Manager"""
    exit_code = 1
    kind = "error"


class NotFoundError(PartyManagerError):
    exit_code = 3
    kind = "not-found"


class AlreadyExistsError(PartyManagerError):
    exit_code = 4
    kind = "already-exists"


class MalformedError(PartyManagerError):
    exit_code = 5
    kind = "malformed"


class IOFailureError(PartyManagerError):
    exit_code = 6
    kind = "io-failure"


# Manifest
class ManifestNotFound(NotFoundError):
    """No package.json in the game directory"""


class ManifestInvalid(MalformedError):
    """package.json is unparsable or has missing/mistyped fields"""


# Registry
class RegistryMissing(NotFoundError):
    """The installed games list has not been initialized"""


class RegistryAlreadyExists(AlreadyExistsError):
    pass


class RegistryCorrupt(MalformedError):
    pass


class RegistryWriteError(IOFailureError):
    pass


class GameNotFound(NotFoundError):
    pass


class DuplicateGame(AlreadyExistsError):
    pass


# Release
class BuildIOError(IOFailureError):
    pass


# Install / uninstall
class ArchiveUnreadable(MalformedError):
    pass


class ArchiveMalformed(MalformedError):
    pass


class AlreadyInstalled(AlreadyExistsError):
    pass


class NotInstalled(NotFoundError):
    """The game is registered but was not installed from an archive"""


class InstallIOError(IOFailureError):
    pass


class UninstallIOError(IOFailureError):
    pass


# Configuration
class ConfigurationError(MalformedError):
    pass


class ConfigAlreadyExists(AlreadyExistsError):
    pass


# Asset check
class AssetCheckFailed(MalformedError):
    """One or more assets of a game failed validation"""

    def __init__(self, message: str, problems: list[str] | None = None):
        super().__init__(message)
        self.problems = list(problems or [])
