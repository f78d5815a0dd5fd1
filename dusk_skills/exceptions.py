"""Shared exception classes for dusk_skills."""


class DuskError(Exception):
    """Base exception for dusk_skills errors."""


class ManifestNotFoundError(DuskError):
    """Raised when skills.toml is not found."""


class ManifestParseError(DuskError):
    """Raised when skills.toml cannot be parsed."""


class ManifestValidationError(DuskError):
    """Raised when skills.toml contains invalid configuration."""


class SourceNotFoundError(DuskError):
    """Raised when a declared source cannot be resolved."""


class RepoNotFoundError(SourceNotFoundError):
    """Raised when a remote repository or revision doesn't exist."""


class FetchError(SourceNotFoundError):
    """Raised when a remote source cannot be downloaded."""


class AssemblyError(DuskError):
    """Raised when a copy step cannot be performed."""


class SubstitutionError(DuskError):
    """Raised when a token cannot be substituted in its target file."""


class SubstitutionValueError(DuskError):
    """Raised when the replacement value for a token cannot be resolved."""
