"""
Custom exception types for the rbacmigrate library.
"""

class RbacMigrateError(Exception):
    """Base exception for all rbacmigrate errors."""
    pass

class DecodeError(RbacMigrateError):
    """Raised when an object manifest cannot be decoded into a binding."""
    pass

class InvalidServiceAccountUsername(RbacMigrateError):
    """Raised when a username does not follow the service account convention."""
    pass

class ConfigError(RbacMigrateError):
    """Raised when the configuration or a namespace mapping is invalid."""
    pass

class KubeConfigError(RbacMigrateError):
    """Raised when the Kubernetes configuration cannot be loaded."""
    pass

class UnsupportedSubjectKind(RbacMigrateError):
    """Raised when a subject of an unknown kind is asked to be remapped."""
    pass
