"""Shared error code constants.

Stable machine-readable codes for boot reports and HTTP error payloads.
"""

# Configuration
CONFIGURATION_INVALID = "CONFIGURATION_INVALID"

# Validation
VALIDATION_ERROR = "VALIDATION_ERROR"
INVALID_ARGUMENT = "INVALID_ARGUMENT"

# Not found
NOT_FOUND = "NOT_FOUND"
RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"

# Conflict
CONFLICT = "CONFLICT"
ALREADY_EXISTS = "ALREADY_EXISTS"

# Policy / authorization
PERMISSION_DENIED = "PERMISSION_DENIED"

# Dependency / external system
DEPENDENCY_FAILURE = "DEPENDENCY_FAILURE"
DEPENDENCY_TIMEOUT = "DEPENDENCY_TIMEOUT"
DEPENDENCY_UNAVAILABLE = "DEPENDENCY_UNAVAILABLE"

# Boot stages
MIGRATION_FAILED = "MIGRATION_FAILED"
MIGRATION_ORDER_INVALID = "MIGRATION_ORDER_INVALID"
SEED_FAILED = "SEED_FAILED"

# Internal
INTERNAL_ERROR = "INTERNAL_ERROR"
UNEXPECTED_EXCEPTION = "UNEXPECTED_EXCEPTION"
